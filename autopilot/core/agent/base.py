"""Shared plumbing for the four agent roles."""

from __future__ import annotations

from autopilot.core.agent.actions import Action, Observation
from autopilot.core.agent.workspace import Workspace
from autopilot.core.llm.models import ImageInput, ModelResult, Prompt
from autopilot.utils.exceptions import RoleError
from autopilot.utils.logging import get_logger

NONE_TEXT = "(none)"


class BaseRole:
    """Base class for roles.

    A role turns a workspace snapshot (plus observations) into one typed
    result using a single model call.  Subclasses set ``name`` and
    ``error_cls``.
    """

    name = "role"
    error_cls: type[RoleError] = RoleError

    def __init__(self, gateway):
        self.gateway = gateway
        self.logger = get_logger(f"agent.{self.name}")

    async def _complete(
        self,
        prompt: Prompt,
        images: list[ImageInput] | None = None,
    ) -> str:
        """Call the gateway; a failed :class:`ModelResult` becomes a role error."""
        result: ModelResult = await self.gateway.predict(prompt, images or None)
        if not result.ok:
            self.logger.warning(
                f"{self.name}_model_failed",
                failure=result.failure.value,
                detail=result.detail,
            )
            raise self.error_cls(result.failure.value, result.detail)
        return result.text


def describe_action(action: Action) -> str:
    params = ", ".join(f"{k}={v!r}" for k, v in action.parameters.items())
    target = f" @ {action.target}" if action.target else ""
    return f"{action.kind.value}({params}){target}"


def format_history(workspace: Workspace, limit: int = 5) -> str:
    pairs = workspace.recent_history(limit)
    if not pairs:
        return NONE_TEXT
    lines = []
    for record, evaluation in pairs:
        lines.append(
            f"- [step {record.step}] {describe_action(record.action)} -> "
            f"{evaluation.verdict.value}: {evaluation.rationale}"
        )
    return "\n".join(lines)


def format_list(items: list[str], numbered: bool = False) -> str:
    if not items:
        return NONE_TEXT
    if numbered:
        return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))
    return "\n".join(f"- {item}" for item in items)


def format_observation(observation: Observation | None) -> str:
    if observation is None:
        return "(no screenshot)"
    parts = [f"screenshot {observation.handle}"]
    if observation.width and observation.height:
        parts.append(f"{observation.width}x{observation.height}")
    if observation.description:
        parts.append(observation.description)
    return ", ".join(parts)


def observation_images(*observations: Observation | None) -> list[ImageInput]:
    images = []
    for observation in observations:
        if observation is None:
            continue
        image = observation.to_image_input()
        if image is not None:
            images.append(image)
    return images
