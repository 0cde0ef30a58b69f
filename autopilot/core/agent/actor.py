"""Actor role: chooses the next device action from the current screen."""

from __future__ import annotations

from pydantic import BaseModel, ValidationError

from autopilot.core.agent.actions import Action, Observation
from autopilot.core.agent.base import (
    NONE_TEXT,
    BaseRole,
    format_history,
    format_list,
    format_observation,
    observation_images,
)
from autopilot.core.agent.prompts.actor import (
    ACTOR_SYSTEM_PROMPT,
    ACTOR_USER_TEMPLATE,
    PROMPT_HINT_TEMPLATE,
)
from autopilot.core.agent.workspace import Workspace
from autopilot.core.llm.models import Prompt
from autopilot.core.llm.parsing import parse_json_object
from autopilot.utils.exceptions import ActorError, MalformedResponseError

UNPARSEABLE = "unparseable"


class _ActorPayload(BaseModel):
    thought: str = ""
    action: dict
    description: str = ""


class ActorDecision(BaseModel):
    action: Action
    thought: str = ""


class Actor(BaseRole):
    name = "actor"
    error_cls = ActorError

    def build_prompt(self, workspace: Workspace, observation: Observation | None) -> Prompt:
        hint = ""
        if workspace.prompt_hint:
            hint = PROMPT_HINT_TEMPLATE.format(prompt_hint=workspace.prompt_hint)
        user = ACTOR_USER_TEMPLATE.format(
            task=workspace.task,
            context=workspace.context or NONE_TEXT,
            subgoal=workspace.current_subgoal or NONE_TEXT,
            plan=format_list(workspace.plan[1:], numbered=True),
            history=format_history(workspace),
            notes=format_list(workspace.notes),
            screen=format_observation(observation),
        )
        return Prompt(system=ACTOR_SYSTEM_PROMPT.format(hint=hint), user=user)

    async def act(self, workspace: Workspace, observation: Observation | None) -> ActorDecision:
        """Return exactly one fully resolved action.

        Raises :class:`ActorError` with kind ``"unparseable"`` when the answer
        does not map to a known action, instead of guessing.
        """
        raw = await self._complete(
            self.build_prompt(workspace, observation),
            observation_images(observation),
        )
        decision = self.parse(raw)
        self.logger.info(
            "actor_action",
            kind=decision.action.kind.value,
            description=decision.action.description,
        )
        return decision

    @staticmethod
    def parse(raw: str) -> ActorDecision:
        try:
            payload = _ActorPayload.model_validate(parse_json_object(raw))
        except (MalformedResponseError, ValidationError) as exc:
            raise ActorError(UNPARSEABLE, str(exc)) from exc

        fields = dict(payload.action)
        if payload.description and not fields.get("description"):
            fields["description"] = payload.description
        try:
            action = Action.model_validate(fields)
        except ValidationError as exc:
            raise ActorError(UNPARSEABLE, str(exc)) from exc
        return ActorDecision(action=action, thought=payload.thought)
