"""Recorder role: keeps durable notes across steps.

The Recorder only ever adds notes.  A failed or unparseable call yields no
notes rather than failing the step.
"""

from __future__ import annotations

from pydantic import BaseModel, ValidationError

from autopilot.core.agent.actions import Action, Observation
from autopilot.core.agent.base import (
    BaseRole,
    describe_action,
    format_list,
    format_observation,
    observation_images,
)
from autopilot.core.agent.prompts.recorder import (
    RECORDER_SYSTEM_PROMPT,
    RECORDER_USER_TEMPLATE,
)
from autopilot.core.agent.workspace import Evaluation, Workspace
from autopilot.core.llm.models import Prompt
from autopilot.core.llm.parsing import parse_json_object
from autopilot.utils.exceptions import MalformedResponseError, RoleError


class _NotesPayload(BaseModel):
    notes: list[str] = []


class Recorder(BaseRole):
    name = "recorder"

    def build_prompt(
        self,
        workspace: Workspace,
        action: Action,
        evaluation: Evaluation,
        observation: Observation | None,
    ) -> Prompt:
        user = RECORDER_USER_TEMPLATE.format(
            task=workspace.task,
            action=describe_action(action),
            rationale=evaluation.rationale,
            notes=format_list(workspace.notes),
            screen=format_observation(observation),
        )
        return Prompt(system=RECORDER_SYSTEM_PROMPT, user=user)

    async def record(
        self,
        workspace: Workspace,
        action: Action,
        evaluation: Evaluation,
        observation: Observation | None,
    ) -> list[str]:
        """Return new notes worth keeping (possibly none)."""
        try:
            raw = await self._complete(
                self.build_prompt(workspace, action, evaluation, observation),
                observation_images(observation),
            )
            payload = _NotesPayload.model_validate(parse_json_object(raw))
        except (RoleError, MalformedResponseError, ValidationError) as exc:
            self.logger.warning("recorder_skipped", error=str(exc))
            return []

        existing = set(workspace.notes)
        notes = [n.strip() for n in payload.notes if n and n.strip() and n.strip() not in existing]
        if notes:
            self.logger.info("recorder_notes", count=len(notes))
        return notes
