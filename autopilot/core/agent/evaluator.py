"""Evaluator role: judges whether a dispatched action worked."""

from __future__ import annotations

from pydantic import ValidationError

from autopilot.core.agent.actions import Action, Observation
from autopilot.core.agent.base import (
    NONE_TEXT,
    BaseRole,
    describe_action,
    format_observation,
    observation_images,
)
from autopilot.core.agent.prompts.evaluator import (
    EVALUATOR_SYSTEM_PROMPT,
    EVALUATOR_USER_TEMPLATE,
)
from autopilot.core.agent.workspace import Evaluation, Workspace
from autopilot.core.llm.models import Prompt
from autopilot.core.llm.parsing import parse_json_object
from autopilot.utils.exceptions import EvaluatorError, MalformedResponseError


class Evaluator(BaseRole):
    name = "evaluator"
    error_cls = EvaluatorError

    def build_prompt(
        self,
        workspace: Workspace,
        action: Action,
        before: Observation | None,
        after: Observation | None,
    ) -> Prompt:
        user = EVALUATOR_USER_TEMPLATE.format(
            task=workspace.task,
            subgoal=workspace.current_subgoal or NONE_TEXT,
            action=describe_action(action),
            description=action.description or NONE_TEXT,
            before=format_observation(before),
            after=format_observation(after),
        )
        return Prompt(system=EVALUATOR_SYSTEM_PROMPT, user=user)

    async def evaluate(
        self,
        workspace: Workspace,
        action: Action,
        before: Observation | None,
        after: Observation | None,
    ) -> Evaluation:
        """Compare the screens around *action* and return a verdict."""
        raw = await self._complete(
            self.build_prompt(workspace, action, before, after),
            observation_images(before, after),
        )
        try:
            data = parse_json_object(raw)
            if isinstance(data.get("verdict"), str):
                data["verdict"] = data["verdict"].strip().lower()
            evaluation = Evaluation.model_validate(data)
        except (MalformedResponseError, ValidationError) as exc:
            raise EvaluatorError("unparseable", str(exc)) from exc

        self.logger.info("evaluator_verdict", verdict=evaluation.verdict.value)
        return evaluation
