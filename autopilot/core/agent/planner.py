"""Planner role: keeps the sub-goal list and decides when the task is done."""

from __future__ import annotations

from pydantic import BaseModel, ValidationError

from autopilot.core.agent.base import (
    NONE_TEXT,
    BaseRole,
    format_history,
    format_list,
)
from autopilot.core.agent.finish import FinishMatch, detect_finish
from autopilot.core.agent.prompts.planner import (
    PLANNER_SYSTEM_PROMPT,
    PLANNER_USER_TEMPLATE,
    REPLAN_NOTICE,
)
from autopilot.core.agent.workspace import Workspace
from autopilot.core.llm.models import Prompt
from autopilot.core.llm.parsing import parse_json_object
from autopilot.utils.exceptions import MalformedResponseError, PlannerError


class _PlanPayload(BaseModel):
    thought: str = ""
    plan: list[str]


class PlannerDecision(BaseModel):
    """Either a finish signal or the updated plan."""

    finished: bool = False
    finish_match: FinishMatch | None = None
    plan: list[str] = []
    thought: str = ""
    raw: str = ""


class Planner(BaseRole):
    name = "planner"
    error_cls = PlannerError

    def build_prompt(self, workspace: Workspace) -> Prompt:
        last = workspace.last_evaluation
        user = PLANNER_USER_TEMPLATE.format(
            task=workspace.task,
            context=workspace.context or NONE_TEXT,
            completed=format_list(workspace.completed_subgoals, numbered=True),
            plan=format_list(workspace.plan, numbered=True),
            history=format_history(workspace),
            last_evaluation=f"{last.verdict.value}: {last.rationale}" if last else NONE_TEXT,
            notes=format_list(workspace.notes),
            replan=REPLAN_NOTICE if workspace.needs_replan else "",
        )
        return Prompt(system=PLANNER_SYSTEM_PROMPT, user=user)

    async def plan(self, workspace: Workspace) -> PlannerDecision:
        """Return the next plan for *workspace*, or a finish decision.

        Raises :class:`PlannerError` when the model call fails or its answer
        is neither a finish phrase nor a valid plan.
        """
        raw = await self._complete(self.build_prompt(workspace))

        match = detect_finish(raw)
        if match is not None:
            self.logger.info("planner_finished", match=match.value)
            return PlannerDecision(finished=True, finish_match=match, raw=raw)

        try:
            payload = _PlanPayload.model_validate(parse_json_object(raw))
        except (MalformedResponseError, ValidationError) as exc:
            raise PlannerError("unparseable", str(exc)) from exc

        plan = [step.strip() for step in payload.plan if step and step.strip()]
        if not plan:
            raise PlannerError("unparseable", "plan is empty and no finish signal was given")

        self.logger.info("planner_plan", subgoals=len(plan), current=plan[0])
        return PlannerDecision(plan=plan, thought=payload.thought, raw=raw)
