"""Task runner -- the top-level path from a request to an outcome.

For every :class:`Task` the runner:

1. Matches the request to a skill and installed app.
2. If the match qualifies for the fast path and the task was not cancelled
   meanwhile, dispatches the deep link and stops; no agent role is invoked.
3. Otherwise builds a fresh :class:`Workspace` with the skill guidance and
   runs an :class:`Orchestrator` to a terminal state.
"""

from __future__ import annotations

from autopilot.core.agent.actions import ActionExecutor
from autopilot.core.agent.actor import Actor
from autopilot.core.agent.evaluator import Evaluator
from autopilot.core.agent.orchestrator import CancellationToken, Orchestrator
from autopilot.core.agent.planner import Planner
from autopilot.core.agent.recorder import Recorder
from autopilot.core.agent.workspace import Workspace
from autopilot.core.intent.engine import SkillManager
from autopilot.core.task.models import MatchInfo, RunMode, Task, TaskOutcome
from autopilot.skills.models import AvailableAppMatch
from autopilot.utils.logging import get_logger

logger = get_logger("task.runner")


class RunHandle:
    """Live view of one task for the host: cancel it or watch its workspace."""

    def __init__(self, task: Task, cancel_token: CancellationToken | None = None):
        self.task = task
        self.cancel_token = cancel_token or CancellationToken()
        self.workspace: Workspace | None = None
        self.outcome: TaskOutcome | None = None
        self.error: str | None = None

    @property
    def done(self) -> bool:
        return self.outcome is not None or self.error is not None

    def cancel(self) -> None:
        self.cancel_token.cancel()


class TaskRunner:
    """Runs tasks through the fast path or the agent loop.

    Parameters
    ----------
    skill_manager:
        Skill matching and delegation.
    gateway:
        Model gateway shared by all roles of all runs.
    executor:
        Device action executor.
    max_steps, max_consecutive_errors:
        Orchestrator budgets.
    """

    def __init__(
        self,
        skill_manager: SkillManager,
        gateway,
        executor: ActionExecutor,
        max_steps: int = 30,
        max_consecutive_errors: int = 3,
    ):
        self.skill_manager = skill_manager
        self.gateway = gateway
        self.executor = executor
        self.max_steps = max_steps
        self.max_consecutive_errors = max_consecutive_errors

    async def run(self, task: Task, handle: RunHandle | None = None) -> TaskOutcome:
        handle = handle or RunHandle(task)
        logger.info("task_start", task_id=task.id, text=task.text[:200])

        match = await self.skill_manager.match_available_app_with_llm(task.text)
        match_info = _match_info(match)

        # A run cancelled during matching never dispatches; the orchestrator
        # below ends it as cancelled before any role is invoked.
        if handle.cancel_token.cancelled:
            logger.info("task_cancelled_before_dispatch", task_id=task.id)
        elif self.skill_manager.is_fast_path(match):
            result = await self.skill_manager.execute(match)
            if result.status == "delegated":
                outcome = TaskOutcome(
                    task_id=task.id,
                    mode=RunMode.DELEGATION,
                    summary=result.message,
                    match=match_info,
                    skill_result=result,
                )
                logger.info("task_delegated", task_id=task.id, app=match.app.package_name)
                handle.outcome = outcome
                return outcome
            logger.info("fast_path_fell_back", task_id=task.id, error=result.error)

        workspace = self.build_workspace(task, match)
        handle.workspace = workspace
        orchestrator = self.create_orchestrator(workspace, handle.cancel_token)
        run = await orchestrator.run()

        outcome = TaskOutcome(
            task_id=task.id,
            mode=RunMode.AGENT,
            summary=run.summary,
            match=match_info,
            run=run,
        )
        logger.info("task_complete", task_id=task.id, state=run.state.value)
        handle.outcome = outcome
        return outcome

    def build_workspace(self, task: Task, match: AvailableAppMatch | None) -> Workspace:
        """A fresh workspace carrying the skill guidance for *task*."""
        parts = [self.skill_manager.generate_agent_context(match)]
        if task.preferred_apps:
            parts.append(f"Preferred apps: {', '.join(task.preferred_apps)}")
        if task.context:
            parts.append(task.context)
        return Workspace(
            task=task.text,
            context="\n\n".join(parts),
            prompt_hint=match.skill.config.prompt_hint if match else None,
        )

    def create_orchestrator(
        self,
        workspace: Workspace,
        cancel_token: CancellationToken | None = None,
    ) -> Orchestrator:
        return Orchestrator(
            workspace,
            planner=Planner(self.gateway),
            actor=Actor(self.gateway),
            evaluator=Evaluator(self.gateway),
            recorder=Recorder(self.gateway),
            executor=self.executor,
            max_steps=self.max_steps,
            max_consecutive_errors=self.max_consecutive_errors,
            cancel_token=cancel_token,
        )


def _match_info(match: AvailableAppMatch | None) -> MatchInfo | None:
    if match is None:
        return None
    return MatchInfo(
        skill_id=match.skill.id,
        skill_name=match.skill.config.name,
        app_package=match.app.package_name,
        app_name=match.app.name,
        execution_type=match.app.type.value,
        score=match.score,
        strategy=match.strategy,
    )
