"""The agent control loop.

One :class:`Orchestrator` drives one :class:`Workspace` through repeated
Planner -> Actor -> dispatch -> Evaluator -> Recorder cycles until the
Planner signals completion, a budget is exhausted, or the run is cancelled.

Budgets:

* ``max_steps`` caps the number of successful cycles.  Reaching it fails the
  run with ``step_budget_exceeded``.
* ``max_consecutive_errors`` caps back-to-back failed cycles (model errors,
  unparseable answers, failed or anomalous actions).  Reaching it fails the
  run with ``consecutive_error_ceiling``.

Any other exception raised during a cycle fails the run with
``internal_error``, so every run ends in a terminal state with a summary.

Cancellation is cooperative.  The token is checked before every Planner call
and right after every dispatch.  An action already sent to the device is not
undone; it is kept in ``Workspace.pending_action`` for the audit trail.
"""

from __future__ import annotations

import threading

from pydantic import BaseModel

from autopilot.core.agent.actions import Action, ActionExecutor
from autopilot.core.agent.actor import Actor
from autopilot.core.agent.evaluator import Evaluator
from autopilot.core.agent.planner import Planner
from autopilot.core.agent.recorder import Recorder
from autopilot.core.agent.workspace import (
    Evaluation,
    FailureReason,
    RunState,
    Verdict,
    Workspace,
)
from autopilot.utils.exceptions import ActionError, RoleError
from autopilot.utils.logging import get_logger

logger = get_logger("agent.orchestrator")


class CancellationToken:
    """A stop flag the host may set from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class RunResult(BaseModel):
    """Terminal outcome of a run, with the full workspace for audit."""

    state: RunState
    summary: str
    failure_reason: FailureReason | None = None
    last_error: str | None = None
    workspace: Workspace


class Orchestrator:
    """Sequences the four roles over one workspace.

    Parameters
    ----------
    workspace:
        A fresh workspace in state ``idle``.
    planner, actor, evaluator, recorder:
        The roles.  Each sees a snapshot of the workspace, never the live one.
    executor:
        Performs actions on the device and captures the screen.
    max_steps:
        Hard ceiling on ``Workspace.step_index``.
    max_consecutive_errors:
        Failed cycles in a row that end the run.
    cancel_token:
        External stop signal.
    """

    def __init__(
        self,
        workspace: Workspace,
        planner: Planner,
        actor: Actor,
        evaluator: Evaluator,
        recorder: Recorder,
        executor: ActionExecutor,
        max_steps: int = 30,
        max_consecutive_errors: int = 3,
        cancel_token: CancellationToken | None = None,
    ):
        self.workspace = workspace
        self.planner = planner
        self.actor = actor
        self.evaluator = evaluator
        self.recorder = recorder
        self.executor = executor
        self.max_steps = max_steps
        self.max_consecutive_errors = max(1, max_consecutive_errors)
        self.cancel_token = cancel_token or CancellationToken()
        self.cycles = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> RunResult:
        """Run the loop to a terminal state and return the :class:`RunResult`."""
        ws = self.workspace
        ws.transition(RunState.RUNNING)
        logger.info("run_started", task=ws.task[:200], max_steps=self.max_steps)

        while True:
            if self.cancel_token.cancelled:
                return self._cancel()

            if ws.step_index >= self.max_steps:
                return self._fail(
                    FailureReason.STEP_BUDGET_EXCEEDED,
                    f"no finish signal within {self.max_steps} steps",
                )

            try:
                result = await self._cycle()
            except Exception as exc:
                if ws.state is not RunState.RUNNING:
                    raise
                logger.exception("cycle_crashed", step=ws.step_index)
                return self._fail(FailureReason.INTERNAL_ERROR, f"{type(exc).__name__}: {exc}")
            if result is not None:
                return result

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    async def _cycle(self) -> RunResult | None:
        """Run one Planner -> ... -> Recorder pass.

        Returns a :class:`RunResult` when the run ends, ``None`` to continue.
        """
        ws = self.workspace
        self.cycles += 1

        # 1. Plan.
        try:
            decision = await self.planner.plan(ws.snapshot())
        except RoleError as exc:
            return self._step_error(exc)

        if decision.finished:
            return self._finish()
        ws.update_plan(decision.plan, decision.thought)

        # 2. Act.
        try:
            if ws.last_observation is None:
                ws.last_observation = await self.executor.observe()
            actor_decision = await self.actor.act(ws.snapshot(), ws.last_observation)
        except (RoleError, ActionError) as exc:
            return self._step_error(exc)
        action = actor_decision.action

        # 3. Dispatch.
        before = ws.last_observation
        ws.pending_action = action
        try:
            after = await self.executor.execute(action)
        except ActionError as exc:
            logger.warning("action_failed", kind=exc.kind, action=action.kind.value, error=str(exc))
            if self.cancel_token.cancelled:
                return self._cancel()
            evaluation = Evaluation(verdict=Verdict.ANOMALY, rationale=str(exc))
            return self._record_unsuccessful(action, evaluation)

        ws.last_observation = after
        if self.cancel_token.cancelled:
            return self._cancel()

        # 4. Evaluate.
        try:
            evaluation = await self.evaluator.evaluate(ws.snapshot(), action, before, after)
        except RoleError as exc:
            evaluation = Evaluation(verdict=Verdict.FAILURE, rationale=f"evaluation unavailable: {exc}")
            return self._record_unsuccessful(action, evaluation)

        if evaluation.verdict is not Verdict.SUCCESS:
            return self._record_unsuccessful(action, evaluation)

        # 5. Record.
        ws.record_attempt(action, evaluation)
        notes = await self.recorder.record(ws.snapshot(), action, evaluation, after)
        ws.append_notes(notes)
        ws.complete_step()
        logger.info(
            "step_completed",
            step=ws.step_index,
            action=action.kind.value,
            notes=len(notes),
        )
        return None

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _record_unsuccessful(self, action: Action, evaluation: Evaluation) -> RunResult | None:
        ws = self.workspace
        ws.record_attempt(action, evaluation)
        if evaluation.verdict is Verdict.ANOMALY:
            ws.needs_replan = True
        logger.info(
            "step_unsuccessful",
            step=ws.step_index,
            verdict=evaluation.verdict.value,
            rationale=evaluation.rationale,
        )
        return self._count_error(evaluation.rationale or evaluation.verdict.value)

    def _step_error(self, exc: Exception) -> RunResult | None:
        logger.warning("step_error", step=self.workspace.step_index, error=str(exc))
        return self._count_error(str(exc))

    def _count_error(self, detail: str) -> RunResult | None:
        count = self.workspace.register_error(detail)
        if count >= self.max_consecutive_errors:
            return self._fail(
                FailureReason.CONSECUTIVE_ERROR_CEILING,
                detail,
            )
        return None

    def _finish(self) -> RunResult:
        ws = self.workspace
        ws.transition(RunState.FINISHED)
        ws.summary = (
            f"Task finished after {ws.step_index} step(s) "
            f"and {len(ws.action_history)} action(s)."
        )
        if ws.notes:
            ws.summary += " Notes: " + "; ".join(ws.notes)
        logger.info("run_finished", steps=ws.step_index, actions=len(ws.action_history))
        return self._result()

    def _fail(self, reason: FailureReason, detail: str) -> RunResult:
        ws = self.workspace
        ws.transition(RunState.FAILED)
        ws.failure_reason = reason
        ws.last_error = detail
        ws.summary = f"Task failed ({reason.value}) at step {ws.step_index}: {detail}"
        logger.warning(
            "run_failed",
            reason=reason.value,
            steps=ws.step_index,
            consecutive_errors=ws.error_count,
            error=detail,
        )
        return self._result()

    def _cancel(self) -> RunResult:
        ws = self.workspace
        ws.transition(RunState.CANCELLED)
        ws.summary = f"Task cancelled at step {ws.step_index}."
        if ws.pending_action is not None:
            ws.summary += (
                f" The last dispatched action ({ws.pending_action.kind.value}) "
                "was not evaluated and has not been undone."
            )
        logger.info("run_cancelled", steps=ws.step_index, pending=ws.pending_action is not None)
        return self._result()

    def _result(self) -> RunResult:
        ws = self.workspace
        return RunResult(
            state=ws.state,
            summary=ws.summary,
            failure_reason=ws.failure_reason,
            last_error=ws.last_error,
            workspace=ws,
        )
