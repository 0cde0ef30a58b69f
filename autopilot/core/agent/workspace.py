"""The shared workspace (InfoPool) of one agent run.

A :class:`Workspace` is the single mutable record of a run.  Only the
orchestrator mutates it; roles receive a deep-copied :meth:`Workspace.snapshot`
and return their results instead of writing back.

Invariants kept by the mutators below:

* ``action_history`` and ``evaluation_history`` always have the same length.
* ``step_index`` grows by exactly one per successful cycle.
* ``state`` never leaves a terminal value.
* histories and notes are append-only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from autopilot.core.agent.actions import Action, Observation
from autopilot.utils.exceptions import InvalidTransitionError


class RunState(str, Enum):
    """Lifecycle of a run."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({RunState.FINISHED, RunState.FAILED, RunState.CANCELLED})

_ALLOWED_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING, RunState.FAILED, RunState.CANCELLED}),
    RunState.RUNNING: _TERMINAL_STATES,
}


class Verdict(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ANOMALY = "anomaly"


class FailureReason(str, Enum):
    STEP_BUDGET_EXCEEDED = "step_budget_exceeded"
    CONSECUTIVE_ERROR_CEILING = "consecutive_error_ceiling"
    INTERNAL_ERROR = "internal_error"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ActionRecord(BaseModel):
    """An action that was dispatched to the device."""

    step: int
    action: Action
    timestamp: datetime = Field(default_factory=_now)

    @property
    def target(self) -> str | None:
        return self.action.target

    @property
    def parameters(self) -> dict:
        return self.action.parameters


class Evaluation(BaseModel):
    """The Evaluator's judgement of one dispatched action."""

    verdict: Verdict
    rationale: str = ""


class EvaluationRecord(Evaluation):
    step: int
    timestamp: datetime = Field(default_factory=_now)


class Workspace(BaseModel):
    """Mutable state of one run.

    Attributes:
        task: The natural-language request.
        context: Extra guidance for the roles (matched skill, recommended app).
        prompt_hint: Constraint from the matched skill to enforce when acting.
        plan: Remaining sub-goals; the first one is current.
        completed_subgoals: Sub-goals confirmed done, in order.
        thought: The Planner's latest reasoning.
        step_index: Number of successfully completed cycles.
        action_history: Every dispatched action.
        evaluation_history: One evaluation per dispatched action.
        notes: Durable facts kept by the Recorder.
        last_observation: The most recent screen capture.
        pending_action: Action dispatched but never evaluated (cancelled run).
        state: Run lifecycle state.
        error_count: Consecutive failed cycles.
        needs_replan: Set after an anomaly; the Planner must revise the plan.
        last_error: Most recent step error or failing rationale.
        failure_reason: Why a ``failed`` run stopped.
        summary: Human-readable outcome once terminal.
    """

    task: str
    context: str = ""
    prompt_hint: str | None = None
    plan: list[str] = []
    completed_subgoals: list[str] = []
    thought: str = ""
    step_index: int = 0
    action_history: list[ActionRecord] = []
    evaluation_history: list[EvaluationRecord] = []
    notes: list[str] = []
    last_observation: Observation | None = None
    pending_action: Action | None = None
    state: RunState = RunState.IDLE
    error_count: int = 0
    needs_replan: bool = False
    last_error: str | None = None
    failure_reason: FailureReason | None = None
    summary: str = ""

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @property
    def current_subgoal(self) -> str | None:
        return self.plan[0] if self.plan else None

    @property
    def last_evaluation(self) -> EvaluationRecord | None:
        return self.evaluation_history[-1] if self.evaluation_history else None

    def recent_history(self, limit: int = 5) -> list[tuple[ActionRecord, EvaluationRecord]]:
        """The last *limit* action/evaluation pairs, oldest first."""
        pairs = list(zip(self.action_history, self.evaluation_history))
        return pairs[-limit:]

    def snapshot(self) -> Workspace:
        """A deep copy that roles may read freely."""
        return self.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Mutators (orchestrator only)
    # ------------------------------------------------------------------

    def transition(self, target: RunState) -> None:
        if target not in _ALLOWED_TRANSITIONS.get(self.state, frozenset()):
            raise InvalidTransitionError(self.state.value, target.value)
        self.state = target

    def update_plan(self, plan: list[str], thought: str = "") -> None:
        self.plan = list(plan)
        self.thought = thought
        self.needs_replan = False

    def record_attempt(self, action: Action, evaluation: Evaluation) -> None:
        """Append a dispatched action and its evaluation together."""
        self.action_history.append(ActionRecord(step=self.step_index, action=action))
        self.evaluation_history.append(
            EvaluationRecord(
                step=self.step_index,
                verdict=evaluation.verdict,
                rationale=evaluation.rationale,
            )
        )
        self.pending_action = None

    def append_notes(self, notes: list[str]) -> list[str]:
        """Append notes not already recorded; returns the ones added."""
        added = []
        for note in notes:
            note = note.strip()
            if note and note not in self.notes:
                self.notes.append(note)
                added.append(note)
        return added

    def complete_step(self) -> None:
        """Close a successful cycle: advance the sub-goal and the step index."""
        if self.plan:
            self.completed_subgoals.append(self.plan.pop(0))
        self.step_index += 1
        self.error_count = 0
        self.needs_replan = False
        self.last_error = None

    def register_error(self, detail: str) -> int:
        """Count a failed cycle and return the consecutive-error count."""
        self.error_count += 1
        self.last_error = detail
        return self.error_count
