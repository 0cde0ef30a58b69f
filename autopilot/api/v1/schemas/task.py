"""Request/response schemas for task submission, status and cancellation."""

from datetime import datetime

from pydantic import BaseModel, Field


class TaskSubmitRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000, description="Natural-language task")
    preferred_apps: list[str] = Field(default_factory=list, description="Optional app package hints")
    context: str = Field(default="", description="Optional extra instructions")


class TaskSubmitResponse(BaseModel):
    task_id: str
    status: str


class ActionInfo(BaseModel):
    step: int
    kind: str
    target: str | None = None
    parameters: dict = {}
    description: str = ""
    timestamp: datetime


class EvaluationInfo(BaseModel):
    step: int
    verdict: str
    rationale: str


class TaskStatusResponse(BaseModel):
    """Serialised view of a task run suitable for the API consumer.

    ``status`` is ``matching`` before the agent loop starts, then the run
    state, or ``delegated`` / ``error`` for the other outcomes.
    """

    task_id: str
    text: str
    status: str
    mode: str | None = None
    summary: str = ""
    step_index: int = 0
    plan: list[str] = []
    completed_subgoals: list[str] = []
    notes: list[str] = []
    actions: list[ActionInfo] = []
    evaluations: list[EvaluationInfo] = []
    failure_reason: str | None = None
    last_error: str | None = None
    deep_link: str | None = None
