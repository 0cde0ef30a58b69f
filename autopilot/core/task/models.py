"""Task-level data models.

A :class:`Task` is the user's request, immutable once submitted.  A
:class:`TaskOutcome` is what the system did about it: either delegated the
request to an app or ran the full agent loop.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from autopilot.core.agent.orchestrator import RunResult
from autopilot.skills.models import SkillResult


class RunMode(str, Enum):
    """How a task was carried out."""

    DELEGATION = "delegation"
    AGENT = "agent"


class Task(BaseModel):
    """A natural-language request.

    Attributes:
        id: Short unique identifier.
        text: The request as the user typed it.
        preferred_apps: Optional app hints supplied with the request.
        context: Optional extra instructions supplied with the request.
        created_at: Submission time.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    text: str = Field(min_length=1)
    preferred_apps: tuple[str, ...] = ()
    context: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MatchInfo(BaseModel):
    """The skill match that shaped a task's execution."""

    skill_id: str
    skill_name: str
    app_package: str
    app_name: str
    execution_type: str
    score: float
    strategy: str


class TaskOutcome(BaseModel):
    """Result of :meth:`TaskRunner.run`.

    ``skill_result`` is set for delegation; ``run`` is set for the agent loop.
    """

    task_id: str
    mode: RunMode
    summary: str
    match: MatchInfo | None = None
    skill_result: SkillResult | None = None
    run: RunResult | None = None
