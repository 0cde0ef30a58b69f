"""Data models for the skill catalog and skill matching."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from autopilot.skills.skill import Skill


class ExecutionType(str, Enum):
    """How a related app completes a skill."""

    DELEGATION = "delegation"
    GUI_AUTOMATION = "gui_automation"


class RelatedApp(BaseModel):
    """An app able to fulfil a skill."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    package_name: str = Field(alias="packageName")
    name: str
    priority: int = 0
    type: ExecutionType = ExecutionType.GUI_AUTOMATION
    deep_link: str | None = Field(default=None, alias="deepLink")
    steps: list[str] | None = None
    description: str | None = None


class SkillConfig(BaseModel):
    """One catalog entry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    category: str = "general"
    keywords: list[str] = []
    prompt_hint: str | None = Field(default=None, alias="promptHint")
    related_apps: list[RelatedApp] = Field(default=[], alias="relatedApps")


@dataclass
class SkillMatch:
    """A skill scored against a query."""

    skill: Skill
    score: float


@dataclass
class AvailableAppMatch:
    """A skill bound to an installed app, ready to execute.

    Attributes:
        skill: The matched skill.
        app: The selected installed app.
        params: Parameters extracted from the query.
        score: Match confidence in [0, 1].
        strategy: Name of the strategy that produced the match.
    """

    skill: Skill
    app: RelatedApp
    params: dict = field(default_factory=dict)
    score: float = 0.0
    strategy: str = "keyword"


@dataclass
class LLMIntentMatch:
    skill_id: str
    confidence: float
    reasoning: str = ""


class ExecutionPlan(BaseModel):
    """What the agent loop needs to automate a skill through the GUI."""

    skill_id: str
    skill_name: str
    app: RelatedApp
    params: dict = {}
    is_installed: bool = True
    prompt_hint: str | None = None


class SkillResult(BaseModel):
    """Result of executing a matched skill.

    * ``delegated``: the deep link was dispatched; the task is handed off.
    * ``need_automation``: the agent loop must drive the app (see ``plan``).
    * ``failed``: delegation was impossible; ``suggestion`` says what to do.
    """

    status: Literal["delegated", "need_automation", "failed"]
    message: str = ""
    app: RelatedApp | None = None
    deep_link: str | None = None
    plan: ExecutionPlan | None = None
    error: str = ""
    suggestion: str = ""
