"""Request/response schemas for the intent matching endpoint."""

from pydantic import BaseModel, Field


class IntentRequest(BaseModel):
    """A natural-language request to match against the skill catalog."""

    text: str = Field(..., min_length=1, max_length=10000, description="Natural-language request")


class IntentResponse(BaseModel):
    """Result of intent matching.

    ``matched`` is false when no strategy found a skill with an installed
    app; ``agent_context`` then carries the generic guidance.
    """

    matched: bool
    skill_id: str | None = None
    skill_name: str | None = None
    app_package: str | None = None
    app_name: str | None = None
    execution_type: str | None = None
    score: float = 0.0
    strategy: str | None = None
    fast_path: bool = False
    deep_link: str | None = None
    agent_context: str
    missing_apps: list[str] = []
