"""Response schemas for the skills catalog endpoint."""

from pydantic import BaseModel


class RelatedAppInfo(BaseModel):
    package_name: str
    name: str
    priority: int
    execution_type: str
    installed: bool
    deep_link: str | None = None


class SkillInfo(BaseModel):
    """Public-facing description of a single catalog skill."""

    id: str
    name: str
    description: str
    category: str
    keywords: list[str]
    prompt_hint: str | None = None
    apps: list[RelatedAppInfo]


class SkillsListResponse(BaseModel):
    """Response listing all catalog skills."""

    skills: list[SkillInfo]
    total: int
