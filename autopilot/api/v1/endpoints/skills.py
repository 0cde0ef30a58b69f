"""Skills introspection endpoint -- lists the catalog with install status."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from autopilot.api.v1.schemas.skill import RelatedAppInfo, SkillInfo, SkillsListResponse
from autopilot.dependencies import get_skill_registry
from autopilot.skills.registry import SkillRegistry

router = APIRouter()


@router.get(
    "/skills",
    response_model=SkillsListResponse,
    summary="List catalog skills",
    description="Return every catalog skill with its related apps and whether each is installed.",
)
async def list_skills(
    registry: SkillRegistry = Depends(get_skill_registry),
) -> SkillsListResponse:
    skills = []
    for skill in registry.get_all():
        config = skill.config
        apps = [
            RelatedAppInfo(
                package_name=app.package_name,
                name=app.name,
                priority=app.priority,
                execution_type=app.type.value,
                installed=registry.is_app_installed(app.package_name),
                deep_link=app.deep_link,
            )
            for app in config.related_apps
        ]
        skills.append(
            SkillInfo(
                id=config.id,
                name=config.name,
                description=config.description,
                category=config.category,
                keywords=config.keywords,
                prompt_hint=config.prompt_hint,
                apps=apps,
            )
        )
    return SkillsListResponse(skills=skills, total=len(skills))
