"""Intent matching endpoint -- shows how a request would be handled
without running it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from autopilot.api.v1.schemas.common import ErrorResponse
from autopilot.api.v1.schemas.intent import IntentRequest, IntentResponse
from autopilot.core.intent.engine import SkillManager
from autopilot.dependencies import get_skill_manager
from autopilot.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/intent",
    response_model=IntentResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}},
    summary="Match a request to a skill",
    description=(
        "Run the intent strategies on a natural-language request and report "
        "the matched skill, the selected installed app, whether the fast path "
        "applies, and the guidance the agent loop would receive."
    ),
)
async def match_intent(
    request: IntentRequest,
    manager: SkillManager = Depends(get_skill_manager),
) -> IntentResponse:
    match = await manager.match_available_app_with_llm(request.text)
    missing = [app.package_name for app in manager.get_missing_app_suggestions(request.text)]

    if match is None:
        return IntentResponse(
            matched=False,
            agent_context=manager.generate_agent_context(None),
            missing_apps=missing,
        )

    deep_link = match.skill.generate_deep_link(match.app, match.params) or None
    logger.info("intent_endpoint_matched", skill_id=match.skill.id, score=match.score)
    return IntentResponse(
        matched=True,
        skill_id=match.skill.id,
        skill_name=match.skill.config.name,
        app_package=match.app.package_name,
        app_name=match.app.name,
        execution_type=match.app.type.value,
        score=match.score,
        strategy=match.strategy,
        fast_path=manager.is_fast_path(match),
        deep_link=deep_link,
        agent_context=manager.generate_agent_context(match),
        missing_apps=missing,
    )
