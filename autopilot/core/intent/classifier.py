"""Intent matching strategies.

A query is matched to a skill + installed app by an ordered list of
strategies; the first one that returns a match wins:

1. :class:`LLMIntentStrategy` -- asks the model to pick a skill from the
   catalog and accepts the answer when its confidence reaches the
   strategy's threshold.
2. :class:`KeywordIntentStrategy` -- keyword scoring against the catalog,
   so matching keeps working without a model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from autopilot.core.intent.prompts.classification import (
    CLASSIFICATION_SYSTEM_PROMPT,
    CLASSIFICATION_USER_TEMPLATE,
)
from autopilot.core.llm.models import Prompt
from autopilot.skills.models import AvailableAppMatch, LLMIntentMatch
from autopilot.skills.registry import SkillRegistry
from autopilot.utils.logging import get_logger

logger = get_logger("intent.classifier")


class IntentStrategy(ABC):
    """One way of turning a query into an :class:`AvailableAppMatch`."""

    name = "strategy"

    def __init__(self, registry: SkillRegistry, min_confidence: float):
        self.registry = registry
        self.min_confidence = min_confidence

    @abstractmethod
    async def match(self, query: str) -> AvailableAppMatch | None:
        """Return a match at or above ``min_confidence``, or ``None``."""
        ...


class LLMIntentStrategy(IntentStrategy):
    """Model-based classification against skills that have an installed app.

    Parameters
    ----------
    gateway:
        A :class:`~autopilot.core.llm.client.ModelGateway`, or ``None`` to
        disable the strategy.
    """

    name = "llm"

    def __init__(self, registry: SkillRegistry, gateway=None, min_confidence: float = 0.5):
        super().__init__(registry, min_confidence)
        self.gateway = gateway

    async def match(self, query: str) -> AvailableAppMatch | None:
        if self.gateway is None:
            return None

        skills = self.registry.get_skills_description(installed_only=True)
        if not skills:
            logger.info("llm_intent_skipped", reason="no skill has an installed app")
            return None

        prompt = Prompt(
            system=CLASSIFICATION_SYSTEM_PROMPT,
            user=CLASSIFICATION_USER_TEMPLATE.format(skills=skills, user_input=query),
        )
        result = await self.gateway.predict_json(prompt)
        if not result.ok:
            logger.warning(
                "llm_intent_failed_falling_back",
                failure=result.failure.value,
                detail=result.detail,
            )
            return None

        intent = parse_intent_response(result.data)
        if intent is None:
            logger.info("llm_intent_no_match")
            return None
        if intent.confidence < self.min_confidence:
            logger.info(
                "llm_intent_low_confidence",
                skill_id=intent.skill_id,
                confidence=intent.confidence,
            )
            return None

        skill = self.registry.find(intent.skill_id)
        if skill is None:
            logger.warning("llm_intent_unknown_skill", skill_id=intent.skill_id)
            return None

        app = self.registry.select_app(skill)
        if app is None:
            logger.info("llm_intent_no_installed_app", skill_id=skill.id)
            return None

        logger.info(
            "llm_intent_matched",
            skill_id=skill.id,
            app=app.package_name,
            confidence=intent.confidence,
            reasoning=intent.reasoning,
        )
        return AvailableAppMatch(
            skill=skill,
            app=app,
            params=skill.extract_params(query),
            score=intent.confidence,
            strategy=self.name,
        )


def parse_intent_response(data: dict | None) -> LLMIntentMatch | None:
    """Read the ``{skill_id, confidence, reasoning}`` contract.

    Returns ``None`` for a null/empty skill id or a non-numeric confidence.
    """
    if not data:
        return None

    skill_id = data.get("skill_id")
    if not isinstance(skill_id, str) or not skill_id.strip() or skill_id.strip() == "null":
        return None

    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError):
        return None
    confidence = max(0.0, min(1.0, confidence))

    reasoning = data.get("reasoning") or ""
    return LLMIntentMatch(
        skill_id=skill_id.strip(),
        confidence=confidence,
        reasoning=str(reasoning),
    )


class KeywordIntentStrategy(IntentStrategy):
    """Keyword scoring; needs no model."""

    name = "keyword"

    def __init__(self, registry: SkillRegistry, min_confidence: float = 0.3):
        super().__init__(registry, min_confidence)

    async def match(self, query: str) -> AvailableAppMatch | None:
        match = self.registry.get_best_available_app(query, min_score=self.min_confidence)
        if match is not None:
            match.strategy = self.name
        return match


class IntentMatcher:
    """Runs strategies in order and returns the first match."""

    def __init__(self, strategies: list[IntentStrategy]):
        self.strategies = list(strategies)

    async def match(self, query: str) -> AvailableAppMatch | None:
        for strategy in self.strategies:
            match = await strategy.match(query)
            if match is not None:
                logger.info(
                    "intent_matched",
                    strategy=strategy.name,
                    skill_id=match.skill.id,
                    app=match.app.package_name,
                    score=match.score,
                )
                return match
        logger.info("intent_unmatched", strategies=[s.name for s in self.strategies])
        return None
