"""Tests for intent strategies and the skill manager."""
import pytest

from conftest import FakeDevice, ScriptedGateway

from autopilot.core.agent.actions import ActionKind
from autopilot.core.intent.classifier import (
    IntentMatcher,
    KeywordIntentStrategy,
    LLMIntentStrategy,
    parse_intent_response,
)
from autopilot.core.intent.engine import NO_MATCH_CONTEXT, SkillManager
from autopilot.core.llm.models import ModelFailure
from autopilot.skills.models import AvailableAppMatch
from autopilot.utils.exceptions import ActionError


def make_manager(registry, gateway=None, executor=None, **kwargs):
    matcher = IntentMatcher([
        LLMIntentStrategy(registry, gateway, min_confidence=0.5),
        KeywordIntentStrategy(registry, min_confidence=0.3),
    ])
    return SkillManager(registry, matcher, executor=executor, **kwargs)


class TestParseIntentResponse:
    def test_valid(self):
        intent = parse_intent_response({"skill_id": "navigate", "confidence": 0.9, "reasoning": "route"})
        assert intent.skill_id == "navigate"
        assert intent.confidence == 0.9

    @pytest.mark.parametrize("data", [None, {}, {"skill_id": None}, {"skill_id": "null"}, {"skill_id": ""}])
    def test_no_skill(self, data):
        assert parse_intent_response(data) is None

    def test_non_numeric_confidence(self):
        assert parse_intent_response({"skill_id": "a", "confidence": "high"}) is None

    def test_confidence_is_clamped(self):
        assert parse_intent_response({"skill_id": "a", "confidence": 7}).confidence == 1.0


class TestLLMIntentStrategy:
    @pytest.mark.asyncio
    async def test_confident_answer(self, registry):
        gateway = ScriptedGateway({"skill_id": "navigate", "confidence": 0.92, "reasoning": "wants a route"})
        match = await LLMIntentStrategy(registry, gateway).match("get me to the airport")
        assert match.skill.id == "navigate"
        assert match.app.package_name == "com.maps"
        assert match.score == 0.92
        assert match.strategy == "llm"
        assert "ID: navigate" in gateway.prompts[0].user

    @pytest.mark.asyncio
    async def test_low_confidence_is_ignored(self, registry):
        gateway = ScriptedGateway({"skill_id": "navigate", "confidence": 0.49})
        assert await LLMIntentStrategy(registry, gateway).match("airport") is None

    @pytest.mark.asyncio
    async def test_unknown_skill(self, registry):
        gateway = ScriptedGateway({"skill_id": "teleport", "confidence": 0.99})
        assert await LLMIntentStrategy(registry, gateway).match("beam me up") is None

    @pytest.mark.asyncio
    async def test_no_gateway(self, registry):
        assert await LLMIntentStrategy(registry, None).match("directions") is None


class TestIntentMatcher:
    @pytest.mark.asyncio
    async def test_falls_back_to_keywords_on_low_confidence(self, registry):
        gateway = ScriptedGateway({"skill_id": "post_update", "confidence": 0.3})
        match = await make_manager(registry, gateway).match_available_app_with_llm("Order a burger nearby")
        assert match.skill.id == "order_food"
        assert match.strategy == "keyword"

    @pytest.mark.asyncio
    async def test_falls_back_on_null_answer(self, registry):
        gateway = ScriptedGateway({"skill_id": None, "confidence": 0.0})
        match = await make_manager(registry, gateway).match_available_app_with_llm("directions")
        assert match.strategy == "keyword"

    @pytest.mark.asyncio
    async def test_falls_back_on_unparseable_answer(self, registry):
        gateway = ScriptedGateway("navigate, probably")
        match = await make_manager(registry, gateway).match_available_app_with_llm("directions")
        assert match.skill.id == "navigate"
        assert match.strategy == "keyword"

    @pytest.mark.asyncio
    async def test_falls_back_on_model_failure(self, registry):
        gateway = ScriptedGateway(ModelFailure.TIMEOUT)
        match = await make_manager(registry, gateway).match_available_app_with_llm("directions")
        assert match.strategy == "keyword"

    @pytest.mark.asyncio
    async def test_no_match(self, registry):
        assert await make_manager(registry).match_available_app_with_llm("do something obscure") is None


class TestFastPath:
    def _match(self, registry, skill_id, score):
        skill = registry.get(skill_id)
        return AvailableAppMatch(skill=skill, app=registry.select_app(skill), score=score)

    def test_threshold(self, registry):
        manager = make_manager(registry)
        assert manager.is_fast_path(self._match(registry, "navigate", 0.8))
        assert not manager.is_fast_path(self._match(registry, "navigate", 0.79))

    def test_gui_automation_is_never_fast(self, registry):
        manager = make_manager(registry)
        assert not manager.is_fast_path(self._match(registry, "post_update", 1.0))

    def test_none(self, registry):
        assert not make_manager(registry).is_fast_path(None)

    @pytest.mark.asyncio
    async def test_should_use_fast_path(self, registry):
        manager = make_manager(registry)
        assert (await manager.should_use_fast_path("Order a burger nearby")).skill.id == "order_food"
        assert await manager.should_use_fast_path("I want takeout") is None


class TestExecute:
    @pytest.mark.asyncio
    async def test_delegation_dispatches_deep_link(self, registry):
        device = FakeDevice()
        manager = make_manager(registry, executor=device)
        match = manager.match_available_app("Order a burger nearby")
        result = await manager.execute(match)
        assert result.status == "delegated"
        assert result.deep_link == "foodnow://search?keyword=nearby"
        action = device.actions[0]
        assert action.kind is ActionKind.DEEP_LINK
        assert action.app == "com.food.fast"

    @pytest.mark.asyncio
    async def test_delegation_without_parameters_fails(self, registry):
        manager = make_manager(registry, executor=FakeDevice())
        result = await manager.execute(manager.match_available_app("order a burger"))
        assert result.status == "failed"
        assert result.error == "Unable to generate deep link"

    @pytest.mark.asyncio
    async def test_delegation_device_error(self, registry):
        device = FakeDevice(failures={0: ActionError.TARGET_NOT_FOUND})
        manager = make_manager(registry, executor=device)
        result = await manager.execute(manager.match_available_app("Order a burger nearby"))
        assert result.status == "failed"
        assert "FoodNow" in result.error

    @pytest.mark.asyncio
    async def test_automation_plan(self, registry):
        manager = make_manager(registry)
        result = await manager.execute(manager.match_available_app("post hello"))
        assert result.status == "need_automation"
        assert result.plan.skill_id == "post_update"
        assert result.plan.prompt_hint == "Keep the post text under 100 characters."


class TestAgentContext:
    def test_no_match(self, registry):
        assert make_manager(registry).generate_agent_context(None) == NO_MATCH_CONTEXT

    def test_single_match(self, registry):
        manager = make_manager(registry)
        text = manager.generate_agent_context(manager.match_available_app("post hello"))
        assert "[Post an update] (confidence: 70%)" in text
        assert "Important: Keep the post text under 100 characters." in text
        assert "Chirp (com.social) [GUI automation]" in text

    def test_all_options(self, registry):
        text = make_manager(registry).generate_agent_context_for("order a burger")
        assert "1. FoodNow [delegation, fast] (priority: 100)" in text
        assert "2. MealHub [GUI automation] (priority: 50)" in text

    def test_missing_app_suggestions(self, catalog_configs):
        from autopilot.skills.app_scanner import AppScanner
        from autopilot.skills.registry import SkillRegistry

        reg = SkillRegistry(AppScanner(initial=["com.food.slow"]))
        reg.load(catalog_configs)
        manager = make_manager(reg)
        assert [a.package_name for a in manager.get_missing_app_suggestions("order a burger")] == [
            "com.food.fast",
        ]
        assert len(manager.get_all_related_apps("order a burger")) == 2
