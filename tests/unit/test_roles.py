"""Tests for the Planner, Actor, Evaluator and Recorder roles."""
import pytest

from conftest import ScriptedGateway, action_answer, notes_answer, plan_answer, verdict_answer

from autopilot.core.agent.actions import Action, ActionKind, Observation
from autopilot.core.agent.actor import Actor
from autopilot.core.agent.evaluator import Evaluator
from autopilot.core.agent.finish import FinishMatch
from autopilot.core.agent.planner import Planner
from autopilot.core.agent.recorder import Recorder
from autopilot.core.agent.workspace import Evaluation, Verdict, Workspace
from autopilot.core.llm.models import ModelFailure
from autopilot.utils.exceptions import ActorError, EvaluatorError, PlannerError

TAP = Action(kind=ActionKind.TAP, x=5, y=5, description="tap search")


@pytest.fixture
def workspace():
    return Workspace(task="Post hello world", context="Use Chirp", prompt_hint="Keep it short.")


class TestPlanner:
    @pytest.mark.asyncio
    async def test_plan(self, workspace):
        planner = Planner(ScriptedGateway(plan_answer("Open Chirp", "Tap compose", thought="start")))
        decision = await planner.plan(workspace)
        assert not decision.finished
        assert decision.plan == ["Open Chirp", "Tap compose"]
        assert decision.thought == "start"

    @pytest.mark.asyncio
    async def test_finish_signal(self, workspace):
        planner = Planner(ScriptedGateway("Finished."))
        decision = await planner.plan(workspace)
        assert decision.finished
        assert decision.finish_match is FinishMatch.PUNCTUATED

    @pytest.mark.asyncio
    async def test_unparseable(self, workspace):
        planner = Planner(ScriptedGateway("I will now open the app."))
        with pytest.raises(PlannerError) as info:
            await planner.plan(workspace)
        assert info.value.kind == "unparseable"

    @pytest.mark.asyncio
    async def test_empty_plan(self, workspace):
        planner = Planner(ScriptedGateway(plan_answer()))
        with pytest.raises(PlannerError, match="plan is empty"):
            await planner.plan(workspace)

    @pytest.mark.asyncio
    async def test_model_failure(self, workspace):
        planner = Planner(ScriptedGateway(ModelFailure.TIMEOUT))
        with pytest.raises(PlannerError) as info:
            await planner.plan(workspace)
        assert info.value.kind == "timeout"

    def test_replan_notice(self, workspace):
        planner = Planner(ScriptedGateway())
        assert "Attention" not in planner.build_prompt(workspace).user
        workspace.needs_replan = True
        assert "unexpected state" in planner.build_prompt(workspace).user


class TestActor:
    @pytest.mark.asyncio
    async def test_act(self, workspace):
        gateway = ScriptedGateway(action_answer("tap", x=100, y=200))
        screen = Observation(image=b"png-bytes")
        decision = await Actor(gateway).act(workspace, screen)
        assert decision.action.kind is ActionKind.TAP
        assert (decision.action.x, decision.action.y) == (100, 200)
        assert decision.action.description == "tap step"
        assert gateway.images[0][0].data == b"png-bytes"

    def test_prompt_hint_is_enforced(self, workspace):
        prompt = Actor(ScriptedGateway()).build_prompt(workspace, None)
        assert "Keep it short." in prompt.system

    @pytest.mark.asyncio
    async def test_unknown_action_kind(self, workspace):
        gateway = ScriptedGateway(action_answer("shake"))
        with pytest.raises(ActorError) as info:
            await Actor(gateway).act(workspace, None)
        assert info.value.kind == "unparseable"

    @pytest.mark.asyncio
    async def test_unresolved_action(self, workspace):
        gateway = ScriptedGateway(action_answer("swipe", x=1, y=1))
        with pytest.raises(ActorError, match="unparseable"):
            await Actor(gateway).act(workspace, None)

    @pytest.mark.asyncio
    async def test_prose_answer(self, workspace):
        gateway = ScriptedGateway("Tap the compose button")
        with pytest.raises(ActorError):
            await Actor(gateway).act(workspace, None)


class TestEvaluator:
    @pytest.mark.asyncio
    async def test_verdict_is_case_insensitive(self, workspace):
        gateway = ScriptedGateway({"verdict": "Anomaly", "rationale": "a popup appeared"})
        evaluation = await Evaluator(gateway).evaluate(workspace, TAP, Observation(), Observation())
        assert evaluation.verdict is Verdict.ANOMALY
        assert evaluation.rationale == "a popup appeared"

    @pytest.mark.asyncio
    async def test_before_and_after_images(self, workspace):
        gateway = ScriptedGateway(verdict_answer())
        before = Observation(image=b"before")
        after = Observation(image=b"after")
        await Evaluator(gateway).evaluate(workspace, TAP, before, after)
        assert [image.data for image in gateway.images[0]] == [b"before", b"after"]

    @pytest.mark.asyncio
    async def test_unknown_verdict(self, workspace):
        gateway = ScriptedGateway({"verdict": "maybe"})
        with pytest.raises(EvaluatorError):
            await Evaluator(gateway).evaluate(workspace, TAP, None, None)


class TestRecorder:
    @pytest.mark.asyncio
    async def test_new_notes_only(self, workspace):
        workspace.notes.append("draft saved")
        gateway = ScriptedGateway(notes_answer("draft saved", "post id is 42"))
        notes = await Recorder(gateway).record(
            workspace, TAP, Evaluation(verdict=Verdict.SUCCESS), None,
        )
        assert notes == ["post id is 42"]

    @pytest.mark.asyncio
    async def test_failure_yields_no_notes(self, workspace):
        gateway = ScriptedGateway(ModelFailure.TRANSPORT_ERROR)
        notes = await Recorder(gateway).record(
            workspace, TAP, Evaluation(verdict=Verdict.SUCCESS), None,
        )
        assert notes == []

    @pytest.mark.asyncio
    async def test_garbage_yields_no_notes(self, workspace):
        gateway = ScriptedGateway("nothing to note")
        notes = await Recorder(gateway).record(
            workspace, TAP, Evaluation(verdict=Verdict.SUCCESS), None,
        )
        assert notes == []
