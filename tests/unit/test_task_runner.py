"""Tests for the task runner and the host task store."""
import asyncio

import pytest

from conftest import FakeDevice, ScriptedGateway, action_answer, notes_answer, plan_answer, verdict_answer

from autopilot.core.agent.workspace import FailureReason, RunState
from autopilot.core.intent.classifier import IntentMatcher, KeywordIntentStrategy, LLMIntentStrategy
from autopilot.core.intent.engine import SkillManager
from autopilot.core.task.models import RunMode, Task
from autopilot.core.task.runner import RunHandle, TaskRunner
from autopilot.core.task.store import TaskStore
from autopilot.utils.exceptions import TaskConflictError, TaskNotFoundError


def make_runner(registry, gateway, device, **kwargs):
    matcher = IntentMatcher([KeywordIntentStrategy(registry)])
    manager = SkillManager(registry, matcher, executor=device)
    return TaskRunner(manager, gateway, device, **kwargs)


class TestTaskRunner:
    @pytest.mark.asyncio
    async def test_fast_path_skips_the_agent(self, registry, gateway, device):
        runner = make_runner(registry, gateway, device)
        outcome = await runner.run(Task(text="Order a burger nearby"))

        assert outcome.mode is RunMode.DELEGATION
        assert outcome.skill_result.status == "delegated"
        assert outcome.match.skill_id == "order_food"
        assert outcome.run is None
        assert gateway.prompts == []
        assert len(device.actions) == 1

    @pytest.mark.asyncio
    async def test_unmatched_request_runs_the_agent(self, registry, gateway, device):
        gateway.queue("Finished")
        runner = make_runner(registry, gateway, device)
        handle = RunHandle(Task(text="do something obscure"))
        outcome = await runner.run(handle.task, handle)

        assert outcome.mode is RunMode.AGENT
        assert outcome.match is None
        assert outcome.run.state is RunState.FINISHED
        assert handle.workspace is outcome.run.workspace
        assert "No matching skill" in handle.workspace.context

    def test_fresh_workspace(self, registry, gateway, device):
        runner = make_runner(registry, gateway, device)
        ws = runner.build_workspace(Task(text="do something obscure"), None)
        assert ws.state is RunState.IDLE
        assert ws.step_index == 0
        assert ws.plan == [] and ws.notes == []

    @pytest.mark.asyncio
    async def test_failed_delegation_falls_back_to_agent(self, registry, gateway, device):
        # No keyword left to fill the deep link, so delegation cannot start.
        gateway.queue("Finished")
        runner = make_runner(registry, gateway, device)
        outcome = await runner.run(Task(text="order burgers"))
        assert outcome.mode is RunMode.AGENT
        assert outcome.match.skill_id == "order_food"

    @pytest.mark.asyncio
    async def test_guidance_reaches_the_actor(self, registry, gateway, device):
        gateway.queue(
            plan_answer("Open Chirp"),
            action_answer("open_app", app="com.social"),
            verdict_answer("success"),
            notes_answer(),
            "Finished",
        )
        runner = make_runner(registry, gateway, device)
        task = Task(text="post hello world", preferred_apps=("com.social",), context="Sign as Sam")
        outcome = await runner.run(task)

        assert outcome.run.state is RunState.FINISHED
        actor_prompt = gateway.prompts[1]
        assert "Keep the post text under 100 characters." in actor_prompt.system
        assert "Preferred apps: com.social" in actor_prompt.user
        assert "Sign as Sam" in actor_prompt.user

    @pytest.mark.asyncio
    async def test_cancelled_task_never_delegates(self, registry, gateway, device):
        runner = make_runner(registry, gateway, device)
        handle = RunHandle(Task(text="Order a burger nearby"))
        handle.cancel()
        outcome = await runner.run(handle.task, handle)

        assert device.actions == []
        assert gateway.prompts == []
        assert outcome.mode is RunMode.AGENT
        assert outcome.match.skill_id == "order_food"
        assert outcome.run.state is RunState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_during_llm_matching(self, registry, device):
        handle = RunHandle(Task(text="Order a burger nearby"))

        class CancellingGateway(ScriptedGateway):
            async def predict(self, prompt, images=None):
                handle.cancel()
                return await super().predict(prompt, images)

        gateway = CancellingGateway({"skill_id": "order_food", "confidence": 0.95})
        matcher = IntentMatcher([LLMIntentStrategy(registry, gateway), KeywordIntentStrategy(registry)])
        runner = TaskRunner(SkillManager(registry, matcher, executor=device), gateway, device)
        outcome = await runner.run(handle.task, handle)

        assert device.actions == []
        assert outcome.match.strategy == "llm"
        assert outcome.run.state is RunState.CANCELLED


class TestTaskStore:
    @pytest.mark.asyncio
    async def test_submit_and_wait(self, registry, gateway, device):
        gateway.queue("Finished")
        store = TaskStore(make_runner(registry, gateway, device))
        handle = store.submit(Task(text="do something obscure"))
        await store.wait(handle.task.id)
        assert handle.done
        assert handle.outcome.run.state is RunState.FINISHED
        assert store.get(handle.task.id) is handle

    @pytest.mark.asyncio
    async def test_one_active_run(self, registry, device):
        gate = asyncio.Event()

        class SlowGateway(ScriptedGateway):
            async def predict(self, prompt, images=None):
                await gate.wait()
                return await super().predict(prompt, images)

        store = TaskStore(make_runner(registry, SlowGateway("Finished"), device))
        first = store.submit(Task(text="do something obscure"))
        await asyncio.sleep(0)
        with pytest.raises(TaskConflictError):
            store.submit(Task(text="another thing"))
        gate.set()
        await store.wait(first.task.id)
        assert first.done

    @pytest.mark.asyncio
    async def test_cancel(self, registry, device):
        gate = asyncio.Event()

        class SlowGateway(ScriptedGateway):
            async def predict(self, prompt, images=None):
                await gate.wait()
                return await super().predict(prompt, images)

        gateway = SlowGateway(plan_answer("Open Chirp"), action_answer("tap", x=1, y=1))
        store = TaskStore(make_runner(registry, gateway, device))
        handle = store.submit(Task(text="do something obscure"))
        await asyncio.sleep(0)
        store.cancel(handle.task.id)
        gate.set()
        await store.wait(handle.task.id)
        assert handle.outcome.run.state is RunState.CANCELLED

    def test_unknown_task(self, registry, gateway, device):
        store = TaskStore(make_runner(registry, gateway, device))
        with pytest.raises(TaskNotFoundError):
            store.get("missing")

    @pytest.mark.asyncio
    async def test_model_crash_ends_the_run_as_failed(self, registry, device):
        class BrokenGateway(ScriptedGateway):
            async def predict(self, prompt, images=None):
                raise RuntimeError("boom")

        store = TaskStore(make_runner(registry, BrokenGateway(), device))
        handle = store.submit(Task(text="do something obscure"))
        await store.wait(handle.task.id)
        assert handle.error is None
        assert handle.outcome.run.state is RunState.FAILED
        assert handle.outcome.run.failure_reason is FailureReason.INTERNAL_ERROR
        assert handle.workspace.state is RunState.FAILED
        assert store.active() == []

    @pytest.mark.asyncio
    async def test_runner_crash_is_reported(self, registry, gateway, device):
        class BrokenRunner(TaskRunner):
            async def run(self, task, handle=None):
                raise RuntimeError("boom")

        runner = make_runner(registry, gateway, device)
        store = TaskStore(BrokenRunner(runner.skill_manager, gateway, device))
        handle = store.submit(Task(text="do something obscure"))
        await store.wait(handle.task.id)
        assert handle.error == "boom"
        assert store.active() == []

    @pytest.mark.asyncio
    async def test_finished_runs_are_evicted(self, registry, gateway, device):
        gateway.queue("Finished", "Finished", "Finished")
        store = TaskStore(make_runner(registry, gateway, device), max_finished=2)
        ids = []
        for text in ("first obscure thing", "second obscure thing", "third obscure thing"):
            handle = store.submit(Task(text=text))
            await store.wait(handle.task.id)
            ids.append(handle.task.id)

        with pytest.raises(TaskNotFoundError):
            store.get(ids[0])
        assert store.get(ids[1]).done
        assert store.get(ids[2]).done
        assert store._jobs == {}
