import json

import pytest

from autopilot.core.agent.actions import Action, Observation
from autopilot.core.llm.models import ModelFailure, ModelResult
from autopilot.core.llm.parsing import parse_json_object
from autopilot.skills.app_scanner import AppScanner
from autopilot.skills.loader import parse_catalog
from autopilot.skills.registry import SkillRegistry
from autopilot.utils.exceptions import ActionError, MalformedResponseError


class ScriptedGateway:
    """Model gateway double that replays queued answers in order.

    Queue plain strings for successful completions, ``ModelFailure`` values
    for failed calls, or ``ModelResult`` objects as-is.  Every prompt is
    recorded in ``prompts``.
    """

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []
        self.images = []

    def queue(self, *answers):
        self.answers.extend(answers)

    async def predict(self, prompt, images=None):
        self.prompts.append(prompt)
        self.images.append(images)
        if not self.answers:
            raise AssertionError(f"unexpected model call: {prompt.user[:80]!r}")
        answer = self.answers.pop(0)
        if isinstance(answer, ModelResult):
            return answer
        if isinstance(answer, ModelFailure):
            return ModelResult.fail(answer, "scripted failure")
        if isinstance(answer, dict):
            answer = json.dumps(answer)
        return ModelResult.success(answer)

    async def predict_json(self, prompt, images=None):
        result = await self.predict(prompt, images)
        if not result.ok:
            return result
        try:
            data = parse_json_object(result.text)
        except MalformedResponseError as exc:
            return ModelResult.fail(ModelFailure.MALFORMED_RESPONSE, str(exc))
        return result.model_copy(update={"data": data})


class FakeDevice:
    """In-memory action executor that records every dispatched action."""

    def __init__(self, failures=None, on_execute=None):
        self.actions: list[Action] = []
        self.observations = 0
        # Maps an action index to the ActionError kind it should raise.
        self.failures = dict(failures or {})
        self.on_execute = on_execute

    async def observe(self):
        self.observations += 1
        return Observation(handle=f"screen-{self.observations}", description="home screen")

    async def execute(self, action):
        index = len(self.actions)
        self.actions.append(action)
        if self.on_execute is not None:
            self.on_execute(action)
        if index in self.failures:
            raise ActionError(self.failures[index], f"cannot perform {action.kind.value}")
        self.observations += 1
        return Observation(handle=f"screen-{self.observations}", description=f"after {action.kind.value}")


CATALOG = {
    "skills": [
        {
            "id": "order_food",
            "name": "Order food",
            "description": "Order food delivery",
            "category": "food",
            "keywords": ["order food", "takeout", "burger", "order"],
            "relatedApps": [
                {
                    "packageName": "com.food.fast",
                    "name": "FoodNow",
                    "priority": 100,
                    "type": "delegation",
                    "deepLink": "foodnow://search?keyword={keyword}",
                },
                {
                    "packageName": "com.food.slow",
                    "name": "MealHub",
                    "priority": 50,
                    "type": "gui_automation",
                    "steps": ["Open MealHub", "Search the dish"],
                },
            ],
        },
        {
            "id": "navigate",
            "name": "Navigation",
            "description": "Directions to a place",
            "category": "travel",
            "keywords": ["navigate", "directions", "route to"],
            "relatedApps": [
                {
                    "packageName": "com.maps",
                    "name": "Maps",
                    "priority": 90,
                    "type": "delegation",
                    "deepLink": "geo:0,0?q={keyword}",
                },
            ],
        },
        {
            "id": "post_update",
            "name": "Post an update",
            "description": "Publish a short post",
            "category": "social",
            "keywords": ["post", "tweet"],
            "promptHint": "Keep the post text under 100 characters.",
            "relatedApps": [
                {
                    "packageName": "com.social",
                    "name": "Chirp",
                    "priority": 70,
                    "type": "gui_automation",
                },
            ],
        },
    ]
}

INSTALLED = ["com.food.fast", "com.food.slow", "com.maps", "com.social"]


def plan_answer(*subgoals, thought="next"):
    return {"thought": thought, "plan": list(subgoals)}


def action_answer(kind="tap", **params):
    return {"thought": "do it", "action": {"kind": kind, **params}, "description": f"{kind} step"}


def verdict_answer(verdict="success", rationale="screen changed as expected"):
    return {"verdict": verdict, "rationale": rationale}


def notes_answer(*notes):
    return {"notes": list(notes)}


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def catalog_configs():
    return parse_catalog(CATALOG)


@pytest.fixture
def scanner():
    return AppScanner(initial=INSTALLED)


@pytest.fixture
def registry(catalog_configs, scanner):
    reg = SkillRegistry(app_scanner=scanner)
    reg.load(catalog_configs)
    return reg


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "skills.json"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")
    return path
