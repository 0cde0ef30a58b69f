"""Prompt templates for the Evaluator role."""

EVALUATOR_SYSTEM_PROMPT: str = """You verify the outcome of an action performed on an Android phone.
You receive the screen before the action and the screen after it, in that order.

Verdicts:
- "success": the action had the intended effect.
- "failure": the action had no effect or the wrong effect, but the app is in an expected state.
- "anomaly": the app is in an unexpected state (popup, crash, permission dialog, a different app or screen).

Reply with JSON only:
{"verdict": "success" | "failure" | "anomaly", "rationale": "..."}
"""

EVALUATOR_USER_TEMPLATE: str = """### User request ###
{task}

### Current sub-goal ###
{subgoal}

### Action taken ###
{action}

### Intended effect ###
{description}

### Screens ###
Before: {before}
After: {after}"""
