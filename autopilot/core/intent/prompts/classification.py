"""Prompt templates for model-based skill matching.

Consumed by :class:`~autopilot.core.intent.classifier.LLMIntentStrategy`.
Only skills with at least one installed app are listed.
"""

CLASSIFICATION_SYSTEM_PROMPT: str = """You are an intent recognition assistant for a phone automation agent.
Given the user's request and the list of available skills, pick the skill that best matches the request.

Return JSON: {"skill_id": "<matched skill ID or null>", "confidence": 0.0-1.0, "reasoning": "..."}

Notes:
1. Recognise the intent even if the wording differs from the keywords.
2. Use null for skill_id when no skill truly matches.
3. For example "order a burger", "help me order food" and "I want fried chicken" match order_food;
   "nearby restaurants" and "food recommendations" match find_food.
"""

CLASSIFICATION_USER_TEMPLATE: str = (
    "Available skills:\n{skills}\n\n"
    "User request: \"{user_input}\""
)
