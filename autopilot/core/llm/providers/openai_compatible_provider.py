"""Generic OpenAI-compatible provider for the model gateway.

Supports any service that exposes an OpenAI-compatible chat completions
API, including:
  - DashScope / Qwen-VL (``https://dashscope.aliyuncs.com/compatible-mode/v1``)
  - Ollama (``http://localhost:11434/v1``)
  - vLLM (``http://localhost:8000/v1``)
  - Together AI, Groq, Moonshot, Zhipu, SiliconFlow, DeepSeek
"""

from __future__ import annotations

from autopilot.core.llm.providers.openai_provider import OpenAIProvider
from autopilot.utils.exceptions import LLMError


class OpenAICompatibleProvider(OpenAIProvider):
    """Provider for any OpenAI-compatible API endpoint.

    Parameters
    ----------
    api_key:
        API key (pass an empty string for services that do not require
        authentication, e.g. local Ollama).
    model:
        Model identifier.
    base_url:
        Base URL for the API (e.g. ``"http://localhost:11434/v1"``).
    provider_name:
        Human-readable name used in log messages and error reports.
    supports_penalties:
        ``False`` for services that reject ``frequency_penalty`` /
        ``presence_penalty``.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        provider_name: str = "openai_compatible",
        supports_penalties: bool = True,
        max_tokens: int = 4096,
    ):
        try:
            import openai
        except ImportError as exc:
            raise LLMError(
                provider_name,
                "The 'openai' package is required. "
                "Install it with: pip install openai",
            ) from exc

        if not base_url:
            raise LLMError(provider_name, "base_url is required but was empty.")

        # Some local services (e.g. Ollama) don't need a key.
        effective_key = api_key if api_key else "none"

        self.client = openai.AsyncOpenAI(
            api_key=effective_key, base_url=base_url, max_retries=0,
        )
        self.model = model
        self.max_tokens = max_tokens
        self.provider_name = provider_name
        self.supports_penalties = supports_penalties
