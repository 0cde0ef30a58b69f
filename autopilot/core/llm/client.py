"""Model gateway: the single entry-point for model calls.

Provides a unified interface for interacting with different providers
through a single ``ModelGateway`` class.  Supported providers:

  - ``openai`` -- OpenAI GPT
  - ``anthropic`` -- Anthropic Claude
  - ``dashscope``, ``deepseek``, ``ollama``, ... -- OpenAI-compatible services
    with a well-known base URL
  - ``openai_compatible`` -- Any OpenAI-compatible API with a custom base_url

The gateway owns the timeout and retry policy.  Call failures never escape
as exceptions: :meth:`ModelGateway.predict` always returns a
:class:`~autopilot.core.llm.models.ModelResult`.  The gateway holds only
read-only configuration, so one instance can be shared by concurrent runs.
"""

from __future__ import annotations

import asyncio
import random

from autopilot.core.llm.models import ImageInput, ModelFailure, ModelResult, Prompt
from autopilot.core.llm.parsing import parse_json_object
from autopilot.utils.exceptions import (
    LLMError,
    MalformedResponseError,
    ModelRejectedError,
    ModelTimeoutError,
    ModelTransportError,
)
from autopilot.utils.logging import get_logger

# Well-known OpenAI-compatible providers: default base URL and whether the
# service accepts sampling penalties.
_KNOWN_COMPATIBLE_PROVIDERS: dict[str, tuple[str, bool]] = {
    "dashscope": ("https://dashscope.aliyuncs.com/compatible-mode/v1", True),
    "deepseek": ("https://api.deepseek.com", True),
    "ollama": ("http://localhost:11434/v1", True),
    "together": ("https://api.together.xyz/v1", True),
    "groq": ("https://api.groq.com/openai/v1", False),
    "moonshot": ("https://api.moonshot.cn/v1", True),
    "zhipu": ("https://open.bigmodel.cn/api/paas/v4", False),
    "siliconflow": ("https://api.siliconflow.cn/v1", True),
}


class ModelGateway:
    """Unified model client that delegates to a provider-specific backend.

    Parameters
    ----------
    provider:
        Provider name: ``"openai"``, ``"anthropic"``, ``"openai_compatible"``,
        or any key in the well-known providers registry.
    api_key:
        API key for the chosen provider.
    model:
        Model identifier (e.g. ``"qwen-vl-max"``, ``"gpt-4o"``).
    base_url:
        Optional base URL.  Required for ``openai_compatible``; overrides the
        default for well-known compatible providers.
    timeout:
        Per-attempt timeout in seconds.
    max_retries:
        Extra attempts after the first one for timeouts and transport errors.
    backoff_base, backoff_jitter:
        Delay before retry ``n`` is ``backoff_base * 2**n`` plus up to
        ``backoff_jitter`` seconds of random jitter.
    supports_penalties:
        Overrides the provider capability flag for sampling penalties.
    provider_client:
        Pre-built backend; skips provider construction (used by tests).
    """

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        backoff_jitter: float = 0.3,
        max_tokens: int = 4096,
        supports_penalties: bool | None = None,
        provider_client=None,
    ):
        self.provider = provider
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self.backoff_jitter = backoff_jitter
        self.max_tokens = max_tokens
        self.logger = get_logger("llm")
        self._provider_client = provider_client or self._init_provider()
        if supports_penalties is None:
            supports_penalties = getattr(self._provider_client, "supports_penalties", False)
        self.supports_penalties = supports_penalties

    @classmethod
    def from_settings(cls, settings, api_key: str) -> ModelGateway:
        return cls(
            settings.llm_provider,
            api_key,
            settings.llm_model,
            base_url=settings.llm_base_url or None,
            timeout=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
            backoff_base=settings.llm_backoff_base_seconds,
            backoff_jitter=settings.llm_backoff_jitter_seconds,
            max_tokens=settings.llm_max_tokens,
        )

    def _init_provider(self):
        """Instantiate the appropriate provider backend."""
        if self.provider == "anthropic":
            from autopilot.core.llm.providers.anthropic_provider import AnthropicProvider

            return AnthropicProvider(self.api_key, self.model, max_tokens=self.max_tokens)

        if self.provider == "openai":
            from autopilot.core.llm.providers.openai_provider import OpenAIProvider

            return OpenAIProvider(self.api_key, self.model, max_tokens=self.max_tokens)

        if self.provider in _KNOWN_COMPATIBLE_PROVIDERS or self.provider == "openai_compatible":
            from autopilot.core.llm.providers.openai_compatible_provider import (
                OpenAICompatibleProvider,
            )

            default_url, supports_penalties = _KNOWN_COMPATIBLE_PROVIDERS.get(
                self.provider, ("", True),
            )
            base_url = self.base_url or default_url
            if not base_url:
                raise LLMError(
                    self.provider,
                    "base_url is required for openai_compatible provider. "
                    "Set LLM_BASE_URL in your .env file.",
                )
            return OpenAICompatibleProvider(
                api_key=self.api_key,
                model=self.model,
                base_url=base_url,
                provider_name=self.provider,
                supports_penalties=supports_penalties,
                max_tokens=self.max_tokens,
            )

        raise LLMError(
            self.provider,
            f"Unknown provider: {self.provider}. "
            f"Supported: openai, anthropic, "
            f"{', '.join(_KNOWN_COMPATIBLE_PROVIDERS.keys())}, openai_compatible",
        )

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number *attempt* (0-based)."""
        delay = self.backoff_base * (2 ** attempt)
        if self.backoff_jitter > 0:
            delay += random.uniform(0, self.backoff_jitter)
        return delay

    async def predict(
        self,
        prompt: Prompt,
        images: list[ImageInput] | None = None,
    ) -> ModelResult:
        """Send *prompt* (with optional images) and return a :class:`ModelResult`.

        Timeouts and transport errors are retried with exponential backoff up
        to ``max_retries`` times.  A rejected request is surfaced at once.
        """
        total_attempts = 1 + self.max_retries
        failure = ModelFailure.TRANSPORT_ERROR
        detail = ""

        for attempt in range(total_attempts):
            self.logger.info(
                "llm_predict",
                provider=self.provider,
                model=self.model,
                attempt=attempt + 1,
                system_len=len(prompt.system),
                user_len=len(prompt.user),
                images=len(images) if images else 0,
            )
            try:
                text = await asyncio.wait_for(
                    self._provider_client.chat(
                        prompt, images, supports_penalties=self.supports_penalties,
                    ),
                    timeout=self.timeout,
                )
            except (asyncio.TimeoutError, ModelTimeoutError) as exc:
                failure = ModelFailure.TIMEOUT
                detail = str(exc) or f"no response within {self.timeout}s"
            except ModelRejectedError as exc:
                self.logger.error("llm_predict_rejected", provider=self.provider, error=str(exc))
                return ModelResult.fail(ModelFailure.REJECTED, str(exc), attempts=attempt + 1)
            except ModelTransportError as exc:
                failure = ModelFailure.TRANSPORT_ERROR
                detail = str(exc)
            else:
                if not text or not text.strip():
                    self.logger.warning("llm_predict_empty", provider=self.provider)
                    return ModelResult.fail(
                        ModelFailure.MALFORMED_RESPONSE, "empty completion", attempts=attempt + 1,
                    )
                self.logger.info("llm_predict_success", response_len=len(text), attempt=attempt + 1)
                return ModelResult.success(text, attempts=attempt + 1)

            self.logger.warning(
                "llm_predict_failed",
                provider=self.provider,
                failure=failure.value,
                attempt=attempt + 1,
                error=detail,
            )
            if attempt + 1 < total_attempts:
                await asyncio.sleep(self.backoff_delay(attempt))

        self.logger.error(
            "llm_predict_exhausted",
            provider=self.provider,
            failure=failure.value,
            attempts=total_attempts,
        )
        return ModelResult.fail(failure, detail, attempts=total_attempts)

    async def predict_json(
        self,
        prompt: Prompt,
        images: list[ImageInput] | None = None,
    ) -> ModelResult:
        """Like :meth:`predict` but also parses the completion as a JSON object.

        On success ``data`` holds the object; unparseable text becomes a
        ``malformed_response`` failure.
        """
        json_prompt = Prompt(
            system=prompt.system + "\n\nIMPORTANT: Respond ONLY with valid JSON. "
            "Do not include markdown code fences or any other text.",
            user=prompt.user,
        )
        result = await self.predict(json_prompt, images)
        if not result.ok:
            return result
        try:
            data = parse_json_object(result.text)
        except MalformedResponseError as exc:
            self.logger.warning("llm_predict_json_malformed", error=str(exc))
            return ModelResult.fail(
                ModelFailure.MALFORMED_RESPONSE, str(exc), attempts=result.attempts,
            )
        return result.model_copy(update={"data": data})
