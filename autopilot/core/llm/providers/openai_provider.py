"""OpenAI provider for the model gateway.

Wraps the ``openai`` SDK's async client and exposes the ``chat`` coroutine
expected by :class:`~autopilot.core.llm.client.ModelGateway`.  SDK errors are
translated into transport, timeout or rejection errors; the gateway decides
what to retry.
"""

from __future__ import annotations

from autopilot.core.llm.models import ImageInput, Prompt
from autopilot.utils.exceptions import (
    LLMError,
    ModelRejectedError,
    ModelTimeoutError,
    ModelTransportError,
)
from autopilot.utils.logging import get_logger

logger = get_logger("llm.openai")

# Status codes that indicate a transient server-side condition.
RETRYABLE_STATUS = frozenset({408, 409, 429})


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS or status_code >= 500


class OpenAIProvider:
    """Provider implementation for OpenAI chat-completion models.

    Parameters
    ----------
    api_key:
        OpenAI API key.
    model:
        Model identifier, e.g. ``"gpt-4o"``.
    max_tokens:
        Completion token limit sent with every request.
    """

    provider_name = "openai"
    supports_penalties = True

    def __init__(self, api_key: str, model: str, max_tokens: int = 4096):
        try:
            import openai
        except ImportError as exc:
            raise LLMError(
                self.provider_name,
                "The 'openai' package is not installed. "
                "Install it with: pip install openai",
            ) from exc

        if not api_key:
            raise LLMError(self.provider_name, "API key is required but was empty.")

        # Retries and timeouts belong to the gateway.
        self.client = openai.AsyncOpenAI(api_key=api_key, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens

    def build_messages(self, prompt: Prompt, images: list[ImageInput] | None) -> list[dict]:
        user_content: str | list[dict] = prompt.user
        if images:
            user_content = [{"type": "text", "text": prompt.user}]
            user_content.extend(
                {"type": "image_url", "image_url": {"url": image.to_data_url()}}
                for image in images
            )
        return [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": user_content},
        ]

    def build_params(self, supports_penalties: bool) -> dict:
        params = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": 0,
        }
        if supports_penalties:
            params["frequency_penalty"] = 0
            params["presence_penalty"] = 0
        return params

    async def chat(
        self,
        prompt: Prompt,
        images: list[ImageInput] | None = None,
        supports_penalties: bool | None = None,
    ) -> str:
        """Call the chat completions API and return the assistant's text."""
        import openai

        if supports_penalties is None:
            supports_penalties = self.supports_penalties

        try:
            response = await self.client.chat.completions.create(
                messages=self.build_messages(prompt, images),
                **self.build_params(supports_penalties),
            )
        except openai.APITimeoutError as exc:
            raise ModelTimeoutError(self.provider_name, str(exc)) from exc
        except openai.APIConnectionError as exc:
            raise ModelTransportError(self.provider_name, str(exc)) from exc
        except openai.APIStatusError as exc:
            if is_retryable_status(exc.status_code):
                raise ModelTransportError(
                    self.provider_name, f"HTTP {exc.status_code}: {exc.message}",
                ) from exc
            logger.error(
                "openai_request_rejected",
                provider=self.provider_name,
                status_code=exc.status_code,
                error=exc.message,
            )
            raise ModelRejectedError(
                self.provider_name, f"HTTP {exc.status_code}: {exc.message}",
            ) from exc
        except openai.APIError as exc:
            raise ModelTransportError(self.provider_name, f"{type(exc).__name__}: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if choice and choice.message and choice.message.content:
            return choice.message.content
        return ""
