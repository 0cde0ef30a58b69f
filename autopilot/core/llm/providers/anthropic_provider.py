"""Anthropic Claude provider for the model gateway.

Wraps the ``anthropic`` SDK's async client and exposes the ``chat``
coroutine expected by :class:`~autopilot.core.llm.client.ModelGateway`.
"""

from __future__ import annotations

from autopilot.core.llm.models import ImageInput, Prompt
from autopilot.core.llm.providers.openai_provider import is_retryable_status
from autopilot.utils.exceptions import (
    LLMError,
    ModelRejectedError,
    ModelTimeoutError,
    ModelTransportError,
)
from autopilot.utils.logging import get_logger

logger = get_logger("llm.anthropic")


class AnthropicProvider:
    """Provider implementation for Anthropic Claude models.

    Parameters
    ----------
    api_key:
        Anthropic API key.
    model:
        Model identifier, e.g. ``"claude-sonnet-4-20250514"``.
    """

    provider_name = "anthropic"
    # The Messages API has no sampling penalties.
    supports_penalties = False

    def __init__(self, api_key: str, model: str, max_tokens: int = 4096):
        try:
            import anthropic
        except ImportError as exc:
            raise LLMError(
                "anthropic",
                "The 'anthropic' package is not installed. "
                "Install it with: pip install anthropic",
            ) from exc

        if not api_key:
            raise LLMError("anthropic", "API key is required but was empty.")

        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens

    @staticmethod
    def build_content(prompt: Prompt, images: list[ImageInput] | None) -> str | list[dict]:
        if not images:
            return prompt.user
        blocks: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.mime_type,
                    "data": image.to_base64(),
                },
            }
            for image in images
        ]
        blocks.append({"type": "text", "text": prompt.user})
        return blocks

    async def chat(
        self,
        prompt: Prompt,
        images: list[ImageInput] | None = None,
        supports_penalties: bool | None = None,
    ) -> str:
        """Call Claude and return the assistant's text response."""
        import anthropic

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0,
                system=prompt.system,
                messages=[{"role": "user", "content": self.build_content(prompt, images)}],
            )
        except anthropic.APITimeoutError as exc:
            raise ModelTimeoutError("anthropic", str(exc)) from exc
        except anthropic.APIConnectionError as exc:
            raise ModelTransportError("anthropic", str(exc)) from exc
        except anthropic.APIStatusError as exc:
            if is_retryable_status(exc.status_code):
                raise ModelTransportError(
                    "anthropic", f"HTTP {exc.status_code}: {exc.message}",
                ) from exc
            logger.error(
                "anthropic_request_rejected",
                status_code=exc.status_code,
                error=exc.message,
            )
            raise ModelRejectedError(
                "anthropic", f"HTTP {exc.status_code}: {exc.message}",
            ) from exc
        except anthropic.APIError as exc:
            raise ModelTransportError("anthropic", f"{type(exc).__name__}: {exc}") from exc

        # Extract text from the first content block.
        if message.content and len(message.content) > 0:
            return getattr(message.content[0], "text", "") or ""
        return ""
