"""LiteLLM provider implementation for multi-provider support."""

from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from cardano_adaptive.providers.base import LLMProvider, LLMResponse


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM for multi-provider support.

    The model id carries the provider prefix (``anthropic/...``,
    ``openai/...``, ``openrouter/...``); credentials and the optional
    custom endpoint are passed per call, never through process env.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "",
        timeout: float = 8.0,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.timeout = timeout

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True
        # Drop unsupported parameters for providers
        litellm.drop_params = True

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """
        Send a chat completion request via LiteLLM.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (e.g., 'anthropic/claude-3-5-sonnet-20241022').
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with content, or ``finish_reason="error"`` on failure.
        """
        model = model or self.default_model
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response, resolved_model=model)
        except Exception as e:
            logger.error(f"LLM call failed ({model}): {e}")
            # Raw exception details stay in logs only.
            return LLMResponse(content=self._friendly_error(e), finish_reason="error", model=model)

    @staticmethod
    def _friendly_error(exc: Exception) -> str:
        """Map raw LLM exceptions to caller-safe messages."""
        raw = str(exc).lower()
        if "rate_limit" in raw or "429" in raw:
            return "The language model is rate limited; try again shortly."
        if "timeout" in raw or "timed out" in raw:
            return "The language model did not answer in time."
        if "authentication" in raw or "401" in raw or "403" in raw:
            return "The language model rejected the configured credential."
        if "connection" in raw or "connect" in raw:
            return "Could not reach the language model."
        return "The language model is temporarily unavailable."

    def _parse_response(self, response: Any, *, resolved_model: str = "") -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]
        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
            model=resolved_model or getattr(response, "model", ""),
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
