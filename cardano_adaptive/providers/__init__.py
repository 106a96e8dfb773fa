"""LLM provider abstraction module."""

from cardano_adaptive.providers.base import LLMProvider, LLMResponse
from cardano_adaptive.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider"]
