from .anthropic_provider import AnthropicBackend
from .base import (
    AuthenticationError,
    BaseBackend,
    CompletionRequest,
    CompletionResponse,
    ProviderError,
    RateLimitError,
    TokenUsage,
)
from .openai_provider import MoonshotBackend, OpenAIBackend
from .presets import PRESETS, get_preset

__all__ = [
    "AnthropicBackend",
    "AuthenticationError",
    "BaseBackend",
    "CompletionRequest",
    "CompletionResponse",
    "MoonshotBackend",
    "OpenAIBackend",
    "PRESETS",
    "ProviderError",
    "RateLimitError",
    "TokenUsage",
    "get_preset",
]
