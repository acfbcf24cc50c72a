"""In-process rate limiting and failover for AI provider calls."""

__version__ = "1.0.0"

from ai_rate_limiter.config import Settings, get_settings
from ai_rate_limiter.exceptions import (
    AllProvidersFailedError,
    ProviderNotRegisteredError,
    RateLimiterError,
    RetryCancelledError,
    ValidationException,
)
from ai_rate_limiter.limiter import (
    AIRateLimiter,
    ProviderConfig,
    ProviderStats,
    OverallStats,
    RateLimitConfig,
)
from ai_rate_limiter.service import CompletionService, estimate_tokens

__all__ = [
    "__version__",
    "AIRateLimiter",
    "AllProvidersFailedError",
    "CompletionService",
    "OverallStats",
    "ProviderConfig",
    "ProviderNotRegisteredError",
    "ProviderStats",
    "RateLimitConfig",
    "RateLimiterError",
    "RetryCancelledError",
    "Settings",
    "ValidationException",
    "estimate_tokens",
    "get_settings",
]
