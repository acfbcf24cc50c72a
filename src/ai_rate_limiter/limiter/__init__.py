"""Provider registry, budget tracking, dispatch and health checking."""

from ai_rate_limiter.limiter.budget import BudgetTracker
from ai_rate_limiter.limiter.dispatcher import Dispatcher
from ai_rate_limiter.limiter.events import (
    EventBus,
    LimiterEvent,
    ProviderHealthy,
    ProviderRegistered,
    ProviderUnhealthy,
    RequestCompleted,
    RequestFailed,
    RequestStarted,
)
from ai_rate_limiter.limiter.health import HealthMonitor
from ai_rate_limiter.limiter.models import (
    OverallStats,
    ProviderConfig,
    ProviderState,
    ProviderStats,
    RateLimitConfig,
    RequestRecord,
)
from ai_rate_limiter.limiter.rate_limiter import AIRateLimiter
from ai_rate_limiter.limiter.registry import ProviderRegistry

__all__ = [
    "AIRateLimiter",
    "BudgetTracker",
    "Dispatcher",
    "EventBus",
    "HealthMonitor",
    "LimiterEvent",
    "OverallStats",
    "ProviderConfig",
    "ProviderHealthy",
    "ProviderRegistered",
    "ProviderRegistry",
    "ProviderState",
    "ProviderStats",
    "ProviderUnhealthy",
    "RateLimitConfig",
    "RequestCompleted",
    "RequestFailed",
    "RequestRecord",
    "RequestStarted",
]
