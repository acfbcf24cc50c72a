"""
Provider configuration, runtime state and statistics models.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

HealthCheck = Callable[[], Union[bool, Awaitable[bool]]]


async def _always_healthy() -> bool:
    return True


class RateLimitConfig(BaseModel):
    """Per-provider request and token budgets."""

    requests_per_minute: int = Field(..., ge=1, description="Requests allowed in any trailing 60s")
    requests_per_hour: int = Field(..., ge=1, description="Requests allowed in any trailing hour")
    requests_per_day: int = Field(..., ge=1, description="Requests allowed in any trailing 24h")
    tokens_per_minute: Optional[int] = Field(default=None, ge=1, description="Token budget per minute")
    tokens_per_hour: Optional[int] = Field(default=None, ge=1, description="Token budget per hour")
    tokens_per_day: Optional[int] = Field(default=None, ge=1, description="Token budget per day")
    concurrent: Optional[int] = Field(default=None, ge=1, description="Max in-flight requests")
    retry_delays: List[int] = Field(
        default_factory=list, description="Backoff delays in milliseconds, indexed by attempt"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "requests_per_minute": 500,
                "requests_per_hour": 10000,
                "requests_per_day": 100000,
                "tokens_per_minute": 80000,
                "tokens_per_hour": 1000000,
                "concurrent": 10,
                "retry_delays": [1000, 2000, 4000, 8000, 16000],
            }
        },
    )

    @field_validator("retry_delays")
    @classmethod
    def validate_retry_delays(cls, v: List[int]) -> List[int]:
        if any(delay < 0 for delay in v):
            raise ValueError("retry delays must be non-negative")
        return v

    def retry_delay_ms(self, attempt: int) -> int:
        """Delay before the attempt following ``attempt`` (0-indexed)."""
        if not self.retry_delays:
            return 0
        return self.retry_delays[min(attempt, len(self.retry_delays) - 1)]


class ProviderConfig(BaseModel):
    """Static configuration of one AI provider."""

    name: str = Field(..., min_length=1, description="Unique provider name")
    enabled: bool = Field(default=True, description="Whether the provider may be selected")
    priority: int = Field(default=0, description="Lower values are preferred")
    rate_limit: RateLimitConfig
    health_check: HealthCheck = Field(
        default=_always_healthy, description="Zero-arg predicate, sync or async", exclude=True
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


@dataclass
class ProviderState:
    """Mutable runtime fields of a registered provider."""

    is_healthy: bool = True
    failure_count: int = 0
    last_failure: Optional[datetime] = None
    last_health_check: Optional[datetime] = None


@dataclass(frozen=True)
class RequestRecord:
    """One accepted request attempt."""

    timestamp: float
    tokens: Optional[int] = None


class ProviderStats(BaseModel):
    """Windowed usage for one provider."""

    requests_last_minute: int = 0
    requests_last_hour: int = 0
    requests_last_day: int = 0
    tokens_last_minute: int = 0
    tokens_last_hour: int = 0
    tokens_last_day: int = 0
    active_requests: int = 0
    is_healthy: bool = True
    failure_count: int = 0


class OverallStats(BaseModel):
    """Aggregate usage across every registered provider."""

    total_providers: int = 0
    healthy_providers: int = 0
    total_active_requests: int = 0
    providers: Dict[str, ProviderStats] = Field(default_factory=dict)


__all__ = [
    "HealthCheck",
    "RateLimitConfig",
    "ProviderConfig",
    "ProviderState",
    "RequestRecord",
    "ProviderStats",
    "OverallStats",
]
