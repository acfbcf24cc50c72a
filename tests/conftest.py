"""Pytest configuration and fixtures."""

import os
from typing import Callable, List

import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from ai_rate_limiter.config import Settings
from ai_rate_limiter.limiter import AIRateLimiter, ProviderConfig, RateLimitConfig

START_MS = 1_700_000_000_000.0


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = START_MS):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingSleep:
    """Async sleep replacement that records delays and advances the clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        health_check_interval=30.0,
        health_check_timeout=1.0,
        failure_threshold=5,
        default_max_retries=3,
        enable_metrics=False,
    )


@pytest.fixture
def limiter(settings, clock, sleep) -> AIRateLimiter:
    return AIRateLimiter(settings, clock=clock, sleep=sleep)


@pytest.fixture
def make_config() -> Callable[..., ProviderConfig]:
    def factory(
        name: str,
        priority: int = 1,
        enabled: bool = True,
        health_check=None,
        **limits,
    ) -> ProviderConfig:
        rate_limit = {
            "requests_per_minute": 100,
            "requests_per_hour": 1000,
            "requests_per_day": 10000,
            "retry_delays": [],
        }
        rate_limit.update(limits)
        kwargs = {}
        if health_check is not None:
            kwargs["health_check"] = health_check
        return ProviderConfig(
            name=name,
            enabled=enabled,
            priority=priority,
            rate_limit=RateLimitConfig(**rate_limit),
            **kwargs,
        )

    return factory
