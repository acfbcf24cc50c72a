"""Sliding-window budget tracking per provider."""

import time
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from .events import (
    EventBus,
    ProviderHealthy,
    ProviderUnhealthy,
    RequestCompleted,
    RequestFailed,
    RequestStarted,
)
from .models import OverallStats, ProviderStats, RequestRecord
from .registry import ProviderRegistry

logger = structlog.get_logger(__name__)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

DEFAULT_FAILURE_THRESHOLD = 5


def wall_clock_ms() -> float:
    return time.time() * 1000


def _window(records: list[RequestRecord], now: float, span_ms: int) -> list[RequestRecord]:
    return [record for record in records if now - record.timestamp < span_ms]


def _token_sum(records: list[RequestRecord]) -> int:
    return sum(record.tokens or 0 for record in records)


class BudgetTracker:
    """Owns request history, in-flight sets and failure accounting.

    All methods are synchronous: an eligibility check followed by
    ``record_request`` runs without yielding to the event loop, which keeps
    the window and concurrency caps exact under asyncio.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        events: EventBus,
        clock: Callable[[], float] = wall_clock_ms,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ):
        self._registry = registry
        self._events = events
        self._clock = clock
        self.failure_threshold = failure_threshold
        self._history: dict[str, list[RequestRecord]] = {}
        self._active: dict[str, set[str]] = {}

    def track(self, name: str) -> None:
        """Create empty history and active set for ``name`` if absent."""
        self._history.setdefault(name, [])
        self._active.setdefault(name, set())

    def can_make_request(self, name: str, required_tokens: int | None = None) -> bool:
        config = self._registry.get(name)
        state = self._registry.state(name)
        if config is None or state is None or not config.enabled or not state.is_healthy:
            return False

        limits = config.rate_limit
        if limits.concurrent and len(self._active.get(name, ())) >= limits.concurrent:
            return False

        now = self._clock()
        history = _window(self._history.get(name, []), now, DAY_MS)
        self._history[name] = history

        last_minute = _window(history, now, MINUTE_MS)
        last_hour = _window(history, now, HOUR_MS)

        if len(last_minute) >= limits.requests_per_minute:
            return False
        if len(last_hour) >= limits.requests_per_hour:
            return False
        if len(history) >= limits.requests_per_day:
            return False

        if required_tokens:
            budgets = (
                (limits.tokens_per_minute, last_minute),
                (limits.tokens_per_hour, last_hour),
                (limits.tokens_per_day, history),
            )
            for budget, records in budgets:
                if budget and _token_sum(records) + required_tokens > budget:
                    return False

        return True

    def record_request(self, name: str, request_id: str, tokens: int | None = None) -> None:
        self._history.setdefault(name, []).append(
            RequestRecord(timestamp=self._clock(), tokens=tokens)
        )
        self._active.setdefault(name, set()).add(request_id)
        logger.debug("Request started", provider=name, request_id=request_id, tokens=tokens)
        self._events.emit(RequestStarted(provider_name=name, request_id=request_id, tokens=tokens))

    def complete_request(self, name: str, request_id: str) -> None:
        active = self._active.get(name)
        was_active = active is not None and request_id in active
        if was_active:
            active.discard(request_id)
        logger.debug(
            "Request completed", provider=name, request_id=request_id, was_active=was_active
        )
        self._events.emit(
            RequestCompleted(provider_name=name, request_id=request_id, was_active=was_active)
        )

    def record_failure(self, name: str, error: BaseException | None = None) -> None:
        state = self._registry.state(name)
        if state is None:
            return

        state.failure_count += 1
        state.last_failure = datetime.now(timezone.utc)
        logger.warning(
            "Provider request failed",
            provider=name,
            failure_count=state.failure_count,
            error=str(error) if error else None,
        )
        self._events.emit(
            RequestFailed(provider_name=name, failure_count=state.failure_count, error=error)
        )

        if state.failure_count >= self.failure_threshold and state.is_healthy:
            state.is_healthy = False
            logger.error(
                "Provider marked unhealthy",
                provider=name,
                failure_count=state.failure_count,
            )
            self._events.emit(ProviderUnhealthy(provider_name=name, error=error))

    def reset_failures(self, name: str) -> None:
        state = self._registry.state(name)
        if state is not None:
            state.failure_count = 0

    def mark_health(self, name: str, healthy: bool, error: BaseException | None = None) -> None:
        """Apply a health-check verdict; stamps ``last_health_check`` either way."""
        state = self._registry.state(name)
        if state is None:
            return

        if not healthy and state.is_healthy:
            state.is_healthy = False
            logger.warning(
                "Provider failed health check",
                provider=name,
                error=str(error) if error else None,
            )
            self._events.emit(ProviderUnhealthy(provider_name=name, error=error))
        elif healthy and not state.is_healthy:
            state.is_healthy = True
            state.failure_count = 0
            logger.info("Provider recovered", provider=name)
            self._events.emit(ProviderHealthy(provider_name=name))

        state.last_health_check = datetime.now(timezone.utc)

    def get_provider_stats(self, name: str) -> ProviderStats | None:
        state = self._registry.state(name)
        if state is None:
            return None

        now = self._clock()
        history = self._history.get(name, [])
        last_minute = _window(history, now, MINUTE_MS)
        last_hour = _window(history, now, HOUR_MS)
        last_day = _window(history, now, DAY_MS)

        return ProviderStats(
            requests_last_minute=len(last_minute),
            requests_last_hour=len(last_hour),
            requests_last_day=len(last_day),
            tokens_last_minute=_token_sum(last_minute),
            tokens_last_hour=_token_sum(last_hour),
            tokens_last_day=_token_sum(last_day),
            active_requests=len(self._active.get(name, ())),
            is_healthy=state.is_healthy,
            failure_count=state.failure_count,
        )

    def get_overall_stats(self) -> OverallStats:
        providers: dict[str, ProviderStats] = {}
        healthy = 0
        active = 0

        for config, state in self._registry:
            stats = self.get_provider_stats(config.name)
            if stats is None:
                continue
            providers[config.name] = stats
            if state.is_healthy:
                healthy += 1
            active += stats.active_requests

        return OverallStats(
            total_providers=len(self._registry),
            healthy_providers=healthy,
            total_active_requests=active,
            providers=providers,
        )
