"""AI provider rate limiter with failover and health tracking."""

import asyncio
from collections.abc import Callable, Iterable
from typing import TypeVar

import structlog

from ai_rate_limiter.config import Settings

from .budget import BudgetTracker, wall_clock_ms
from .dispatcher import Dispatcher, RequestFn, Sleep
from .events import EventBus, LimiterEvent
from .health import HealthMonitor
from .models import OverallStats, ProviderConfig, ProviderState, ProviderStats
from .registry import ProviderRegistry

logger = structlog.get_logger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=LimiterEvent)


class AIRateLimiter:
    """Rate limits, selects and fails over between AI providers.

    Build one instance in application startup code and pass it to the call
    sites that issue LLM requests::

        async with AIRateLimiter(settings) as limiter:
            limiter.register_provider(openai_config)
            reply = await limiter.execute_with_retry(call_model, required_tokens=1200)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], float] = wall_clock_ms,
        sleep: Sleep = asyncio.sleep,
    ):
        settings = settings or Settings()
        self.settings = settings
        self.events = EventBus()
        self.registry = ProviderRegistry(self.events)
        self.tracker = BudgetTracker(
            self.registry,
            self.events,
            clock=clock,
            failure_threshold=settings.failure_threshold,
        )
        self.dispatcher = Dispatcher(
            self.registry,
            self.tracker,
            sleep=sleep,
            default_max_retries=settings.default_max_retries,
            no_provider_backoff_base_ms=settings.no_provider_backoff_base_ms,
            no_provider_backoff_max_ms=settings.no_provider_backoff_max_ms,
        )
        self.health_monitor = HealthMonitor(
            self.registry,
            self.tracker,
            interval=settings.health_check_interval,
            timeout=settings.health_check_timeout,
        )

    async def __aenter__(self) -> "AIRateLimiter":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.shutdown()
        return False

    # Lifecycle

    def start(self) -> None:
        """Start periodic health checks. Requires a running event loop."""
        self.health_monitor.start()

    async def shutdown(self) -> None:
        """Stop periodic health checks."""
        await self.health_monitor.stop()

    def subscribe(self, event_type: type[E], listener: Callable[[E], None]) -> Callable[[], None]:
        return self.events.subscribe(event_type, listener)

    # Provider registry

    def register_provider(self, config: ProviderConfig) -> None:
        self.tracker.track(config.name)
        self.registry.register(config)

    def get_provider(self, name: str) -> ProviderConfig | None:
        return self.registry.get(name)

    def get_provider_state(self, name: str) -> ProviderState | None:
        return self.registry.state(name)

    def provider_names(self) -> list[str]:
        return self.registry.names()

    # Budget tracking

    def can_make_request(self, provider_name: str, required_tokens: int | None = None) -> bool:
        return self.tracker.can_make_request(provider_name, required_tokens)

    def record_request(
        self, provider_name: str, request_id: str, tokens: int | None = None
    ) -> None:
        self.tracker.record_request(provider_name, request_id, tokens)

    def complete_request(self, provider_name: str, request_id: str) -> None:
        self.tracker.complete_request(provider_name, request_id)

    def record_failure(self, provider_name: str, error: BaseException | None = None) -> None:
        self.tracker.record_failure(provider_name, error)

    def get_provider_stats(self, provider_name: str) -> ProviderStats | None:
        return self.tracker.get_provider_stats(provider_name)

    def get_overall_stats(self) -> OverallStats:
        return self.tracker.get_overall_stats()

    # Dispatch

    def select_provider(
        self, exclude_providers: Iterable[str] = (), required_tokens: int | None = None
    ) -> str | None:
        return self.dispatcher.select_provider(exclude_providers, required_tokens)

    async def execute_with_retry(
        self,
        request_fn: RequestFn,
        max_retries: int | None = None,
        required_tokens: int | None = None,
        exclude_providers: Iterable[str] = (),
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        return await self.dispatcher.execute_with_retry(
            request_fn,
            max_retries=max_retries,
            required_tokens=required_tokens,
            exclude_providers=exclude_providers,
            cancel_event=cancel_event,
        )

    async def check_health(self) -> dict[str, bool]:
        """Run every provider's health check once."""
        return await self.health_monitor.run_once()
