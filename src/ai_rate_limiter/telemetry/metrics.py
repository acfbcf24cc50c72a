"""Prometheus metrics for provider traffic and health."""

from collections.abc import Callable

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from ai_rate_limiter.limiter.events import (
    EventBus,
    ProviderHealthy,
    ProviderRegistered,
    ProviderUnhealthy,
    RequestCompleted,
    RequestFailed,
    RequestStarted,
)


class LimiterMetrics:
    """Prometheus collectors fed from limiter events.

    Each instance owns its ``CollectorRegistry`` so several limiters (or
    tests) can coexist in one process.
    """

    def __init__(
        self,
        namespace: str = "ai_rate_limiter",
        registry: CollectorRegistry | None = None,
    ):
        self.namespace = namespace
        self.registry = registry or CollectorRegistry()
        self._unsubscribers: list[Callable[[], None]] = []

        self.requests_started = Counter(
            f"{namespace}_requests_started_total",
            "Requests dispatched to a provider",
            ["provider"],
            registry=self.registry,
        )
        self.requests_completed = Counter(
            f"{namespace}_requests_completed_total",
            "Requests finished (success or failure)",
            ["provider"],
            registry=self.registry,
        )
        self.request_failures = Counter(
            f"{namespace}_request_failures_total",
            "Requests that raised on a provider",
            ["provider"],
            registry=self.registry,
        )
        self.tokens_reserved = Counter(
            f"{namespace}_tokens_reserved_total",
            "Estimated tokens recorded against provider budgets",
            ["provider"],
            registry=self.registry,
        )
        self.active_requests = Gauge(
            f"{namespace}_active_requests",
            "Requests currently in flight",
            ["provider"],
            registry=self.registry,
        )
        self.provider_healthy = Gauge(
            f"{namespace}_provider_healthy",
            "Provider health (1=healthy, 0=unhealthy)",
            ["provider"],
            registry=self.registry,
        )
        self.unhealthy_transitions = Counter(
            f"{namespace}_provider_unhealthy_total",
            "Times a provider was taken out of rotation",
            ["provider"],
            registry=self.registry,
        )

    def bind(self, events: EventBus) -> "LimiterMetrics":
        """Subscribe to ``events``; returns self for chaining."""
        self._unsubscribers.extend(
            [
                events.subscribe(ProviderRegistered, self._on_registered),
                events.subscribe(RequestStarted, self._on_started),
                events.subscribe(RequestCompleted, self._on_completed),
                events.subscribe(RequestFailed, self._on_failed),
                events.subscribe(ProviderUnhealthy, self._on_unhealthy),
                events.subscribe(ProviderHealthy, self._on_healthy),
            ]
        )
        return self

    def unbind(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def render(self) -> bytes:
        """Current metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)

    def _on_registered(self, event: ProviderRegistered) -> None:
        self.provider_healthy.labels(provider=event.provider_name).set(1)
        self.active_requests.labels(provider=event.provider_name)

    def _on_started(self, event: RequestStarted) -> None:
        self.requests_started.labels(provider=event.provider_name).inc()
        self.active_requests.labels(provider=event.provider_name).inc()
        if event.tokens:
            self.tokens_reserved.labels(provider=event.provider_name).inc(event.tokens)

    def _on_completed(self, event: RequestCompleted) -> None:
        self.requests_completed.labels(provider=event.provider_name).inc()
        if event.was_active:
            self.active_requests.labels(provider=event.provider_name).dec()

    def _on_failed(self, event: RequestFailed) -> None:
        self.request_failures.labels(provider=event.provider_name).inc()

    def _on_unhealthy(self, event: ProviderUnhealthy) -> None:
        self.provider_healthy.labels(provider=event.provider_name).set(0)
        self.unhealthy_transitions.labels(provider=event.provider_name).inc()

    def _on_healthy(self, event: ProviderHealthy) -> None:
        self.provider_healthy.labels(provider=event.provider_name).set(1)
