"""Typed lifecycle events emitted by the rate limiter."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar, TypeVar

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LimiterEvent:
    """Base class for limiter events."""

    name: ClassVar[str] = "limiter:event"

    provider_name: str


@dataclass(frozen=True)
class ProviderRegistered(LimiterEvent):
    name: ClassVar[str] = "provider:registered"

    priority: int
    enabled: bool


@dataclass(frozen=True)
class RequestStarted(LimiterEvent):
    name: ClassVar[str] = "request:started"

    request_id: str
    tokens: int | None = None


@dataclass(frozen=True)
class RequestCompleted(LimiterEvent):
    name: ClassVar[str] = "request:completed"

    request_id: str
    was_active: bool = True


@dataclass(frozen=True)
class RequestFailed(LimiterEvent):
    name: ClassVar[str] = "request:failed"

    failure_count: int
    error: BaseException | None = None


@dataclass(frozen=True)
class ProviderUnhealthy(LimiterEvent):
    name: ClassVar[str] = "provider:unhealthy"

    error: BaseException | None = None


@dataclass(frozen=True)
class ProviderHealthy(LimiterEvent):
    name: ClassVar[str] = "provider:healthy"


E = TypeVar("E", bound=LimiterEvent)
Listener = Callable[[LimiterEvent], None]


class EventBus:
    """Synchronous observer registry keyed by event type.

    Listeners run in subscription order on the emitting call. A listener
    that raises is logged and skipped so a broken observer never breaks
    request handling.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[type[LimiterEvent], Listener]] = []

    def subscribe(
        self, event_type: type[E], listener: Callable[[E], None]
    ) -> Callable[[], None]:
        """Register ``listener`` for ``event_type`` (and its subclasses).

        Returns a callable that removes the subscription.
        """
        subscription = (event_type, listener)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    def emit(self, event: LimiterEvent) -> None:
        for event_type, listener in list(self._subscriptions):
            if not isinstance(event, event_type):
                continue
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Event listener failed",
                    event_name=event.name,
                    provider=event.provider_name,
                )

    def listener_count(self) -> int:
        return len(self._subscriptions)


__all__ = [
    "LimiterEvent",
    "ProviderRegistered",
    "RequestStarted",
    "RequestCompleted",
    "RequestFailed",
    "ProviderUnhealthy",
    "ProviderHealthy",
    "EventBus",
]
