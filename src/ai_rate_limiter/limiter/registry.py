"""Provider registry: static configuration and runtime state by name."""

from collections.abc import Iterable, Iterator

import structlog

from .events import EventBus, ProviderRegistered
from .models import ProviderConfig, ProviderState

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Holds one config and one state record per provider name.

    Iteration follows registration order; re-registering a name replaces its
    config in place and keeps its position.
    """

    def __init__(self, events: EventBus):
        self._events = events
        self._configs: dict[str, ProviderConfig] = {}
        self._states: dict[str, ProviderState] = {}

    def register(self, config: ProviderConfig) -> None:
        self._configs[config.name] = config
        self._states[config.name] = ProviderState()
        logger.info(
            "Provider registered",
            provider=config.name,
            priority=config.priority,
            enabled=config.enabled,
        )
        self._events.emit(
            ProviderRegistered(
                provider_name=config.name, priority=config.priority, enabled=config.enabled
            )
        )

    def get(self, name: str) -> ProviderConfig | None:
        return self._configs.get(name)

    def state(self, name: str) -> ProviderState | None:
        return self._states.get(name)

    def names(self) -> list[str]:
        return list(self._configs)

    def candidates(self, exclude: Iterable[str] = ()) -> list[ProviderConfig]:
        """Enabled, healthy, non-excluded providers by ascending priority."""
        excluded = set(exclude)
        available = [
            config
            for name, config in self._configs.items()
            if config.enabled and self._states[name].is_healthy and name not in excluded
        ]
        # sorted() is stable, so equal priorities keep registration order
        return sorted(available, key=lambda config: config.priority)

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __iter__(self) -> Iterator[tuple[ProviderConfig, ProviderState]]:
        for name, config in list(self._configs.items()):
            yield config, self._states[name]

    def __len__(self) -> int:
        return len(self._configs)
