"""Background health checking for registered providers."""

import asyncio
import inspect

import structlog

from .budget import BudgetTracker
from .models import ProviderConfig
from .registry import ProviderRegistry

logger = structlog.get_logger(__name__)


class HealthMonitor:
    """Periodically runs each provider's health predicate.

    This is the only path that sets an unhealthy provider back to healthy.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        tracker: BudgetTracker,
        interval: float = 30.0,
        timeout: float | None = 10.0,
    ):
        self._registry = registry
        self._tracker = tracker
        self.interval = interval
        self.timeout = timeout
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("Health monitor started", interval=self.interval)

    async def stop(self) -> None:
        """Stop the background loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Health monitor stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Health check error", error=str(e))

    async def run_once(self) -> dict[str, bool]:
        """Check every provider once, in registration order."""
        results: dict[str, bool] = {}
        for config, _state in self._registry:
            healthy, error = await self._probe(config)
            self._tracker.mark_health(config.name, healthy, error)
            results[config.name] = healthy
        return results

    async def _probe(self, config: ProviderConfig) -> tuple[bool, BaseException | None]:
        try:
            outcome = config.health_check()
            if inspect.isawaitable(outcome):
                if self.timeout:
                    outcome = await asyncio.wait_for(outcome, timeout=self.timeout)
                else:
                    outcome = await outcome
            return bool(outcome), None
        except asyncio.TimeoutError as e:
            logger.warning("Health check timed out", provider=config.name, timeout=self.timeout)
            return False, e
        except Exception as e:
            logger.debug("Health check raised", provider=config.name, error=str(e))
            return False, e
