"""Unit tests for provider health checking."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from ai_rate_limiter.limiter import AIRateLimiter, HealthMonitor, ProviderHealthy, ProviderUnhealthy


def _fail(limiter, name, times=5):
    for _ in range(times):
        limiter.record_failure(name, RuntimeError("boom"))


@pytest.mark.asyncio
async def test_recovery_resets_failure_count(limiter, make_config):
    limiter.register_provider(make_config("a"))
    _fail(limiter, "a")
    assert limiter.get_provider_state("a").is_healthy is False

    results = await limiter.check_health()

    state = limiter.get_provider_state("a")
    assert results == {"a": True}
    assert state.is_healthy is True
    assert state.failure_count == 0
    assert state.last_health_check is not None


@pytest.mark.asyncio
async def test_sync_health_check_is_supported(limiter, make_config):
    check = Mock(return_value=False)
    limiter.register_provider(make_config("a", health_check=check))

    results = await limiter.check_health()

    check.assert_called_once_with()
    assert results == {"a": False}
    assert limiter.get_provider_state("a").is_healthy is False


@pytest.mark.asyncio
async def test_raising_health_check_marks_unhealthy(limiter, make_config):
    error = ConnectionError("unreachable")
    limiter.register_provider(make_config("a", health_check=AsyncMock(side_effect=error)))
    unhealthy = []
    limiter.subscribe(ProviderUnhealthy, unhealthy.append)

    results = await limiter.check_health()

    assert results == {"a": False}
    assert limiter.get_provider_state("a").is_healthy is False
    assert len(unhealthy) == 1
    assert unhealthy[0].error is error


@pytest.mark.asyncio
async def test_slow_health_check_times_out(limiter, make_config):
    async def hang():
        await asyncio.sleep(3600)
        return True

    limiter.register_provider(make_config("a", health_check=hang))
    limiter.health_monitor.timeout = 0.01

    results = await limiter.check_health()

    assert results == {"a": False}
    assert limiter.get_provider_state("a").is_healthy is False


@pytest.mark.asyncio
async def test_transition_events_fire_once(limiter, make_config):
    verdicts = iter([False, False, True, True])
    limiter.register_provider(make_config("a", health_check=lambda: next(verdicts)))
    healthy, unhealthy = [], []
    limiter.subscribe(ProviderHealthy, healthy.append)
    limiter.subscribe(ProviderUnhealthy, unhealthy.append)

    for _ in range(4):
        await limiter.check_health()

    assert len(unhealthy) == 1
    assert len(healthy) == 1


@pytest.mark.asyncio
async def test_failure_count_untouched_while_healthy(limiter, make_config):
    limiter.register_provider(make_config("a"))
    _fail(limiter, "a", times=2)

    await limiter.check_health()

    assert limiter.get_provider_state("a").failure_count == 2


@pytest.mark.asyncio
async def test_every_provider_is_checked(limiter, make_config):
    limiter.register_provider(make_config("a", health_check=AsyncMock(return_value=True)))
    limiter.register_provider(make_config("b", health_check=AsyncMock(side_effect=RuntimeError())))
    limiter.register_provider(make_config("c", enabled=False))

    results = await limiter.check_health()

    assert results == {"a": True, "b": False, "c": True}


@pytest.mark.asyncio
async def test_recovered_provider_is_selectable_again(limiter, make_config):
    limiter.register_provider(make_config("a"))
    _fail(limiter, "a")
    assert limiter.select_provider() is None

    await limiter.check_health()

    assert limiter.select_provider() == "a"


class TestLifecycle:
    """Background loop start and stop."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, limiter):
        monitor = limiter.health_monitor

        limiter.start()
        assert monitor.running is True
        limiter.start()

        await limiter.shutdown()
        assert monitor.running is False

    @pytest.mark.asyncio
    async def test_stop_without_start(self, limiter):
        await limiter.shutdown()
        assert limiter.health_monitor.running is False

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_loop_runs_checks_periodically(self, limiter, make_config):
        check = AsyncMock(return_value=True)
        limiter.register_provider(make_config("a", health_check=check))
        monitor = HealthMonitor(limiter.registry, limiter.tracker, interval=0.01, timeout=1.0)

        monitor.start()
        try:
            for _ in range(100):
                if check.await_count >= 2:
                    break
                await asyncio.sleep(0.01)
        finally:
            await monitor.stop()

        assert check.await_count >= 2
        assert limiter.get_provider_state("a").last_health_check is not None

    @pytest.mark.asyncio
    async def test_async_context_manager(self, settings):
        async with AIRateLimiter(settings) as limiter:
            assert limiter.health_monitor.running is True

        assert limiter.health_monitor.running is False
