"""Unit tests for the AIRateLimiter facade."""

import asyncio

import pytest

from ai_rate_limiter.exceptions import AllProvidersFailedError
from ai_rate_limiter.limiter import (
    AIRateLimiter,
    ProviderRegistered,
    ProviderUnhealthy,
    RequestCompleted,
    RequestStarted,
)


class TestAIRateLimiter:
    """Test suite for the public limiter surface."""

    def test_instances_are_independent(self, settings, make_config):
        """Test that two limiters share no providers or history."""
        first = AIRateLimiter(settings)
        second = AIRateLimiter(settings)

        first.register_provider(make_config("a"))
        first.record_request("a", "r1")

        assert second.provider_names() == []
        assert second.get_provider_stats("a") is None

    def test_subscribe_returns_unsubscribe(self, limiter, make_config):
        """Test subscription handles."""
        seen = []
        unsubscribe = limiter.subscribe(ProviderRegistered, seen.append)

        limiter.register_provider(make_config("a"))
        unsubscribe()
        limiter.register_provider(make_config("b"))

        assert [event.provider_name for event in seen] == ["a"]

    def test_manual_bookkeeping_emits_events(self, limiter, make_config):
        """Test record/complete through the facade."""
        limiter.register_provider(make_config("a"))
        started, completed = [], []
        limiter.subscribe(RequestStarted, started.append)
        limiter.subscribe(RequestCompleted, completed.append)

        limiter.record_request("a", "req_1", tokens=42)
        limiter.complete_request("a", "req_1")
        limiter.complete_request("a", "req_1")

        assert started == [RequestStarted(provider_name="a", request_id="req_1", tokens=42)]
        assert len(completed) == 2
        assert limiter.get_provider_stats("a").active_requests == 0

    @pytest.mark.asyncio
    async def test_primary_outage_then_recovery(self, limiter, make_config):
        """Test failover while the primary is down and its return after a health check."""
        primary_up = False

        async def primary_health():
            return primary_up

        limiter.register_provider(make_config("primary", priority=1, health_check=primary_health))
        limiter.register_provider(make_config("backup", priority=2))
        unhealthy = []
        limiter.subscribe(ProviderUnhealthy, unhealthy.append)

        async def call(provider):
            if provider == "primary" and not primary_up:
                raise ConnectionError("primary down")
            return provider

        served = [await limiter.execute_with_retry(call) for _ in range(6)]

        assert served == ["backup"] * 6
        assert limiter.get_provider_state("primary").is_healthy is False
        assert len(unhealthy) == 1

        primary_up = True
        await limiter.check_health()

        assert await limiter.execute_with_retry(call) == "primary"

    @pytest.mark.asyncio
    async def test_unhealthy_providers_are_never_called(self, limiter, make_config):
        """Test that an unhealthy provider is skipped without a call."""
        limiter.register_provider(make_config("a"))
        for _ in range(5):
            limiter.record_failure("a", RuntimeError("boom"))
        calls = []

        with pytest.raises(AllProvidersFailedError):
            await limiter.execute_with_retry(calls.append, max_retries=2)

        assert calls == []

    @pytest.mark.asyncio
    async def test_concurrent_callers_never_exceed_minute_budget(self, limiter, make_config):
        """Test that parallel callers cannot overshoot requests_per_minute."""
        limiter.register_provider(make_config("a", requests_per_minute=3))

        async def call(provider):
            await asyncio.sleep(0)
            return provider

        results = await asyncio.gather(
            *(limiter.execute_with_retry(call, max_retries=1) for _ in range(5)),
            return_exceptions=True,
        )

        assert results.count("a") == 3
        assert sum(isinstance(result, AllProvidersFailedError) for result in results) == 2
        assert limiter.get_provider_stats("a").requests_last_minute == 3

    @pytest.mark.asyncio
    async def test_stats_after_mixed_traffic(self, limiter, make_config):
        """Test overall stats after successes and failures."""
        limiter.register_provider(make_config("a", priority=1))
        limiter.register_provider(make_config("b", priority=2))

        async def call(provider):
            if provider == "a":
                raise RuntimeError("a failed")
            return provider

        await limiter.execute_with_retry(call, required_tokens=10)

        overall = limiter.get_overall_stats()
        assert overall.total_providers == 2
        assert overall.healthy_providers == 2
        assert overall.total_active_requests == 0
        assert overall.providers["a"].requests_last_minute == 1
        assert overall.providers["a"].failure_count == 1
        assert overall.providers["b"].tokens_last_minute == 10
