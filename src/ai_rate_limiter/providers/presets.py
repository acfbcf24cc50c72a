"""Default rate limit policies for the supported providers."""

from ai_rate_limiter.limiter.models import RateLimitConfig

OPENAI_RATE_LIMIT = RateLimitConfig(
    requests_per_minute=500,
    requests_per_hour=10000,
    requests_per_day=100000,
    tokens_per_minute=80000,
    tokens_per_hour=1000000,
    concurrent=10,
    retry_delays=[1000, 2000, 4000, 8000, 16000],
)

ANTHROPIC_RATE_LIMIT = RateLimitConfig(
    requests_per_minute=100,
    requests_per_hour=1000,
    requests_per_day=10000,
    tokens_per_minute=40000,
    tokens_per_hour=400000,
    concurrent=5,
    retry_delays=[1000, 3000, 9000, 27000],
)

MOONSHOT_RATE_LIMIT = RateLimitConfig(
    requests_per_minute=200,
    requests_per_hour=2000,
    requests_per_day=20000,
    concurrent=3,
    retry_delays=[2000, 6000, 18000],
)

# name -> (priority, policy)
PRESETS: dict[str, tuple[int, RateLimitConfig]] = {
    "openai": (1, OPENAI_RATE_LIMIT),
    "anthropic": (2, ANTHROPIC_RATE_LIMIT),
    "moonshot": (3, MOONSHOT_RATE_LIMIT),
}


def get_preset(name: str) -> tuple[int, RateLimitConfig]:
    try:
        return PRESETS[name]
    except KeyError:
        raise KeyError(f"No rate limit preset for provider '{name}'") from None
