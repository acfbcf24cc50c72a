"""Completion service that routes LLM calls through the rate limiter."""

import asyncio
import math
from typing import Any, Dict, List, Optional, Union

import orjson
import structlog
from pydantic import BaseModel, Field

from ai_rate_limiter.config import Settings
from ai_rate_limiter.exceptions import (
    ProviderNotRegisteredError,
    RateLimiterError,
    ValidationException,
)
from ai_rate_limiter.limiter import AIRateLimiter, OverallStats
from ai_rate_limiter.providers import (
    AnthropicBackend,
    BaseBackend,
    CompletionRequest,
    CompletionResponse,
    MoonshotBackend,
    OpenAIBackend,
    get_preset,
)
from ai_rate_limiter.telemetry import LimiterMetrics

logger = structlog.get_logger(__name__)


class ServiceStats(BaseModel):
    """Service health summary."""

    providers_available: List[str] = Field(default_factory=list)
    rate_limit_stats: OverallStats
    is_healthy: bool


def estimate_tokens(prompt: str, system_prompt: Optional[str] = None) -> int:
    """Rough token estimate: ~4 characters per token plus a third for the reply."""
    prompt_tokens = math.ceil(len(prompt) / 4)
    system_tokens = math.ceil(len(system_prompt) / 4) if system_prompt else 0
    completion_tokens = math.ceil((prompt_tokens + system_tokens) / 3)
    return prompt_tokens + system_tokens + completion_tokens


class CompletionService:
    """Generates completions on whichever registered backend is available."""

    def __init__(
        self,
        limiter: AIRateLimiter,
        max_retries: int = 3,
        metrics: Optional[LimiterMetrics] = None,
    ):
        self.limiter = limiter
        self.max_retries = max_retries
        self.metrics = metrics
        self.backends: Dict[str, BaseBackend] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, limiter: Optional[AIRateLimiter] = None
    ) -> "CompletionService":
        """Register one backend per configured API key, using the default presets."""
        limiter = limiter or AIRateLimiter(settings)
        metrics = LimiterMetrics().bind(limiter.events) if settings.enable_metrics else None
        service = cls(limiter, max_retries=settings.default_max_retries, metrics=metrics)
        common = {
            "timeout": settings.request_timeout,
            "default_temperature": settings.default_temperature,
            "default_max_tokens": settings.default_max_tokens,
        }

        if settings.openai_api_key:
            priority, rate_limit = get_preset("openai")
            service.add_backend(
                OpenAIBackend(
                    settings.openai_api_key.get_secret_value(),
                    rate_limit,
                    priority=priority,
                    model=settings.openai_model,
                    **common,
                )
            )

        if settings.anthropic_api_key:
            priority, rate_limit = get_preset("anthropic")
            service.add_backend(
                AnthropicBackend(
                    settings.anthropic_api_key.get_secret_value(),
                    rate_limit,
                    priority=priority,
                    model=settings.anthropic_model,
                    **common,
                )
            )

        if settings.moonshot_api_key:
            priority, rate_limit = get_preset("moonshot")
            service.add_backend(
                MoonshotBackend(
                    settings.moonshot_api_key.get_secret_value(),
                    rate_limit,
                    priority=priority,
                    base_url=settings.moonshot_base_url,
                    model=settings.moonshot_model,
                    **common,
                )
            )

        if not service.backends:
            logger.warning("No provider API keys configured")

        return service

    def add_backend(self, backend: BaseBackend) -> None:
        self.backends[backend.name] = backend
        self.limiter.register_provider(backend.to_provider_config())

    async def generate_completion(self, request: CompletionRequest) -> CompletionResponse:
        if not self.backends:
            raise RateLimiterError(
                "AI service has no configured providers",
                error_code="SERVICE_NOT_CONFIGURED",
                status_code=503,
            )

        async def call(provider: str) -> CompletionResponse:
            backend = self.backends.get(provider)
            if backend is None:
                raise ProviderNotRegisteredError(provider)
            return await backend.complete(request)

        return await self.limiter.execute_with_retry(
            call,
            max_retries=self.max_retries,
            required_tokens=estimate_tokens(request.prompt, request.system_prompt),
        )

    async def extract_structured_data(
        self, prompt: str, system_prompt: str, schema: Optional[str] = None
    ) -> Any:
        """Request JSON output and parse it."""
        if schema:
            prompt = f"{prompt}\n\nPlease respond with valid JSON matching this schema:\n{schema}"

        response = await self.generate_completion(
            CompletionRequest(
                prompt=prompt,
                system_prompt=system_prompt,
                response_format="json",
                temperature=0.1,
            )
        )

        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ValidationException(f"Failed to parse JSON response: {e}") from e

    async def batch_process(
        self,
        requests: List[CompletionRequest],
        max_concurrent: int = 3,
        continue_on_error: bool = True,
    ) -> List[Union[CompletionResponse, Exception]]:
        """Run requests in batches of ``max_concurrent``.

        With ``continue_on_error`` a failed request yields its exception in
        place of a response; otherwise the first failure propagates.
        """
        if max_concurrent < 1:
            raise ValidationException("max_concurrent must be at least 1", field="max_concurrent")

        async def run(request: CompletionRequest) -> Union[CompletionResponse, Exception]:
            try:
                return await self.generate_completion(request)
            except Exception as e:
                if continue_on_error:
                    return e
                raise

        results: List[Union[CompletionResponse, Exception]] = []
        for start in range(0, len(requests), max_concurrent):
            batch = requests[start : start + max_concurrent]
            results.extend(await asyncio.gather(*(run(request) for request in batch)))
        return results

    def get_service_stats(self) -> ServiceStats:
        stats = self.limiter.get_overall_stats()
        return ServiceStats(
            providers_available=[
                name for name, provider_stats in stats.providers.items() if provider_stats.is_healthy
            ],
            rate_limit_stats=stats,
            is_healthy=stats.healthy_providers > 0,
        )

    async def shutdown(self) -> None:
        await self.limiter.shutdown()
