"""
Base backend abstract class and common models for AI providers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ai_rate_limiter.exceptions import RateLimiterError
from ai_rate_limiter.limiter.models import ProviderConfig, RateLimitConfig

logger = logging.getLogger(__name__)


class CompletionRequest(BaseModel):
    """Request for a single-turn completion."""

    prompt: str = Field(..., description="User prompt")
    system_prompt: Optional[str] = Field(default=None, description="System prompt")
    temperature: Optional[float] = Field(default=None, description="Sampling temperature")
    max_tokens: Optional[int] = Field(default=None, description="Maximum tokens in response")
    response_format: Literal["text", "json"] = Field(default="text", description="Response format")
    model: Optional[str] = Field(default=None, description="Model override")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "prompt": "Summarise the attached report.",
                "system_prompt": "You are a careful analyst.",
                "temperature": 0.3,
                "max_tokens": 800,
                "response_format": "text",
            }
        }
    )


class TokenUsage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int = Field(..., description="Number of tokens in the prompt")
    completion_tokens: int = Field(..., description="Number of tokens in the completion")
    total_tokens: int = Field(..., description="Total number of tokens")


class CompletionResponse(BaseModel):
    """Response from a completion request."""

    content: str = Field(..., description="Response content")
    provider: str = Field(..., description="Provider that served the request")
    model: str = Field(..., description="Model used for generation")
    usage: Optional[TokenUsage] = Field(default=None, description="Token usage statistics")
    finish_reason: Optional[str] = Field(default=None, description="Reason for completion")


class ProviderError(RateLimiterError):
    """A backend call failed; the limiter counts it against the provider."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: str = "PROVIDER_ERROR",
    ):
        super().__init__(message, error_code=error_code, status_code=status_code or 502)
        self.provider = provider
        if provider:
            self.details["provider"] = provider


class RateLimitError(ProviderError):
    """The upstream API answered 429."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, provider=provider, status_code=429, error_code="UPSTREAM_RATE_LIMITED")


class AuthenticationError(ProviderError):
    pass


class TimeoutError(ProviderError):
    pass


class BaseBackend(ABC):
    """Abstract base class for AI provider backends."""

    name: str = "backend"
    default_model: str = ""

    def __init__(
        self,
        rate_limit: RateLimitConfig,
        priority: int = 0,
        enabled: bool = True,
        model: Optional[str] = None,
        default_temperature: float = 0.7,
        default_max_tokens: int = 4000,
    ):
        self.rate_limit = rate_limit
        self.priority = priority
        self.enabled = enabled
        self.model = model or self.default_model
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Generate a completion.

        Args:
            request: The completion request

        Returns:
            CompletionResponse: The completion response

        Raises:
            ProviderError: If an error occurs during generation
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backend is reachable."""
        pass

    def to_provider_config(self) -> ProviderConfig:
        """Rate limiter registration for this backend."""
        return ProviderConfig(
            name=self.name,
            enabled=self.enabled,
            priority=self.priority,
            rate_limit=self.rate_limit,
            health_check=self.health_check,
        )

    def _temperature(self, request: CompletionRequest) -> float:
        return request.temperature if request.temperature is not None else self.default_temperature

    def _max_tokens(self, request: CompletionRequest) -> int:
        return request.max_tokens or self.default_max_tokens

    def _log_response(self, response: CompletionResponse, duration: float) -> None:
        logger.info(
            f"{self.name} completion: model={response.model}, duration={duration:.2f}s, "
            f"tokens={response.usage.total_tokens if response.usage else 'n/a'}"
        )
