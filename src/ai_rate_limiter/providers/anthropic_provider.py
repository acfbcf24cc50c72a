"""
Anthropic messages backend.
"""

import logging
import time
from typing import Any, Optional

from anthropic import APIConnectionError, APIError, APITimeoutError, AsyncAnthropic
from anthropic import AuthenticationError as AnthropicAuthError
from anthropic import RateLimitError as AnthropicRateLimitError

from ai_rate_limiter.limiter.models import RateLimitConfig

from .base import (
    AuthenticationError,
    BaseBackend,
    CompletionRequest,
    CompletionResponse,
    ProviderError,
    RateLimitError,
    TimeoutError,
    TokenUsage,
)

logger = logging.getLogger(__name__)


class AnthropicBackend(BaseBackend):
    """Anthropic backend."""

    name = "anthropic"
    default_model = "claude-3-5-sonnet-20241022"

    def __init__(
        self,
        api_key: str,
        rate_limit: RateLimitConfig,
        priority: int = 2,
        timeout: int = 60,
        client: Optional[AsyncAnthropic] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize Anthropic backend.

        Args:
            api_key: Anthropic API key
            rate_limit: Budgets enforced by the rate limiter
            priority: Selection priority (lower is preferred)
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        super().__init__(rate_limit, priority=priority, **kwargs)
        self.client = client or AsyncAnthropic(
            api_key=api_key, timeout=timeout, max_retries=0  # retried by the limiter
        )

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        request_params: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": self._temperature(request),
            "max_tokens": self._max_tokens(request),  # Anthropic requires max_tokens
        }
        if request.system_prompt:
            request_params["system"] = request.system_prompt

        start_time = time.time()
        try:
            response = await self.client.messages.create(**request_params)
        except AnthropicAuthError:
            logger.error("Anthropic authentication error")
            raise AuthenticationError(
                "Invalid Anthropic API key", provider=self.name, status_code=401
            )
        except AnthropicRateLimitError:
            raise RateLimitError(
                "Anthropic rate limit exceeded",
                provider=self.name,
            )
        except APITimeoutError:
            raise TimeoutError("Anthropic request timed out", provider=self.name)
        except APIConnectionError:
            raise ProviderError("Failed to connect to Anthropic API", provider=self.name)
        except APIError as e:
            raise ProviderError(
                f"Anthropic API error: {str(e)}",
                provider=self.name,
                status_code=getattr(e, "status_code", None),
            )

        block = response.content[0] if response.content else None
        if block is None or block.type != "text":
            raise ProviderError("Unexpected response type from Anthropic", provider=self.name)

        usage = TokenUsage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        completion = CompletionResponse(
            content=block.text,
            provider=self.name,
            model=response.model,
            usage=usage,
            finish_reason=response.stop_reason,
        )
        self._log_response(completion, time.time() - start_time)
        return completion

    async def health_check(self) -> bool:
        try:
            await self.client.models.list(limit=1)
            return True
        except Exception as e:
            logger.warning(f"Anthropic health check failed: {e}")
            return False
