"""
OpenAI-compatible backends (OpenAI and Moonshot).
"""

import logging
import time
from typing import Any, List, Optional

from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI
from openai import AuthenticationError as OpenAIAuthError
from openai import RateLimitError as OpenAIRateLimitError
from openai.types.chat import ChatCompletionMessageParam

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


class OpenAIBackend(BaseBackend):
    """OpenAI chat completions backend."""

    name = "openai"
    default_model = "gpt-4o-mini"
    supports_json_mode = True

    def __init__(
        self,
        api_key: str,
        rate_limit: RateLimitConfig,
        priority: int = 1,
        base_url: Optional[str] = None,
        timeout: int = 60,
        client: Optional[AsyncOpenAI] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize OpenAI backend.

        Args:
            api_key: API key
            rate_limit: Budgets enforced by the rate limiter
            priority: Selection priority (lower is preferred)
            base_url: Override for OpenAI-compatible endpoints
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        super().__init__(rate_limit, priority=priority, **kwargs)
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,  # retried by the limiter
        )

    def _messages(self, request: CompletionRequest) -> List[ChatCompletionMessageParam]:
        messages: List[ChatCompletionMessageParam] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return messages

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        create_kwargs: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": self._messages(request),
            "temperature": self._temperature(request),
            "max_tokens": self._max_tokens(request),
        }
        if request.response_format == "json" and self.supports_json_mode:
            create_kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()
        try:
            completion = await self.client.chat.completions.create(**create_kwargs)
        except OpenAIAuthError:
            logger.error(f"{self.name} authentication error")
            raise AuthenticationError(
                f"Invalid {self.name} API key", provider=self.name, status_code=401
            )
        except OpenAIRateLimitError:
            raise RateLimitError(
                f"{self.name} rate limit exceeded",
                provider=self.name,
            )
        except APITimeoutError:
            raise TimeoutError(f"{self.name} request timed out", provider=self.name)
        except APIConnectionError:
            raise ProviderError(f"Failed to connect to {self.name} API", provider=self.name)
        except APIError as e:
            raise ProviderError(
                f"{self.name} API error: {str(e)}",
                provider=self.name,
                status_code=getattr(e, "status_code", None),
            )

        if not completion.choices:
            raise ProviderError(f"No response from {self.name}", provider=self.name)

        choice = completion.choices[0]
        usage = None
        if completion.usage:
            usage = TokenUsage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
                total_tokens=completion.usage.total_tokens,
            )

        response = CompletionResponse(
            content=choice.message.content or "",
            provider=self.name,
            model=completion.model,
            usage=usage,
            finish_reason=choice.finish_reason,
        )
        self._log_response(response, time.time() - start_time)
        return response

    async def health_check(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"{self.name} health check failed: {e}")
            return False


class MoonshotBackend(OpenAIBackend):
    """Moonshot backend over its OpenAI-compatible API."""

    name = "moonshot"
    default_model = "moonshot-v1-32k"
    supports_json_mode = False

    def __init__(
        self,
        api_key: str,
        rate_limit: RateLimitConfig,
        priority: int = 3,
        base_url: str = "https://api.moonshot.cn/v1",
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key, rate_limit, priority=priority, base_url=base_url, **kwargs)
