"""Provider selection and retry orchestration."""

import asyncio
import inspect
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar, Union

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from ai_rate_limiter.exceptions import (
    AllProvidersFailedError,
    RetryCancelledError,
    ValidationException,
)
from ai_rate_limiter.telemetry.logger import RequestContext

from .budget import BudgetTracker
from .registry import ProviderRegistry

logger = structlog.get_logger(__name__)

T = TypeVar("T")
RequestFn = Callable[[str], Union[Awaitable[T], T]]
Sleep = Callable[[float], Awaitable[None]]


class _NoProviderAvailable(Exception):
    """No registered provider can take the request right now."""


class _ProviderAttemptFailed(Exception):
    """``request_fn`` raised for the provider chosen on this attempt."""

    def __init__(self, provider: str, error: Exception):
        super().__init__(str(error))
        self.provider = provider
        self.error = error


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex}"


class Dispatcher:
    """Selects providers by priority and retries failed calls across them."""

    def __init__(
        self,
        registry: ProviderRegistry,
        tracker: BudgetTracker,
        sleep: Sleep = asyncio.sleep,
        default_max_retries: int = 3,
        no_provider_backoff_base_ms: int = 1000,
        no_provider_backoff_max_ms: int = 30000,
        request_id_factory: Callable[[], str] = new_request_id,
    ):
        self._registry = registry
        self._tracker = tracker
        self._sleep = sleep
        self.default_max_retries = default_max_retries
        self.no_provider_backoff_base_ms = no_provider_backoff_base_ms
        self.no_provider_backoff_max_ms = no_provider_backoff_max_ms
        self._request_id_factory = request_id_factory

    def select_provider(
        self, exclude: Iterable[str] = (), required_tokens: int | None = None
    ) -> str | None:
        for config in self._registry.candidates(exclude):
            if self._tracker.can_make_request(config.name, required_tokens):
                return config.name
        return None

    def no_provider_delay_ms(self, attempt: int) -> int:
        return min(self.no_provider_backoff_base_ms * 2**attempt, self.no_provider_backoff_max_ms)

    def _wait_seconds(self, retry_state: RetryCallState) -> float:
        attempt = retry_state.attempt_number - 1
        error = retry_state.outcome.exception() if retry_state.outcome else None

        if isinstance(error, _ProviderAttemptFailed):
            config = self._registry.get(error.provider)
            delay_ms = config.rate_limit.retry_delay_ms(attempt) if config else 0
        else:
            delay_ms = self.no_provider_delay_ms(attempt)

        return delay_ms / 1000

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        if isinstance(error, _ProviderAttemptFailed):
            logger.warning(
                "Retrying on another provider",
                failed_provider=error.provider,
                attempt=retry_state.attempt_number,
                wait_seconds=wait,
                error=str(error.error),
            )
        else:
            logger.info(
                "No provider available, backing off",
                attempt=retry_state.attempt_number,
                wait_seconds=wait,
            )

    def _cancellable_sleep(self, cancel_event: asyncio.Event | None) -> Sleep:
        if cancel_event is None:
            return self._sleep

        async def sleep(seconds: float) -> None:
            if cancel_event.is_set():
                return
            sleeper = asyncio.ensure_future(self._sleep(seconds))
            waiter = asyncio.ensure_future(cancel_event.wait())
            try:
                await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                sleeper.cancel()
                waiter.cancel()

        return sleep

    async def execute_with_retry(
        self,
        request_fn: RequestFn,
        max_retries: int | None = None,
        required_tokens: int | None = None,
        exclude_providers: Iterable[str] = (),
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        """Run ``request_fn(provider_name)`` on the best available provider.

        Args:
            request_fn: Callable receiving the selected provider name
            max_retries: Total attempts, defaults to ``default_max_retries``
            required_tokens: Estimated tokens, checked against token budgets
                and recorded in the provider's history
            exclude_providers: Providers never to use for this call
            cancel_event: When set, no further attempt is started

        Returns:
            Whatever ``request_fn`` returned for the first successful provider

        Raises:
            AllProvidersFailedError: If every attempt failed or found no provider
            RetryCancelledError: If ``cancel_event`` was set between attempts
        """
        if max_retries is None:
            max_retries = self.default_max_retries
        if max_retries < 1:
            raise ValidationException("max_retries must be at least 1", field="max_retries")

        # Exclusions grow within this call only
        excluded = list(exclude_providers)
        last_error: Exception | None = None
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries),
            wait=self._wait_seconds,
            retry=retry_if_exception_type((_NoProviderAvailable, _ProviderAttemptFailed)),
            sleep=self._cancellable_sleep(cancel_event),
            before_sleep=self._log_retry,
            reraise=False,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    if cancel_event is not None and cancel_event.is_set():
                        raise RetryCancelledError(attempts)
                    attempts += 1

                    provider = self.select_provider(excluded, required_tokens)
                    if provider is None:
                        raise _NoProviderAvailable()

                    request_id = self._request_id_factory()
                    self._tracker.record_request(provider, request_id, required_tokens)
                    failure: Exception | None = None
                    try:
                        with RequestContext(request_id, provider):
                            result = request_fn(provider)
                            if inspect.isawaitable(result):
                                result = await result
                    except Exception as error:
                        failure = error
                    finally:
                        self._tracker.complete_request(provider, request_id)

                    if failure is not None:
                        self._tracker.record_failure(provider, failure)
                        excluded.append(provider)
                        last_error = failure
                        raise _ProviderAttemptFailed(provider, failure) from failure

                    self._tracker.reset_failures(provider)
                    if attempts > 1:
                        logger.info(
                            "Request succeeded after failover",
                            provider=provider,
                            attempts=attempts,
                        )
                    return result
        except RetryError:
            logger.error(
                "All providers failed",
                attempts=max_retries,
                last_error=str(last_error) if last_error else None,
            )
            raise AllProvidersFailedError(max_retries, last_error) from last_error

        # AsyncRetrying always returns or raises above
        raise AllProvidersFailedError(max_retries, last_error)
