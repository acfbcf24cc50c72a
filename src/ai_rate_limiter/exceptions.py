"""Custom exceptions for the AI rate limiter."""

from typing import Optional, Dict, Any


class RateLimiterError(Exception):
    """Base exception for the AI rate limiter."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}


class AllProvidersFailedError(RateLimiterError):
    """Every retry attempt was used without a successful provider call."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None, **kwargs):
        last_message = _error_message(last_error) if last_error else "no provider available"
        super().__init__(
            f"All providers failed after {attempts} attempts. Last error: {last_message}",
            error_code="ALL_PROVIDERS_FAILED",
            status_code=503,
            **kwargs,
        )
        self.attempts = attempts
        self.last_error = last_error
        self.details["attempts"] = attempts
        self.details["last_error"] = last_message


class RetryCancelledError(RateLimiterError):
    """Retry loop was cancelled between attempts."""

    def __init__(self, attempts: int, **kwargs):
        super().__init__(
            f"Retry cancelled after {attempts} attempts",
            error_code="RETRY_CANCELLED",
            status_code=499,
            **kwargs,
        )
        self.attempts = attempts
        self.details["attempts"] = attempts


class ProviderNotRegisteredError(RateLimiterError):
    """No backend is registered under the requested provider name."""

    def __init__(self, provider: str, **kwargs):
        super().__init__(
            f"Unknown provider: {provider}",
            error_code="PROVIDER_NOT_REGISTERED",
            status_code=404,
            **kwargs,
        )
        self.provider = provider
        self.details["provider"] = provider


class ValidationException(RateLimiterError):
    """Validation error."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="VALIDATION_ERROR", status_code=400, **kwargs)
        if field:
            self.details["field"] = field


def _error_message(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or error.__class__.__name__


__all__ = [
    "RateLimiterError",
    "AllProvidersFailedError",
    "RetryCancelledError",
    "ProviderNotRegisteredError",
    "ValidationException",
]
