"""Structured logging configuration with correlation IDs and secret redaction."""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.processors import CallsiteParameter

from ai_rate_limiter.config import Settings, get_settings

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
provider_var: ContextVar[str] = ContextVar("provider", default="")


class SecretRedactor:
    """Redact credentials from log messages."""

    API_KEY_PATTERN = re.compile(r"\b(sk-|sk-ant-|pk-|api[_-]?key[\s=:]+)[\w-]{20,}\b", re.IGNORECASE)
    BEARER_PATTERN = re.compile(r"\bBearer\s+[\w.-]{20,}", re.IGNORECASE)
    JWT_PATTERN = re.compile(r"\beyJ[A-Za-z0-9-_]+\.[A-Za-z0-9-_]+\.[A-Za-z0-9-_]+\b")

    @classmethod
    def redact(cls, value: Any) -> Any:
        """Redact secrets from value."""
        if not isinstance(value, str):
            return value

        value = cls.API_KEY_PATTERN.sub("[API_KEY_REDACTED]", value)
        value = cls.BEARER_PATTERN.sub("Bearer [TOKEN_REDACTED]", value)
        value = cls.JWT_PATTERN.sub("[JWT_REDACTED]", value)

        return value


def add_context_vars(logger, method_name, event_dict):
    """Add context variables to log events."""
    if request_id := request_id_var.get():
        event_dict.setdefault("request_id", request_id)
    if provider := provider_var.get():
        event_dict.setdefault("provider", provider)
    return event_dict


def redact_sensitive_data(logger, method_name, event_dict):
    """Redact secrets from logs."""
    for key, value in event_dict.items():
        if key in ("timestamp", "level", "logger", "request_id"):
            continue
        if isinstance(value, str):
            event_dict[key] = SecretRedactor.redact(value)
        elif isinstance(value, dict):
            event_dict[key] = {k: SecretRedactor.redact(v) for k, v in value.items()}

    return event_dict


def setup_logging(
    settings: Settings | None = None,
    level: str | None = None,
    json_output: bool | None = None,
    redact_secrets: bool = True,
) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()
    log_level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.log_json

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_vars,
    ]

    if redact_secrets:
        processors.append(redact_sensitive_data)

    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FILENAME,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
        ]
    )

    if json_output:
        processors.append(
            structlog.processors.JSONRenderer(serializer=lambda obj, **kw: orjson.dumps(obj, **kw).decode())
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level, logging.INFO),
    )

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


class RequestContext:
    """Context manager for request-scoped logging."""

    def __init__(self, request_id: str, provider: str | None = None):
        """Initialize request context."""
        self.request_id = request_id
        self.provider = provider
        self.tokens = []

    def __enter__(self):
        """Enter context."""
        self.tokens.append((request_id_var, request_id_var.set(self.request_id)))
        if self.provider:
            self.tokens.append((provider_var, provider_var.set(self.provider)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context."""
        for var, token in reversed(self.tokens):
            var.reset(token)
        self.tokens.clear()
        return False
