"""Logging and metrics."""

from .logger import RequestContext, setup_logging
from .metrics import LimiterMetrics

__all__ = [
    "LimiterMetrics",
    "RequestContext",
    "setup_logging",
]
