"""Observability - structured logging."""

from .logger import LogContext, configure_logging

__all__ = ["configure_logging", "LogContext"]
