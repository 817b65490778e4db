"""Core infrastructure: settings, logging, exceptions, data helpers."""

from .config import get_settings, settings
from .exceptions import (
    AppException,
    AuthenticationError,
    ConfigurationError,
    ExternalServiceError,
    JobError,
    NotFoundError,
    SourceError,
)
from .logging import get_logger, setup_logging


__all__ = [
    "AppException",
    "AuthenticationError",
    "ConfigurationError",
    "ExternalServiceError",
    "JobError",
    "NotFoundError",
    "SourceError",
    "get_logger",
    "get_settings",
    "settings",
    "setup_logging",
]
