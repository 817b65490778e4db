"""API route modules."""

from . import health, internal


__all__ = ["health", "internal"]
