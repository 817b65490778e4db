"""Internal HTTP API: health checks and batch triggers."""

from .app import create_api_app


__all__ = ["create_api_app"]
