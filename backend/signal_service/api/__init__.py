"""API endpoints."""

from signal_service.api.routes import router

__all__ = ["router"]
