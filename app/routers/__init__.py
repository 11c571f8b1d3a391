"""API router package."""

from app.routers import elections

__all__ = ["elections"]
