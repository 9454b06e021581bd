"""API endpoint modules for version 1."""

from .messages import router as messages_router

__all__ = ["messages_router"]
