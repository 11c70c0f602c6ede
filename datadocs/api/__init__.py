"""API routes."""

from .texts import router as texts_router

__all__ = [
    "texts_router",
]
