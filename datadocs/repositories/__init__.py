"""Data access repositories."""

from .base import BaseRepository
from .text_repository import TextRepository

__all__ = [
    "BaseRepository",
    "TextRepository",
]
