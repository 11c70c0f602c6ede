"""Database models."""

from .text import Text, TextRevision

__all__ = ["Text", "TextRevision"]
