"""Pydantic schemas for API validation."""

from .text import (
    TextCreate,
    TextUpdate,
    TranslationUpdate,
    ReadableText,
    RevisionView,
    LocalizedText,
)

__all__ = [
    "TextCreate",
    "TextUpdate",
    "TranslationUpdate",
    "ReadableText",
    "RevisionView",
    "LocalizedText",
]
