"""Business logic services."""

from .text_service import TextService
from .text_views import TextViewAssembler

__all__ = ["TextService", "TextViewAssembler"]
