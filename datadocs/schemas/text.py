"""Text schemas."""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID


def _require_text(v: str) -> str:
    # Stored exactly as written; leading indentation is Markdown.
    if not v.strip():
        raise ValueError("content must not be blank")
    return v


class TextCreate(BaseModel):
    """Schema for creating a text (both language rows are created)."""
    section_id: Optional[UUID] = None
    content: str = Field(..., max_length=100_000)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _require_text(v)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "section_id": "6f1c2b1e-6a43-4c0e-9d4f-7f3a0f6a1b2c",
                    "content": "The ~~budget is $5M~~[PersonalInformation] this year.",
                }
            ]
        }
    }


class TextUpdate(BaseModel):
    """Schema for appending a revision."""
    content: str = Field(..., max_length=100_000)
    machine_translation: bool = False

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _require_text(v)


class TranslationUpdate(BaseModel):
    """Schema for appending a human translation."""
    content: str = Field(..., max_length=100_000)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _require_text(v)


class ReadableText(BaseModel):
    """Latest revision of a text, processed for display."""
    id: str
    section_id: Optional[str] = None
    lang: str
    content: str
    keywords: str
    translated: bool
    machine_translation: bool
    created_at: datetime
    created_by_id: str


class RevisionView(BaseModel):
    """One decrypted revision with its provenance."""
    seq: int
    content: str
    translated: bool
    machine_translation: bool
    created_at: datetime
    created_by_id: str


class LocalizedText(BaseModel):
    """Every language history of one logical text."""
    id: str
    section_id: Optional[str] = None
    per_language: Dict[str, List[RevisionView]]
