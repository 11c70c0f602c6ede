"""Text and revision models."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKeyConstraint, Index, Integer, JSON, String, Text as SAText,
)
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Text(Base):
    """One language of a logical text. History lives in ``revisions``."""

    __tablename__ = "texts"
    __table_args__ = (
        Index("ix_texts_section_id", "section_id"),
    )

    # Composite primary key: same id across languages
    id = Column(String(36), primary_key=True)
    lang = Column(String(5), primary_key=True)

    # Owning section; NULL for document/template level texts (titles, purposes)
    section_id = Column(String(36), nullable=True)

    # [{"keyword": str, "score": float}, ...]; only for section texts
    keywords = Column(JSON, nullable=True)

    # Optimistic lock for appends: equals len(revisions)
    revision_count = Column(Integer, nullable=False, default=0)

    revisions = relationship(
        "TextRevision",
        back_populates="text",
        order_by="TextRevision.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def latest(self) -> "TextRevision":
        return self.revisions[-1]


class TextRevision(Base):
    """Append-only revision of a text. Never updated or deleted."""

    __tablename__ = "text_revisions"
    __table_args__ = (
        ForeignKeyConstraint(
            ["text_id", "lang"], ["texts.id", "texts.lang"], ondelete="CASCADE"
        ),
        Index("ix_text_revisions_created_at", "created_at"),
    )

    text_id = Column(String(36), primary_key=True)
    lang = Column(String(5), primary_key=True)
    seq = Column(Integer, primary_key=True)  # 0-based position in history

    # Fernet token, never plaintext
    content = Column(SAText, nullable=False)

    # Provenance
    translated = Column(Boolean, nullable=False, default=False)
    machine_translation = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_by_id = Column(String(36), nullable=False)

    text = relationship("Text", back_populates="revisions")
