"""Text service: deep module for versioned, bilingual, encrypted texts.

Owns the write path (create with shadow languages, append-only updates,
translations) and the read path (latest, by section, batch, history).
Callers never see ciphertext: content is sealed here before it reaches the
repository and opened by the view assembler on the way out.
"""

import logging
import uuid
from typing import Dict, List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core import redaction
from ..core.config import SUPPORTED_LANGUAGES, settings
from ..core.crypto import TextCipher
from ..core.keywords import KeywordExtractor
from ..exceptions import (
    ConflictError, DatabaseError, TextNotFoundError, TranslationError, ValidationError,
)
from ..models import Text
from ..repositories import TextRepository
from ..repositories.text_repository import KEEP_KEYWORDS
from ..schemas.text import LocalizedText, ReadableText, RevisionView
from .text_views import TextViewAssembler
from .translation import PROVIDER_LANGUAGE_CODES, Translator

logger = logging.getLogger(__name__)

PENDING_TRANSLATION_PLACEHOLDER = "default_translation_traduction_par_defaut"
"""Content of the shadow rows created alongside a new text."""

TEXT_APPEND_MAX_ATTEMPTS = 3
"""Appends retried after losing a revision-count race before giving up with 409."""

Identifier = Union[str, UUID]


def check_lang(lang: str) -> str:
    """Normalize a language code. Raises ValidationError if unsupported."""
    normalized = (lang or "").lower()
    if normalized not in SUPPORTED_LANGUAGES:
        raise ValidationError(
            f"Unsupported language: {lang!r}. Must be one of: {list(SUPPORTED_LANGUAGES)}",
            field="lang",
        )
    return normalized


def shadow_languages(lang: str) -> List[str]:
    """Languages that get a placeholder row when a text is created in ``lang``."""
    return [other for other in SUPPORTED_LANGUAGES if other != lang]


def _id(value: Optional[Identifier]) -> Optional[str]:
    return str(value) if value is not None else None


class TextService:
    """Deep module for text operations.

    The cipher and keyword extractor are built once at startup and passed
    in; the service itself is cheap and request-scoped.
    """

    def __init__(
        self,
        db: Session,
        cipher: TextCipher,
        extractor: KeywordExtractor,
        keyword_summary_size: Optional[int] = None,
        markdown_tables: Optional[bool] = None,
    ):
        self.db = db
        self.cipher = cipher
        self.extractor = extractor
        self.repo = TextRepository(db)
        self.views = TextViewAssembler(
            cipher,
            keyword_summary_size if keyword_summary_size is not None else settings.keyword_summary_size,
            markdown_tables if markdown_tables is not None else settings.markdown_tables,
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Commit failed", exc_info=True)
            raise DatabaseError("Failed to save text", e) from e

    def _keywords_for(self, section_id: Optional[str], content: str) -> Optional[list]:
        # Only section texts are keyword-indexed. Extraction runs on the open
        # rendering so redacted words never surface in the keyword summary.
        if section_id is None:
            return None
        return self.extractor.extract_payload(redaction.render(content, redact=True))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        section_id: Optional[Identifier],
        lang: str,
        content: str,
        author_id: Identifier,
        text_id: Optional[Identifier] = None,
    ) -> Text:
        """Create a logical text in ``lang`` plus placeholder rows in every other language.

        All rows are written in one transaction. Returns the ``lang`` row.
        """
        lang = check_lang(lang)
        section_id = _id(section_id)
        author_id = _id(author_id)
        text_id = _id(text_id) or str(uuid.uuid4())

        if section_id is not None and self.repo.section_has_text(section_id):
            raise ValidationError(f"Section already has a text: {section_id}", field="section_id")

        try:
            text = self.repo.create(
                text_id,
                lang,
                section_id,
                self.cipher.encrypt(content),
                author_id,
                keywords=self._keywords_for(section_id, content),
            )
            for shadow in shadow_languages(lang):
                self.repo.create(
                    text_id,
                    shadow,
                    section_id,
                    self.cipher.encrypt(PENDING_TRANSLATION_PLACEHOLDER),
                    author_id,
                )
        except DatabaseError:
            self.db.rollback()
            raise
        self._commit()

        logger.info("Text created", extra={"text_id": text_id, "lang": lang, "section_id": section_id})
        return text

    def _append(
        self,
        text_id: str,
        lang: str,
        content: str,
        author_id: str,
        translated: bool,
        machine_translation: bool,
    ) -> Text:
        """Append with compare-and-swap, re-reading and retrying on a lost race."""
        sealed = self.cipher.encrypt(content)

        for attempt in range(1, TEXT_APPEND_MAX_ATTEMPTS + 1):
            text = self.repo.get_by_key(text_id, lang)
            keywords = (
                self._keywords_for(text.section_id, content)
                if text.section_id is not None else KEEP_KEYWORDS
            )
            try:
                text = self.repo.append(
                    text,
                    sealed,
                    author_id,
                    translated=translated,
                    machine_translation=machine_translation,
                    keywords=keywords,
                )
            except ConflictError:
                self.db.rollback()
                logger.warning(
                    "Concurrent append lost the race, retrying",
                    extra={"text_id": text_id, "lang": lang, "attempt": attempt},
                )
                continue
            except DatabaseError:
                self.db.rollback()
                raise

            self._commit()
            logger.info(
                "Text revision appended",
                extra={"text_id": text_id, "lang": lang, "revision_count": text.revision_count},
            )
            return text

        raise ConflictError(text_id, lang)

    def update(
        self,
        text_id: Identifier,
        lang: str,
        new_content: str,
        author_id: Identifier,
        machine_translation: bool = False,
    ) -> Text:
        """Append a new revision. Raises TextNotFoundError if (id, lang) does not exist."""
        return self._append(
            _id(text_id), check_lang(lang), new_content, _id(author_id),
            translated=False, machine_translation=machine_translation,
        )

    def record_translation(
        self,
        text_id: Identifier,
        lang: str,
        content: str,
        author_id: Identifier,
    ) -> Text:
        """Append a human translation to the ``lang`` history."""
        return self._append(
            _id(text_id), check_lang(lang), content, _id(author_id),
            translated=True, machine_translation=False,
        )

    def upsert(
        self,
        text_id: Identifier,
        lang: str,
        content: str,
        author_id: Identifier,
        section_id: Optional[Identifier] = None,
    ) -> Text:
        """Append to (id, lang) when it exists, otherwise create it.

        A brand-new logical text also gets its shadow rows. A missing
        language of an existing logical text is created on its own.
        """
        lang = check_lang(lang)
        text_id = _id(text_id)

        if self.repo.get_by_key_optional(text_id, lang) is not None:
            return self.update(text_id, lang, content, author_id)

        siblings = self.repo.get_all_languages(text_id)
        if not siblings:
            return self.create(section_id, lang, content, author_id, text_id=text_id)

        section_id = siblings[0].section_id
        try:
            text = self.repo.create(
                text_id,
                lang,
                section_id,
                self.cipher.encrypt(content),
                _id(author_id),
                keywords=self._keywords_for(section_id, content),
            )
        except DatabaseError:
            self.db.rollback()
            raise
        self._commit()
        return text

    def machine_translate(
        self,
        text_id: Identifier,
        source_lang: str,
        author_id: Identifier,
        translator: Translator,
    ) -> Text:
        """Translate the latest ``source_lang`` revision into the other language.

        The result is appended to the target history flagged as machine
        translation.
        """
        source_lang = check_lang(source_lang)
        target_lang = shadow_languages(source_lang)[0]

        source = self.repo.get_by_key(_id(text_id), source_lang)
        plaintext = self.cipher.decrypt(source.latest.content)

        translated = translator.translate(
            plaintext,
            PROVIDER_LANGUAGE_CODES[source_lang],
            PROVIDER_LANGUAGE_CODES[target_lang],
        )
        if not translated:
            raise TranslationError("Translation provider returned no text")

        logger.info(
            "Machine translation received",
            extra={"text_id": _id(text_id), "source_lang": source_lang, "target_lang": target_lang},
        )
        return self.update(text_id, target_lang, translated, author_id, machine_translation=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_latest(self, text_id: Identifier, lang: str) -> Text:
        """Get the (id, lang) row. Raises TextNotFoundError."""
        return self.repo.get_by_key(_id(text_id), check_lang(lang))

    def get_by_section(self, section_id: Identifier, lang: str) -> Text:
        """Get the text owned by a section. Raises TextNotFoundError."""
        return self.repo.get_by_section(_id(section_id), check_lang(lang))

    def get_batch_latest(self, text_ids: Sequence[Identifier], lang: str) -> Dict[str, str]:
        """Latest decrypted content for many texts at once. Missing ids are absent."""
        texts = self.repo.get_many([_id(t) for t in text_ids], check_lang(lang))
        return self.views.plain_map(texts)

    def latest_view(self, text: Text, markdown: bool, redact: bool) -> ReadableText:
        return self.views.latest_view(text, markdown=markdown, redact=redact)

    def batch_plain_view(self, text_ids: Sequence[Identifier], lang: str) -> Dict[str, str]:
        """Raw latest text for non-display consumers (summaries, exports)."""
        return self.get_batch_latest(text_ids, lang)

    def get_readable(self, text_id: Identifier, lang: str, markdown: bool, redact: bool) -> ReadableText:
        return self.latest_view(self.get_latest(text_id, lang), markdown, redact)

    def get_readable_by_section(
        self, section_id: Identifier, lang: str, markdown: bool, redact: bool
    ) -> ReadableText:
        return self.latest_view(self.get_by_section(section_id, lang), markdown, redact)

    def get_history(self, text_id: Identifier, lang: str) -> List[RevisionView]:
        """Every revision of one language, oldest first."""
        text = self.get_latest(text_id, lang)
        return [self.views.revision_view(rev) for rev in text.revisions]

    def get_localized(self, text_id: Identifier) -> LocalizedText:
        """All language histories of a logical text. Raises TextNotFoundError."""
        text_id = _id(text_id)
        rows = self.repo.get_all_languages(text_id)
        if not rows:
            raise TextNotFoundError(text_id)
        return LocalizedText(
            id=text_id,
            section_id=rows[0].section_id,
            per_language={
                row.lang: [self.views.revision_view(rev) for rev in row.revisions]
                for row in rows
            },
        )

    def count_texts(self) -> int:
        return self.repo.count()
