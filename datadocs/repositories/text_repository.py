"""Text repository: language rows and their append-only revisions."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..models import Text, TextRevision
from ..exceptions import ConflictError, TextNotFoundError
from .base import BaseRepository

# Sentinel: leave the stored keywords as they are.
KEEP_KEYWORDS = object()


class TextRepository(BaseRepository[Text]):
    """Persistence for texts. Never sees plaintext; content arrives sealed."""

    model_class = Text
    key_columns = ("id", "lang")
    not_found_error = TextNotFoundError

    def create(
        self,
        text_id: str,
        lang: str,
        section_id: Optional[str],
        sealed_content: str,
        created_by_id: str,
        keywords: Optional[list] = None,
        translated: bool = False,
        machine_translation: bool = False,
    ) -> Text:
        """Insert one language row with its first revision (seq 0). Does not commit."""
        db_text = Text(
            id=text_id,
            lang=lang,
            section_id=section_id,
            keywords=keywords,
            revision_count=1,
        )
        db_text.revisions.append(
            TextRevision(
                seq=0,
                content=sealed_content,
                translated=translated,
                machine_translation=machine_translation,
                created_at=datetime.now(timezone.utc),
                created_by_id=created_by_id,
            )
        )
        with self._storage_errors("text create"):
            self.db.add(db_text)
            self.db.flush()
        return db_text

    def append(
        self,
        text: Text,
        sealed_content: str,
        created_by_id: str,
        translated: bool = False,
        machine_translation: bool = False,
        keywords=KEEP_KEYWORDS,
    ) -> Text:
        """Append a revision at seq == revision_count. Does not commit.

        The counter bump is a compare-and-swap on the revision count read
        with ``text``; if another writer got there first, ConflictError is
        raised and nothing is written.
        """
        expected = text.revision_count
        values = {"revision_count": expected + 1}
        if keywords is not KEEP_KEYWORDS:
            values["keywords"] = keywords

        with self._storage_errors("revision append"):
            try:
                result = self.db.execute(
                    update(Text)
                    .where(
                        Text.id == text.id,
                        Text.lang == text.lang,
                        Text.revision_count == expected,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ConflictError(text.id, text.lang)

                self.db.add(
                    TextRevision(
                        text_id=text.id,
                        lang=text.lang,
                        seq=expected,
                        content=sealed_content,
                        translated=translated,
                        machine_translation=machine_translation,
                        created_at=datetime.now(timezone.utc),
                        created_by_id=created_by_id,
                    )
                )
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(text.id, text.lang) from e

            self.db.refresh(text)
        return text

    def get_by_section(self, section_id: str, lang: str) -> Text:
        """Get the text owned by a section. Raises TextNotFoundError."""
        with self._storage_errors("text lookup by section"):
            text = self.db.query(Text).filter(
                Text.section_id == section_id,
                Text.lang == lang,
            ).first()
        if text is None:
            raise TextNotFoundError(section_id, lang, key="section_id")
        return text

    def section_has_text(self, section_id: str) -> bool:
        with self._storage_errors("text lookup by section"):
            return self.db.query(Text.id).filter(Text.section_id == section_id).first() is not None

    def get_many(self, text_ids: Sequence[str], lang: str) -> List[Text]:
        """Load every existing text among ``text_ids`` in one query. Missing ids are skipped."""
        if not text_ids:
            return []
        with self._storage_errors("batch text lookup"):
            return self.db.query(Text).filter(
                Text.id.in_(list(text_ids)),
                Text.lang == lang,
            ).all()

    def get_all_languages(self, text_id: str) -> List[Text]:
        """Every language row of one logical text, ordered by language."""
        with self._storage_errors("text lookup"):
            return self.db.query(Text).filter(Text.id == text_id).order_by(Text.lang).all()

    def count(self) -> int:
        """Number of logical texts."""
        with self._storage_errors("text count"):
            return self.db.query(func.count(func.distinct(Text.id))).scalar() or 0
