"""Read-side projections of texts.

The display pipeline runs in a fixed order: decrypt, resolve redactions,
then (optionally) render Markdown. Redaction has to see the author's
source text; run after Markdown it would match across generated tags
and break table cells apart.
"""

from typing import Dict, Iterable

from ..core import markdown_renderer, redaction
from ..core.crypto import TextCipher
from ..core.keywords import render_top
from ..models import Text, TextRevision
from ..schemas.text import ReadableText, RevisionView


class TextViewAssembler:
    """Builds display and plain views from stored texts. Holds no per-request state."""

    def __init__(self, cipher: TextCipher, keyword_summary_size: int = 1, tables_enabled: bool = True):
        self.cipher = cipher
        self.keyword_summary_size = keyword_summary_size
        self.tables_enabled = tables_enabled

    def render_content(self, plaintext: str, markdown: bool, redact: bool) -> str:
        processed = redaction.render(plaintext, redact)
        if markdown:
            return markdown_renderer.to_html(processed, tables_enabled=self.tables_enabled)
        return processed

    def latest_view(self, text: Text, markdown: bool, redact: bool) -> ReadableText:
        """Latest revision of ``text``, ready for display.

        Raises TextDecodeError rather than returning partially processed content.
        """
        latest = text.latest
        plaintext = self.cipher.decrypt(latest.content)

        return ReadableText(
            id=text.id,
            section_id=text.section_id,
            lang=text.lang,
            content=self.render_content(plaintext, markdown, redact),
            keywords=render_top(text.keywords, self.keyword_summary_size),
            translated=latest.translated,
            machine_translation=latest.machine_translation,
            created_at=latest.created_at,
            created_by_id=latest.created_by_id,
        )

    def revision_view(self, revision: TextRevision) -> RevisionView:
        return RevisionView(
            seq=revision.seq,
            content=self.cipher.decrypt(revision.content),
            translated=revision.translated,
            machine_translation=revision.machine_translation,
            created_at=revision.created_at,
            created_by_id=revision.created_by_id,
        )

    def plain_map(self, texts: Iterable[Text]) -> Dict[str, str]:
        """Decrypted latest content keyed by text id. No redaction, no Markdown."""
        return {text.id: self.cipher.decrypt(text.latest.content) for text in texts}
