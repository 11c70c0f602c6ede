"""Unit tests for TextService, the deep module owning text versioning.

Tests the service layer directly against the in-memory SQLite database,
bypassing the HTTP stack. Covers bilingual creation, append-only updates,
optimistic append conflicts, translations, reads, and failure propagation.
"""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from datadocs.core.crypto import TextCipher
from datadocs.core.keywords import NO_KEYWORDS
from datadocs.exceptions import (
    ConflictError, DatabaseError, StorageError, TextDecodeError, TextNotFoundError,
    TranslationError, ValidationError,
)
from datadocs.models import Text
from datadocs.services import TextService
from datadocs.services.text_service import PENDING_TRANSLATION_PLACEHOLDER, TEXT_APPEND_MAX_ATTEMPTS

SECTION_TEXT = "Regional housing policy. The ~~budget is $5M~~[PersonalInformation] this year."


class _FakeTranslator:
    def __init__(self, result="Politique régionale du logement."):
        self.result = result
        self.calls = []

    def translate(self, text, source_lang, target_lang):
        self.calls.append((text, source_lang, target_lang))
        return self.result


class TestCreate:

    def test_first_revision(self, service, cipher, author_id):
        text = service.create(None, "en", "Quarterly report", author_id)
        assert text.lang == "en"
        assert text.revision_count == 1
        assert len(text.revisions) == 1
        rev = text.latest
        assert rev.seq == 0
        assert rev.translated is False
        assert rev.machine_translation is False
        assert rev.created_by_id == author_id
        assert cipher.decrypt(rev.content) == "Quarterly report"

    def test_content_stored_encrypted(self, service, author_id):
        text = service.create(None, "en", "Quarterly report", author_id)
        assert "Quarterly" not in text.latest.content

    def test_shadow_row_in_other_language(self, service, cipher, author_id):
        text = service.create(None, "en", "Quarterly report", author_id)
        shadow = service.get_latest(text.id, "fr")
        assert shadow.revision_count == 1
        assert cipher.decrypt(shadow.latest.content) == PENDING_TRANSLATION_PLACEHOLDER

    def test_french_text_shadows_english(self, service, author_id):
        text = service.create(None, "fr", "Rapport trimestriel", author_id)
        assert service.get_latest(text.id, "en").lang == "en"

    def test_section_text_gets_keywords(self, service, author_id):
        section_id = str(uuid.uuid4())
        text = service.create(section_id, "en", SECTION_TEXT, author_id)
        assert text.section_id == section_id
        assert text.keywords
        assert text.keywords[0]["keyword"] == "regional housing policy"

    def test_document_level_text_has_no_keywords(self, service, author_id):
        text = service.create(None, "en", SECTION_TEXT, author_id)
        assert text.keywords is None

    def test_accepts_uuid_objects(self, service):
        section_id = uuid.uuid4()
        author = uuid.uuid4()
        text = service.create(section_id, "en", "content", author)
        assert text.section_id == str(section_id)
        assert text.latest.created_by_id == str(author)

    def test_unsupported_language(self, service, author_id):
        with pytest.raises(ValidationError):
            service.create(None, "de", "Inhalt", author_id)

    def test_language_is_normalized(self, service, author_id):
        assert service.create(None, "EN", "content", author_id).lang == "en"

    def test_section_cannot_own_two_texts(self, service, author_id):
        section_id = str(uuid.uuid4())
        service.create(section_id, "en", "first", author_id)
        with pytest.raises(ValidationError):
            service.create(section_id, "en", "second", author_id)

    def test_storage_failure_surfaces_as_storage_error(self, service, db, author_id):
        failure = OperationalError("COMMIT", {}, Exception("disk I/O error"))
        with patch.object(db, "commit", side_effect=failure):
            with pytest.raises(StorageError):
                service.create(None, "en", "content", author_id)
        assert service.count_texts() == 0


class TestUpdate:

    def test_appends_revision(self, service, cipher, author_id):
        text = service.create(None, "en", "v1", author_id)
        first_token = text.latest.content

        updated = service.update(text.id, "en", "v2", author_id)

        assert updated.revision_count == 2
        assert len(updated.revisions) == 2
        assert updated.revisions[0].content == first_token
        assert cipher.decrypt(updated.revisions[0].content) == "v1"
        assert cipher.decrypt(updated.revisions[1].content) == "v2"
        assert [r.seq for r in updated.revisions] == [0, 1]

    def test_provenance_of_new_revision(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        editor = str(uuid.uuid4())
        updated = service.update(text.id, "en", "v2", editor, machine_translation=True)
        latest = updated.latest
        assert latest.created_by_id == editor
        assert latest.machine_translation is True
        assert latest.translated is False
        assert latest.created_at >= updated.revisions[0].created_at

    def test_history_grows_one_per_update(self, service, author_id):
        text = service.create(None, "en", "v0", author_id)
        for i in range(1, 5):
            text = service.update(text.id, "en", f"v{i}", author_id)
            assert len(text.revisions) == i + 1

    def test_other_language_untouched(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        service.update(text.id, "en", "v2", author_id)
        assert service.get_latest(text.id, "fr").revision_count == 1

    def test_recomputes_section_keywords(self, service, author_id):
        text = service.create(str(uuid.uuid4()), "en", "housing policy", author_id)
        updated = service.update(text.id, "en", "transit funding review", author_id)
        assert updated.keywords[0]["keyword"] == "transit funding review"

    def test_document_level_text_stays_unindexed(self, service, author_id):
        text = service.create(None, "en", "Title", author_id)
        assert service.update(text.id, "en", "New title", author_id).keywords is None

    def test_missing_text(self, service, author_id):
        with pytest.raises(TextNotFoundError):
            service.update(str(uuid.uuid4()), "en", "content", author_id)


class TestAppendConcurrency:

    def test_stale_revision_count_is_rejected(self, service, db, cipher, author_id):
        text = service.create(None, "en", "v1", author_id)
        text.revision_count = 0  # as read before another writer appended

        with pytest.raises(ConflictError):
            service.repo.append(text, cipher.encrypt("lost"), author_id)
        db.rollback()

        history = service.get_history(text.id, "en")
        assert [r.content for r in history] == ["v1"]

    def test_lost_race_is_retried(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        real_append = service.repo.append
        calls = {"n": 0}

        def flaky_append(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConflictError(text.id, "en")
            return real_append(*args, **kwargs)

        with patch.object(service.repo, "append", side_effect=flaky_append):
            updated = service.update(text.id, "en", "v2", author_id)

        assert calls["n"] == 2
        assert updated.revision_count == 2

    def test_gives_up_after_max_attempts(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        with patch.object(service.repo, "append", side_effect=ConflictError(text.id, "en")) as append:
            with pytest.raises(ConflictError):
                service.update(text.id, "en", "v2", author_id)
        assert append.call_count == TEXT_APPEND_MAX_ATTEMPTS
        assert service.get_latest(text.id, "en").revision_count == 1


class TestTranslations:

    def test_human_translation_flagged(self, service, cipher, author_id):
        text = service.create(None, "en", "Housing", author_id)
        fr = service.record_translation(text.id, "fr", "Logement", author_id)
        assert fr.revision_count == 2
        assert fr.latest.translated is True
        assert fr.latest.machine_translation is False
        assert cipher.decrypt(fr.latest.content) == "Logement"

    def test_machine_translation_appends_to_target(self, service, cipher, author_id):
        text = service.create(None, "en", "Regional housing policy.", author_id)
        translator = _FakeTranslator()

        fr = service.machine_translate(text.id, "en", author_id, translator)

        assert translator.calls == [("Regional housing policy.", "EN", "FR")]
        assert fr.lang == "fr"
        assert fr.latest.machine_translation is True
        assert cipher.decrypt(fr.latest.content) == "Politique régionale du logement."

    def test_empty_translation_rejected(self, service, author_id):
        text = service.create(None, "en", "Housing", author_id)
        with pytest.raises(TranslationError):
            service.machine_translate(text.id, "en", author_id, _FakeTranslator(result=""))
        assert service.get_latest(text.id, "fr").revision_count == 1


class TestUpsert:

    def test_creates_new_logical_text_with_shadow(self, service, author_id):
        text_id = str(uuid.uuid4())
        text = service.upsert(text_id, "en", "fresh", author_id)
        assert text.id == text_id
        assert service.get_latest(text_id, "fr").revision_count == 1

    def test_appends_to_existing(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        assert service.upsert(text.id, "en", "v2", author_id).revision_count == 2

    def test_recreates_missing_language_from_sibling(self, service, db, author_id):
        section_id = str(uuid.uuid4())
        text = service.create(section_id, "en", SECTION_TEXT, author_id)
        db.delete(service.get_latest(text.id, "fr"))
        db.commit()
        assert db.query(Text).count() == 1

        other_author = str(uuid.uuid4())
        restored = service.upsert(text.id, "fr", "Politique régionale du logement.", other_author)

        assert db.query(Text).count() == 2
        assert restored.lang == "fr"
        assert restored.section_id == section_id
        assert restored.keywords
        assert restored.revision_count == 1
        assert restored.latest.created_by_id == other_author
        assert service.get_latest(text.id, "en").revision_count == 1


class TestReads:

    def test_get_latest_missing(self, service):
        with pytest.raises(TextNotFoundError):
            service.get_latest(str(uuid.uuid4()), "en")

    def test_get_by_section(self, service, author_id):
        section_id = str(uuid.uuid4())
        created = service.create(section_id, "en", "Section body", author_id)
        assert service.get_by_section(section_id, "en").id == created.id
        assert service.get_by_section(section_id, "fr").id == created.id

    def test_get_by_section_missing(self, service):
        with pytest.raises(TextNotFoundError):
            service.get_by_section(str(uuid.uuid4()), "en")

    def test_batch_latest(self, service, author_id):
        a = service.create(None, "en", "Alpha", author_id)
        b = service.create(None, "en", "Beta", author_id)
        service.update(b.id, "en", "Beta v2", author_id)
        missing = str(uuid.uuid4())

        result = service.get_batch_latest([a.id, b.id, missing], "en")

        assert result == {a.id: "Alpha", b.id: "Beta v2"}

    def test_batch_plain_view_keeps_markup(self, service, author_id):
        text = service.create(None, "en", SECTION_TEXT, author_id)
        assert service.batch_plain_view([text.id], "en") == {text.id: SECTION_TEXT}

    def test_batch_empty(self, service):
        assert service.get_batch_latest([], "en") == {}

    def test_history_oldest_first(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        service.update(text.id, "en", "v2", author_id)
        history = service.get_history(text.id, "en")
        assert [(r.seq, r.content) for r in history] == [(0, "v1"), (1, "v2")]

    def test_localized_text(self, service, author_id):
        text = service.create(None, "en", "Housing", author_id)
        service.record_translation(text.id, "fr", "Logement", author_id)

        localized = service.get_localized(text.id)

        assert set(localized.per_language) == {"en", "fr"}
        assert [r.content for r in localized.per_language["fr"]] == [
            PENDING_TRANSLATION_PLACEHOLDER, "Logement",
        ]

    def test_localized_missing(self, service):
        with pytest.raises(TextNotFoundError):
            service.get_localized(str(uuid.uuid4()))

    def test_count_counts_logical_texts(self, service, author_id):
        service.create(None, "en", "one", author_id)
        service.create(None, "fr", "deux", author_id)
        assert service.count_texts() == 2


class TestLatestView:

    def test_reflects_newest_revision(self, service, author_id):
        text = service.create(None, "en", "v1", author_id)
        editor = str(uuid.uuid4())
        text = service.update(text.id, "en", "v2", editor, machine_translation=True)

        view = service.latest_view(text, markdown=False, redact=False)

        assert view.content == "v2"
        assert view.created_by_id == editor
        assert view.machine_translation is True

    def test_internal_view_strips_markup(self, service, author_id):
        text = service.create(None, "en", SECTION_TEXT, author_id)
        view = service.latest_view(text, markdown=False, redact=False)
        assert view.content == "Regional housing policy. The budget is $5M this year."

    def test_open_view_redacts(self, service, author_id):
        text = service.create(None, "en", SECTION_TEXT, author_id)
        view = service.latest_view(text, markdown=False, redact=True)
        assert "budget" not in view.content
        assert "■■■■■■ ■■ ■■■" in view.content
        assert "PersonalInformation" not in view.content

    def test_markdown_rendered_after_redaction(self, service, author_id):
        text = service.create(None, "en", "**Bold** ~~secret~~[Other]", author_id)
        view = service.latest_view(text, markdown=True, redact=True)
        assert view.content == "<p><strong>Bold</strong> ■■■■■■</p>"

    def test_keyword_summary(self, service, author_id):
        text = service.create(str(uuid.uuid4()), "en", SECTION_TEXT, author_id)
        view = service.latest_view(text, markdown=False, redact=False)
        assert view.keywords.startswith('<ul><li>"regional housing policy"')

    def test_keyword_summary_size_is_configurable(self, db, cipher, extractor, author_id):
        service = TextService(db, cipher, extractor, keyword_summary_size=3)
        content = "Regional housing policy. Transit funding review. Open data. Budget."
        text = service.create(str(uuid.uuid4()), "en", content, author_id)
        view = service.latest_view(text, markdown=False, redact=False)
        assert view.keywords.count("<li>") == 3

    def test_redacted_words_not_keywords(self, service, author_id):
        text = service.create(str(uuid.uuid4()), "en", SECTION_TEXT, author_id)
        keywords = [kw["keyword"] for kw in text.keywords]
        assert "budget" not in keywords
        assert "personalinformation" not in keywords

    def test_no_keywords_sentinel(self, service, author_id):
        text = service.create(None, "en", "Title", author_id)
        assert service.latest_view(text, markdown=False, redact=False).keywords == NO_KEYWORDS

    def test_wrong_key_raises_decode_error(self, db, extractor, service, author_id):
        text = service.create(None, "en", "secret", author_id)
        other = TextService(db, TextCipher.from_secret("rotated-key"), extractor)
        with pytest.raises(TextDecodeError):
            other.get_readable(text.id, "en", markdown=False, redact=False)

    def test_batch_decode_failure_returns_nothing(self, db, extractor, service, author_id):
        text = service.create(None, "en", "secret", author_id)
        other = TextService(db, TextCipher.from_secret("rotated-key"), extractor)
        with pytest.raises(TextDecodeError):
            other.get_batch_latest([text.id], "en")


class TestPersistedShape:

    def test_one_row_per_language(self, service, db, author_id):
        text = service.create(None, "en", "content", author_id)
        rows = db.query(Text).filter(Text.id == text.id).all()
        assert sorted(r.lang for r in rows) == ["en", "fr"]

    def test_database_error_is_storage_error(self):
        assert StorageError is DatabaseError
