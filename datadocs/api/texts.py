"""Text API endpoints.

Endpoints are thin. TextService handles encryption, versioning, and
keyword indexing; the view assembler handles redaction and Markdown.
"""

from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..core.auth import INTERNAL_VIEW, OPEN_VIEW, Viewer, get_viewer, require_editor
from ..database import get_db
from ..schemas.text import LocalizedText, ReadableText, RevisionView, TextCreate, TextUpdate, TranslationUpdate
from ..services import TextService
from ..services.text_service import check_lang

router = APIRouter(prefix="/api/{lang}/texts", tags=["texts"])

_VIEW_PATTERN = f"^({INTERNAL_VIEW}|{OPEN_VIEW})$"


def get_text_service(request: Request, db: Session = Depends(get_db)) -> TextService:
    """Request-scoped service wired to the process-wide cipher and extractor."""
    return TextService(db, request.app.state.cipher, request.app.state.keyword_extractor)


@router.post("", response_model=ReadableText, status_code=201)
def create_text(
    lang: str,
    payload: TextCreate,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(require_editor),
):
    """Create a text; the other language gets a pending-translation placeholder."""
    text = service.create(payload.section_id, lang, payload.content, viewer.user_id)
    return service.latest_view(text, markdown=False, redact=False)


# --- Fixed-path endpoints (must be before /{text_id} to avoid route shadowing) ---


@router.get("/batch", response_model=Dict[str, str])
def get_text_batch(
    lang: str,
    ids: str = Query(..., min_length=1, description="Comma-separated text ids"),
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(require_editor),
):
    """Latest plain content for several texts, keyed by id. Unknown ids are omitted."""
    text_ids = [i.strip() for i in ids.split(",") if i.strip()]
    return service.batch_plain_view(text_ids, lang)


@router.get("/by-section/{section_id}", response_model=ReadableText)
def get_text_by_section(
    lang: str,
    section_id: UUID,
    view: str = Query(OPEN_VIEW, pattern=_VIEW_PATTERN),
    markdown: bool = True,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(get_viewer),
):
    """Latest text of a section."""
    return service.get_readable_by_section(section_id, lang, markdown, viewer.should_redact(view))


@router.get("/{text_id}", response_model=ReadableText)
def get_text(
    lang: str,
    text_id: UUID,
    view: str = Query(OPEN_VIEW, pattern=_VIEW_PATTERN),
    markdown: bool = True,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(get_viewer),
):
    """Latest revision, redacted unless an editor asks for the internal view."""
    return service.get_readable(text_id, lang, markdown, viewer.should_redact(view))


@router.put("/{text_id}", response_model=ReadableText)
def update_text(
    lang: str,
    text_id: UUID,
    payload: TextUpdate,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(require_editor),
):
    """Append a new revision."""
    text = service.update(text_id, lang, payload.content, viewer.user_id, payload.machine_translation)
    return service.latest_view(text, markdown=False, redact=False)


@router.put("/{text_id}/translation", response_model=ReadableText)
def translate_text(
    lang: str,
    text_id: UUID,
    payload: TranslationUpdate,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(require_editor),
):
    """Append a human translation to this language's history."""
    text = service.record_translation(text_id, lang, payload.content, viewer.user_id)
    return service.latest_view(text, markdown=False, redact=False)


@router.get("/{text_id}/history", response_model=List[RevisionView])
def get_text_history(
    lang: str,
    text_id: UUID,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(require_editor),
):
    """Every revision of this language, oldest first."""
    return service.get_history(text_id, lang)


@router.get("/{text_id}/languages", response_model=LocalizedText)
def get_text_languages(
    lang: str,
    text_id: UUID,
    service: TextService = Depends(get_text_service),
    viewer: Viewer = Depends(require_editor),
):
    """Histories of every language of the logical text."""
    check_lang(lang)
    return service.get_localized(text_id)
