"""datadocs FastAPI application.

Importing this module configures logging, checks the settings and the
database, creates missing tables and builds the two process-wide text
pipeline resources (cipher and keyword extractor). Any failure exits with
status 1 before the app object exists.
"""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .api import texts_router
from .core.config import settings, ConfigurationError, Environment
from .core.crypto import TextCipher
from .core.keywords import KeywordExtractor
from .core.logging_config import setup_logging
from .database import engine, Base, get_db, DATABASE_URL, is_postgresql
from .exceptions import DataDocsException, KeywordResourceError
from .middleware.exception_handler import datadocs_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .repositories import TextRepository

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

API_NAME = "datadocs API"


def _safe_url(url: str) -> str:
    return re.sub(r"://([^:/@]+):([^@]+)@", r"://\1:***@", url)


def _fatal(reason: str, exc: Exception) -> None:
    logger.critical("STARTUP BLOCKED: %s", reason)
    raise SystemExit(1) from exc


def _check_settings() -> None:
    logger.info("Environment: %s", settings.environment.value)
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        _fatal(str(e), e)


def _check_database() -> None:
    url = _safe_url(DATABASE_URL)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        _fatal(f"database unreachable at {url}: {e}", e)
    logger.info("Database reachable at %s", url)


def _build_pipeline() -> tuple:
    """Cipher and keyword extractor shared by every request."""
    try:
        cipher = TextCipher.from_settings(settings)
    except ConfigurationError as e:
        _fatal(str(e), e)
    try:
        extractor = KeywordExtractor.from_file(settings.stopwords_path)
    except KeywordResourceError as e:
        _fatal(e.message, e)
    logger.info("Text pipeline ready", extra={"stopwords": len(extractor.stopwords)})
    return cipher, extractor


_check_settings()
_check_database()
Base.metadata.create_all(bind=engine)
cipher, keyword_extractor = _build_pipeline()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.environment == Environment.DEVELOPMENT and settings.local_cors_origins():
        logger.warning(
            "CORS allows local origins %s; production startup will refuse them",
            settings.local_cors_origins(),
        )
    yield


app = FastAPI(
    title=API_NAME,
    description=(
        "REST API for bilingual (English/French) document texts. "
        "Every text keeps an append-only, encrypted revision history per language; "
        "reads return the latest revision either unredacted (internal view, "
        "editors only) or with redaction spans blocked out (open view).\n\n"
        "**Identity:** the fronting proxy forwards `X-User-Id` and `X-User-Role` "
        "(`admin`, `user`, `anonymous`). Write endpoints require `admin` or `user`."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.state.cipher = cipher
app.state.keyword_extractor = keyword_extractor

# Added last runs first: CORS wraps the request context.
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "X-User-Id", "X-User-Role", "X-Request-ID"],
)

app.add_exception_handler(DataDocsException, datadocs_exception_handler)
app.include_router(texts_router)

logger.info(
    "%s started | env=%s | db=%s",
    API_NAME,
    settings.environment.value,
    "PostgreSQL" if is_postgresql() else "SQLite",
)


@app.get("/")
def root():
    return {"name": API_NAME, "version": __version__, "status": "running"}


_started = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Liveness plus a database probe.

    Always 200; a failing database shows up as ``"status": "degraded"``.
    """
    try:
        text_count = TextRepository(db).count()
        db_status = "ok"
    except DataDocsException:
        text_count = 0
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _started),
        "version": __version__,
        "text_count": text_count,
    }
