"""Base repository with shared get-by-key patterns.

Subclasses specify model_class, key_columns, and not_found_error; the base
provides lookups by (possibly composite) primary key and wraps SQLAlchemy
failures as DatabaseError.

Override _base_query() to apply default filters.
"""

import logging
from contextlib import contextmanager
from typing import Generic, Iterator, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import DatabaseError, DataDocsException

ModelT = TypeVar("ModelT", bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Text)
        key_columns:     Primary-key column names, in lookup order
        not_found_error: Exception class raised by get_by_key, called with the key values
    """

    model_class: Type[ModelT]
    key_columns: Tuple[str, ...] = ("id",)
    not_found_error: Type[DataDocsException]

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        """Translate SQLAlchemy failures into DatabaseError."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.error("Database error during %s", operation, exc_info=True)
            raise DatabaseError(f"Database error during {operation}", e) from e

    def _base_query(self) -> Query:
        """Base query for get_by_key / get_by_key_optional."""
        return self.db.query(self.model_class)

    def _key_query(self, key: tuple) -> Query:
        query = self._base_query()
        for name, value in zip(self.key_columns, key):
            query = query.filter(getattr(self.model_class, name) == value)
        return query

    def get_by_key(self, *key) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        entity = self.get_by_key_optional(*key)
        if entity is None:
            raise self.not_found_error(*key)
        return entity

    def get_by_key_optional(self, *key) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found."""
        with self._storage_errors(f"{self.model_class.__tablename__} lookup"):
            return self._key_query(key).first()
