"""Viewer context: FastAPI dependencies for role-aware text access.

Identity is established upstream (the fronting proxy authenticates the
session and forwards ``X-User-Id`` / ``X-User-Role``). This module only
turns those headers into a ``Viewer`` and answers two questions:
may this viewer write, and may this viewer see unredacted content.

Public interface:
    ``get_viewer``     always returns a Viewer; anonymous when headers are absent.
    ``require_editor`` returns a Viewer, raises 403 unless role is user/admin.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header

from ..exceptions import ForbiddenError, ValidationError

logger = logging.getLogger(__name__)

ROLES = ("admin", "user", "anonymous")
EDITOR_ROLES = frozenset({"admin", "user"})

INTERNAL_VIEW = "internal"
OPEN_VIEW = "open"


@dataclass(frozen=True)
class Viewer:
    """Resolved caller identity available to every endpoint."""

    user_id: Optional[str]
    role: str

    @property
    def is_editor(self) -> bool:
        return self.role in EDITOR_ROLES

    def should_redact(self, view: str) -> bool:
        """Whether ``view`` must be served redacted for this viewer.

        Only editors get the internal view; everyone else is downgraded
        to the open view rather than refused.
        """
        if view == INTERNAL_VIEW and self.is_editor:
            return False
        if view == INTERNAL_VIEW:
            logger.info("Internal view requested without editor role; serving open view")
        return True


_ANONYMOUS = Viewer(user_id=None, role="anonymous")


def get_viewer(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Viewer:
    """Build the Viewer from forwarded identity headers. Never raises for missing headers."""
    if not x_user_role:
        return _ANONYMOUS

    role = x_user_role.strip().lower()
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {x_user_role!r}", field="X-User-Role")

    user_id = None
    if x_user_id:
        try:
            user_id = str(UUID(x_user_id))
        except ValueError as e:
            raise ValidationError("X-User-Id must be a UUID", field="X-User-Id") from e

    return Viewer(user_id=user_id, role=role)


def require_editor(viewer: Viewer = Depends(get_viewer)) -> Viewer:
    """Require a user/admin role with a known user id. Raises 403 otherwise."""
    if not viewer.is_editor or viewer.user_id is None:
        raise ForbiddenError("Editing texts requires a signed-in user")
    return viewer
