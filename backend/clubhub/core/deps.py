"""Common FastAPI dependencies for resolving the authenticated viewer."""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from clubhub.core.config import settings
from clubhub.core.exceptions import ExpiredTokenError, NotAuthenticatedError
from clubhub.core.rbac import Viewer
from clubhub.core.security import ACCESS_TOKEN_TYPE, decode_token
from clubhub.db.session import get_db, run_read
from clubhub.services.directory import load_viewer

logger = logging.getLogger(__name__)


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def get_current_viewer(request: Request, db: Session = Depends(get_db)) -> Viewer:
    token = _extract_bearer_token(request) or request.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise NotAuthenticatedError()

    try:
        payload = decode_token(token)
    except ValueError as exc:
        if str(exc) == "expired_token":
            raise ExpiredTokenError("access_token_expired")
        raise NotAuthenticatedError("invalid_token")
    token_type = payload.get("type")
    if token_type and token_type != ACCESS_TOKEN_TYPE:
        raise NotAuthenticatedError("invalid_token")
    username = payload.get("sub")
    if not username:
        raise NotAuthenticatedError("invalid_token")

    viewer = run_read(db, "load_viewer", lambda: load_viewer(db, username))
    if viewer is None:
        logger.warning("Token subject has no person row: %s", username)
        raise NotAuthenticatedError("user_not_found")
    return viewer
