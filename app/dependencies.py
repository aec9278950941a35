"""Request context dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AuthenticationFailure
from app.services.session import get_session_manager

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 10


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int


@dataclass
class Pagination:
    page: int
    size: int


def bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> CurrentUser | None:
    """Verify the bearer token, if any. Returns None for absent or invalid tokens.

    Routes that require a caller decide themselves how to reject None.
    """
    token = bearer_token(request)
    if not token:
        return None
    try:
        user_id = get_session_manager().verify_token(db, token)
    except AuthenticationFailure:
        return None
    return CurrentUser(user_id=user_id)


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def get_pagination(page: str | None = None, size: str | None = None) -> Pagination:
    """Clamp paging query params: page >= 0, size in [1, 10], bad input falls back to defaults."""
    page_number = _parse_int(page)
    if page_number is None or page_number < 0:
        page_number = 0
    page_size = _parse_int(size)
    if page_size is None or page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return Pagination(page=page_number, size=page_size)
