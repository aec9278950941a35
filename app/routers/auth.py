"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import bearer_token
from app.schemas.auth import LoginRequest, LoginResponse, MessageResponse
from app.services.auth import get_auth_service
from app.services.session import get_session_manager

logger = logging.getLogger("account_service")

router = APIRouter(prefix="/api/1.0", tags=["Authentication"])


@router.post("/auth", response_model=LoginResponse)
def login(body: LoginRequest | None = None, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate and receive an opaque session token."""
    body = body or LoginRequest()
    user = get_auth_service().authenticate(db, body.email, body.password)
    token = get_session_manager().issue_token(db, user.id)
    logger.info("User %s logged in", user.id)
    return LoginResponse(id=user.id, username=user.username, token=token, image=user.image)


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, db: Session = Depends(get_db)) -> MessageResponse:
    """End the presented session, if any. Always succeeds."""
    get_session_manager().delete_token(db, bearer_token(request))
    return MessageResponse(message="Logged out")
