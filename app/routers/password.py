"""Password reset API endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.database import get_db
from app.rules import PASSWORD_RESET_REQUEST_RULES, PASSWORD_UPDATE_RULES
from app.schemas.auth import MessageResponse
from app.schemas.user import PasswordResetRequest, PasswordUpdate
from app.services.users import get_user_service
from app.validation import validate

router = APIRouter(prefix="/api/1.0/password-reset", tags=["Password Reset"])


@router.post("", response_model=MessageResponse)
async def request_password_reset(body: PasswordResetRequest, db: Session = Depends(get_db)) -> MessageResponse:
    """Send a password reset token to a registered e-mail."""
    await validate(body.model_dump(), PASSWORD_RESET_REQUEST_RULES)
    await run_in_threadpool(get_user_service().request_password_reset, db, body.email)
    return MessageResponse(message="Check your e-mail for resetting your password")


@router.put("", response_model=MessageResponse)
async def update_password(body: PasswordUpdate, db: Session = Depends(get_db)) -> MessageResponse:
    """Set a new password using the token from the reset e-mail."""
    service = get_user_service()
    user = await run_in_threadpool(service.get_user_by_reset_token, db, body.password_reset_token)
    await validate(body.model_dump(), PASSWORD_UPDATE_RULES)
    await run_in_threadpool(service.update_password, db, user, body.password)
    return MessageResponse(message="Password updated")
