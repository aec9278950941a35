"""User API endpoints."""

import math

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.database import get_db
from app.dependencies import CurrentUser, Pagination, get_current_user, get_pagination
from app.errors import ForbiddenError
from app.rules import registration_rules, update_rules
from app.schemas.auth import MessageResponse
from app.schemas.user import UserCreate, UserPage, UserResponse, UserUpdate
from app.services.users import get_user_service
from app.validation import validate

router = APIRouter(prefix="/api/1.0/users", tags=["Users"])


@router.post("", response_model=MessageResponse)
async def register(body: UserCreate, db: Session = Depends(get_db)) -> MessageResponse:
    """Register a new, inactive account and send its activation e-mail."""
    await validate(body.model_dump(), registration_rules(db))
    await run_in_threadpool(get_user_service().register, db, body.username, body.email, body.password)
    return MessageResponse(message="User created")


@router.post("/token/{token}", response_model=MessageResponse)
def activate(token: str, db: Session = Depends(get_db)) -> MessageResponse:
    """Activate an account with the token from its activation e-mail."""
    get_user_service().activate(db, token)
    return MessageResponse(message="Account is activated")


@router.get("", response_model=UserPage)
def list_users(
    pagination: Pagination = Depends(get_pagination),
    user: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserPage:
    """List active users, page by page."""
    users, total = get_user_service().get_users(
        db, pagination.page, pagination.size, user.user_id if user else None
    )
    return UserPage(
        content=[UserResponse.model_validate(u) for u in users],
        page=pagination.page,
        size=pagination.size,
        totalPages=math.ceil(total / pagination.size),
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)) -> UserResponse:
    """Get a single active user by ID."""
    return UserResponse.model_validate(get_user_service().get_user(db, user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserUpdate | None = None,
    user: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserResponse:
    """Update the caller's own username and profile image."""
    if user is None or user.user_id != user_id:
        raise ForbiddenError("You are not authorized to update user")

    body = body or UserUpdate()
    await validate(body.model_dump(), update_rules())
    updated = await run_in_threadpool(get_user_service().update_user, db, user_id, body.username, body.image)
    return UserResponse.model_validate(updated)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    user: CurrentUser | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Delete the caller's own account and end all of its sessions."""
    if user is None or user.user_id != user_id:
        raise ForbiddenError("You are not authorized to delete user")

    get_user_service().delete_user(db, user_id)
    return MessageResponse(message="User deleted")
