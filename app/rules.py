"""Validation rule sets for the account endpoints."""

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.config import get_settings
from app.services.files import ALLOWED_IMAGE_TYPES, get_file_service
from app.services.users import get_user_service
from app.validation import Rule, content_type, email_shape, length, max_bytes, required, unique

USERNAME_RULES = [
    required("username", "Username cannot be null"),
    length("username", "Must have min 3 and max 32 characters", min_length=3, max_length=32, strip=True),
]

PASSWORD_RULES = [
    required("password", "Password cannot be null"),
    length("password", "Password must be at least 6 characters", min_length=5),
]


def registration_rules(db: Session) -> list[Rule]:
    service = get_user_service()

    async def email_taken(email: str) -> bool:
        return await run_in_threadpool(service.find_by_email, db, email) is not None

    return [
        *USERNAME_RULES,
        required("email", "E-mail cannot be null"),
        email_shape("email", "E-mail is not valid"),
        unique("email", email_taken, "E-mail in use"),
        *PASSWORD_RULES,
    ]


def update_rules() -> list[Rule]:
    files = get_file_service()
    return [
        *USERNAME_RULES,
        max_bytes("image", get_settings().MAX_IMAGE_SIZE_BYTES, "Your profile image cannot be bigger than 2MB"),
        content_type("image", ALLOWED_IMAGE_TYPES, files.detect_mime, "Only JPEG or PNG files allowed"),
    ]


PASSWORD_RESET_REQUEST_RULES = [
    email_shape("email", "E-mail is not valid"),
]

PASSWORD_UPDATE_RULES = PASSWORD_RULES
