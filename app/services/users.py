"""User account service: registration, activation, listing, update, deletion, password reset."""

import logging
import smtplib

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import AppError, EmailFailure, ForbiddenError, InvalidTokenError, NotFoundError, ValidationFailure
from app.models.user import User
from app.security import hash_password, random_string
from app.services.email import EmailService, get_email_service
from app.services.files import FileService, get_file_service
from app.services.session import SessionManager, get_session_manager

logger = logging.getLogger("account_service")

ACTIVATION_TOKEN_LENGTH = 16
RESET_TOKEN_LENGTH = 16
PASSWORD_RESET_FORBIDDEN = "You are not authorized to update your password. Please follow the password reset steps again."

# Transport failures from smtplib surface as SMTPException or socket-level OSError.
MAIL_ERRORS = (smtplib.SMTPException, OSError)


def _hash_or_reject(password: str) -> str:
    try:
        return hash_password(password)
    except ValueError:
        raise ValidationFailure({"password": "Password cannot be longer than 72 bytes"}) from None


class UserService:
    """Orchestrates account flows over the store, mail, files and sessions."""

    def __init__(
        self,
        email_service: EmailService | None = None,
        file_service: FileService | None = None,
        session_manager: SessionManager | None = None,
    ) -> None:
        self._email = email_service
        self._files = file_service
        self._sessions = session_manager

    @property
    def email(self) -> EmailService:
        return self._email or get_email_service()

    @property
    def files(self) -> FileService:
        return self._files or get_file_service()

    @property
    def sessions(self) -> SessionManager:
        return self._sessions or get_session_manager()

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email).first()

    def register(self, db: Session, username: str, email: str, password: str) -> User:
        """Create an inactive user and send the activation e-mail.

        The insert and the e-mail share one transaction: if sending fails the
        user is rolled back and EmailFailure is raised.
        """
        user = User(
            username=username.strip(),
            email=email,
            password=_hash_or_reject(password),
            inactive=True,
            activation_token=random_string(ACTIVATION_TOKEN_LENGTH),
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise ValidationFailure({"email": "E-mail in use"}) from None

        try:
            self.email.send_account_activation(email, user.activation_token)
        except MAIL_ERRORS:
            logger.exception("Activation e-mail to %s failed, rolling back registration", email)
            db.rollback()
            raise EmailFailure() from None

        db.commit()
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    def activate(self, db: Session, token: str) -> None:
        user = db.query(User).filter(User.activation_token == token).first()
        if not user:
            raise InvalidTokenError()
        user.inactive = False
        user.activation_token = None
        db.commit()

    def get_users(
        self, db: Session, page: int, size: int, authenticated_user_id: int | None = None
    ) -> tuple[list[User], int]:
        """Get a page of active users, skipping the caller. Returns (users, total_count)."""
        query = db.query(User).filter(User.inactive.is_(False))
        if authenticated_user_id is not None:
            query = query.filter(User.id != authenticated_user_id)

        total = query.count()
        users = query.order_by(User.id).offset(page * size).limit(size).all()
        return users, total

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id, User.inactive.is_(False)).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_user(self, db: Session, user_id: int, username: str, image: str | None = None) -> User:
        """Apply a new username and, when given, replace the profile image."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")

        user.username = username.strip()
        old_image = None
        if image:
            try:
                new_image = self.files.save_profile_image(image)
            except (OSError, ValueError):
                logger.exception("Storing profile image for user %s failed", user_id)
                db.rollback()
                raise AppError("Profile image could not be stored") from None
            old_image, user.image = user.image, new_image

        db.commit()
        db.refresh(user)
        if old_image:
            self.files.delete_profile_image(old_image)
        return user

    def delete_user(self, db: Session, user_id: int) -> None:
        """Delete the user, every session token of theirs, and their image."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")

        image = user.image
        self.sessions.clear_all_tokens(db, user_id)
        db.delete(user)
        db.commit()
        self.files.delete_profile_image(image)
        logger.info("Deleted user %s", user_id)

    def request_password_reset(self, db: Session, email: str) -> None:
        """Store a fresh reset token and e-mail it.

        The token stays persisted even when sending fails.
        """
        user = self.find_by_email(db, email)
        if not user:
            raise NotFoundError("E-mail is not found")

        user.password_reset_token = random_string(RESET_TOKEN_LENGTH)
        db.commit()

        try:
            self.email.send_password_reset(email, user.password_reset_token)
        except MAIL_ERRORS:
            logger.exception("Password reset e-mail to %s failed", email)
            raise EmailFailure() from None

    def get_user_by_reset_token(self, db: Session, token: str | None) -> User:
        """Look up an open reset flow. Any mismatch is reported as forbidden."""
        user = None
        if token:
            user = db.query(User).filter(User.password_reset_token == token).first()
        if not user:
            raise ForbiddenError(PASSWORD_RESET_FORBIDDEN)
        return user

    def update_password(self, db: Session, user: User, new_password: str) -> None:
        """Set a new password, activate the account and end every existing session."""
        user.password = _hash_or_reject(new_password)
        user.password_reset_token = None
        user.activation_token = None
        user.inactive = False
        db.commit()
        removed = self.sessions.clear_all_tokens(db, user.id)
        logger.info("Password updated for user %s, %d session(s) ended", user.id, removed)


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
