"""Credential verification."""

import logging

from sqlalchemy.orm import Session

from app.errors import AuthenticationFailure, ForbiddenError
from app.models.user import User
from app.security import verify_password

logger = logging.getLogger("account_service")


class AuthService:
    """Checks e-mail and password against stored credentials."""

    def authenticate(self, db: Session, email: str | None, password: str | None) -> User:
        """Return the user for valid credentials of an active account.

        Unknown e-mail, wrong password and missing fields all raise the same
        AuthenticationFailure. Correct credentials of an inactive account raise
        ForbiddenError.
        """
        if not email or not password:
            raise AuthenticationFailure()

        user = db.query(User).filter(User.email == email).first()
        if not user:
            raise AuthenticationFailure()

        try:
            matches = verify_password(password, user.password)
        except ValueError:
            logger.warning("Stored password hash for user %s is unreadable", user.id)
            raise AuthenticationFailure() from None
        if not matches:
            raise AuthenticationFailure()

        if user.inactive:
            raise ForbiddenError("Account is inactive")

        return user


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
