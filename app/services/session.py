"""Session token service.

Tokens are opaque random strings looked up server-side. A token stays valid
while it keeps being used: every successful verification moves ``last_used_at``
forward, and a token idle for longer than the expiry window is rejected. Idle
rows are not removed by verification; a recurring background sweep deletes them.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import utcnow
from app.errors import AuthenticationFailure
from app.models.token import Token
from app.security import random_string

logger = logging.getLogger("account_service")

TOKEN_LENGTH = 32
CLEANUP_JOB_ID = "token_cleanup"


class SessionManager:
    """Issues, verifies and revokes session tokens, and owns the expiry sweep."""

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        expiry: timedelta | None = None,
        cleanup_interval_seconds: int | None = None,
    ) -> None:
        settings = get_settings()
        self.session_factory = session_factory
        self.expiry = expiry or timedelta(days=settings.TOKEN_EXPIRY_DAYS)
        self.cleanup_interval_seconds = cleanup_interval_seconds or settings.TOKEN_CLEANUP_INTERVAL_SECONDS
        self._scheduler: BackgroundScheduler | None = None

    def _cutoff(self) -> datetime:
        return utcnow() - self.expiry

    def issue_token(self, db: Session, user_id: int) -> str:
        """Create and persist a fresh token for the user."""
        token = random_string(TOKEN_LENGTH)
        db.add(Token(token=token, user_id=user_id, last_used_at=utcnow()))
        db.commit()
        return token

    def verify_token(self, db: Session, token: str | None) -> int:
        """Return the owning user id and renew the token's window.

        Unknown and expired tokens raise the same AuthenticationFailure.
        """
        if not token:
            raise AuthenticationFailure()

        cutoff = self._cutoff()
        row = db.query(Token.user_id).filter(Token.token == token, Token.last_used_at > cutoff).first()
        if row is None:
            raise AuthenticationFailure()

        # Conditional on the same window so a concurrent sweep either wins or loses cleanly.
        renewed = (
            db.query(Token)
            .filter(Token.token == token, Token.last_used_at > cutoff)
            .update({Token.last_used_at: utcnow()})
        )
        db.commit()
        if not renewed:
            raise AuthenticationFailure()
        return row.user_id

    def delete_token(self, db: Session, token: str | None) -> None:
        """Remove a single token. Unknown tokens are ignored."""
        if not token:
            return
        db.query(Token).filter(Token.token == token).delete()
        db.commit()

    def clear_all_tokens(self, db: Session, user_id: int) -> int:
        """Remove every token of a user. Returns the number removed."""
        removed = db.query(Token).filter(Token.user_id == user_id).delete()
        db.commit()
        return removed

    def delete_expired(self, db: Session) -> int:
        """Delete all tokens idle for longer than the expiry window."""
        removed = db.query(Token).filter(Token.last_used_at < self._cutoff()).delete()
        db.commit()
        return removed

    def run_cleanup(self) -> None:
        """Sweep job body. Opens its own session."""
        if self.session_factory is None:
            from app.database import SessionLocal

            self.session_factory = SessionLocal

        db = self.session_factory()
        try:
            removed = self.delete_expired(db)
            logger.info("Token cleanup removed %d expired token(s)", removed)
        except Exception:
            logger.exception("Token cleanup failed")
            db.rollback()
        finally:
            db.close()

    @property
    def cleanup_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def schedule_cleanup(self) -> None:
        """Start the recurring sweep. Calling it again while running is a no-op."""
        if self.cleanup_running:
            return
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.run_cleanup,
            trigger=IntervalTrigger(seconds=self.cleanup_interval_seconds),
            id=CLEANUP_JOB_ID,
            name="Delete expired session tokens",
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Token cleanup scheduled every %d seconds", self.cleanup_interval_seconds)

    def stop_cleanup(self) -> None:
        """Stop the recurring sweep."""
        if self.cleanup_running:
            self._scheduler.shutdown(wait=False)  # type: ignore[union-attr]
            logger.info("Token cleanup stopped")
        self._scheduler = None

    def cleanup_job(self):
        """Return the scheduled sweep job, or None when not scheduled."""
        if not self.cleanup_running:
            return None
        return self._scheduler.get_job(CLEANUP_JOB_ID)  # type: ignore[union-attr]


_session_manager: SessionManager | None = None


def get_session_manager() -> SessionManager:
    """Get singleton session manager instance."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager()
    return _session_manager
