"""Tests for session token issuance, sliding expiry and cleanup."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.database import utcnow
from app.errors import AuthenticationFailure
from app.models.token import Token
from app.services.session import CLEANUP_JOB_ID, SessionManager


@pytest.fixture(name="manager")
def manager_fixture(session_factory):
    manager = SessionManager(session_factory=session_factory)
    yield manager
    manager.stop_cleanup()


class TestIssueToken:
    def test_issue_returns_32_characters(self, manager: SessionManager, db_session: Session, add_user):
        user = add_user()
        token = manager.issue_token(db_session, user.id)
        assert len(token) == 32

    def test_issue_persists_row(self, manager: SessionManager, db_session: Session, add_user):
        user = add_user()
        before = utcnow()
        token = manager.issue_token(db_session, user.id)
        stored = db_session.get(Token, token)
        assert stored.user_id == user.id
        assert stored.last_used_at >= before

    def test_tokens_are_unique(self, manager: SessionManager, db_session: Session, add_user):
        user = add_user()
        tokens = {manager.issue_token(db_session, user.id) for _ in range(5)}
        assert len(tokens) == 5


class TestVerifyToken:
    def test_fresh_token_returns_user_id(self, manager: SessionManager, db_session: Session, add_user):
        user = add_user()
        token = manager.issue_token(db_session, user.id)
        assert manager.verify_token(db_session, token) == user.id

    def test_unknown_token_fails(self, manager: SessionManager, db_session: Session):
        with pytest.raises(AuthenticationFailure):
            manager.verify_token(db_session, "does-not-exist")

    def test_empty_token_fails(self, manager: SessionManager, db_session: Session):
        with pytest.raises(AuthenticationFailure):
            manager.verify_token(db_session, None)

    def test_four_day_old_token_is_renewed(self, manager: SessionManager, db_session: Session, add_user, add_token):
        """A token used 4 days ago verifies and its last use moves forward."""
        user = add_user()
        four_days_ago = utcnow() - timedelta(days=4)
        token = add_token(user, four_days_ago)

        assert manager.verify_token(db_session, token) == user.id
        assert db_session.get(Token, token).last_used_at > four_days_ago

    def test_token_just_past_window_fails(self, manager: SessionManager, db_session: Session, add_user, add_token):
        user = add_user()
        token = add_token(user, utcnow() - timedelta(days=7, milliseconds=1))
        with pytest.raises(AuthenticationFailure):
            manager.verify_token(db_session, token)

    def test_expired_token_is_not_deleted_by_verification(
        self, manager: SessionManager, db_session: Session, add_user, add_token
    ):
        user = add_user()
        token = add_token(user, utcnow() - timedelta(days=8))
        with pytest.raises(AuthenticationFailure):
            manager.verify_token(db_session, token)
        assert db_session.get(Token, token) is not None


class TestDeleteTokens:
    def test_delete_token(self, manager: SessionManager, db_session: Session, add_user):
        user = add_user()
        token = manager.issue_token(db_session, user.id)
        manager.delete_token(db_session, token)
        assert db_session.query(Token).count() == 0

    def test_delete_unknown_token_is_noop(self, manager: SessionManager, db_session: Session):
        manager.delete_token(db_session, "does-not-exist")
        manager.delete_token(db_session, None)

    def test_clear_all_tokens_only_touches_one_user(self, manager: SessionManager, db_session: Session, add_user):
        owner = add_user()
        other = add_user()
        manager.issue_token(db_session, owner.id)
        manager.issue_token(db_session, owner.id)
        kept = manager.issue_token(db_session, other.id)

        assert manager.clear_all_tokens(db_session, owner.id) == 2
        assert [t.token for t in db_session.query(Token).all()] == [kept]


class TestCleanup:
    def test_delete_expired_removes_only_old_tokens(
        self, manager: SessionManager, db_session: Session, add_user, add_token
    ):
        """Seed one 8-day-old and one fresh token; only the fresh one survives."""
        user = add_user()
        add_token(user, utcnow() - timedelta(days=8), token="old-token")
        add_token(user, utcnow(), token="fresh-token")

        assert manager.delete_expired(db_session) == 1
        assert [t.token for t in db_session.query(Token).all()] == ["fresh-token"]

    def test_run_cleanup_uses_own_session(self, manager: SessionManager, db_session: Session, add_user, add_token):
        user = add_user()
        add_token(user, utcnow() - timedelta(days=8), token="old-token")
        add_token(user, utcnow() - timedelta(days=1), token="recent-token")

        manager.run_cleanup()

        db_session.expire_all()
        assert [t.token for t in db_session.query(Token).all()] == ["recent-token"]

    def test_schedule_cleanup_registers_hourly_job(self, manager: SessionManager):
        manager.schedule_cleanup()
        assert manager.cleanup_running
        job = manager.cleanup_job()
        assert job.id == CLEANUP_JOB_ID
        assert job.trigger.interval == timedelta(hours=1)

    def test_schedule_cleanup_is_idempotent(self, manager: SessionManager):
        manager.schedule_cleanup()
        scheduler = manager._scheduler
        manager.schedule_cleanup()
        assert manager._scheduler is scheduler

    def test_stop_cleanup(self, manager: SessionManager):
        manager.schedule_cleanup()
        manager.stop_cleanup()
        assert not manager.cleanup_running
        assert manager.cleanup_job() is None


class TestProtectedRoutes:
    """Token verification as seen through an authenticated route."""

    def test_expired_token_is_forbidden(self, client: TestClient, add_user, add_token):
        user = add_user()
        token = add_token(user, utcnow() - timedelta(days=7, milliseconds=1))
        response = client.put(
            f"/api/1.0/users/{user.id}",
            json={"username": "renamed"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403

    def test_four_day_old_token_still_works(self, client: TestClient, add_user, add_token, db_session: Session):
        user = add_user()
        four_days_ago = utcnow() - timedelta(days=4)
        token = add_token(user, four_days_ago)
        response = client.put(
            f"/api/1.0/users/{user.id}",
            json={"username": "renamed"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        assert db_session.get(Token, token).last_used_at > four_days_ago


def test_utcnow_is_naive_utc():
    now = utcnow()
    assert now.tzinfo is None
    assert abs((datetime.now(UTC).replace(tzinfo=None) - now).total_seconds()) < 5
