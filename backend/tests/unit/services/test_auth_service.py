"""Tests for AuthenticationService: issuance, validation, rotation, revocation."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from football_network.infra.jwt.flask_jwt_token_codec import FlaskJWTTokenCodec
from football_network.models.role import Role
from football_network.services._shared.dto import Principal, TokenFailure
from football_network.services._shared.errors import (
    InvalidCredentialsError,
    SecurityTokenError,
    SecurityTokenReason,
)
from football_network.services._shared.ports import InMemoryRefreshTokenStore, InMemoryUserLookup
from football_network.services.audit import AUDIT_LOGGER_NAME
from football_network.services.auth.dto import AuthTokenConfig, LoginIn, LogoutIn
from football_network.services.auth.service import AuthenticationService, principal_for
from football_network.services.security.passwords import PasswordHasher
from tests.factories.records import TEST_HASH_METHOD, make_user_record


class FakeClock:
    """Mutable aware-UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime.now(UTC))


@pytest.fixture()
def admin():
    return make_user_record(username="admin", password="admin123", role=Role.ADMINISTRATOR)


@pytest.fixture()
def users(admin) -> InMemoryUserLookup:
    return InMemoryUserLookup([admin])


@pytest.fixture()
def store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def service(app_ctx, store, users, clock) -> AuthenticationService:
    """
    Build an AuthenticationService wired to in-memory doubles.

    .. note::
       The real flask-jwt-extended codec is used; it needs the app context.
    """
    return AuthenticationService(
        token_codec=FlaskJWTTokenCodec(),
        refresh_store=store,
        user_lookup=users,
        hasher=PasswordHasher(method=TEST_HASH_METHOD),
        token_cfg=AuthTokenConfig(
            access_expires=timedelta(minutes=60), refresh_expires=timedelta(days=7)
        ),
        clock=clock,
    )


# ------------------------------ Issuance ---------------------------------- #
class TestGenerateAndValidate:
    def test_round_trip(self, service, admin):
        pair = service.generate_token(principal_for(admin))
        result = service.validate_token(pair.access_token)

        assert result.is_valid
        assert result.principal.user_id == admin.id
        assert result.principal.email == admin.email
        assert result.principal.username == "admin"
        assert result.principal.roles == ("Administrator",)

    def test_pair_shape(self, service, store, admin, clock):
        pair = service.generate_token(principal_for(admin))

        assert pair.token_type == "Bearer"
        assert pair.expires_in == 3600
        assert pair.expires_at == clock.now + timedelta(minutes=60)
        assert pair.refresh_token != pair.access_token
        assert len(pair.refresh_token) >= 64

        record = store.get(pair.refresh_token)
        assert record.user_id == admin.id
        assert record.created_at == clock.now
        assert record.expires_at == clock.now + timedelta(days=7)
        assert record.revoked is False

    def test_expired_access_token(self, service, admin):
        with freeze_time("2026-03-01 12:00:00"):
            pair = service.generate_token(principal_for(admin))
        with freeze_time("2026-03-01 13:00:01"):
            result = service.validate_token(pair.access_token)

        assert result.failure is TokenFailure.EXPIRED
        assert result.message == "Token expired"

    def test_negative_lifetime_issues_expired_token(self, service, admin):
        service.cfg = AuthTokenConfig(
            access_expires=timedelta(seconds=-1), refresh_expires=timedelta(days=7)
        )
        pair = service.generate_token(principal_for(admin))
        assert service.validate_token(pair.access_token).failure is TokenFailure.EXPIRED

    @pytest.mark.parametrize("token", ["", "   ", "garbage", None])
    def test_validate_never_raises(self, service, token):
        result = service.validate_token(token)
        assert not result.is_valid
        assert result.failure is TokenFailure.MALFORMED

    def test_codec_crash_is_reported_as_malformed(self, service, monkeypatch):
        def boom(_token):
            raise RuntimeError("codec exploded")

        monkeypatch.setattr(service.tokens, "decode", boom)
        assert service.validate_token("x.y.z").failure is TokenFailure.MALFORMED


# ------------------------------- Refresh ---------------------------------- #
class TestRefresh:
    def test_rotation_issues_new_pair_and_consumes_old(self, service, store, admin):
        first = service.generate_token(principal_for(admin))
        second = service.refresh_token(first.refresh_token)

        assert second.refresh_token != first.refresh_token
        assert store.get(first.refresh_token) is None
        assert store.get(second.refresh_token) is not None
        assert service.validate_token(second.access_token).principal.user_id == admin.id

    def test_replay_is_rejected(self, service, admin):
        first = service.generate_token(principal_for(admin))
        service.refresh_token(first.refresh_token)

        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token(first.refresh_token)
        assert exc.value.reason is SecurityTokenReason.NOT_FOUND

    def test_unknown_token(self, service):
        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token("never-issued")
        assert exc.value.reason is SecurityTokenReason.NOT_FOUND

    def test_revoked_is_terminal(self, service, admin):
        pair = service.generate_token(principal_for(admin))
        assert service.revoke_refresh_token(pair.refresh_token) is True
        assert service.revoke_refresh_token(pair.refresh_token) is True

        for _ in range(2):
            with pytest.raises(SecurityTokenError) as exc:
                service.refresh_token(pair.refresh_token)
            assert exc.value.reason is SecurityTokenReason.REVOKED

    def test_revoke_unknown_returns_false(self, service):
        assert service.revoke_refresh_token("nope") is False
        assert service.revoke_refresh_token("") is False

    def test_expired_is_purged(self, service, store, admin, clock):
        pair = service.generate_token(principal_for(admin))
        clock.advance(days=7, seconds=1)

        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token(pair.refresh_token)
        assert exc.value.reason is SecurityTokenReason.EXPIRED
        assert store.get(pair.refresh_token) is None

    def test_revoked_and_expired_is_purged(self, service, store, admin, clock):
        pair = service.generate_token(principal_for(admin))
        service.revoke_refresh_token(pair.refresh_token)
        clock.advance(days=7, seconds=1)

        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token(pair.refresh_token)
        assert exc.value.reason is SecurityTokenReason.REVOKED
        assert store.get(pair.refresh_token) is None

    def test_inactive_owner_revokes_token(self, service, store, users, admin):
        pair = service.generate_token(principal_for(admin))
        users.add(make_user_record(user_id=admin.id, username="admin", is_active=False))

        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token(pair.refresh_token)
        assert exc.value.reason is SecurityTokenReason.USER_INACTIVE
        assert store.get(pair.refresh_token).revoked is True

    def test_missing_owner(self, service, admin):
        ghost = Principal(user_id=9999, email="ghost@example.com", username="ghost", roles=("User",))
        pair = service.generate_token(ghost)

        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token(pair.refresh_token)
        assert exc.value.reason is SecurityTokenReason.USER_INACTIVE

    def test_lost_compare_reports_not_found(self, service, store, admin, monkeypatch):
        pair = service.generate_token(principal_for(admin))
        monkeypatch.setattr(store, "compare_and_remove", lambda token, expected: False)

        with pytest.raises(SecurityTokenError) as exc:
            service.refresh_token(pair.refresh_token)
        assert exc.value.reason is SecurityTokenReason.NOT_FOUND

    def test_concurrent_refresh_has_single_winner(self, app, service, admin):
        pair = service.generate_token(principal_for(admin))
        barrier = threading.Barrier(8)
        outcomes: list[str] = []
        lock = threading.Lock()

        def worker():
            with app.app_context():
                barrier.wait()
                try:
                    service.refresh_token(pair.refresh_token)
                    outcome = "ok"
                except SecurityTokenError as exc:
                    outcome = exc.reason.value
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count(SecurityTokenReason.NOT_FOUND.value) == 7

    def test_rejection_reason_is_logged_not_exposed(self, service, caplog):
        caplog.set_level(logging.WARNING, logger="football_network.services.auth.service")
        with pytest.raises(SecurityTokenError):
            service.refresh_token("never-issued")
        assert any(r.reason == "not_found" for r in caplog.records if hasattr(r, "reason"))


# ------------------------------ Revocation -------------------------------- #
class TestRevokeAll:
    def test_only_target_user_is_affected(self, service, store, users, admin):
        other = make_user_record(username="other")
        users.add(other)
        a1 = service.generate_token(principal_for(admin))
        a2 = service.generate_token(principal_for(admin))
        b1 = service.generate_token(principal_for(other))

        assert service.revoke_all_user_tokens(admin.id) == 2
        assert store.get(a1.refresh_token).revoked
        assert store.get(a2.refresh_token).revoked
        assert not store.get(b1.refresh_token).revoked
        assert service.revoke_all_user_tokens(admin.id) == 0


# ---------------------------- Login / logout ------------------------------ #
class TestLogin:
    def test_success_by_username(self, service, users, admin, clock):
        out = service.login(LoginIn(username="admin", password="admin123"))

        assert out.user.id == admin.id
        assert users.logins[admin.id] == clock.now
        claims = service.validate_token(out.tokens.access_token)
        assert claims.principal.role is Role.ADMINISTRATOR

    def test_success_by_email(self, service, admin):
        out = service.login(LoginIn(username=admin.email, password="admin123"))
        assert out.user.id == admin.id

    @pytest.mark.parametrize(
        ("username", "password"),
        [("admin", "wrong"), ("nobody", "admin123")],
    )
    def test_bad_credentials(self, service, users, username, password):
        with pytest.raises(InvalidCredentialsError) as exc:
            service.login(LoginIn(username=username, password=password))
        assert str(exc.value) == "Invalid username or password"
        assert users.logins == {}

    def test_inactive_user_cannot_log_in(self, service, users):
        users.add(make_user_record(username="benched", password="pass1234", is_active=False))
        with pytest.raises(InvalidCredentialsError):
            service.login(LoginIn(username="benched", password="pass1234"))

    def test_failures_are_audited(self, service, caplog):
        caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)
        with pytest.raises(InvalidCredentialsError):
            service.login(LoginIn(username="admin", password="wrong"))

        audit = [r for r in caplog.records if getattr(r, "audit", False)]
        assert audit[-1].event == "auth.login.failed"
        assert audit[-1].reason == "bad_password"


class TestLogout:
    def test_revokes_own_token(self, service, store, admin):
        pair = service.generate_token(principal_for(admin))
        assert service.logout(LogoutIn(refresh_token=pair.refresh_token), user_id=admin.id)
        assert store.get(pair.refresh_token).revoked

    def test_cannot_revoke_someone_elses_token(self, service, store, users, admin):
        other = make_user_record(username="other2")
        users.add(other)
        theirs = service.generate_token(principal_for(other))

        assert service.logout(LogoutIn(refresh_token=theirs.refresh_token), user_id=admin.id) is False
        assert not store.get(theirs.refresh_token).revoked

    def test_all_sessions(self, service, store, admin):
        a = service.generate_token(principal_for(admin))
        b = service.generate_token(principal_for(admin))

        assert service.logout(LogoutIn(refresh_token="", all_sessions=True), user_id=admin.id)
        assert store.get(a.refresh_token).revoked
        assert store.get(b.refresh_token).revoked
