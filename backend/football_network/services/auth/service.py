# services/auth/service.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import NoReturn

from football_network.services._shared.base import BaseService, Clock, ServiceContext
from football_network.services._shared.dto import Principal, TokenFailure, TokenValidationResult
from football_network.services._shared.errors import (
    InvalidCredentialsError,
    SecurityTokenError,
    SecurityTokenReason,
)
from football_network.services._shared.ports import (
    RefreshTokenRecord,
    RefreshTokenStore,
    TokenCodec,
    UserLookup,
    UserRecord,
)
from football_network.services.audit import AuditEvent, AuditLogger
from football_network.services.auth.dto import (
    AccessToken,
    AuthTokenConfig,
    LoginIn,
    LoginOut,
    LogoutIn,
)
from football_network.services.security.passwords import PasswordHasher, default_hasher

log = logging.getLogger(__name__)


def principal_for(user: UserRecord) -> Principal:
    """Build the token identity for ``user`` (one role claim per role)."""
    return Principal(
        user_id=user.id,
        email=user.email,
        username=user.username,
        roles=(user.role.value,),
    )


class AuthenticationService(BaseService):
    """
    Authentication lifecycle: login, token issuance/validation, refresh
    rotation and revocation.

    Access tokens are stateless (signature + expiry). Refresh tokens are
    opaque strings whose state lives in a :class:`RefreshTokenStore`:

    * a revoked record is terminal;
    * an expired record is purged when presented;
    * a successful refresh consumes the presented token (compare-and-remove)
      and issues a brand-new pair, so a token string is never accepted twice.

    Validation failures are returned as :class:`TokenValidationResult`;
    refresh failures raise :class:`SecurityTokenError` whose reason is only
    logged.
    """

    def __init__(
        self,
        *,
        token_codec: TokenCodec,
        refresh_store: RefreshTokenStore,
        user_lookup: UserLookup,
        hasher: PasswordHasher | None = None,
        token_cfg: AuthTokenConfig | None = None,
        audit: AuditLogger | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the service with its collaborators.

        :param token_codec: Signs and validates access tokens.
        :param refresh_store: Stateful refresh-token store (thread-safe).
        :param user_lookup: Read access to users.
        :param hasher: Password hasher; defaults to the app-configured one.
        :param token_cfg: Access/refresh lifetimes.
        :param audit: Audit trail sink.
        :param ctx: Request context (client ip, user agent).
        :param clock: Injected "now" (aware UTC).
        """
        super().__init__(ctx=ctx, clock=clock)
        self.tokens = token_codec
        self.refresh_store = refresh_store
        self.users = user_lookup
        self.hasher = hasher or default_hasher()
        self.cfg = token_cfg or AuthTokenConfig(
            access_expires=timedelta(minutes=60),
            refresh_expires=timedelta(days=7),
        )
        self.audit = audit or AuditLogger()

    # ------------------------------------------------------------------ #
    # Issuance / validation
    # ------------------------------------------------------------------ #

    def generate_token(self, principal: Principal) -> AccessToken:
        """
        Sign an access token for ``principal`` and register a new refresh token.

        :param principal: Identity to embed.
        :returns: Token pair with absolute access expiry.
        """
        now = self.now_utc()
        access = self.tokens.encode(principal, expires_delta=self.cfg.access_expires)

        refresh = self.refresh_store.new_token()
        self.refresh_store.add(
            refresh,
            RefreshTokenRecord(
                user_id=principal.user_id,
                created_at=now,
                expires_at=now + self.cfg.refresh_expires,
            ),
        )
        return AccessToken(
            access_token=access,
            expires_at=now + self.cfg.access_expires,
            refresh_token=refresh,
            expires_in=int(self.cfg.access_expires.total_seconds()),
        )

    def validate_token(self, token: str) -> TokenValidationResult:
        """
        Validate signature, issuer, audience and expiry of ``token``.

        Never raises; every failure is a typed result.
        """
        if not isinstance(token, str) or not token.strip():
            return TokenValidationResult.fail(TokenFailure.MALFORMED)
        try:
            result = self.tokens.decode(token)
        except Exception:
            log.exception("token.validate.unexpected_error")
            return TokenValidationResult.fail(TokenFailure.MALFORMED)
        if not result.is_valid and result.failure is not None:
            log.info("token.validate.failed reason=%s", result.failure.value)
        return result

    # ------------------------------------------------------------------ #
    # Refresh rotation
    # ------------------------------------------------------------------ #

    def refresh_token(self, refresh_token: str) -> AccessToken:
        """
        Exchange ``refresh_token`` for a new pair (rotation).

        :raises SecurityTokenError: When the token is unknown, revoked,
            expired, already consumed, or its owner is missing/inactive.
        """
        record = self.refresh_store.get(refresh_token) if refresh_token else None
        if record is None:
            self._reject(SecurityTokenReason.NOT_FOUND)
        now = self.now_utc()
        if record.revoked:
            if record.is_expired(now):
                self.refresh_store.remove(refresh_token)
            self._reject(SecurityTokenReason.REVOKED, record.user_id)
        if record.is_expired(now):
            self.refresh_store.remove(refresh_token)
            self._reject(SecurityTokenReason.EXPIRED, record.user_id)

        user = self.users.get_by_id(record.user_id)
        if user is None or not user.is_active:
            # No second chance for the same token once its owner is gone.
            self.refresh_store.revoke(refresh_token)
            self._reject(SecurityTokenReason.USER_INACTIVE, record.user_id)

        if not self.refresh_store.compare_and_remove(refresh_token, record):
            # Consumed or revoked concurrently.
            self._reject(SecurityTokenReason.NOT_FOUND, record.user_id)

        pair = self.generate_token(principal_for(user))
        self.audit.record(AuditEvent.TOKEN_REFRESHED, user_id=user.id, ctx=self.ctx)
        return pair

    def _reject(self, reason: SecurityTokenReason, user_id: int | None = None) -> NoReturn:
        log.warning(
            "refresh.rejected reason=%s user_id=%s",
            reason.value,
            user_id,
            extra={"reason": reason.value, "user_id": user_id},
        )
        self.audit.record(
            AuditEvent.REFRESH_REJECTED,
            user_id=user_id,
            reason=reason.value,
            ctx=self.ctx,
            level=logging.WARNING,
        )
        raise SecurityTokenError(reason)

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke_refresh_token(self, refresh_token: str) -> bool:
        """Flag ``refresh_token`` revoked (idempotent). :returns: True if found."""
        if not refresh_token:
            return False
        return self.refresh_store.revoke(refresh_token)

    def revoke_all_user_tokens(self, user_id: int) -> int:
        """
        Revoke every live refresh token of ``user_id``.

        :returns: Number of records flipped by this call.
        """
        count = self.refresh_store.revoke_all_for_user(user_id)
        self.audit.record(AuditEvent.SESSIONS_REVOKED, user_id=user_id, ctx=self.ctx, count=count)
        return count

    # ------------------------------------------------------------------ #
    # Login / logout
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :param dto: Username (or email) and password.
        :returns: Token pair plus the authenticated user.
        :raises InvalidCredentialsError: Unknown user, wrong password or
            inactive account (indistinguishable to the client).
        """
        user = self.users.get_by_login(dto.username)
        if user is None:
            self._login_failed(None, "unknown_user")
        if not self.hasher.verify(dto.password, user.password_hash):
            self._login_failed(user.id, "bad_password")
        if not user.is_active:
            self._login_failed(user.id, "inactive")

        self.users.record_login(user.id, self.now_utc())
        pair = self.generate_token(principal_for(user))
        self.audit.record(AuditEvent.LOGIN_SUCCEEDED, user_id=user.id, ctx=self.ctx)
        return LoginOut(tokens=pair, user=user)

    def _login_failed(self, user_id: int | None, reason: str) -> NoReturn:
        self.audit.record(
            AuditEvent.LOGIN_FAILED,
            user_id=user_id,
            reason=reason,
            ctx=self.ctx,
            level=logging.WARNING,
        )
        raise InvalidCredentialsError()

    def logout(self, dto: LogoutIn, *, user_id: int) -> bool:
        """
        Close the caller's session.

        Only a refresh token owned by ``user_id`` is revoked; with
        ``all_sessions`` every session of the caller is revoked too.

        :returns: ``True`` when at least one refresh token was revoked.
        """
        revoked = False
        record = self.refresh_store.get(dto.refresh_token) if dto.refresh_token else None
        if record is not None and record.user_id == user_id:
            revoked = self.refresh_store.revoke(dto.refresh_token)
        if dto.all_sessions:
            revoked = self.refresh_store.revoke_all_for_user(user_id) > 0 or revoked
        self.audit.record(
            AuditEvent.LOGOUT,
            user_id=user_id,
            ctx=self.ctx,
            all_sessions=dto.all_sessions,
            revoked=revoked,
        )
        return revoked
