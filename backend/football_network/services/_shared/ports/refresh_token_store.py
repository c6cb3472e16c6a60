from __future__ import annotations

import secrets
import threading
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from football_network.services._shared.locks import KeyedLocks

#: Bytes of randomness per refresh token (512 bits).
REFRESH_TOKEN_BYTES = 64


def new_refresh_token() -> str:
    """Return a fresh URL-safe refresh token with 512 bits of entropy."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Server-side state of one refresh token.

    :ivar user_id: Owning user id.
    :ivar created_at: Issue time (aware UTC).
    :ivar expires_at: Absolute expiry (aware UTC).
    :ivar revoked: Terminal once ``True``.
    """

    user_id: int
    created_at: datetime
    expires_at: datetime
    revoked: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def as_revoked(self) -> RefreshTokenRecord:
        return replace(self, revoked=True)


class RefreshTokenStore(Protocol):
    """
    Keyed store mapping opaque refresh tokens to :class:`RefreshTokenRecord`.

    Every operation is scoped to a single token (or a single user for
    :meth:`revoke_all_for_user`) and MUST be safe under concurrent use.
    """

    def new_token(self) -> str:
        """Generate a new random refresh token string."""
        return new_refresh_token()

    def add(self, token: str, record: RefreshTokenRecord) -> None:
        """Insert ``record`` under ``token``."""

    def get(self, token: str) -> RefreshTokenRecord | None:
        """Return the current record, if any."""

    def compare_and_remove(self, token: str, expected: RefreshTokenRecord) -> bool:
        """
        Atomically remove ``token`` iff its record still equals ``expected``.

        :returns: ``True`` when this caller removed it; ``False`` when the
            token is gone, was revoked or was replaced concurrently.
        """

    def remove(self, token: str) -> bool:
        """Delete ``token`` unconditionally. :returns: True if it existed."""

    def revoke(self, token: str) -> bool:
        """Flag ``token`` revoked (idempotent). :returns: True if it existed."""

    def revoke_all_for_user(self, user_id: int) -> int:
        """
        Revoke every non-revoked token of ``user_id``.

        :returns: Number of records flipped by this call.
        """

    def list_for_user(self, user_id: int) -> Iterable[RefreshTokenRecord]:
        """Records currently stored for ``user_id``."""

    def purge_expired(self, now: datetime) -> int:
        """Drop expired records. :returns: Number removed."""


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    Process-local refresh-token store with striped per-key locking.

    Every ``purge_every`` inserts the store drops expired records (revoked
    or not), so abandoned tokens do not accumulate.

    .. note::
       Tokens are lost on restart and not shared between workers; use the
       Redis adapter when running more than one process.
    """

    def __init__(self, *, stripes: int = 64, purge_every: int = 256) -> None:
        self._records: dict[str, RefreshTokenRecord] = {}
        self._by_user: dict[int, set[str]] = {}
        self._token_locks = KeyedLocks(stripes)
        self._user_locks = KeyedLocks(stripes)
        self.purge_every = max(1, purge_every)
        self._since_purge = 0
        self._purge_lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _index(self, user_id: int, token: str) -> None:
        with self._user_locks.for_key(str(user_id)):
            self._by_user.setdefault(user_id, set()).add(token)

    def _unindex(self, user_id: int, token: str) -> None:
        with self._user_locks.for_key(str(user_id)):
            tokens = self._by_user.get(user_id)
            if tokens is not None:
                tokens.discard(token)
                if not tokens:
                    del self._by_user[user_id]

    def _user_tokens(self, user_id: int) -> list[str]:
        with self._user_locks.for_key(str(user_id)):
            return list(self._by_user.get(user_id, ()))

    def _purge_due(self) -> bool:
        with self._purge_lock:
            self._since_purge += 1
            if self._since_purge < self.purge_every:
                return False
            self._since_purge = 0
            return True

    # -------------------------- API ----------------------------

    def add(self, token: str, record: RefreshTokenRecord) -> None:
        with self._token_locks.for_key(token):
            self._records[token] = record
        self._index(record.user_id, token)
        if self._purge_due():
            self.purge_expired(record.created_at)

    def get(self, token: str) -> RefreshTokenRecord | None:
        return self._records.get(token)

    def compare_and_remove(self, token: str, expected: RefreshTokenRecord) -> bool:
        with self._token_locks.for_key(token):
            current = self._records.get(token)
            if current is None or current.revoked or current != expected:
                return False
            del self._records[token]
        self._unindex(expected.user_id, token)
        return True

    def remove(self, token: str) -> bool:
        with self._token_locks.for_key(token):
            record = self._records.pop(token, None)
        if record is None:
            return False
        self._unindex(record.user_id, token)
        return True

    def revoke(self, token: str) -> bool:
        with self._token_locks.for_key(token):
            record = self._records.get(token)
            if record is None:
                return False
            if not record.revoked:
                self._records[token] = record.as_revoked()
            return True

    def revoke_all_for_user(self, user_id: int) -> int:
        flipped = 0
        for token in self._user_tokens(user_id):
            with self._token_locks.for_key(token):
                record = self._records.get(token)
                if record is not None and not record.revoked:
                    self._records[token] = record.as_revoked()
                    flipped += 1
        return flipped

    def list_for_user(self, user_id: int) -> list[RefreshTokenRecord]:
        return [r for t in self._user_tokens(user_id) if (r := self._records.get(t)) is not None]

    def purge_expired(self, now: datetime) -> int:
        removed = 0
        for token, record in list(self._records.items()):
            if record.is_expired(now) and self._remove_if_unchanged(token, record):
                removed += 1
        return removed

    def _remove_if_unchanged(self, token: str, expected: RefreshTokenRecord) -> bool:
        with self._token_locks.for_key(token):
            if self._records.get(token) != expected:
                return False
            del self._records[token]
        self._unindex(expected.user_id, token)
        return True

    def __len__(self) -> int:
        return len(self._records)
