# comments in English; reST docstrings
from __future__ import annotations

import hashlib
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]

from football_network.services._shared.ports import RefreshTokenRecord, RefreshTokenStore


def token_digest(token: str) -> str:
    """Return the hex SHA-256 of ``token``; raw tokens never reach Redis."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store.

    Layout
    ------
    - ``rt:{sha256(token)}``: hash with ``user_id``, ``created_at``,
      ``expires_at`` (ISO-8601) and ``revoked`` (``"0"``/``"1"``); its TTL
      matches the record expiry.
    - ``rt:u:{user_id}``: set of token digests owned by the user.

    :param r: A Redis client (already connected).
    :param clock: Source of "now" used to compute key TTLs.
    """

    r: redis.Redis
    clock: Callable[[], datetime] = field(default=_utc_now)

    # -------------------- helpers --------------------

    @staticmethod
    def _k(digest: str) -> str:
        return f"rt:{digest}"

    @staticmethod
    def _ku(user_id: int) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _encode(record: RefreshTokenRecord) -> dict[str, str]:
        return {
            "user_id": str(record.user_id),
            "created_at": record.created_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
            "revoked": "1" if record.revoked else "0",
        }

    @staticmethod
    def _decode(h: dict[bytes, bytes]) -> RefreshTokenRecord | None:
        created_at, expires_at = h.get(b"created_at"), h.get(b"expires_at")
        if not created_at or not expires_at:
            # Missing or partial hash (e.g. a field written after expiry).
            return None
        user_id = h.get(b"user_id")
        return RefreshTokenRecord(
            user_id=int(user_id) if user_id is not None else 0,
            created_at=datetime.fromisoformat(created_at.decode()),
            expires_at=datetime.fromisoformat(expires_at.decode()),
            revoked=h.get(b"revoked") == b"1",
        )

    def _ttl(self, record: RefreshTokenRecord) -> int:
        return max(1, int((record.expires_at - self.clock()).total_seconds()))

    def _set_revoked(self, key: str) -> bool | None:
        """
        Flag the hash at ``key`` revoked without recreating an expired key.

        :returns: ``True`` if flipped now, ``False`` if already revoked,
            ``None`` if the record is gone.
        """
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    state = p.hget(key, "revoked")
                    if state is None:
                        p.unwatch()
                        return None
                    if state == b"1":
                        p.unwatch()
                        return False
                    p.multi()
                    p.hset(key, "revoked", "1")
                    p.ttl(key)
                    _, ttl = p.execute()
            except redis.WatchError:
                continue
            if ttl is not None and ttl < 0:
                # Expired between read and write; drop the orphan.
                self.r.delete(key)
                return None
            return True

    @staticmethod
    def _members(raw: set[bytes]) -> list[str]:
        return sorted(m.decode() if isinstance(m, bytes | bytearray) else str(m) for m in raw)

    # -------------------- API ------------------------

    def add(self, token: str, record: RefreshTokenRecord) -> None:
        digest = token_digest(token)
        key = self._k(digest)
        pipe = self.r.pipeline(transaction=True)
        pipe.hset(key, mapping=self._encode(record))
        pipe.expire(key, self._ttl(record))
        pipe.sadd(self._ku(record.user_id), digest)
        pipe.execute()

    def get(self, token: str) -> RefreshTokenRecord | None:
        return self._decode(self.r.hgetall(self._k(token_digest(token))))

    def compare_and_remove(self, token: str, expected: RefreshTokenRecord) -> bool:
        """
        Atomically delete the record iff it still equals ``expected``.

        Uses WATCH/MULTI/EXEC; a concurrent writer aborts the transaction and
        the comparison is retried against the new state.
        """
        digest = token_digest(token)
        key = self._k(digest)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    current = self._decode(p.hgetall(key))
                    if current is None or current.revoked or current != expected:
                        p.unwatch()
                        return False
                    p.multi()
                    p.delete(key)
                    p.srem(self._ku(current.user_id), digest)
                    p.execute()
                    return True
            except redis.WatchError:
                continue

    def remove(self, token: str) -> bool:
        digest = token_digest(token)
        key = self._k(digest)
        user_id = self.r.hget(key, "user_id")
        if user_id is None:
            return False
        with self.r.pipeline(transaction=True) as p:
            p.delete(key)
            p.srem(self._ku(int(user_id)), digest)
            deleted, _ = p.execute()
        return bool(deleted)

    def revoke(self, token: str) -> bool:
        return self._set_revoked(self._k(token_digest(token))) is not None

    def revoke_all_for_user(self, user_id: int) -> int:
        key_u = self._ku(user_id)
        flipped = 0
        stale: list[str] = []
        for digest in self._members(self.r.smembers(key_u)):
            outcome = self._set_revoked(self._k(digest))
            if outcome is None:
                stale.append(digest)
            elif outcome:
                flipped += 1
        if stale:
            self.r.srem(key_u, *stale)
        return flipped

    def list_for_user(self, user_id: int) -> list[RefreshTokenRecord]:
        key_u = self._ku(user_id)
        records: list[RefreshTokenRecord] = []
        stale: list[str] = []
        for digest in self._members(self.r.smembers(key_u)):
            record = self._decode(self.r.hgetall(self._k(digest)))
            if record is None:
                # Underlying hash expired -> drop it from the user's index
                stale.append(digest)
            else:
                records.append(record)
        if stale:
            self.r.srem(key_u, *stale)
        return records

    def purge_expired(self, now: datetime) -> int:
        # Redis expires records through key TTLs; nothing to sweep.
        return 0
