"""Striped per-key locking for shared in-process maps."""

from __future__ import annotations

import threading
import zlib
from contextlib import AbstractContextManager


class KeyedLocks:
    """
    Fixed pool of locks selected by key hash.

    Operations on the same key always serialize; operations on different
    keys contend only when they land on the same stripe.

    :param stripes: Number of locks in the pool.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = tuple(threading.Lock() for _ in range(stripes))

    def for_key(self, key: str) -> AbstractContextManager[bool]:
        """Return the lock guarding ``key``."""
        # crc32 is stable across processes, unlike the salted builtin hash().
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]

    def __len__(self) -> int:
        return len(self._locks)
