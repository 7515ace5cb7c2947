from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator

from runtime.errors import log_debug


class LeaseManager:
    """Process-wide admission table keyed by event identity.

    A key is live from ``try_acquire`` until ``release`` or until it is older
    than the TTL. Stale leases are reaped by ``sweep`` and are also replaced on
    the next acquire for the same key.
    """

    def __init__(self, *, ttl_seconds: float = 300.0, clock: Callable[[], float] | None = None):
        self.ttl_seconds = max(1.0, float(ttl_seconds or 300.0))
        self._clock = clock or time.monotonic
        self._leases: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._leases)

    def __contains__(self, key: object) -> bool:
        return key in self._leases

    def _is_live(self, acquired_at: float, now: float) -> bool:
        return (now - acquired_at) < self.ttl_seconds

    def try_acquire(self, key: str) -> bool:
        now = self._clock()
        acquired_at = self._leases.get(key)
        if acquired_at is not None and self._is_live(acquired_at, now):
            return False
        self._leases[key] = now
        return True

    def release(self, key: str) -> None:
        self._leases.pop(key, None)

    def sweep(self) -> int:
        try:
            now = self._clock()
            stale = [k for k, at in self._leases.items() if not self._is_live(at, now)]
            for key in stale:
                self._leases.pop(key, None)
            return len(stale)
        except Exception as e:
            print(f"[Lease] sweep failed: {e}")
            return 0

    @contextmanager
    def hold(self, key: str) -> Iterator[bool]:
        admitted = self.try_acquire(key)
        if not admitted:
            log_debug("Lease", f"duplicate ignored key={key}")
        try:
            yield admitted
        finally:
            if admitted:
                self.release(key)


def interaction_key(user_id: int, interaction_id: int) -> str:
    return f"interaction:{int(user_id)}:{int(interaction_id)}"


def message_key(message_id: int, author_id: int) -> str:
    return f"message:{int(message_id)}:{int(author_id)}"


def xp_key(guild_id: int, author_id: int, message_id: int) -> str:
    return f"xp:{int(guild_id)}:{int(author_id)}:{int(message_id)}"
