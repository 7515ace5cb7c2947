from __future__ import annotations

import time
from typing import Callable, Iterable


class RateLimiter:
    def __init__(self, *, clock: Callable[[], float] | None = None):
        self._clock = clock or time.monotonic
        self._last_seen: dict[tuple[int, str], float] = {}

    def __len__(self) -> int:
        return len(self._last_seen)

    def allow(self, user_id: int, kind: str, window_seconds: float) -> bool:
        now = self._clock()
        key = (int(user_id), str(kind))
        last = self._last_seen.get(key)
        if last is not None and (now - last) < float(window_seconds):
            return False
        self._last_seen[key] = now
        return True

    def remaining(self, user_id: int, kind: str, window_seconds: float) -> float:
        last = self._last_seen.get((int(user_id), str(kind)))
        if last is None:
            return 0.0
        return max(0.0, float(window_seconds) - (self._clock() - last))

    def forget(self, user_id: int, kinds: Iterable[str] | None = None) -> int:
        uid = int(user_id)
        wanted = None if kinds is None else {str(k) for k in kinds}
        keys = [k for k in self._last_seen if k[0] == uid and (wanted is None or k[1] in wanted)]
        for key in keys:
            self._last_seen.pop(key, None)
        return len(keys)

    def sweep(self, max_age_seconds: float) -> int:
        now = self._clock()
        stale = [k for k, at in self._last_seen.items() if (now - at) >= float(max_age_seconds)]
        for key in stale:
            self._last_seen.pop(key, None)
        return len(stale)
