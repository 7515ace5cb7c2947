from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from config.defaults import DEFAULT_CHAT_KEEP_USERS
from config.defaults import DEFAULT_CHAT_MAX_ENTRIES
from config.defaults import DEFAULT_CHAT_MAX_USERS

ROLES = ("user", "assistant")
CHAT_COOLDOWN_KIND = "chat"


@dataclass(slots=True)
class ConversationEntry:
    role: str
    content: str

    def as_message(self) -> dict:
        return {"role": self.role, "content": self.content}


def estimate_tokens(text: str | None) -> int:
    return math.ceil(len(text or "") / 4)


class ConversationMemory:
    """Bounded per-user ledgers plus the ephemeral game sessions tied to them.

    Ledgers are kept in first-insertion order; eviction keeps the most recently
    inserted users. Nothing here survives a restart.
    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_CHAT_MAX_ENTRIES,
        max_users: int = DEFAULT_CHAT_MAX_USERS,
        keep_users: int = DEFAULT_CHAT_KEEP_USERS,
        rate_limiter=None,
    ):
        self.max_entries = max(1, int(max_entries or DEFAULT_CHAT_MAX_ENTRIES))
        self.max_users = max(1, int(max_users or DEFAULT_CHAT_MAX_USERS))
        self.keep_users = max(1, min(int(keep_users or DEFAULT_CHAT_KEEP_USERS), self.max_users))
        self.rate_limiter = rate_limiter
        self._ledgers: dict[int, list[ConversationEntry]] = {}
        self._sessions: dict[int, dict[str, Any]] = {}

    @property
    def user_count(self) -> int:
        return len(self._ledgers)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def history(self, user_id: int) -> list[ConversationEntry]:
        return list(self._ledgers.get(int(user_id), []))

    def append(self, user_id: int, entry: ConversationEntry) -> None:
        if entry.role not in ROLES:
            raise ValueError(f"Unknown conversation role: {entry.role}")
        ledger = self._ledgers.setdefault(int(user_id), [])
        ledger.append(entry)
        overflow = len(ledger) - self.max_entries
        if overflow > 0:
            del ledger[:overflow]

    def select_context(self, user_id: int, token_budget: int) -> list[ConversationEntry]:
        ledger = self._ledgers.get(int(user_id), [])
        picked: list[ConversationEntry] = []
        total = 0
        for entry in reversed(ledger):
            cost = estimate_tokens(entry.content)
            if total + cost >= token_budget:
                break
            picked.append(entry)
            total += cost
        picked.reverse()
        return picked

    def evict_if_needed(self) -> list[int]:
        if len(self._ledgers) <= self.max_users:
            return []
        user_ids = list(self._ledgers)
        evicted = user_ids[: len(user_ids) - self.keep_users]
        for uid in evicted:
            self._drop(uid)
        print(f"[Chat] evicted {len(evicted)} conversation ledgers; kept={len(self._ledgers)}")
        return evicted

    def clear(self, user_id: int) -> int:
        removed = len(self._ledgers.get(int(user_id), []))
        self._drop(int(user_id))
        return removed

    def _drop(self, user_id: int) -> None:
        self._ledgers.pop(user_id, None)
        self._sessions.pop(user_id, None)
        if self.rate_limiter is not None:
            self.rate_limiter.forget(user_id, kinds=(CHAT_COOLDOWN_KIND,))

    # game / session state

    def start_session(self, user_id: int, state: dict[str, Any]) -> dict[str, Any]:
        self._sessions[int(user_id)] = dict(state)
        return self._sessions[int(user_id)]

    def get_session(self, user_id: int) -> dict[str, Any] | None:
        return self._sessions.get(int(user_id))

    def end_session(self, user_id: int) -> bool:
        return self._sessions.pop(int(user_id), None) is not None
