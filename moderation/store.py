from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_warning_sync(
    conn: sqlite3.Connection,
    *,
    guild_id: int,
    user_id: int,
    moderator_id: int,
    reason: str,
    source: str = "manual",
    ttl_days: int | None = None,
    now: datetime | None = None,
) -> int:
    created = now or _utc_now()
    expires = (created + timedelta(days=int(ttl_days))).isoformat() if ttl_days else None
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO warnings (guild_id, user_id, moderator_id, reason, source, created_at_utc, expires_at_utc)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (int(guild_id), int(user_id), int(moderator_id), reason, source, created.isoformat(), expires),
    )
    warning_id = int(cur.lastrowid)
    cur.execute(
        """
        INSERT INTO mod_logs (guild_id, action, target_id, moderator_id, reason, created_at_utc)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (int(guild_id), f"warn:{source}", int(user_id), int(moderator_id), reason, created.isoformat()),
    )
    conn.commit()
    return warning_id


def list_active_warnings_sync(
    conn: sqlite3.Connection,
    guild_id: int,
    user_id: int,
    *,
    now: datetime | None = None,
    limit: int = 25,
) -> list[dict]:
    now_iso = (now or _utc_now()).isoformat()
    rows = conn.execute(
        """
        SELECT id, moderator_id, reason, source, created_at_utc, expires_at_utc
        FROM warnings
        WHERE guild_id = ? AND user_id = ?
          AND (expires_at_utc IS NULL OR expires_at_utc > ?)
        ORDER BY id DESC
        LIMIT ?
        """,
        (int(guild_id), int(user_id), now_iso, max(1, int(limit))),
    ).fetchall()
    return [
        {
            "id": r[0],
            "moderator_id": r[1],
            "reason": r[2],
            "source": r[3],
            "created_at_utc": r[4],
            "expires_at_utc": r[5],
        }
        for r in rows
    ]


def clear_warnings_sync(conn: sqlite3.Connection, guild_id: int, user_id: int, moderator_id: int) -> int:
    cur = conn.cursor()
    cur.execute("DELETE FROM warnings WHERE guild_id = ? AND user_id = ?", (int(guild_id), int(user_id)))
    removed = cur.rowcount
    cur.execute(
        """
        INSERT INTO mod_logs (guild_id, action, target_id, moderator_id, reason, created_at_utc)
        VALUES (?, 'clear_warnings', ?, ?, ?, ?)
        """,
        (int(guild_id), int(user_id), int(moderator_id), f"removed={removed}", _utc_now().isoformat()),
    )
    conn.commit()
    return removed


def prune_moderation_sync(
    conn: sqlite3.Connection,
    *,
    mod_log_retention_days: int,
    now: datetime | None = None,
) -> tuple[int, int]:
    current = now or _utc_now()
    cur = conn.cursor()
    cur.execute(
        "DELETE FROM warnings WHERE expires_at_utc IS NOT NULL AND expires_at_utc <= ?",
        (current.isoformat(),),
    )
    expired_warnings = cur.rowcount
    cutoff = (current - timedelta(days=int(mod_log_retention_days))).isoformat()
    cur.execute("DELETE FROM mod_logs WHERE created_at_utc < ?", (cutoff,))
    old_logs = cur.rowcount
    conn.commit()
    return (expired_warnings, old_logs)
