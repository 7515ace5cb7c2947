from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

_GIVEAWAY_COLUMNS = (
    "id",
    "guild_id",
    "channel_id",
    "message_id",
    "host_id",
    "title",
    "description",
    "winner_count",
    "ends_at_utc",
    "ended",
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _giveaway_row(row) -> dict | None:
    if not row:
        return None
    out = dict(zip(_GIVEAWAY_COLUMNS, row))
    out["ended"] = bool(out["ended"])
    return out


def create_giveaway_sync(
    conn: sqlite3.Connection,
    *,
    guild_id: int,
    channel_id: int,
    host_id: int,
    title: str,
    description: str | None,
    winner_count: int,
    ends_at: datetime,
) -> int:
    cur = conn.execute(
        """
        INSERT INTO giveaways (guild_id, channel_id, host_id, title, description, winner_count, ends_at_utc)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            int(guild_id),
            int(channel_id),
            int(host_id),
            title,
            description,
            max(1, int(winner_count)),
            ends_at.astimezone(timezone.utc).isoformat(),
        ),
    )
    conn.commit()
    return int(cur.lastrowid)


def attach_message_sync(conn: sqlite3.Connection, giveaway_id: int, message_id: int) -> None:
    conn.execute("UPDATE giveaways SET message_id = ? WHERE id = ?", (int(message_id), int(giveaway_id)))
    conn.commit()


def delete_giveaway_sync(conn: sqlite3.Connection, giveaway_id: int) -> None:
    conn.execute("DELETE FROM giveaway_entries WHERE giveaway_id = ?", (int(giveaway_id),))
    conn.execute("DELETE FROM giveaways WHERE id = ?", (int(giveaway_id),))
    conn.commit()


def get_giveaway_by_message_sync(conn: sqlite3.Connection, message_id: int) -> dict | None:
    row = conn.execute(
        f"SELECT {', '.join(_GIVEAWAY_COLUMNS)} FROM giveaways WHERE message_id = ? LIMIT 1",
        (int(message_id),),
    ).fetchone()
    return _giveaway_row(row)


def count_entries_sync(conn: sqlite3.Connection, giveaway_id: int) -> int:
    row = conn.execute("SELECT COUNT(*) FROM giveaway_entries WHERE giveaway_id = ?", (int(giveaway_id),)).fetchone()
    return int(row[0] or 0)


def list_entries_sync(conn: sqlite3.Connection, giveaway_id: int) -> list[int]:
    rows = conn.execute(
        "SELECT user_id FROM giveaway_entries WHERE giveaway_id = ? ORDER BY created_at_utc, user_id",
        (int(giveaway_id),),
    ).fetchall()
    return [int(r[0]) for r in rows]


def toggle_entry_sync(conn: sqlite3.Connection, giveaway_id: int, user_id: int) -> tuple[bool, int]:
    """Enters the user, or withdraws them if already entered.

    Returns ``(entered, entry_count)`` where ``entered`` is the state after the toggle.
    """
    cur = conn.cursor()
    cur.execute(
        "DELETE FROM giveaway_entries WHERE giveaway_id = ? AND user_id = ?",
        (int(giveaway_id), int(user_id)),
    )
    entered = cur.rowcount == 0
    if entered:
        cur.execute(
            "INSERT INTO giveaway_entries (giveaway_id, user_id) VALUES (?, ?)",
            (int(giveaway_id), int(user_id)),
        )
    conn.commit()
    return entered, count_entries_sync(conn, giveaway_id)


def list_due_giveaways_sync(conn: sqlite3.Connection, *, now: datetime | None = None, limit: int = 25) -> list[dict]:
    rows = conn.execute(
        f"""
        SELECT {", ".join(_GIVEAWAY_COLUMNS)}
        FROM giveaways
        WHERE ended = 0 AND message_id IS NOT NULL AND ends_at_utc <= ?
        ORDER BY ends_at_utc
        LIMIT ?
        """,
        ((now or _utc_now()).astimezone(timezone.utc).isoformat(), max(1, int(limit))),
    ).fetchall()
    return [_giveaway_row(r) for r in rows]


def end_giveaway_sync(conn: sqlite3.Connection, giveaway_id: int) -> bool:
    cur = conn.execute("UPDATE giveaways SET ended = 1 WHERE id = ? AND ended = 0", (int(giveaway_id),))
    conn.commit()
    return cur.rowcount > 0
