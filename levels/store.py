from __future__ import annotations

import sqlite3
from datetime import datetime, timezone


def xp_for_next_level(level: int) -> int:
    lvl = max(0, int(level))
    return 5 * lvl * lvl + 50 * lvl + 100


def apply_xp(level: int, xp: int, gained: int) -> tuple[int, int, bool]:
    """Returns (level, xp_into_level, leveled_up) after adding ``gained``."""
    lvl = max(0, int(level))
    total = max(0, int(xp)) + max(0, int(gained))
    leveled = False
    while total >= xp_for_next_level(lvl):
        total -= xp_for_next_level(lvl)
        lvl += 1
        leveled = True
    return (lvl, total, leveled)


def get_user_level_sync(conn: sqlite3.Connection, guild_id: int, user_id: int) -> dict:
    row = conn.execute(
        "SELECT xp, level, message_count FROM user_levels WHERE guild_id = ? AND user_id = ? LIMIT 1",
        (int(guild_id), int(user_id)),
    ).fetchone()
    if not row:
        return {"guild_id": int(guild_id), "user_id": int(user_id), "xp": 0, "level": 0, "message_count": 0}
    return {
        "guild_id": int(guild_id),
        "user_id": int(user_id),
        "xp": int(row[0]),
        "level": int(row[1]),
        "message_count": int(row[2]),
    }


def add_xp_sync(conn: sqlite3.Connection, guild_id: int, user_id: int, gained: int) -> tuple[dict, bool]:
    current = get_user_level_sync(conn, guild_id, user_id)
    level, xp, leveled = apply_xp(current["level"], current["xp"], gained)
    conn.execute(
        """
        INSERT INTO user_levels (guild_id, user_id, xp, level, message_count, last_xp_at_utc)
        VALUES (?, ?, ?, ?, 1, ?)
        ON CONFLICT(guild_id, user_id) DO UPDATE SET
            xp=excluded.xp,
            level=excluded.level,
            message_count=user_levels.message_count + 1,
            last_xp_at_utc=excluded.last_xp_at_utc
        """,
        (int(guild_id), int(user_id), xp, level, datetime.now(timezone.utc).isoformat()),
    )
    conn.commit()
    current.update({"xp": xp, "level": level, "message_count": current["message_count"] + 1})
    return (current, leveled)


def user_rank_sync(conn: sqlite3.Connection, guild_id: int, user_id: int) -> int | None:
    me = conn.execute(
        "SELECT level, xp FROM user_levels WHERE guild_id = ? AND user_id = ?",
        (int(guild_id), int(user_id)),
    ).fetchone()
    if not me:
        return None
    ahead = conn.execute(
        """
        SELECT COUNT(*) FROM user_levels
        WHERE guild_id = ? AND (level > ? OR (level = ? AND xp > ?))
        """,
        (int(guild_id), me[0], me[0], me[1]),
    ).fetchone()[0]
    return int(ahead) + 1


def leaderboard_page_sync(conn: sqlite3.Connection, guild_id: int, page: int, page_size: int) -> tuple[list[dict], int]:
    total = conn.execute("SELECT COUNT(*) FROM user_levels WHERE guild_id = ?", (int(guild_id),)).fetchone()[0]
    rows = conn.execute(
        """
        SELECT user_id, level, xp
        FROM user_levels
        WHERE guild_id = ?
        ORDER BY level DESC, xp DESC, user_id ASC
        LIMIT ? OFFSET ?
        """,
        (int(guild_id), int(page_size), max(0, int(page)) * int(page_size)),
    ).fetchall()
    return ([{"user_id": r[0], "level": r[1], "xp": r[2]} for r in rows], int(total))


def set_level_role_sync(conn: sqlite3.Connection, guild_id: int, level: int, role_id: int) -> None:
    conn.execute(
        """
        INSERT INTO level_roles (guild_id, level, role_id) VALUES (?, ?, ?)
        ON CONFLICT(guild_id, level) DO UPDATE SET role_id=excluded.role_id
        """,
        (int(guild_id), int(level), int(role_id)),
    )
    conn.commit()


def get_level_role_sync(conn: sqlite3.Connection, guild_id: int, level: int) -> int | None:
    row = conn.execute(
        "SELECT role_id FROM level_roles WHERE guild_id = ? AND level = ? LIMIT 1",
        (int(guild_id), int(level)),
    ).fetchone()
    return int(row[0]) if row else None
