from __future__ import annotations

import sqlite3


def add_self_role_sync(
    conn: sqlite3.Connection,
    guild_id: int,
    role_id: int,
    *,
    emoji: str | None = None,
    description: str | None = None,
) -> None:
    conn.execute(
        """
        INSERT INTO self_roles (guild_id, role_id, emoji, description)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(guild_id, role_id) DO UPDATE SET
            emoji=excluded.emoji,
            description=excluded.description
        """,
        (int(guild_id), int(role_id), emoji, description),
    )
    conn.commit()


def remove_self_role_sync(conn: sqlite3.Connection, guild_id: int, role_id: int) -> bool:
    cur = conn.execute("DELETE FROM self_roles WHERE guild_id = ? AND role_id = ?", (int(guild_id), int(role_id)))
    conn.commit()
    return cur.rowcount > 0


def list_self_roles_sync(conn: sqlite3.Connection, guild_id: int) -> list[dict]:
    rows = conn.execute(
        "SELECT role_id, emoji, description FROM self_roles WHERE guild_id = ? ORDER BY created_at_utc, role_id",
        (int(guild_id),),
    ).fetchall()
    return [{"role_id": int(r[0]), "emoji": r[1], "description": r[2]} for r in rows]
