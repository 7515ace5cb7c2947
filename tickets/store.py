from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone

_TICKET_COLUMNS = (
    "id",
    "guild_id",
    "channel_id",
    "user_id",
    "ticket_number",
    "status",
    "claimed_by",
    "closed_by",
    "created_at_utc",
    "closed_at_utc",
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ticket_row(row) -> dict | None:
    if not row:
        return None
    return dict(zip(_TICKET_COLUMNS, row))


def _parse_role_ids(raw: str | None) -> list[int]:
    try:
        values = json.loads(raw or "[]")
    except (TypeError, ValueError):
        return []
    out: list[int] = []
    for value in values if isinstance(values, list) else []:
        try:
            out.append(int(value))
        except (TypeError, ValueError):
            continue
    return out


def get_ticket_settings_sync(conn: sqlite3.Connection, guild_id: int) -> dict | None:
    row = conn.execute(
        """
        SELECT guild_id, category_id, log_channel_id, staff_role_ids_json,
               panel_title, panel_description, next_ticket_number
        FROM ticket_settings
        WHERE guild_id = ?
        LIMIT 1
        """,
        (int(guild_id),),
    ).fetchone()
    if not row:
        return None
    return {
        "guild_id": row[0],
        "category_id": row[1],
        "log_channel_id": row[2],
        "staff_role_ids": _parse_role_ids(row[3]),
        "panel_title": row[4],
        "panel_description": row[5],
        "next_ticket_number": int(row[6] or 1),
    }


def upsert_ticket_settings_sync(
    conn: sqlite3.Connection,
    guild_id: int,
    *,
    category_id: int,
    log_channel_id: int | None,
    panel_title: str | None,
    panel_description: str | None,
) -> None:
    conn.execute(
        """
        INSERT INTO ticket_settings (guild_id, category_id, log_channel_id, panel_title, panel_description)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(guild_id) DO UPDATE SET
            category_id=excluded.category_id,
            log_channel_id=excluded.log_channel_id,
            panel_title=excluded.panel_title,
            panel_description=excluded.panel_description
        """,
        (int(guild_id), int(category_id), log_channel_id, panel_title, panel_description),
    )
    conn.commit()


def set_staff_roles_sync(conn: sqlite3.Connection, guild_id: int, role_ids: list[int]) -> bool:
    cur = conn.execute(
        "UPDATE ticket_settings SET staff_role_ids_json = ? WHERE guild_id = ?",
        (json.dumps(sorted({int(r) for r in role_ids})), int(guild_id)),
    )
    conn.commit()
    return cur.rowcount > 0


def allocate_ticket_number_sync(conn: sqlite3.Connection, guild_id: int) -> int:
    cur = conn.cursor()
    cur.execute("SELECT next_ticket_number FROM ticket_settings WHERE guild_id = ?", (int(guild_id),))
    row = cur.fetchone()
    if not row:
        raise RuntimeError(f"Ticket settings missing for guild {guild_id}")
    number = int(row[0] or 1)
    cur.execute(
        "UPDATE ticket_settings SET next_ticket_number = ? WHERE guild_id = ?",
        (number + 1, int(guild_id)),
    )
    conn.commit()
    return number


def create_ticket_sync(
    conn: sqlite3.Connection,
    *,
    guild_id: int,
    channel_id: int,
    user_id: int,
    ticket_number: int,
) -> int:
    cur = conn.execute(
        """
        INSERT INTO tickets (guild_id, channel_id, user_id, ticket_number, status, created_at_utc)
        VALUES (?, ?, ?, ?, 'open', ?)
        """,
        (int(guild_id), int(channel_id), int(user_id), int(ticket_number), _utc_now_iso()),
    )
    conn.commit()
    return int(cur.lastrowid)


def get_open_ticket_for_user_sync(conn: sqlite3.Connection, guild_id: int, user_id: int) -> dict | None:
    row = conn.execute(
        f"""
        SELECT {", ".join(_TICKET_COLUMNS)}
        FROM tickets
        WHERE guild_id = ? AND user_id = ? AND status = 'open'
        ORDER BY id DESC
        LIMIT 1
        """,
        (int(guild_id), int(user_id)),
    ).fetchone()
    return _ticket_row(row)


def get_ticket_by_channel_sync(conn: sqlite3.Connection, channel_id: int) -> dict | None:
    row = conn.execute(
        f"SELECT {', '.join(_TICKET_COLUMNS)} FROM tickets WHERE channel_id = ? LIMIT 1",
        (int(channel_id),),
    ).fetchone()
    return _ticket_row(row)


def claim_ticket_sync(conn: sqlite3.Connection, ticket_id: int, staff_id: int) -> bool:
    cur = conn.execute(
        "UPDATE tickets SET claimed_by = ? WHERE id = ? AND claimed_by IS NULL AND status = 'open'",
        (int(staff_id), int(ticket_id)),
    )
    conn.commit()
    return cur.rowcount > 0


def close_ticket_sync(conn: sqlite3.Connection, ticket_id: int, closed_by: int) -> bool:
    cur = conn.execute(
        "UPDATE tickets SET status = 'closed', closed_by = ?, closed_at_utc = ? WHERE id = ? AND status = 'open'",
        (int(closed_by), _utc_now_iso(), int(ticket_id)),
    )
    conn.commit()
    return cur.rowcount > 0
