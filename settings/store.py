from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from config.defaults import DEFAULT_AI_PERSONALITY
from config.defaults import DEFAULT_AI_TRIGGER_SYMBOL

GUILD_SETTING_COLUMNS = {
    "prefix",
    "log_channel_id",
    "welcome_channel_id",
    "level_channel_id",
    "embed_color",
    "automod_enabled",
    "leveling_enabled",
    "ai_enabled",
    "ai_channel_id",
    "ai_trigger_symbol",
    "ai_personality",
}

AI_SETTING_DEFAULTS = {
    "ai_enabled": 0,
    "ai_channel_id": None,
    "ai_trigger_symbol": DEFAULT_AI_TRIGGER_SYMBOL,
    "ai_personality": DEFAULT_AI_PERSONALITY,
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_guild_settings(guild_id: int) -> dict:
    out = {
        "guild_id": int(guild_id),
        "prefix": "!",
        "log_channel_id": None,
        "welcome_channel_id": None,
        "level_channel_id": None,
        "embed_color": None,
        "automod_enabled": 0,
        "leveling_enabled": 1,
    }
    out.update(AI_SETTING_DEFAULTS)
    return out


def get_guild_settings_sync(conn: sqlite3.Connection, guild_id: int) -> dict:
    cur = conn.cursor()
    cur.execute("SELECT * FROM guild_settings WHERE guild_id = ? LIMIT 1", (int(guild_id),))
    row = cur.fetchone()
    out = default_guild_settings(guild_id)
    if row:
        cols = [d[0] for d in cur.description]
        out.update({k: v for k, v in zip(cols, row) if k in out or k in GUILD_SETTING_COLUMNS})
    return out


def set_guild_setting_sync(conn: sqlite3.Connection, guild_id: int, column: str, value) -> None:
    if column not in GUILD_SETTING_COLUMNS:
        raise ValueError(f"Unknown guild setting: {column}")
    conn.execute(
        f"""
        INSERT INTO guild_settings (guild_id, {column}, updated_at_utc)
        VALUES (?, ?, ?)
        ON CONFLICT(guild_id) DO UPDATE SET
            {column}=excluded.{column},
            updated_at_utc=excluded.updated_at_utc
        """,
        (int(guild_id), value, _utc_now_iso()),
    )
    conn.commit()


def reset_ai_settings_sync(conn: sqlite3.Connection, guild_id: int) -> None:
    for column, value in AI_SETTING_DEFAULTS.items():
        set_guild_setting_sync(conn, guild_id, column, value)


# generic key/value records


def get_setting_sync(conn: sqlite3.Connection, guild_id: int, key: str) -> str | None:
    row = conn.execute(
        "SELECT value FROM settings WHERE guild_id = ? AND key = ? LIMIT 1",
        (int(guild_id), str(key)),
    ).fetchone()
    return row[0] if row else None


def put_setting_sync(conn: sqlite3.Connection, guild_id: int, key: str, value: str | None) -> None:
    conn.execute(
        """
        INSERT INTO settings (guild_id, key, value, updated_at_utc)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(guild_id, key) DO UPDATE SET
            value=excluded.value,
            updated_at_utc=excluded.updated_at_utc
        """,
        (int(guild_id), str(key), value, _utc_now_iso()),
    )
    conn.commit()


def delete_setting_sync(conn: sqlite3.Connection, guild_id: int, key: str) -> bool:
    cur = conn.execute("DELETE FROM settings WHERE guild_id = ? AND key = ?", (int(guild_id), str(key)))
    conn.commit()
    return cur.rowcount > 0


def list_settings_sync(conn: sqlite3.Connection, guild_id: int, prefix: str = "") -> list[tuple[str, str | None]]:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return conn.execute(
        """
        SELECT key, value
        FROM settings
        WHERE guild_id = ? AND key LIKE ? ESCAPE '\\'
        ORDER BY key ASC
        """,
        (int(guild_id), f"{escaped}%"),
    ).fetchall()


# disabled commands


def disable_command_sync(
    conn: sqlite3.Connection,
    guild_id: int,
    command_name: str,
    disabled_by: int | None,
    reason: str | None,
) -> None:
    conn.execute(
        """
        INSERT INTO disabled_commands (guild_id, command_name, disabled_by, reason, disabled_at_utc)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(guild_id, command_name) DO UPDATE SET
            disabled_by=excluded.disabled_by,
            reason=excluded.reason,
            disabled_at_utc=excluded.disabled_at_utc
        """,
        (int(guild_id), command_name, disabled_by, reason, _utc_now_iso()),
    )
    conn.commit()


def enable_command_sync(conn: sqlite3.Connection, guild_id: int, command_name: str) -> bool:
    cur = conn.execute(
        "DELETE FROM disabled_commands WHERE guild_id = ? AND command_name = ?",
        (int(guild_id), command_name),
    )
    conn.commit()
    return cur.rowcount > 0


def get_disabled_command_sync(conn: sqlite3.Connection, guild_id: int, command_name: str) -> dict | None:
    row = conn.execute(
        """
        SELECT command_name, disabled_by, reason, disabled_at_utc
        FROM disabled_commands
        WHERE guild_id = ? AND command_name = ?
        LIMIT 1
        """,
        (int(guild_id), command_name),
    ).fetchone()
    if not row:
        return None
    return {"command_name": row[0], "disabled_by": row[1], "reason": row[2], "disabled_at_utc": row[3]}


def list_disabled_commands_sync(conn: sqlite3.Connection, guild_id: int) -> list[str]:
    rows = conn.execute(
        "SELECT command_name FROM disabled_commands WHERE guild_id = ? ORDER BY command_name ASC",
        (int(guild_id),),
    ).fetchall()
    return [str(r[0]) for r in rows]
