from __future__ import annotations

import sqlite3

AI_COLUMNS = (
    ("ai_enabled", "INTEGER NOT NULL DEFAULT 0"),
    ("ai_channel_id", "INTEGER"),
    ("ai_trigger_symbol", "TEXT NOT NULL DEFAULT '!'"),
    ("ai_personality", "TEXT NOT NULL DEFAULT 'friendly'"),
)


def _table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    cur = conn.cursor()
    cur.execute(f"PRAGMA table_info({table})")
    return [str(row[1]) for row in cur.fetchall()]


def upgrade(conn: sqlite3.Connection) -> None:
    existing = set(_table_columns(conn, "guild_settings"))
    added = 0
    for column, ddl in AI_COLUMNS:
        if column in existing:
            continue
        conn.execute(f"ALTER TABLE guild_settings ADD COLUMN {column} {ddl}")
        added += 1
    conn.commit()
    if added:
        print(f"[Migration 0002] added {added} AI columns to guild_settings")
