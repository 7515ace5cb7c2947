from __future__ import annotations

import sqlite3


def insert_channel_message_sync(conn: sqlite3.Connection, payload: dict, keep_last: int) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT OR IGNORE INTO channel_messages (
            guild_id, channel_id, message_id,
            author_id, author_name, content, created_at_utc
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            payload["guild_id"],
            payload["channel_id"],
            payload["message_id"],
            payload["author_id"],
            payload["author_name"],
            payload["content"],
            payload["created_at_utc"],
        ),
    )
    # only the newest keep_last rows per channel survive
    cur.execute(
        """
        DELETE FROM channel_messages
        WHERE channel_id = ?
          AND id NOT IN (
              SELECT id FROM channel_messages
              WHERE channel_id = ?
              ORDER BY id DESC
              LIMIT ?
          )
        """,
        (payload["channel_id"], payload["channel_id"], max(1, int(keep_last))),
    )
    conn.commit()


def fetch_recent_channel_messages_sync(
    conn: sqlite3.Connection,
    channel_id: int,
    before_message_id: int,
    limit: int,
) -> list[tuple[str, str, str]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT created_at_utc, author_name, content
        FROM channel_messages
        WHERE channel_id = ?
          AND message_id < ?
          AND content IS NOT NULL
          AND TRIM(content) != ''
        ORDER BY message_id DESC
        LIMIT ?
        """,
        (int(channel_id), int(before_message_id), int(limit)),
    )
    return cur.fetchall()


def count_channel_messages_sync(conn: sqlite3.Connection, channel_id: int) -> int:
    row = conn.execute("SELECT COUNT(*) FROM channel_messages WHERE channel_id = ?", (int(channel_id),)).fetchone()
    return int(row[0]) if row else 0
