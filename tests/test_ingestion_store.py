from __future__ import annotations

import asyncio
import os
import sqlite3
import unittest

from db.migrate import apply_sqlite_migrations
from ingestion.service import recent_channel_context
from ingestion.store import count_channel_messages_sync
from ingestion.store import fetch_recent_channel_messages_sync
from ingestion.store import insert_channel_message_sync

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")


def _payload(message_id: int, content: str, *, channel_id: int = 50) -> dict:
    return {
        "guild_id": 1,
        "channel_id": channel_id,
        "message_id": message_id,
        "author_id": 7,
        "author_name": "ada",
        "content": content,
        "created_at_utc": f"2025-06-01T12:00:{message_id:02d}+00:00",
    }


class ChannelMessageStoreTests(unittest.TestCase):
    def setUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, MIGRATIONS_DIR)

    def test_keep_last_prunes_per_channel(self):
        for mid in range(1, 6):
            insert_channel_message_sync(self.conn, _payload(mid, f"m{mid}"), keep_last=3)
        insert_channel_message_sync(self.conn, _payload(40, "other", channel_id=51), keep_last=3)

        self.assertEqual(count_channel_messages_sync(self.conn, 50), 3)
        self.assertEqual(count_channel_messages_sync(self.conn, 51), 1)

    def test_duplicate_message_ids_are_ignored(self):
        insert_channel_message_sync(self.conn, _payload(1, "first"), keep_last=10)
        insert_channel_message_sync(self.conn, _payload(1, "edited"), keep_last=10)
        rows = fetch_recent_channel_messages_sync(self.conn, 50, before_message_id=99, limit=5)
        self.assertEqual([r[2] for r in rows], ["first"])

    def test_recent_context_is_newest_first_and_skips_blank(self):
        insert_channel_message_sync(self.conn, _payload(1, "one"), keep_last=10)
        insert_channel_message_sync(self.conn, _payload(2, "   "), keep_last=10)
        insert_channel_message_sync(self.conn, _payload(3, "three"), keep_last=10)
        insert_channel_message_sync(self.conn, _payload(4, "four"), keep_last=10)

        rows = fetch_recent_channel_messages_sync(self.conn, 50, before_message_id=4, limit=5)
        self.assertEqual([r[2] for r in rows], ["three", "one"])
        self.assertEqual(rows[0][1], "ada")


class RecentChannelContextTests(unittest.IsolatedAsyncioTestCase):
    async def test_context_is_chronological_and_clipped(self):
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(conn, MIGRATIONS_DIR)
        insert_channel_message_sync(conn, _payload(1, "first   line\nwrapped"), keep_last=10)
        insert_channel_message_sync(conn, _payload(2, "z" * 120), keep_last=10)

        text = await recent_channel_context(50, 3, db_lock=asyncio.Lock(), db_conn=conn, limit=3)
        first, second = text.split("\n")
        self.assertEqual(first, "ada: first line wrapped")
        self.assertEqual(second, "ada: " + "z" * 79 + "...")


if __name__ == "__main__":
    unittest.main()
