from __future__ import annotations

import asyncio
import os
import random
import sqlite3
import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from db.migrate import apply_sqlite_migrations
from giveaways.store import attach_message_sync
from giveaways.store import count_entries_sync
from giveaways.store import create_giveaway_sync
from giveaways.store import end_giveaway_sync
from giveaways.store import get_giveaway_by_message_sync
from giveaways.store import list_due_giveaways_sync
from giveaways.store import list_entries_sync
from giveaways.store import toggle_entry_sync

try:
    from giveaways.service import GiveawayService
    from giveaways.views import GIVEAWAY_ENTER_ID
except ModuleNotFoundError:
    GiveawayService = None

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")
START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _conn() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    apply_sqlite_migrations(conn, MIGRATIONS_DIR)
    return conn


def _create(conn, *, ends_at: datetime, message_id: int | None = 900) -> int:
    giveaway_id = create_giveaway_sync(
        conn,
        guild_id=1,
        channel_id=2,
        host_id=3,
        title="Nitro",
        description=None,
        winner_count=1,
        ends_at=ends_at,
    )
    if message_id is not None:
        attach_message_sync(conn, giveaway_id, message_id)
    return giveaway_id


class GiveawayStoreTests(unittest.TestCase):
    def test_toggle_enters_then_leaves(self):
        conn = _conn()
        giveaway_id = _create(conn, ends_at=START)

        self.assertEqual(toggle_entry_sync(conn, giveaway_id, 7), (True, 1))
        self.assertEqual(toggle_entry_sync(conn, giveaway_id, 8), (True, 2))
        self.assertEqual(toggle_entry_sync(conn, giveaway_id, 7), (False, 1))
        self.assertEqual(list_entries_sync(conn, giveaway_id), [8])

    def test_lookup_by_message(self):
        conn = _conn()
        giveaway_id = _create(conn, ends_at=START, message_id=555)
        row = get_giveaway_by_message_sync(conn, 555)
        self.assertEqual((row["id"], row["title"], row["ended"]), (giveaway_id, "Nitro", False))
        self.assertIsNone(get_giveaway_by_message_sync(conn, 556))

    def test_due_list_skips_future_ended_and_unposted(self):
        conn = _conn()
        due = _create(conn, ends_at=START - timedelta(minutes=1), message_id=1)
        _create(conn, ends_at=START + timedelta(minutes=1), message_id=2)
        _create(conn, ends_at=START - timedelta(minutes=5), message_id=None)
        done = _create(conn, ends_at=START - timedelta(minutes=5), message_id=3)
        end_giveaway_sync(conn, done)

        self.assertEqual([g["id"] for g in list_due_giveaways_sync(conn, now=START)], [due])

    def test_end_only_once(self):
        conn = _conn()
        giveaway_id = _create(conn, ends_at=START)
        self.assertTrue(end_giveaway_sync(conn, giveaway_id))
        self.assertFalse(end_giveaway_sync(conn, giveaway_id))
        self.assertEqual(count_entries_sync(conn, giveaway_id), 0)


class FakeMessage:
    def __init__(self, message_id: int, kwargs: dict):
        self.id = message_id
        self.kwargs = kwargs
        self.edits: list[dict] = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class FakeChannel:
    def __init__(self, channel_id: int = 2, guild_id: int = 1):
        self.id = channel_id
        self.guild = SimpleNamespace(id=guild_id)
        self.mention = f"<#{channel_id}>"
        self.messages: list[FakeMessage] = []
        self.texts: list[str] = []

    async def send(self, content=None, **kwargs):
        if content is not None:
            self.texts.append(content)
        message = FakeMessage(9000 + len(self.messages), kwargs)
        self.messages.append(message)
        return message

    async def fetch_message(self, message_id: int):
        return next(m for m in self.messages if m.id == message_id)


class FakeClient:
    def __init__(self, channel: FakeChannel):
        self.channel = channel

    def get_channel(self, channel_id: int):
        return self.channel if channel_id == self.channel.id else None


def _field(embed, name: str) -> str:
    return next(f.value for f in embed.fields if f.name == name)


@unittest.skipIf(GiveawayService is None, "discord.py not installed")
class GiveawayServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.now = START
        self.service = GiveawayService(
            db_lock=asyncio.Lock(),
            db_conn=_conn(),
            rng=random.Random(0),
            now=lambda: self.now,
        )
        self.channel = FakeChannel()
        self.client = FakeClient(self.channel)
        outcome = await self.service.start(
            self.channel,
            SimpleNamespace(id=3),
            title="Nitro",
            description="One month",
            winner_count=1,
            duration_minutes=10,
        )
        self.assertTrue(outcome.ok)
        self.message = self.channel.messages[0]

    async def test_start_posts_entry_button(self):
        button = self.message.kwargs["view"].children[0]
        self.assertEqual(button.custom_id, GIVEAWAY_ENTER_ID)
        self.assertFalse(button.disabled)
        self.assertEqual(_field(self.message.kwargs["embed"], "👥 Entries"), "0")

    async def test_toggle_updates_entry_count(self):
        entered = await self.service.toggle_entry(self.message.id, 7)
        self.assertTrue(entered.entered)
        self.assertEqual(_field(entered.embed, "👥 Entries"), "1")

        left = await self.service.toggle_entry(self.message.id, 7)
        self.assertFalse(left.entered)
        self.assertIn("left", left.message)
        self.assertEqual(_field(left.embed, "👥 Entries"), "0")

    async def test_unknown_message_is_rejected(self):
        outcome = await self.service.toggle_entry(12345, 7)
        self.assertFalse(outcome.ok)
        self.assertIn("no longer exists", outcome.message)

    async def test_expired_giveaway_refuses_entries(self):
        self.now = START + timedelta(minutes=11)
        outcome = await self.service.toggle_entry(self.message.id, 7)
        self.assertFalse(outcome.ok)
        self.assertIn("expired", outcome.message)

    async def test_finish_due_draws_winner_and_closes_button(self):
        await self.service.toggle_entry(self.message.id, 7)
        await self.service.toggle_entry(self.message.id, 8)

        self.assertEqual(await self.service.finish_due(self.client), 0)
        self.now = START + timedelta(minutes=10)
        self.assertEqual(await self.service.finish_due(self.client), 1)
        self.assertEqual(await self.service.finish_due(self.client), 0)

        edit = self.message.edits[-1]
        self.assertTrue(edit["view"].children[0].disabled)
        self.assertEqual(len(self.channel.texts), 1)
        self.assertIn("Congratulations", self.channel.texts[0])
        self.assertTrue("<@7>" in self.channel.texts[0] or "<@8>" in self.channel.texts[0])

        ended = await self.service.toggle_entry(self.message.id, 9)
        self.assertIn("already ended", ended.message)

    async def test_end_early_with_no_entries(self):
        outcome = await self.service.end_by_message(self.client, 1, self.message.id)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.winners, [])
        self.assertIn("Nobody entered", self.channel.texts[-1])

        again = await self.service.end_by_message(self.client, 1, self.message.id)
        self.assertFalse(again.ok)

    async def test_end_from_another_guild_is_refused(self):
        outcome = await self.service.end_by_message(self.client, 99, self.message.id)
        self.assertFalse(outcome.ok)
        self.assertEqual(self.message.edits, [])

    def test_draw_winners_never_exceeds_pool(self):
        self.assertEqual(sorted(self.service.draw_winners([1, 2, 2], 5)), [1, 2])
        self.assertEqual(self.service.draw_winners([], 3), [])


if __name__ == "__main__":
    unittest.main()
