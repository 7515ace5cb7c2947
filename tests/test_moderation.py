from __future__ import annotations

import asyncio
import os
import sqlite3
import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from db.migrate import apply_sqlite_migrations
from moderation.automod import AutomodRules
from moderation.automod import check_message
from moderation.store import add_warning_sync
from moderation.store import clear_warnings_sync
from moderation.store import list_active_warnings_sync
from moderation.store import prune_moderation_sync

try:
    from moderation.service import ModerationService
except ModuleNotFoundError:
    ModerationService = None

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")
T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _conn() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    apply_sqlite_migrations(conn, MIGRATIONS_DIR)
    return conn


def _mod_log_actions(conn: sqlite3.Connection) -> list[str]:
    return [str(r[0]) for r in conn.execute("SELECT action FROM mod_logs ORDER BY id").fetchall()]


class WarningStoreTests(unittest.TestCase):
    def test_active_warnings_exclude_expired(self):
        conn = _conn()
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="old", ttl_days=1, now=T0)
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="fresh", ttl_days=30, now=T0)
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="forever", now=T0)

        active = list_active_warnings_sync(conn, 1, 7, now=T0 + timedelta(days=2))
        self.assertEqual([w["reason"] for w in active], ["forever", "fresh"])
        self.assertIsNone(active[0]["expires_at_utc"])

    def test_warnings_are_scoped_per_guild(self):
        conn = _conn()
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="a", now=T0)
        self.assertEqual(list_active_warnings_sync(conn, 2, 7, now=T0), [])

    def test_add_and_clear_write_mod_log(self):
        conn = _conn()
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="a", source="automod:caps", now=T0)
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="b", now=T0)

        self.assertEqual(clear_warnings_sync(conn, 1, 7, 2), 2)
        self.assertEqual(list_active_warnings_sync(conn, 1, 7, now=T0), [])
        self.assertEqual(_mod_log_actions(conn), ["warn:automod:caps", "warn:manual", "clear_warnings"])

    def test_prune_removes_expired_warnings_and_old_logs(self):
        conn = _conn()
        add_warning_sync(conn, guild_id=1, user_id=7, moderator_id=2, reason="a", ttl_days=1, now=T0)
        add_warning_sync(conn, guild_id=1, user_id=8, moderator_id=2, reason="b", now=T0)

        expired, old_logs = prune_moderation_sync(conn, mod_log_retention_days=30, now=T0 + timedelta(days=40))
        self.assertEqual((expired, old_logs), (1, 2))
        self.assertEqual(len(list_active_warnings_sync(conn, 1, 8, now=T0)), 1)


class AutomodRuleTests(unittest.TestCase):
    def test_clean_message_passes(self):
        self.assertIsNone(check_message("hello there, see https://github.com/example"))
        self.assertIsNone(check_message(""))
        self.assertIsNone(check_message(None))

    def test_spam_by_length_and_repeats(self):
        self.assertEqual(check_message("a" * 501).rule, "spam")
        self.assertEqual(check_message("nooooo way").rule, "spam")
        self.assertIsNone(check_message("noooo way"))

    def test_mass_mentions(self):
        verdict = check_message("hi all", mention_count=5)
        self.assertEqual(verdict.rule, "mentions")
        self.assertIn("5", verdict.reason)
        self.assertIsNone(check_message("hi all", mention_count=4))

    def test_caps_needs_minimum_length(self):
        self.assertEqual(check_message("THIS IS LOUD TEXT").rule, "caps")
        self.assertIsNone(check_message("OK FINE"))

    def test_links_outside_whitelist(self):
        verdict = check_message("free stuff https://Evil.example/path")
        self.assertEqual(verdict.rule, "links")
        self.assertIn("evil.example", verdict.reason)
        self.assertIsNone(check_message("watch https://www.youtube.com/watch?v=1"))
        self.assertEqual(check_message("https://notyoutube.com/x").rule, "links")

    def test_custom_rules(self):
        rules = AutomodRules(max_mentions=2, link_whitelist=())
        self.assertEqual(check_message("yo", mention_count=2, rules=rules).rule, "mentions")
        self.assertEqual(check_message("https://github.com", rules=rules).rule, "links")


class _FakeChannel:
    def __init__(self):
        self.id = 300
        self.sent: list[str] = []

    async def send(self, content, **kwargs):
        self.sent.append(content)


class _FakeMessage:
    def __init__(self, content: str, *, manage_messages: bool = False):
        self.id = 900
        self.content = content
        self.mentions = []
        self.role_mentions = []
        self.guild = SimpleNamespace(id=1)
        self.channel = _FakeChannel()
        self.author = SimpleNamespace(
            id=7,
            mention="<@7>",
            guild_permissions=SimpleNamespace(manage_messages=manage_messages),
        )
        self.deleted = False

    async def delete(self):
        self.deleted = True


@unittest.skipIf(ModerationService is None, "discord.py not installed")
class AutomodEnforcementTests(unittest.IsolatedAsyncioTestCase):
    async def test_violation_deletes_warns_and_notifies(self):
        conn = _conn()
        service = ModerationService(db_lock=asyncio.Lock(), db_conn=conn)
        message = _FakeMessage("THIS IS VERY LOUD")

        verdict = await service.enforce(message, bot_user_id=99)

        self.assertEqual(verdict.rule, "caps")
        self.assertTrue(message.deleted)
        self.assertIn("<@7>", message.channel.sent[0])
        warnings = await service.active_warnings(1, 7)
        self.assertEqual((warnings[0]["moderator_id"], warnings[0]["source"]), (99, "automod:caps"))

    async def test_moderators_are_exempt(self):
        service = ModerationService(db_lock=asyncio.Lock(), db_conn=_conn())
        message = _FakeMessage("THIS IS VERY LOUD", manage_messages=True)
        self.assertIsNone(await service.enforce(message, bot_user_id=99))
        self.assertFalse(message.deleted)

    async def test_manual_warning_reason_is_capped(self):
        service = ModerationService(db_lock=asyncio.Lock(), db_conn=_conn())
        await service.warn(guild_id=1, user_id=7, moderator_id=2, reason="x" * 800)
        warnings = await service.active_warnings(1, 7)
        self.assertEqual(len(warnings[0]["reason"]), 500)
        self.assertIsNotNone(warnings[0]["expires_at_utc"])


if __name__ == "__main__":
    unittest.main()
