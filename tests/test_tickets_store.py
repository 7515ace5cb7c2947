from __future__ import annotations

import os
import sqlite3
import unittest

from db.migrate import apply_sqlite_migrations
from tickets.store import allocate_ticket_number_sync
from tickets.store import claim_ticket_sync
from tickets.store import close_ticket_sync
from tickets.store import create_ticket_sync
from tickets.store import get_open_ticket_for_user_sync
from tickets.store import get_ticket_by_channel_sync
from tickets.store import get_ticket_settings_sync
from tickets.store import set_staff_roles_sync
from tickets.store import upsert_ticket_settings_sync

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")


def _configured_conn() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    apply_sqlite_migrations(conn, MIGRATIONS_DIR)
    upsert_ticket_settings_sync(
        conn,
        1,
        category_id=500,
        log_channel_id=None,
        panel_title=None,
        panel_description=None,
    )
    return conn


class TicketSettingsTests(unittest.TestCase):
    def test_unconfigured_guild_has_no_settings(self):
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(conn, MIGRATIONS_DIR)
        self.assertIsNone(get_ticket_settings_sync(conn, 1))
        self.assertFalse(set_staff_roles_sync(conn, 1, [10]))
        with self.assertRaises(RuntimeError):
            allocate_ticket_number_sync(conn, 1)

    def test_reconfigure_keeps_counter_and_staff_roles(self):
        conn = _configured_conn()
        self.assertTrue(set_staff_roles_sync(conn, 1, [30, 10, 30]))
        allocate_ticket_number_sync(conn, 1)
        upsert_ticket_settings_sync(
            conn, 1, category_id=600, log_channel_id=700, panel_title="Help", panel_description="Ask us"
        )

        settings = get_ticket_settings_sync(conn, 1)
        self.assertEqual(settings["category_id"], 600)
        self.assertEqual(settings["staff_role_ids"], [10, 30])
        self.assertEqual(settings["next_ticket_number"], 2)
        self.assertEqual(settings["panel_title"], "Help")

    def test_ticket_numbers_increase_per_guild(self):
        conn = _configured_conn()
        upsert_ticket_settings_sync(conn, 2, category_id=1, log_channel_id=None, panel_title=None, panel_description=None)
        self.assertEqual([allocate_ticket_number_sync(conn, 1) for _ in range(3)], [1, 2, 3])
        self.assertEqual(allocate_ticket_number_sync(conn, 2), 1)


class TicketLifecycleTests(unittest.TestCase):
    def test_open_claim_close(self):
        conn = _configured_conn()
        ticket_id = create_ticket_sync(conn, guild_id=1, channel_id=900, user_id=7, ticket_number=1)

        opened = get_open_ticket_for_user_sync(conn, 1, 7)
        self.assertEqual((opened["id"], opened["status"], opened["claimed_by"]), (ticket_id, "open", None))
        self.assertEqual(get_ticket_by_channel_sync(conn, 900)["ticket_number"], 1)

        self.assertTrue(claim_ticket_sync(conn, ticket_id, 50))
        self.assertFalse(claim_ticket_sync(conn, ticket_id, 51))
        self.assertEqual(get_ticket_by_channel_sync(conn, 900)["claimed_by"], 50)

        self.assertTrue(close_ticket_sync(conn, ticket_id, 50))
        self.assertFalse(close_ticket_sync(conn, ticket_id, 50))
        self.assertIsNone(get_open_ticket_for_user_sync(conn, 1, 7))
        closed = get_ticket_by_channel_sync(conn, 900)
        self.assertEqual((closed["status"], closed["closed_by"]), ("closed", 50))
        self.assertTrue(closed["closed_at_utc"])

    def test_closed_ticket_cannot_be_claimed(self):
        conn = _configured_conn()
        ticket_id = create_ticket_sync(conn, guild_id=1, channel_id=901, user_id=8, ticket_number=1)
        close_ticket_sync(conn, ticket_id, 8)
        self.assertFalse(claim_ticket_sync(conn, ticket_id, 50))

    def test_unknown_channel_is_not_a_ticket(self):
        conn = _configured_conn()
        self.assertIsNone(get_ticket_by_channel_sync(conn, 12345))

    def test_channel_ids_are_unique(self):
        conn = _configured_conn()
        create_ticket_sync(conn, guild_id=1, channel_id=902, user_id=9, ticket_number=1)
        with self.assertRaises(sqlite3.IntegrityError):
            create_ticket_sync(conn, guild_id=1, channel_id=902, user_id=10, ticket_number=2)


if __name__ == "__main__":
    unittest.main()
