from __future__ import annotations

import asyncio
import io
import unittest
from contextlib import redirect_stdout
from unittest import mock

from chat.memory import ConversationEntry
from chat.memory import ConversationMemory
from jobs.service import giveaway_sweep_loop
from jobs.service import run_maintenance_once
from jobs.service import sweep_leases_once
from runtime.leases import LeaseManager
from runtime.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeModeration:
    def __init__(self, result=(0, 0)):
        self.result = result
        self.calls = 0

    async def prune(self):
        self.calls += 1
        return self.result


class FakeSettings:
    def __init__(self, cached: int = 0):
        self.cached_guilds = cached
        self.invalidated = 0

    def invalidate(self, guild_id=None):
        self.invalidated += 1
        self.cached_guilds = 0


class LeaseSweepTests(unittest.TestCase):
    def test_sweep_drops_only_stale_leases(self):
        clock = FakeClock()
        leases = LeaseManager(ttl_seconds=300, clock=clock)
        leases.try_acquire("message:1:2")
        clock.now += 200
        leases.try_acquire("message:3:4")
        clock.now += 150

        buf = io.StringIO()
        with redirect_stdout(buf):
            self.assertEqual(sweep_leases_once(leases), 1)
        self.assertEqual(len(leases), 1)
        self.assertIn("[Lease] swept 1", buf.getvalue())


class MaintenanceTests(unittest.IsolatedAsyncioTestCase):
    async def test_maintenance_sweeps_every_store(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.allow(1, "chat", 3)
        clock.now += 7200
        limiter.allow(2, "chat", 3)

        memory = ConversationMemory(max_users=2, keep_users=1, rate_limiter=limiter)
        for uid in (10, 11, 12):
            memory.append(uid, ConversationEntry(role="user", content="hi"))
        moderation = FakeModeration((2, 5))
        settings = FakeSettings(cached=4)

        buf = io.StringIO()
        with redirect_stdout(buf):
            stats = await run_maintenance_once(
                rate_limiter=limiter,
                memory=memory,
                moderation=moderation,
                settings=settings,
                cooldown_max_age_seconds=3600,
            )

        self.assertEqual(
            stats,
            {"cooldowns": 1, "evicted_users": 2, "expired_warnings": 2, "old_mod_logs": 5, "settings_cache": 4},
        )
        self.assertEqual(memory.history(12)[0].content, "hi")
        self.assertEqual(settings.invalidated, 1)
        self.assertIn("[Jobs] maintenance", buf.getvalue())

    async def test_quiet_when_nothing_changed(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            stats = await run_maintenance_once(
                rate_limiter=RateLimiter(),
                memory=ConversationMemory(),
                moderation=FakeModeration(),
                settings=FakeSettings(),
            )
        self.assertFalse(any(stats.values()))
        self.assertEqual(buf.getvalue(), "")


class FakeGiveaways:
    def __init__(self, results):
        self.results = list(results)

    async def finish_due(self, client):
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class GiveawaySweepTests(unittest.IsolatedAsyncioTestCase):
    async def test_loop_survives_errors_and_reports_finished(self):
        sleeps: list[float] = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) > 2:
                raise asyncio.CancelledError

        giveaways = FakeGiveaways([RuntimeError("db gone"), 2])
        buf = io.StringIO()
        with redirect_stdout(buf), mock.patch("jobs.service.asyncio.sleep", fake_sleep):
            with self.assertRaises(asyncio.CancelledError):
                await giveaway_sweep_loop(giveaways, client=None, interval_seconds=1)

        self.assertEqual(sleeps, [5.0, 5.0, 5.0])
        self.assertIn("[Jobs] giveaway sweep error: db gone", buf.getvalue())
        self.assertIn("[Giveaways] finished 2", buf.getvalue())


if __name__ == "__main__":
    unittest.main()
