from __future__ import annotations

import asyncio

from config.defaults import COOLDOWN_SWEEP_MAX_AGE_SECONDS
from config.defaults import DEFAULT_GIVEAWAY_SWEEP_SECONDS
from config.defaults import DEFAULT_LEASE_SWEEP_SECONDS
from config.defaults import DEFAULT_MAINTENANCE_INTERVAL_SECONDS


def sweep_leases_once(leases) -> int:
    dropped = leases.sweep()
    if dropped:
        print(f"[Lease] swept {dropped} stale lease(s); held={len(leases)}")
    return dropped


async def lease_sweep_loop(leases, *, interval_seconds: float = DEFAULT_LEASE_SWEEP_SECONDS) -> None:
    while True:
        await asyncio.sleep(max(1.0, float(interval_seconds)))
        try:
            sweep_leases_once(leases)
        except Exception as e:
            print(f"[Jobs] lease sweep error: {e}")


async def run_maintenance_once(
    *,
    rate_limiter,
    memory,
    moderation,
    settings,
    cooldown_max_age_seconds: float = COOLDOWN_SWEEP_MAX_AGE_SECONDS,
) -> dict[str, int]:
    cooldowns = rate_limiter.sweep(cooldown_max_age_seconds)
    evicted = memory.evict_if_needed()
    expired_warnings, old_logs = await moderation.prune()
    cached = settings.cached_guilds
    settings.invalidate()
    stats = {
        "cooldowns": cooldowns,
        "evicted_users": len(evicted),
        "expired_warnings": expired_warnings,
        "old_mod_logs": old_logs,
        "settings_cache": cached,
    }
    if any(stats.values()):
        print("[Jobs] maintenance " + " ".join(f"{k}={v}" for k, v in stats.items()))
    return stats


async def maintenance_loop(
    *,
    rate_limiter,
    memory,
    moderation,
    settings,
    interval_seconds: int = DEFAULT_MAINTENANCE_INTERVAL_SECONDS,
) -> None:
    while True:
        try:
            await run_maintenance_once(
                rate_limiter=rate_limiter,
                memory=memory,
                moderation=moderation,
                settings=settings,
            )
        except Exception as e:
            print(f"[Jobs] maintenance loop error: {e}")

        await asyncio.sleep(max(60, int(interval_seconds)))


async def giveaway_sweep_loop(giveaways, client, *, interval_seconds: float = DEFAULT_GIVEAWAY_SWEEP_SECONDS) -> None:
    while True:
        await asyncio.sleep(max(5.0, float(interval_seconds)))
        try:
            finished = await giveaways.finish_due(client)
            if finished:
                print(f"[Giveaways] finished {finished} due giveaway(s)")
        except Exception as e:
            print(f"[Jobs] giveaway sweep error: {e}")
