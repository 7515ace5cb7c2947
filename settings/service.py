from __future__ import annotations

import asyncio
import time
from typing import Callable

from config.defaults import DEFAULT_SETTINGS_CACHE_TTL_SECONDS
from settings.store import delete_setting_sync
from settings.store import disable_command_sync
from settings.store import enable_command_sync
from settings.store import get_disabled_command_sync
from settings.store import get_guild_settings_sync
from settings.store import get_setting_sync
from settings.store import list_disabled_commands_sync
from settings.store import list_settings_sync
from settings.store import put_setting_sync
from settings.store import reset_ai_settings_sync
from settings.store import set_guild_setting_sync


class SettingsService:
    """Guild configuration with a local read cache.

    Every write through this service drops the cached row for that guild, so
    the next read in this process sees it. Entries also expire after the TTL.
    """

    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn,
        ttl_seconds: float = DEFAULT_SETTINGS_CACHE_TTL_SECONDS,
        clock: Callable[[], float] | None = None,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock or time.monotonic
        self._cache: dict[int, tuple[float, dict]] = {}

    def invalidate(self, guild_id: int | None = None) -> None:
        if guild_id is None:
            self._cache.clear()
        else:
            self._cache.pop(int(guild_id), None)

    @property
    def cached_guilds(self) -> int:
        return len(self._cache)

    async def get_guild_settings(self, guild_id: int) -> dict:
        gid = int(guild_id)
        hit = self._cache.get(gid)
        now = self._clock()
        if hit is not None and (now - hit[0]) < self.ttl_seconds:
            return dict(hit[1])

        async with self.db_lock:
            row = await asyncio.to_thread(get_guild_settings_sync, self.db_conn, gid)
        self._cache[gid] = (now, row)
        return dict(row)

    async def set_guild_setting(self, guild_id: int, column: str, value) -> None:
        async with self.db_lock:
            await asyncio.to_thread(set_guild_setting_sync, self.db_conn, int(guild_id), column, value)
        self.invalidate(guild_id)

    async def reset_ai_settings(self, guild_id: int) -> None:
        async with self.db_lock:
            await asyncio.to_thread(reset_ai_settings_sync, self.db_conn, int(guild_id))
        self.invalidate(guild_id)

    # key/value records

    async def get_value(self, guild_id: int, key: str) -> str | None:
        async with self.db_lock:
            return await asyncio.to_thread(get_setting_sync, self.db_conn, int(guild_id), key)

    async def put_value(self, guild_id: int, key: str, value: str | None) -> None:
        async with self.db_lock:
            await asyncio.to_thread(put_setting_sync, self.db_conn, int(guild_id), key, value)

    async def delete_value(self, guild_id: int, key: str) -> bool:
        async with self.db_lock:
            return await asyncio.to_thread(delete_setting_sync, self.db_conn, int(guild_id), key)

    async def list_values(self, guild_id: int, prefix: str = "") -> list[tuple[str, str | None]]:
        async with self.db_lock:
            return await asyncio.to_thread(list_settings_sync, self.db_conn, int(guild_id), prefix)

    # disabled commands

    async def disabled_command(self, guild_id: int, command_name: str) -> dict | None:
        async with self.db_lock:
            return await asyncio.to_thread(get_disabled_command_sync, self.db_conn, int(guild_id), command_name)

    async def disable_command(self, guild_id: int, command_name: str, *, disabled_by: int, reason: str | None) -> None:
        async with self.db_lock:
            await asyncio.to_thread(
                disable_command_sync, self.db_conn, int(guild_id), command_name, int(disabled_by), reason
            )

    async def enable_command(self, guild_id: int, command_name: str) -> bool:
        async with self.db_lock:
            return await asyncio.to_thread(enable_command_sync, self.db_conn, int(guild_id), command_name)

    async def list_disabled_commands(self, guild_id: int) -> list[str]:
        async with self.db_lock:
            return await asyncio.to_thread(list_disabled_commands_sync, self.db_conn, int(guild_id))
