from __future__ import annotations

import asyncio
import random

import discord
from config.defaults import LEADERBOARD_PAGE_SIZE
from config.defaults import XP_COOLDOWN_SECONDS
from config.defaults import XP_MAX_GAIN
from config.defaults import XP_MIN_GAIN
from levels.store import add_xp_sync
from levels.store import get_level_role_sync
from levels.store import get_user_level_sync
from levels.store import leaderboard_page_sync
from levels.store import set_level_role_sync
from levels.store import user_rank_sync
from levels.store import xp_for_next_level
from misc.embeds import make_embed
from runtime.leases import LeaseManager
from runtime.leases import xp_key
from runtime.rate_limit import RateLimiter

LEADERBOARD_PREFIX = "leaderboard:"


def xp_cooldown_kind(guild_id: int) -> str:
    return f"xp:{int(guild_id)}"


def leaderboard_custom_id(direction: str, page: int) -> str:
    return f"{LEADERBOARD_PREFIX}{direction}:{int(page)}"


def parse_leaderboard_custom_id(custom_id: str) -> int | None:
    parts = (custom_id or "").split(":")
    if len(parts) != 3 or parts[0] + ":" != LEADERBOARD_PREFIX or parts[1] not in {"prev", "next"}:
        return None
    try:
        return max(0, int(parts[2]))
    except ValueError:
        return None


class LevelService:
    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn,
        leases: LeaseManager,
        rate_limiter: RateLimiter,
        cooldown_seconds: float = XP_COOLDOWN_SECONDS,
        page_size: int = LEADERBOARD_PAGE_SIZE,
        rng: random.Random | None = None,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.leases = leases
        self.rate_limiter = rate_limiter
        self.cooldown_seconds = float(cooldown_seconds)
        self.page_size = max(1, int(page_size))
        self._rng = rng or random.Random()

    async def award_message_xp(self, *, guild_id: int, user_id: int, message_id: int) -> dict | None:
        """Returns the updated level row when the user leveled up, else None."""
        with self.leases.hold(xp_key(guild_id, user_id, message_id)) as admitted:
            if not admitted:
                return None
            if not self.rate_limiter.allow(user_id, xp_cooldown_kind(guild_id), self.cooldown_seconds):
                return None
            gained = self._rng.randint(XP_MIN_GAIN, XP_MAX_GAIN)
            async with self.db_lock:
                row, leveled = await asyncio.to_thread(add_xp_sync, self.db_conn, guild_id, user_id, gained)
            return row if leveled else None

    async def handle_level_up(self, message: discord.Message, row: dict) -> None:
        level = int(row["level"])
        async with self.db_lock:
            role_id = await asyncio.to_thread(get_level_role_sync, self.db_conn, message.guild.id, level)
        role_note = ""
        if role_id:
            role = message.guild.get_role(role_id)
            if role is not None:
                try:
                    await message.author.add_roles(role, reason=f"Reached level {level}")
                    role_note = f" You earned the **{role.name}** role!"
                except discord.HTTPException as e:
                    print(f"[Levels] role grant failed guild={message.guild.id} role={role_id}: {e}")
        try:
            await message.channel.send(f"🎉 {message.author.mention} reached **level {level}**!{role_note}")
        except discord.HTTPException as e:
            print(f"[Levels] announce failed channel={message.channel.id}: {e}")

    async def rank(self, guild_id: int, user_id: int) -> tuple[dict, int | None]:
        async with self.db_lock:
            row = await asyncio.to_thread(get_user_level_sync, self.db_conn, guild_id, user_id)
            position = await asyncio.to_thread(user_rank_sync, self.db_conn, guild_id, user_id)
        return (row, position)

    def rank_embed(self, member_name: str, row: dict, position: int | None) -> discord.Embed:
        needed = xp_for_next_level(row["level"])
        return make_embed(
            f"📊 {member_name}",
            fields=[
                ("Level", str(row["level"]), True),
                ("XP", f"{row['xp']} / {needed}", True),
                ("Rank", f"#{position}" if position else "Unranked", True),
                ("Messages", str(row["message_count"]), True),
            ],
        )

    async def set_level_role(self, guild_id: int, level: int, role_id: int) -> None:
        async with self.db_lock:
            await asyncio.to_thread(set_level_role_sync, self.db_conn, guild_id, level, role_id)

    async def leaderboard(self, guild_id: int, page: int) -> tuple[discord.Embed, discord.ui.View]:
        async with self.db_lock:
            rows, total = await asyncio.to_thread(
                leaderboard_page_sync, self.db_conn, guild_id, page, self.page_size
            )
        requested = max(0, int(page))
        pages = max(1, -(-total // self.page_size))
        page = min(requested, pages - 1)
        if page != requested:
            async with self.db_lock:
                rows, total = await asyncio.to_thread(
                    leaderboard_page_sync, self.db_conn, guild_id, page, self.page_size
                )

        lines = []
        for offset, row in enumerate(rows, start=page * self.page_size + 1):
            lines.append(f"**{offset}.** <@{row['user_id']}> - level {row['level']} ({row['xp']} xp)")
        embed = make_embed(
            "🏆 Leaderboard",
            "\n".join(lines) or "Nobody has earned XP yet.",
            footer=f"Page {page + 1}/{pages}",
        )
        return (embed, self._pager(page, pages))

    def _pager(self, page: int, pages: int) -> discord.ui.View:
        view = discord.ui.View(timeout=None)
        view.add_item(
            discord.ui.Button(
                label="◀",
                style=discord.ButtonStyle.secondary,
                custom_id=leaderboard_custom_id("prev", max(0, page - 1)),
                disabled=page <= 0,
            )
        )
        view.add_item(
            discord.ui.Button(
                label="▶",
                style=discord.ButtonStyle.secondary,
                custom_id=leaderboard_custom_id("next", min(pages - 1, page + 1)),
                disabled=page >= pages - 1,
            )
        )
        return view
