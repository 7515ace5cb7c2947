from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import discord
from config.defaults import GIVEAWAY_MAX_DURATION_MINUTES
from config.defaults import GIVEAWAY_MAX_WINNERS
from giveaways.store import attach_message_sync
from giveaways.store import create_giveaway_sync
from giveaways.store import delete_giveaway_sync
from giveaways.store import end_giveaway_sync
from giveaways.store import get_giveaway_by_message_sync
from giveaways.store import list_due_giveaways_sync
from giveaways.store import list_entries_sync
from giveaways.store import toggle_entry_sync
from giveaways.views import build_giveaway_view
from misc.embeds import GIVEAWAY_COLOR
from misc.embeds import make_embed


@dataclass(slots=True)
class GiveawayOutcome:
    ok: bool
    message: str
    entered: bool | None = None
    embed: discord.Embed | None = None
    winners: list[int] | None = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_utc(value: str) -> datetime:
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def giveaway_embed(giveaway: dict, entry_count: int, *, winners: list[int] | None = None) -> discord.Embed:
    ends_at = int(_parse_utc(giveaway["ends_at_utc"]).timestamp())
    fields = [
        ("🎁 Prize", giveaway["title"], True),
        ("👥 Entries", str(int(entry_count)), True),
        ("🏆 Winners", str(int(giveaway["winner_count"])), True),
        ("⏰ Ends", f"<t:{ends_at}:F>", False),
    ]
    if giveaway.get("host_id"):
        fields.append(("🙋 Host", f"<@{giveaway['host_id']}>", True))
    if winners is not None:
        fields.append(("🎊 Drawn", ", ".join(f"<@{uid}>" for uid in winners) or "No valid entries", False))
    return make_embed(
        f"🎉 {giveaway['title']}",
        giveaway.get("description") or "No description provided",
        color=GIVEAWAY_COLOR,
        fields=fields,
    )


def winner_announcement(giveaway: dict, winners: list[int]) -> str:
    if not winners:
        return f"😢 Nobody entered **{giveaway['title']}**, so there is no winner."
    mentions = ", ".join(f"<@{uid}>" for uid in winners)
    return f"🎉 Congratulations {mentions}! You won **{giveaway['title']}**!"


class GiveawayService:
    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn,
        rng: random.Random | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self._rng = rng or random.Random()
        self._now = now or _utc_now

    def draw_winners(self, entries: list[int], winner_count: int) -> list[int]:
        pool = list(dict.fromkeys(int(uid) for uid in entries))
        count = max(0, min(int(winner_count), len(pool)))
        return self._rng.sample(pool, count)

    async def start(
        self,
        channel,
        host,
        *,
        title: str,
        description: str | None,
        winner_count: int,
        duration_minutes: int,
    ) -> GiveawayOutcome:
        minutes = max(1, min(int(duration_minutes), GIVEAWAY_MAX_DURATION_MINUTES))
        winners = max(1, min(int(winner_count), GIVEAWAY_MAX_WINNERS))
        ends_at = self._now() + timedelta(minutes=minutes)
        async with self.db_lock:
            giveaway_id = await asyncio.to_thread(
                lambda c: create_giveaway_sync(
                    c,
                    guild_id=channel.guild.id,
                    channel_id=channel.id,
                    host_id=host.id,
                    title=title,
                    description=description,
                    winner_count=winners,
                    ends_at=ends_at,
                ),
                self.db_conn,
            )

        giveaway = {
            "id": giveaway_id,
            "title": title,
            "description": description,
            "winner_count": winners,
            "host_id": host.id,
            "ends_at_utc": ends_at.isoformat(),
        }
        try:
            message = await channel.send(embed=giveaway_embed(giveaway, 0), view=build_giveaway_view())
        except discord.HTTPException as e:
            async with self.db_lock:
                await asyncio.to_thread(delete_giveaway_sync, self.db_conn, giveaway_id)
            print(f"[Giveaways] post failed channel={channel.id}: {e}")
            return GiveawayOutcome(False, "🚫 I couldn't post the giveaway in this channel. Check my permissions.")

        async with self.db_lock:
            await asyncio.to_thread(attach_message_sync, self.db_conn, giveaway_id, message.id)
        print(f"[Giveaways] started id={giveaway_id} guild={channel.guild.id} ends={ends_at.isoformat()}")
        return GiveawayOutcome(True, f"🎉 Giveaway for **{title}** started! It ends <t:{int(ends_at.timestamp())}:R>.")

    async def toggle_entry(self, message_id: int, user_id: int) -> GiveawayOutcome:
        async with self.db_lock:
            giveaway = await asyncio.to_thread(get_giveaway_by_message_sync, self.db_conn, message_id)
        if giveaway is None:
            return GiveawayOutcome(False, "🎁 This giveaway no longer exists.")
        if giveaway["ended"]:
            return GiveawayOutcome(False, "🎁 This giveaway has already ended.")
        if _parse_utc(giveaway["ends_at_utc"]) <= self._now():
            return GiveawayOutcome(False, "🎁 This giveaway has expired.")

        async with self.db_lock:
            entered, count = await asyncio.to_thread(toggle_entry_sync, self.db_conn, giveaway["id"], user_id)
        message = "🎉 You have entered the giveaway!" if entered else "✅ You have left the giveaway."
        return GiveawayOutcome(True, message, entered=entered, embed=giveaway_embed(giveaway, count))

    async def end_by_message(self, client, guild_id: int, message_id: int) -> GiveawayOutcome:
        async with self.db_lock:
            giveaway = await asyncio.to_thread(get_giveaway_by_message_sync, self.db_conn, message_id)
        if giveaway is None or int(giveaway["guild_id"]) != int(guild_id):
            return GiveawayOutcome(False, "🎁 No giveaway with that message ID in this server.")
        winners = await self._finish(client, giveaway)
        if winners is None:
            return GiveawayOutcome(False, "🎁 This giveaway has already ended.")
        return GiveawayOutcome(True, f"🏁 Ended **{giveaway['title']}** with {len(winners)} winner(s).", winners=winners)

    async def finish_due(self, client) -> int:
        async with self.db_lock:
            due = await asyncio.to_thread(lambda c: list_due_giveaways_sync(c, now=self._now()), self.db_conn)
        finished = 0
        for giveaway in due:
            if await self._finish(client, giveaway) is not None:
                finished += 1
        return finished

    async def _finish(self, client, giveaway: dict) -> list[int] | None:
        async with self.db_lock:
            if not await asyncio.to_thread(end_giveaway_sync, self.db_conn, giveaway["id"]):
                return None
            entries = await asyncio.to_thread(list_entries_sync, self.db_conn, giveaway["id"])

        winners = self.draw_winners(entries, giveaway["winner_count"])
        print(f"[Giveaways] ended id={giveaway['id']} entries={len(entries)} winners={len(winners)}")

        channel = client.get_channel(int(giveaway["channel_id"])) if client is not None else None
        if channel is None:
            return winners
        try:
            message = await channel.fetch_message(int(giveaway["message_id"]))
            await message.edit(
                embed=giveaway_embed(giveaway, len(entries), winners=winners),
                view=build_giveaway_view(ended=True),
            )
        except discord.HTTPException as e:
            print(f"[Giveaways] could not update message id={giveaway['message_id']}: {e}")
        try:
            await channel.send(winner_announcement(giveaway, winners))
        except discord.HTTPException as e:
            print(f"[Giveaways] announcement failed channel={channel.id}: {e}")
        return winners
