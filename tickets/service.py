from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import discord
from config.defaults import TICKET_CHANNEL_PREFIX
from config.defaults import TICKET_CLOSE_DELAY_SECONDS
from misc.embeds import make_embed
from tickets.store import allocate_ticket_number_sync
from tickets.store import claim_ticket_sync
from tickets.store import close_ticket_sync
from tickets.store import create_ticket_sync
from tickets.store import get_open_ticket_for_user_sync
from tickets.store import get_ticket_by_channel_sync
from tickets.store import get_ticket_settings_sync
from tickets.store import set_staff_roles_sync
from tickets.store import upsert_ticket_settings_sync
from tickets.views import build_ticket_controls_view


@dataclass(slots=True)
class TicketOutcome:
    ok: bool
    message: str
    channel_id: int | None = None
    ticket_number: int | None = None


def ticket_channel_name(number: int) -> str:
    return f"{TICKET_CHANNEL_PREFIX}{int(number):04d}"


class TicketService:
    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn,
        close_delay_seconds: float = TICKET_CLOSE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.close_delay_seconds = max(0.0, float(close_delay_seconds))
        self._sleep = sleep or asyncio.sleep
        self._pending_deletes: set[asyncio.Task] = set()

    async def settings(self, guild_id: int) -> dict | None:
        async with self.db_lock:
            return await asyncio.to_thread(get_ticket_settings_sync, self.db_conn, int(guild_id))

    async def configure(
        self,
        guild_id: int,
        *,
        category_id: int,
        log_channel_id: int | None,
        panel_title: str | None,
        panel_description: str | None,
    ) -> None:
        async with self.db_lock:
            await asyncio.to_thread(
                lambda c: upsert_ticket_settings_sync(
                    c,
                    int(guild_id),
                    category_id=int(category_id),
                    log_channel_id=log_channel_id,
                    panel_title=panel_title,
                    panel_description=panel_description,
                ),
                self.db_conn,
            )

    async def set_staff_roles(self, guild_id: int, role_ids: list[int]) -> bool:
        async with self.db_lock:
            return await asyncio.to_thread(set_staff_roles_sync, self.db_conn, int(guild_id), role_ids)

    def is_staff(self, member, settings: dict | None) -> bool:
        perms = getattr(member, "guild_permissions", None)
        if perms is not None and (getattr(perms, "administrator", False) or getattr(perms, "manage_channels", False)):
            return True
        staff_ids = set((settings or {}).get("staff_role_ids") or [])
        return any(int(role.id) in staff_ids for role in getattr(member, "roles", []) or [])

    def _overwrites(self, guild, member, settings: dict) -> dict:
        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            member: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                attach_files=True,
            ),
            guild.me: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                manage_channels=True,
            ),
        }
        for role_id in settings.get("staff_role_ids") or []:
            role = guild.get_role(int(role_id))
            if role is not None:
                overwrites[role] = discord.PermissionOverwrite(
                    view_channel=True,
                    send_messages=True,
                    read_message_history=True,
                )
        return overwrites

    async def open_ticket(self, guild, member) -> TicketOutcome:
        settings = await self.settings(guild.id)
        if not settings or not settings.get("category_id"):
            return TicketOutcome(False, "🎫 The ticket system has not been set up here. Ask an admin to run /ticket-setup.")

        category = guild.get_channel(int(settings["category_id"]))
        if category is None or not isinstance(category, discord.CategoryChannel):
            return TicketOutcome(False, "🎫 The ticket category no longer exists. Ask an admin to run /ticket-setup again.")

        async with self.db_lock:
            existing = await asyncio.to_thread(get_open_ticket_for_user_sync, self.db_conn, guild.id, member.id)
        if existing:
            if guild.get_channel(int(existing["channel_id"])) is not None:
                return TicketOutcome(
                    False,
                    f"🎫 You already have an open ticket: <#{existing['channel_id']}>",
                    channel_id=int(existing["channel_id"]),
                )
            # channel vanished under us; retire the orphan row before opening a new one
            async with self.db_lock:
                await asyncio.to_thread(close_ticket_sync, self.db_conn, existing["id"], 0)
            print(f"[Tickets] closed orphaned ticket id={existing['id']} guild={guild.id}")

        async with self.db_lock:
            number = await asyncio.to_thread(allocate_ticket_number_sync, self.db_conn, guild.id)

        try:
            channel = await guild.create_text_channel(
                ticket_channel_name(number),
                category=category,
                overwrites=self._overwrites(guild, member, settings),
                topic=f"Ticket #{number} - {member} ({member.id})",
                reason=f"Ticket opened by {member}",
            )
        except discord.Forbidden:
            return TicketOutcome(
                False,
                "🚫 I need **Manage Channels** permission in the ticket category to open tickets.",
            )

        try:
            async with self.db_lock:
                await asyncio.to_thread(
                    lambda c: create_ticket_sync(
                        c,
                        guild_id=guild.id,
                        channel_id=channel.id,
                        user_id=member.id,
                        ticket_number=number,
                    ),
                    self.db_conn,
                )
        except Exception:
            try:
                await channel.delete(reason="Ticket record could not be saved")
            except Exception as cleanup_error:
                print(f"[Tickets] cleanup of channel {channel.id} failed: {cleanup_error}")
            raise

        try:
            await channel.send(
                content=member.mention,
                embed=make_embed(
                    "🎫 Support Ticket Created",
                    f"Welcome {member.mention}! Describe your issue and a staff member will be with you shortly.",
                    fields=[("🆔 Ticket", f"#{number}", True), ("👤 Opened by", member.mention, True)],
                ),
                view=build_ticket_controls_view(),
            )
        except discord.HTTPException as e:
            print(f"[Tickets] welcome message failed channel={channel.id}: {e}")

        await self._log(
            guild,
            settings,
            "🎫 Ticket Opened",
            [("Ticket", f"#{number}", True), ("User", member.mention, True), ("Channel", channel.mention, True)],
        )
        return TicketOutcome(True, f"🎫 Your ticket has been created: {channel.mention}", channel.id, number)

    async def claim_ticket(self, channel, member) -> TicketOutcome:
        async with self.db_lock:
            ticket = await asyncio.to_thread(get_ticket_by_channel_sync, self.db_conn, channel.id)
        if not ticket or ticket["status"] != "open":
            return TicketOutcome(False, "❌ This button only works in open ticket channels.")

        settings = await self.settings(channel.guild.id)
        if not self.is_staff(member, settings):
            return TicketOutcome(False, "🚫 Only staff members can claim tickets.")
        if ticket["claimed_by"]:
            return TicketOutcome(False, f"🙋 This ticket is already claimed by <@{ticket['claimed_by']}>.")

        async with self.db_lock:
            claimed = await asyncio.to_thread(claim_ticket_sync, self.db_conn, ticket["id"], member.id)
        if not claimed:
            return TicketOutcome(False, "🙋 Someone else claimed this ticket first.")

        if not channel.name.endswith("-claimed"):
            try:
                await channel.edit(name=f"{channel.name}-claimed")
            except discord.HTTPException as e:
                print(f"[Tickets] rename failed channel={channel.id}: {e}")
        return TicketOutcome(True, f"🙋 {member.mention} has claimed this ticket.", channel.id, ticket["ticket_number"])

    async def _closable(self, channel, member) -> tuple[dict | None, dict | None, TicketOutcome | None]:
        async with self.db_lock:
            ticket = await asyncio.to_thread(get_ticket_by_channel_sync, self.db_conn, channel.id)
        if not ticket or ticket["status"] != "open":
            return None, None, TicketOutcome(False, "❌ This only works in open ticket channels.")

        settings = await self.settings(channel.guild.id)
        if int(ticket["user_id"]) != int(member.id) and not self.is_staff(member, settings):
            return ticket, settings, TicketOutcome(False, "🚫 Only staff members or the ticket owner can close tickets.")
        return ticket, settings, None

    async def check_can_close(self, channel, member) -> TicketOutcome:
        """Permission check run before the close-reason modal is shown."""
        ticket, _, denied = await self._closable(channel, member)
        if denied is not None:
            return denied
        return TicketOutcome(True, "", channel.id, ticket["ticket_number"])

    async def close_ticket(self, channel, member, reason: str | None = None) -> TicketOutcome:
        ticket, settings, denied = await self._closable(channel, member)
        if denied is not None:
            return denied

        async with self.db_lock:
            closed = await asyncio.to_thread(close_ticket_sync, self.db_conn, ticket["id"], member.id)
        if not closed:
            return TicketOutcome(False, "🔒 This ticket is already closing.")

        await self._log(
            channel.guild,
            settings or {},
            "🔒 Ticket Closed",
            [
                ("Ticket", f"#{ticket['ticket_number']}", True),
                ("Closed by", member.mention, True),
                ("Reason", reason or "No reason provided", False),
            ],
        )
        task = asyncio.create_task(self._delete_later(channel))
        self._pending_deletes.add(task)
        task.add_done_callback(self._pending_deletes.discard)
        delay = int(self.close_delay_seconds)
        return TicketOutcome(True, f"🔒 Ticket closed. This channel will be deleted in {delay} seconds.", channel.id)

    async def _delete_later(self, channel) -> None:
        await self._sleep(self.close_delay_seconds)
        try:
            await channel.delete(reason="Ticket closed")
        except Exception as e:
            print(f"[Tickets] delete failed channel={getattr(channel, 'id', '?')}: {e}")

    async def _log(self, guild, settings: dict, title: str, fields: list[tuple[str, str, bool]]) -> None:
        log_channel_id = settings.get("log_channel_id")
        if not log_channel_id:
            return
        log_channel = guild.get_channel(int(log_channel_id))
        if log_channel is None:
            return
        try:
            await log_channel.send(embed=make_embed(title, fields=fields))
        except discord.HTTPException as e:
            print(f"[Tickets] log send failed channel={log_channel_id}: {e}")
