from __future__ import annotations

import discord
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_guild
from misc.commands.command_deps import ensure_manager
from misc.embeds import make_embed
from misc.embeds import success_embed
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.interaction_state import ReplyPayload
from tickets.views import CLAIM_TICKET_ID
from tickets.views import CLOSE_REASON_FIELD_ID
from tickets.views import CLOSE_TICKET_ID
from tickets.views import CLOSE_TICKET_MODAL_ID
from tickets.views import CREATE_TICKET_ID
from tickets.views import STAFF_ROLES_SELECT_ID
from tickets.views import build_close_ticket_modal
from tickets.views import build_staff_role_select_view
from tickets.views import build_ticket_panel_view

DEFAULT_PANEL_TITLE = "🎫 Support Tickets"
DEFAULT_PANEL_DESCRIPTION = "Need help? Press the button below to open a private ticket with the staff team."


def _role_ids(values: list[str]) -> list[int]:
    out: list[int] = []
    for value in values or []:
        try:
            out.append(int(value))
        except (TypeError, ValueError):
            continue
    return out


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    async def ticket_setup(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        opts = ctx.event.options
        category = opts.get("category")
        log_channel = opts.get("log_channel")
        await deps.tickets.configure(
            ctx.event.guild_id,
            category_id=int(category.id),
            log_channel_id=int(log_channel.id) if log_channel is not None else None,
            panel_title=opts.get("title"),
            panel_description=opts.get("description"),
        )
        print(f"[Tickets] configured guild={ctx.event.guild_id} category={category.id}")
        await ctx.resolve(
            ReplyPayload(
                content="🎫 Ticket category saved. Now pick the staff roles that should see tickets:",
                view=build_staff_role_select_view(),
                ephemeral=True,
            )
        )

    async def staff_roles_selected(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        role_ids = _role_ids(ctx.event.values)
        if not await deps.tickets.set_staff_roles(ctx.event.guild_id, role_ids):
            await ctx.resolve(ReplyPayload(content="❌ Run /ticket-setup first.", ephemeral=True))
            return

        settings = await deps.tickets.settings(ctx.event.guild_id) or {}
        panel = make_embed(
            settings.get("panel_title") or DEFAULT_PANEL_TITLE,
            settings.get("panel_description") or DEFAULT_PANEL_DESCRIPTION,
        )
        channel = getattr(ctx.event.raw, "channel", None)
        try:
            await channel.send(embed=panel, view=build_ticket_panel_view())
        except discord.Forbidden:
            await ctx.resolve(
                ReplyPayload(content="🚫 I can't post in this channel. Check my permissions and try again.", ephemeral=True)
            )
            return

        roles = ", ".join(f"<@&{rid}>" for rid in role_ids) or "none"
        await ctx.resolve(
            ReplyPayload(embed=success_embed("🎫 Ticket System Ready", f"Staff roles: {roles}"), ephemeral=True)
        )

    async def create_ticket(ctx: InteractionContext):
        if not await ensure_guild(ctx):
            return
        raw = ctx.event.raw
        outcome = await deps.tickets.open_ticket(raw.guild, raw.user)
        await ctx.resolve(ReplyPayload(content=outcome.message, ephemeral=True))

    async def claim_ticket(ctx: InteractionContext):
        raw = ctx.event.raw
        outcome = await deps.tickets.claim_ticket(raw.channel, raw.user)
        await ctx.resolve(ReplyPayload(content=outcome.message))

    async def close_ticket(ctx: InteractionContext):
        raw = ctx.event.raw
        reason = ctx.event.options.get("reason")
        outcome = await deps.tickets.close_ticket(raw.channel, raw.user, reason)
        await ctx.resolve(ReplyPayload(content=outcome.message))

    async def close_button(ctx: InteractionContext):
        raw = ctx.event.raw
        check = await deps.tickets.check_can_close(raw.channel, raw.user)
        if not check.ok:
            await ctx.resolve(ReplyPayload(content=check.message, ephemeral=True))
            return
        await ctx.open_modal(build_close_ticket_modal())

    async def close_reason_submitted(ctx: InteractionContext):
        raw = ctx.event.raw
        reason = (ctx.event.fields.get(CLOSE_REASON_FIELD_ID) or "").strip() or None
        outcome = await deps.tickets.close_ticket(raw.channel, raw.user, reason)
        await ctx.resolve(ReplyPayload(content=outcome.message))

    dispatcher.command("ticket-setup", ticket_setup, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.command("ticket-close", close_ticket)
    dispatcher.route("select", name=STAFF_ROLES_SELECT_ID, handler=staff_roles_selected, ephemeral=True)
    dispatcher.route(
        "button",
        name=CREATE_TICKET_ID,
        handler=create_ticket,
        ephemeral=True,
        cooldown=deps.ticket_cooldown_seconds,
    )
    dispatcher.route("button", name=CLAIM_TICKET_ID, handler=claim_ticket)
    dispatcher.route("button", name=CLOSE_TICKET_ID, handler=close_button, ack="modal")
    dispatcher.route("modal", name=CLOSE_TICKET_MODAL_ID, handler=close_reason_submitted)
