from __future__ import annotations

import discord
from giveaways.views import GIVEAWAY_ENTER_ID
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_manager
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.interaction_state import ReplyPayload


def _parse_message_id(value) -> int | None:
    try:
        parsed = int(str(value or "").strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    async def giveaway_start(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        raw = ctx.event.raw
        opts = ctx.event.options
        outcome = await deps.giveaways.start(
            raw.channel,
            raw.user,
            title=opts.get("prize"),
            description=opts.get("description"),
            winner_count=opts.get("winners") or 1,
            duration_minutes=opts.get("duration_minutes") or 60,
        )
        await ctx.resolve(ReplyPayload(content=outcome.message, ephemeral=True))

    async def giveaway_end(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        message_id = _parse_message_id(ctx.event.options.get("message_id"))
        if message_id is None:
            await ctx.resolve(ReplyPayload(content="❌ That doesn't look like a message ID.", ephemeral=True))
            return
        client = getattr(ctx.event.raw, "client", None)
        outcome = await deps.giveaways.end_by_message(client, ctx.event.guild_id, message_id)
        await ctx.resolve(ReplyPayload(content=outcome.message, ephemeral=True))

    async def giveaway_enter(ctx: InteractionContext):
        message = getattr(ctx.event.raw, "message", None)
        if message is None:
            await ctx.resolve(ReplyPayload(content="🎁 This giveaway no longer exists.", ephemeral=True))
            return
        outcome = await deps.giveaways.toggle_entry(message.id, ctx.event.user_id)
        if outcome.ok and outcome.embed is not None:
            try:
                await message.edit(embed=outcome.embed)
            except discord.HTTPException as e:
                print(f"[Giveaways] entry count update failed message={message.id}: {e}")
        await ctx.resolve(ReplyPayload(content=outcome.message, ephemeral=True))

    dispatcher.command("giveaway-start", giveaway_start, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.command("giveaway-end", giveaway_end, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.route(
        "button",
        name=GIVEAWAY_ENTER_ID,
        handler=giveaway_enter,
        ack="defer_update",
        cooldown=deps.giveaway_cooldown_seconds,
    )
