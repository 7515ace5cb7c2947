from __future__ import annotations

from config.defaults import AI_PERSONALITIES
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_guild
from misc.commands.command_deps import ensure_manager
from misc.embeds import GAME_COLOR
from misc.embeds import make_embed
from misc.embeds import success_embed
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.interaction_state import ReplyPayload


def _on_off(value) -> str:
    return "✅ Enabled" if int(value or 0) else "❌ Disabled"


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    cooldown = deps.command_cooldown_seconds

    async def ai_toggle(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        enabled = bool(ctx.event.options.get("enabled"))
        await deps.settings.set_guild_setting(ctx.event.guild_id, "ai_enabled", 1 if enabled else 0)
        state = "enabled" if enabled else "disabled"
        await ctx.resolve(ReplyPayload(embed=success_embed("🤖 AI Chat Updated", f"AI chat is now **{state}**.")))

    async def ai_channel(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        channel = ctx.event.options.get("channel")
        channel_id = int(channel.id) if channel is not None else None
        await deps.settings.set_guild_setting(ctx.event.guild_id, "ai_channel_id", channel_id)
        where = f"<#{channel_id}>" if channel_id else "every channel"
        await ctx.resolve(ReplyPayload(embed=success_embed("🤖 AI Channel Updated", f"AI chat now responds in {where}.")))

    async def ai_symbol(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        symbol = str(ctx.event.options.get("symbol") or "").strip()
        if not symbol or any(ch.isspace() for ch in symbol) or len(symbol) > 5:
            await ctx.resolve(ReplyPayload(content="❌ The trigger symbol must be 1-5 characters without spaces.", ephemeral=True))
            return
        await deps.settings.set_guild_setting(ctx.event.guild_id, "ai_trigger_symbol", symbol)
        await ctx.resolve(
            ReplyPayload(embed=success_embed("🤖 Trigger Updated", f"Start a message with `{symbol}` to talk to the AI."))
        )

    async def ai_status(ctx: InteractionContext):
        if not await ensure_guild(ctx):
            return
        s = await deps.settings.get_guild_settings(ctx.event.guild_id)
        channel_id = s.get("ai_channel_id")
        embed = make_embed(
            "🤖 AI Chat Status",
            fields=[
                ("Status", _on_off(s.get("ai_enabled")), True),
                ("Channel", f"<#{channel_id}>" if channel_id else "All channels", True),
                ("Trigger", f"`{s.get('ai_trigger_symbol')}`", True),
                ("Personality", str(s.get("ai_personality") or "friendly").title(), True),
            ],
        )
        await ctx.resolve(ReplyPayload(embed=embed))

    async def ai_reset(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        await deps.settings.reset_ai_settings(ctx.event.guild_id)
        deps.memory.end_session(ctx.event.user_id)
        await ctx.resolve(ReplyPayload(embed=success_embed("🤖 AI Settings Reset", "AI chat settings are back to defaults.")))

    async def ai_personality(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        personality = str(ctx.event.options.get("type") or "").strip().lower()
        if personality not in AI_PERSONALITIES:
            await ctx.resolve(
                ReplyPayload(content=f"❌ Pick one of: {', '.join(AI_PERSONALITIES)}.", ephemeral=True)
            )
            return
        await deps.settings.set_guild_setting(ctx.event.guild_id, "ai_personality", personality)
        await ctx.resolve(
            ReplyPayload(embed=success_embed("🤖 Personality Updated", f"The AI is now **{personality}**."))
        )

    async def ai_clear(ctx: InteractionContext):
        removed = deps.chat.reset_user(ctx.event.user_id)
        note = f"Forgot {removed} message(s)." if removed else "There was nothing to forget."
        await ctx.resolve(ReplyPayload(content=f"🧹 {note}", ephemeral=True))

    async def ai_game(ctx: InteractionContext):
        if not await ensure_guild(ctx):
            return
        started = deps.chat.start_game(ctx.event.user_id, str(ctx.event.options.get("game") or ""))
        if started is None:
            await ctx.resolve(ReplyPayload(content="❌ Unknown game.", ephemeral=True))
            return
        name, intro = started
        await ctx.resolve(ReplyPayload(embed=make_embed(f"🎮 {name}", intro, color=GAME_COLOR)))

    dispatcher.command("ai-toggle", ai_toggle, ephemeral=True, cooldown=cooldown)
    dispatcher.command("ai-channel", ai_channel, ephemeral=True, cooldown=cooldown)
    dispatcher.command("ai-symbol", ai_symbol, ephemeral=True, cooldown=cooldown)
    dispatcher.command("ai-status", ai_status, ephemeral=True)
    dispatcher.command("ai-reset", ai_reset, ephemeral=True, cooldown=cooldown)
    dispatcher.command("ai-personality", ai_personality, ephemeral=True, cooldown=cooldown)
    dispatcher.command("ai-clear", ai_clear, ephemeral=True)
    dispatcher.command("ai-game", ai_game, cooldown=cooldown)
