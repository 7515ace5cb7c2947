from __future__ import annotations

import asyncio

import discord
from discord.ext import commands
from misc.discord_gates import extract_ai_prompt
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps
from runtime.leases import message_key
from runtime.responder import DiscordResponder
from runtime.responder import event_from_interaction

_ROUTED_INTERACTION_TYPES = (
    discord.InteractionType.component,
    discord.InteractionType.modal_submit,
)


async def handle_user_message(bot: commands.Bot, message: discord.Message, *, deps: RuntimeDeps) -> None:
    try:
        await deps.log_message_func(message)
    except Exception as e:
        print(f"[DB] channel history insert failed message={message.id}: {e}")

    settings = None
    if message.guild is not None:
        settings = await deps.settings.get_guild_settings(message.guild.id)
        if int(settings.get("automod_enabled") or 0) and bot.user is not None:
            verdict = await deps.moderation.enforce(message, bot.user.id)
            if verdict is not None:
                return

    ctx = await bot.get_context(message)
    if ctx.valid:
        await bot.invoke(ctx)
        return

    if settings is None:
        return

    if int(settings.get("leveling_enabled") or 0):
        try:
            row = await deps.levels.award_message_xp(
                guild_id=message.guild.id,
                user_id=message.author.id,
                message_id=message.id,
            )
            if row is not None:
                await deps.levels.handle_level_up(message, row)
        except Exception as e:
            print(f"[Levels] xp award failed message={message.id}: {e}")

    prompt = extract_ai_prompt(message, settings)
    if not prompt:
        return

    try:
        channel_context = await deps.recent_channel_context_func(
            message.channel.id,
            message.id,
            limit=deps.recent_context_limit,
        )
        async with message.channel.typing():
            reply = await deps.chat.reply_to(
                message.author.id,
                prompt,
                personality=str(settings.get("ai_personality") or "friendly"),
                channel_context=channel_context,
            )
        await message.reply(reply.text, mention_author=False)
    except Exception as e:
        print(f"[Chat] reply failed message={message.id}: {e}")


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Guildkeeper is online as {bot.user}")

        if not getattr(bot, "_lease_sweep_task", None):
            bot._lease_sweep_task = asyncio.create_task(boot.lease_sweep_loop_func())
            print("[Lease] sweep loop started")

        if not getattr(bot, "_maintenance_task", None):
            bot._maintenance_task = asyncio.create_task(boot.maintenance_loop_func())
            print("[Jobs] maintenance loop started")

        if boot.giveaway_loop_func is not None and not getattr(bot, "_giveaway_task", None):
            bot._giveaway_task = asyncio.create_task(boot.giveaway_loop_func())
            print("[Giveaways] sweep loop started")

    @bot.event
    async def on_interaction(interaction: discord.Interaction):
        # slash commands arrive through the app command tree instead
        if interaction.type not in _ROUTED_INTERACTION_TYPES:
            return
        await deps.dispatcher.dispatch(event_from_interaction(interaction), DiscordResponder(interaction))

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return

        with deps.leases.hold(message_key(message.id, message.author.id)) as admitted:
            if not admitted:
                return
            await handle_user_message(bot, message, deps=deps)
