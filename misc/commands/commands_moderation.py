from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_guild
from misc.commands.command_deps import ensure_manager
from misc.embeds import make_embed
from misc.embeds import success_embed
from misc.embeds import warning_embed
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.interaction_state import ReplyPayload

MAX_LISTED_WARNINGS = 10


def _can_moderate(user) -> bool:
    perms = getattr(user, "guild_permissions", None)
    if perms is None:
        return False
    return bool(
        getattr(perms, "administrator", False)
        or getattr(perms, "moderate_members", False)
        or getattr(perms, "kick_members", False)
    )


def _short_date(value: str | None) -> str:
    return (value or "")[:10] or "?"


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    async def ensure_moderator(ctx: InteractionContext) -> bool:
        if not await ensure_guild(ctx):
            return False
        if _can_moderate(getattr(ctx.event.raw, "user", None)):
            return True
        await ctx.resolve(ReplyPayload(content="🚫 You need moderation permissions for this.", ephemeral=True))
        return False

    async def warn(ctx: InteractionContext):
        if not await ensure_moderator(ctx):
            return
        user = ctx.event.options.get("user")
        reason = str(ctx.event.options.get("reason") or "").strip() or "No reason provided"
        if getattr(user, "bot", False):
            await ctx.resolve(ReplyPayload(content="❌ Bots can't be warned.", ephemeral=True))
            return
        await deps.moderation.warn(
            guild_id=ctx.event.guild_id,
            user_id=int(user.id),
            moderator_id=ctx.event.user_id,
            reason=reason,
        )
        active = await deps.moderation.active_warnings(ctx.event.guild_id, int(user.id))
        embed = warning_embed(
            "⚠️ Member Warned",
            f"{user.mention} has been warned.",
            fields=[("Reason", reason, False), ("Active warnings", str(len(active)), True)],
        )
        await ctx.resolve(ReplyPayload(embed=embed))

    async def warnings(ctx: InteractionContext):
        if not await ensure_moderator(ctx):
            return
        user = ctx.event.options.get("user")
        rows = await deps.moderation.active_warnings(ctx.event.guild_id, int(user.id))
        if not rows:
            await ctx.resolve(ReplyPayload(content=f"✅ {user.mention} has no active warnings.", ephemeral=True))
            return
        lines = [
            f"`{_short_date(r['created_at_utc'])}` <@{r['moderator_id']}>: {r['reason']}"
            for r in rows[:MAX_LISTED_WARNINGS]
        ]
        if len(rows) > MAX_LISTED_WARNINGS:
            lines.append(f"...and {len(rows) - MAX_LISTED_WARNINGS} more")
        embed = make_embed(f"⚠️ Warnings for {user}", "\n".join(lines), footer=f"{len(rows)} active")
        await ctx.resolve(ReplyPayload(embed=embed, ephemeral=True))

    async def clear_warnings(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        user = ctx.event.options.get("user")
        removed = await deps.moderation.clear_warnings(ctx.event.guild_id, int(user.id), ctx.event.user_id)
        await ctx.resolve(
            ReplyPayload(embed=success_embed("🧹 Warnings Cleared", f"Removed {removed} warning(s) for {user.mention}."))
        )

    async def automod(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        enabled = bool(ctx.event.options.get("enabled"))
        await deps.settings.set_guild_setting(ctx.event.guild_id, "automod_enabled", 1 if enabled else 0)
        state = "enabled" if enabled else "disabled"
        await ctx.resolve(ReplyPayload(embed=success_embed("🛡️ Automod Updated", f"Automod is now **{state}**.")))

    cooldown = deps.command_cooldown_seconds
    dispatcher.command("warn", warn, cooldown=cooldown)
    dispatcher.command("warnings", warnings, ephemeral=True)
    dispatcher.command("clear-warnings", clear_warnings, ephemeral=True, cooldown=cooldown)
    dispatcher.command("automod", automod, ephemeral=True, cooldown=cooldown)
