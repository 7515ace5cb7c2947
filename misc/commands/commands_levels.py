from __future__ import annotations

from levels.service import LEADERBOARD_PREFIX
from levels.service import parse_leaderboard_custom_id
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_guild
from misc.commands.command_deps import ensure_role_manager
from misc.embeds import success_embed
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.interaction_state import ReplyPayload


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    async def rank(ctx: InteractionContext):
        if not await ensure_guild(ctx):
            return
        target = ctx.event.options.get("user") or getattr(ctx.event.raw, "user", None)
        user_id = int(getattr(target, "id", ctx.event.user_id))
        name = getattr(target, "display_name", None) or str(user_id)
        row, position = await deps.levels.rank(ctx.event.guild_id, user_id)
        await ctx.resolve(ReplyPayload(embed=deps.levels.rank_embed(name, row, position)))

    async def leaderboard(ctx: InteractionContext):
        if not await ensure_guild(ctx):
            return
        embed, view = await deps.levels.leaderboard(ctx.event.guild_id, 0)
        await ctx.resolve(ReplyPayload(embed=embed, view=view))

    async def leaderboard_page(ctx: InteractionContext):
        page = parse_leaderboard_custom_id(ctx.event.name)
        if page is None or ctx.event.guild_id is None:
            await ctx.resolve(ReplyPayload(content="❓ This leaderboard button has expired.", ephemeral=True))
            return
        embed, view = await deps.levels.leaderboard(ctx.event.guild_id, page)
        await ctx.resolve(ReplyPayload(embed=embed, view=view, clear_content=True))

    async def level_role(ctx: InteractionContext):
        if not await ensure_role_manager(ctx):
            return
        level = int(ctx.event.options.get("level") or 0)
        role = ctx.event.options.get("role")
        if level < 1 or role is None:
            await ctx.resolve(ReplyPayload(content="❌ Pick a level of 1 or more and a role.", ephemeral=True))
            return
        await deps.levels.set_level_role(ctx.event.guild_id, level, int(role.id))
        await ctx.resolve(
            ReplyPayload(embed=success_embed("🏅 Level Role Set", f"Members reaching level **{level}** get {role.mention}."))
        )

    dispatcher.command("rank", rank)
    dispatcher.command("leaderboard", leaderboard, cooldown=deps.command_cooldown_seconds)
    dispatcher.command("level-role", level_role, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.route(
        "button",
        prefix=LEADERBOARD_PREFIX,
        handler=leaderboard_page,
        ack="defer_update",
        cooldown=deps.leaderboard_cooldown_seconds,
    )
