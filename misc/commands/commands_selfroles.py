from __future__ import annotations

import discord
from config.defaults import SELF_ROLE_MAX_OPTIONS
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_guild
from misc.commands.command_deps import ensure_role_manager
from misc.embeds import success_embed
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.interaction_state import ReplyPayload
from selfroles.service import bot_can_assign
from selfroles.views import SELF_ROLE_SELECT_ID


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    async def selfrole_add(ctx: InteractionContext):
        if not await ensure_role_manager(ctx):
            return
        raw = ctx.event.raw
        role = ctx.event.options.get("role")
        if not bot_can_assign(raw.guild, role):
            await ctx.resolve(
                ReplyPayload(content=f"🚫 {role.mention} is above my highest role, so I can't hand it out.", ephemeral=True)
            )
            return
        added = await deps.selfroles.add_role(
            ctx.event.guild_id,
            int(role.id),
            emoji=ctx.event.options.get("emoji"),
            description=ctx.event.options.get("description"),
        )
        if not added:
            notice = f"❌ This server already offers the maximum of {SELF_ROLE_MAX_OPTIONS} self roles."
            await ctx.resolve(ReplyPayload(content=notice, ephemeral=True))
            return
        print(f"[SelfRoles] added guild={ctx.event.guild_id} role={role.id}")
        await ctx.resolve(
            ReplyPayload(
                embed=success_embed("🎭 Self Role Added", f"{role.mention} can now be picked from the self-role panel."),
                ephemeral=True,
            )
        )

    async def selfrole_remove(ctx: InteractionContext):
        if not await ensure_role_manager(ctx):
            return
        role = ctx.event.options.get("role")
        if await deps.selfroles.remove_role(ctx.event.guild_id, int(role.id)):
            await ctx.resolve(ReplyPayload(content=f"🗑️ {role.mention} is no longer self-assignable.", ephemeral=True))
        else:
            await ctx.resolve(ReplyPayload(content=f"❓ {role.mention} was not a self role.", ephemeral=True))

    async def selfrole_panel(ctx: InteractionContext):
        if not await ensure_role_manager(ctx):
            return
        raw = ctx.event.raw
        panel = await deps.selfroles.panel(raw.guild)
        if panel is None:
            await ctx.resolve(ReplyPayload(content="❌ Add roles with /selfrole-add first.", ephemeral=True))
            return
        embed, view = panel
        try:
            await raw.channel.send(embed=embed, view=view)
        except discord.Forbidden:
            await ctx.resolve(
                ReplyPayload(content="🚫 I can't post in this channel. Check my permissions and try again.", ephemeral=True)
            )
            return
        await ctx.resolve(ReplyPayload(content="🎭 Self-role panel posted.", ephemeral=True))

    async def selfrole_selected(ctx: InteractionContext):
        if not await ensure_guild(ctx):
            return
        outcome = await deps.selfroles.apply_selection(ctx.event.raw.user, ctx.event.values)
        await ctx.resolve(ReplyPayload(embed=success_embed("🎭 Roles Updated", outcome.describe()), ephemeral=True))

    dispatcher.command("selfrole-add", selfrole_add, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.command("selfrole-remove", selfrole_remove, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.command("selfrole-panel", selfrole_panel, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.route(
        "select",
        name=SELF_ROLE_SELECT_ID,
        handler=selfrole_selected,
        ephemeral=True,
        cooldown=deps.command_cooldown_seconds,
    )
