from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.command_deps import ensure_manager
from misc.embeds import success_embed
from runtime.dispatcher import InteractionContext
from runtime.dispatcher import InteractionDispatcher
from runtime.dispatcher import InteractionEvent
from runtime.interaction_state import ReplyPayload

ALWAYS_ENABLED = frozenset({"command-enable", "command-disable"})


def normalize_command_name(raw: str | None) -> str:
    return str(raw or "").strip().lstrip("/").lower()


def make_disabled_command_guard(deps: CommandDeps):
    async def disabled_command_guard(event: InteractionEvent) -> str | None:
        if event.kind != "command" or event.guild_id is None or event.name in ALWAYS_ENABLED:
            return None
        row = await deps.settings.disabled_command(event.guild_id, event.name)
        if not row:
            return None
        reason = f" Reason: {row['reason']}" if row.get("reason") else ""
        return f"🚫 `/{event.name}` is disabled in this server.{reason}"

    return disabled_command_guard


def register(dispatcher: InteractionDispatcher, *, deps: CommandDeps, gates: CommandGates) -> None:
    dispatcher.add_guard(make_disabled_command_guard(deps))

    async def command_disable(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        name = normalize_command_name(ctx.event.options.get("command"))
        if name in ALWAYS_ENABLED:
            await ctx.resolve(ReplyPayload(content=f"❌ `/{name}` can't be disabled.", ephemeral=True))
            return
        if name not in dispatcher.command_names():
            await ctx.resolve(ReplyPayload(content=f"❓ There is no `/{name}` command.", ephemeral=True))
            return
        reason = ctx.event.options.get("reason")
        await deps.settings.disable_command(ctx.event.guild_id, name, disabled_by=ctx.event.user_id, reason=reason)
        print(f"[Admin] disabled /{name} guild={ctx.event.guild_id} by={ctx.event.user_id}")
        await ctx.resolve(ReplyPayload(embed=success_embed("🔧 Command Disabled", f"`/{name}` is now disabled here.")))

    async def command_enable(ctx: InteractionContext):
        if not await ensure_manager(ctx, gates):
            return
        name = normalize_command_name(ctx.event.options.get("command"))
        if not await deps.settings.enable_command(ctx.event.guild_id, name):
            await ctx.resolve(ReplyPayload(content=f"ℹ️ `/{name}` was not disabled.", ephemeral=True))
            return
        print(f"[Admin] enabled /{name} guild={ctx.event.guild_id} by={ctx.event.user_id}")
        await ctx.resolve(ReplyPayload(embed=success_embed("🔧 Command Enabled", f"`/{name}` is available again.")))

    dispatcher.command("command-disable", command_disable, ephemeral=True, cooldown=deps.command_cooldown_seconds)
    dispatcher.command("command-enable", command_enable, ephemeral=True, cooldown=deps.command_cooldown_seconds)
