from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable

from misc.discord_gates import member_can_manage_roles
from runtime.dispatcher import InteractionContext
from runtime.interaction_state import ReplyPayload


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    db_lock: Any = None
    db_conn: Any = None
    send_chunked: Callable | None = None
    list_schema_migrations_sync: Callable | None = None

    # Runtime state
    leases: Any = None
    rate_limiter: Any = None
    memory: Any = None

    # Services
    settings: Any = None
    chat: Any = None
    tickets: Any = None
    moderation: Any = None
    levels: Any = None
    giveaways: Any = None
    selfroles: Any = None

    # Cooldowns
    command_cooldown_seconds: float = 3.0
    ticket_cooldown_seconds: float = 30.0
    leaderboard_cooldown_seconds: float = 1.0
    giveaway_cooldown_seconds: float = 2.0


@dataclass(frozen=True)
class CommandGates:
    user_is_owner: Callable[[Any], bool] = _default_false
    can_manage_guild: Callable[[Any], bool] = _default_false
    owner_user_ids: set[int] = field(default_factory=set)


async def ensure_guild(ctx: InteractionContext) -> bool:
    if ctx.event.guild_id is not None:
        return True
    await ctx.resolve(ReplyPayload(content="This command only works inside a server.", ephemeral=True))
    return False


async def ensure_manager(ctx: InteractionContext, gates: CommandGates) -> bool:
    if not await ensure_guild(ctx):
        return False
    user = getattr(ctx.event.raw, "user", None)
    if gates.can_manage_guild(user):
        return True
    await ctx.resolve(ReplyPayload(content="🚫 You need the **Manage Server** permission for this.", ephemeral=True))
    return False


async def ensure_role_manager(ctx: InteractionContext) -> bool:
    if not await ensure_guild(ctx):
        return False
    if member_can_manage_roles(getattr(ctx.event.raw, "user", None)):
        return True
    await ctx.resolve(ReplyPayload(content="🚫 You need the **Manage Roles** permission for this.", ephemeral=True))
    return False
