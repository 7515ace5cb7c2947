from __future__ import annotations

import asyncio
from dataclasses import dataclass
from dataclasses import field

import discord
from config.defaults import SELF_ROLE_MAX_OPTIONS
from misc.embeds import make_embed
from selfroles.store import add_self_role_sync
from selfroles.store import list_self_roles_sync
from selfroles.store import remove_self_role_sync
from selfroles.views import build_self_role_view


@dataclass(slots=True)
class SelfRoleOutcome:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def describe(self) -> str:
        lines = []
        if self.added:
            lines.append(f"**✅ Added:** {', '.join(self.added)}")
        if self.removed:
            lines.append(f"**❌ Removed:** {', '.join(self.removed)}")
        if self.errors:
            lines.append(f"**⚠️ Errors:** {', '.join(self.errors)}")
        return "\n".join(lines) or "No changes were made."


def bot_can_assign(guild, role) -> bool:
    top = getattr(getattr(guild, "me", None), "top_role", None)
    if top is None or getattr(role, "managed", False):
        return False
    return role.position < top.position


def _selected_ids(values: list[str]) -> set[int]:
    out: set[int] = set()
    for value in values or []:
        try:
            out.add(int(value))
        except (TypeError, ValueError):
            continue
    return out


class SelfRoleService:
    def __init__(self, *, db_lock: asyncio.Lock, db_conn):
        self.db_lock = db_lock
        self.db_conn = db_conn

    async def roles(self, guild_id: int) -> list[dict]:
        async with self.db_lock:
            return await asyncio.to_thread(list_self_roles_sync, self.db_conn, int(guild_id))

    async def add_role(self, guild_id: int, role_id: int, *, emoji: str | None, description: str | None) -> bool:
        """Returns False when the guild already offers the maximum number of roles."""
        current = await self.roles(guild_id)
        if len(current) >= SELF_ROLE_MAX_OPTIONS and all(r["role_id"] != int(role_id) for r in current):
            return False
        async with self.db_lock:
            await asyncio.to_thread(
                lambda c: add_self_role_sync(c, int(guild_id), int(role_id), emoji=emoji, description=description),
                self.db_conn,
            )
        return True

    async def remove_role(self, guild_id: int, role_id: int) -> bool:
        async with self.db_lock:
            return await asyncio.to_thread(remove_self_role_sync, self.db_conn, int(guild_id), int(role_id))

    async def _offered(self, guild) -> list[tuple[object, dict]]:
        offered = []
        for row in await self.roles(guild.id):
            role = guild.get_role(row["role_id"])
            if role is not None:
                offered.append((role, row))
        return offered

    async def panel(self, guild) -> tuple[discord.Embed, discord.ui.View] | None:
        offered = await self._offered(guild)
        if not offered:
            return None
        embed = make_embed(
            "🎭 Self Roles",
            "Pick roles from the menu below. Leave a role unselected to remove it.",
            fields=[
                (f"{row.get('emoji') or '🔹'} {role.name}", row.get("description") or role.mention, False)
                for role, row in offered
            ],
        )
        return embed, build_self_role_view(offered)

    async def apply_selection(self, member, values: list[str]) -> SelfRoleOutcome:
        guild = member.guild
        wanted = _selected_ids(values)
        current = {int(role.id) for role in getattr(member, "roles", []) or []}
        outcome = SelfRoleOutcome()
        to_add = []
        to_remove = []

        for role, _ in await self._offered(guild):
            role_id = int(role.id)
            if role_id in wanted and role_id not in current:
                target = to_add
            elif role_id not in wanted and role_id in current:
                target = to_remove
            else:
                continue
            if not bot_can_assign(guild, role):
                outcome.errors.append(f"Cannot change **{role.name}** - role hierarchy issue")
                continue
            target.append(role)

        try:
            if to_add:
                await member.add_roles(*to_add, reason="Self-role assignment")
                outcome.added = [role.name for role in to_add]
            if to_remove:
                await member.remove_roles(*to_remove, reason="Self-role removal")
                outcome.removed = [role.name for role in to_remove]
        except discord.Forbidden:
            outcome.errors.append("I'm missing the **Manage Roles** permission")
        print(
            f"[SelfRoles] guild={guild.id} user={member.id} "
            f"added={len(outcome.added)} removed={len(outcome.removed)} errors={len(outcome.errors)}"
        )
        return outcome
