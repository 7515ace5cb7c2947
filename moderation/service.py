from __future__ import annotations

import asyncio

import discord
from config.defaults import DEFAULT_WARNING_TTL_DAYS
from config.defaults import MOD_LOG_RETENTION_DAYS
from moderation.automod import AutomodRules
from moderation.automod import AutomodVerdict
from moderation.automod import check_message
from moderation.store import add_warning_sync
from moderation.store import clear_warnings_sync
from moderation.store import list_active_warnings_sync
from moderation.store import prune_moderation_sync


class ModerationService:
    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn,
        warning_ttl_days: int = DEFAULT_WARNING_TTL_DAYS,
        rules: AutomodRules | None = None,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.warning_ttl_days = max(0, int(warning_ttl_days))
        self.rules = rules or AutomodRules()

    async def warn(self, *, guild_id: int, user_id: int, moderator_id: int, reason: str, source: str = "manual") -> int:
        async with self.db_lock:
            return await asyncio.to_thread(
                lambda c: add_warning_sync(
                    c,
                    guild_id=guild_id,
                    user_id=user_id,
                    moderator_id=moderator_id,
                    reason=(reason or "No reason provided")[:500],
                    source=source,
                    ttl_days=self.warning_ttl_days or None,
                ),
                self.db_conn,
            )

    async def active_warnings(self, guild_id: int, user_id: int) -> list[dict]:
        async with self.db_lock:
            return await asyncio.to_thread(list_active_warnings_sync, self.db_conn, guild_id, user_id)

    async def clear_warnings(self, guild_id: int, user_id: int, moderator_id: int) -> int:
        async with self.db_lock:
            return await asyncio.to_thread(clear_warnings_sync, self.db_conn, guild_id, user_id, moderator_id)

    async def prune(self) -> tuple[int, int]:
        async with self.db_lock:
            return await asyncio.to_thread(
                lambda c: prune_moderation_sync(c, mod_log_retention_days=MOD_LOG_RETENTION_DAYS),
                self.db_conn,
            )

    def inspect(self, message: discord.Message) -> AutomodVerdict | None:
        return check_message(
            message.content,
            mention_count=len(message.mentions) + len(message.role_mentions),
            rules=self.rules,
        )

    async def enforce(self, message: discord.Message, bot_user_id: int) -> AutomodVerdict | None:
        perms = getattr(message.author, "guild_permissions", None)
        if perms is not None and perms.manage_messages:
            return None
        verdict = self.inspect(message)
        if verdict is None:
            return None

        try:
            await message.delete()
        except discord.HTTPException as e:
            print(f"[Automod] delete failed message={message.id}: {e}")
            return verdict

        await self.warn(
            guild_id=message.guild.id,
            user_id=message.author.id,
            moderator_id=bot_user_id,
            reason=verdict.reason,
            source=f"automod:{verdict.rule}",
        )
        print(f"[Automod] {verdict.rule} guild={message.guild.id} user={message.author.id}")
        try:
            await message.channel.send(
                f"⚠️ {message.author.mention}, your message was removed: {verdict.reason}.",
                delete_after=8,
            )
        except discord.HTTPException as e:
            print(f"[Automod] notice failed channel={message.channel.id}: {e}")
        return verdict
