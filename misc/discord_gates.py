from __future__ import annotations

import discord


def message_in_channel(message: discord.Message, channel_id: int | None) -> bool:
    if not channel_id:
        return True
    if int(getattr(message.channel, "id", 0) or 0) == int(channel_id):
        return True
    # thread: allow if parent is the configured channel
    if isinstance(message.channel, discord.Thread) and message.channel.parent:
        return int(message.channel.parent.id) == int(channel_id)
    return False


def extract_ai_prompt(message: discord.Message, settings: dict) -> str | None:
    if getattr(message, "guild", None) is None:
        return None
    if not int(settings.get("ai_enabled") or 0):
        return None
    if not message_in_channel(message, settings.get("ai_channel_id")):
        return None
    symbol = str(settings.get("ai_trigger_symbol") or "").strip()
    content = (message.content or "").strip()
    if not symbol or not content.startswith(symbol):
        return None
    prompt = content[len(symbol):].strip()
    return prompt or None


def user_is_owner(user, owner_user_ids: set[int]) -> bool:
    if user is None:
        return False
    return int(getattr(user, "id", 0) or 0) in owner_user_ids


def member_can_manage_guild(user) -> bool:
    perms = getattr(user, "guild_permissions", None)
    if perms is None:
        return False
    return bool(getattr(perms, "administrator", False) or getattr(perms, "manage_guild", False))


def member_can_manage_roles(user) -> bool:
    perms = getattr(user, "guild_permissions", None)
    if perms is None:
        return False
    return bool(getattr(perms, "administrator", False) or getattr(perms, "manage_roles", False))
