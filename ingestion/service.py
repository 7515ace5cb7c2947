from __future__ import annotations

import asyncio
from typing import Any

from config.defaults import CHANNEL_HISTORY_KEEP
from ingestion.store import fetch_recent_channel_messages_sync
from ingestion.store import insert_channel_message_sync


async def log_message(
    message: Any,
    *,
    db_lock,
    db_conn,
    keep_last: int = CHANNEL_HISTORY_KEEP,
) -> None:
    guild = message.guild
    payload = {
        "message_id": message.id,
        "guild_id": guild.id if guild else None,
        "channel_id": message.channel.id,
        "author_id": message.author.id,
        "author_name": str(message.author),
        "content": message.content or "",
        "created_at_utc": message.created_at.isoformat() if message.created_at else "",
    }

    async with db_lock:
        await asyncio.to_thread(insert_channel_message_sync, db_conn, payload, keep_last)


async def recent_channel_context(
    channel_id: int,
    before_message_id: int,
    *,
    db_lock,
    db_conn,
    limit: int = 3,
    max_line_chars: int = 80,
) -> str:
    async with db_lock:
        rows = await asyncio.to_thread(
            fetch_recent_channel_messages_sync, db_conn, channel_id, before_message_id, limit
        )
    lines = []
    for _ts, who, txt in reversed(rows):
        clean = " ".join((txt or "").split())
        if len(clean) > max_line_chars:
            clean = clean[: max_line_chars - 1] + "..."
        lines.append(f"{who}: {clean}")
    return "\n".join(lines)
