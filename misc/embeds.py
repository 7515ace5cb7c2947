from __future__ import annotations

import discord
from config.defaults import DEFAULT_EMBED_COLOR

SUCCESS_COLOR = 0x57F287
ERROR_COLOR = 0xED4245
WARNING_COLOR = 0xFEE75C
GAME_COLOR = 0x9932CC
GIVEAWAY_COLOR = 0xFF69B4


def make_embed(
    title: str,
    description: str = "",
    *,
    color: int | None = None,
    fields: list[tuple[str, str, bool]] | None = None,
    footer: str | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=title[:256],
        description=(description or "")[:4096],
        color=color if color is not None else DEFAULT_EMBED_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    for name, value, inline in fields or []:
        embed.add_field(name=str(name)[:256], value=(str(value) or "-")[:1024], inline=inline)
    if footer:
        embed.set_footer(text=footer[:2048])
    return embed


def success_embed(title: str, description: str = "", **kwargs) -> discord.Embed:
    return make_embed(title, description, color=SUCCESS_COLOR, **kwargs)


def error_embed(title: str, description: str = "", **kwargs) -> discord.Embed:
    return make_embed(title, description, color=ERROR_COLOR, **kwargs)


def warning_embed(title: str, description: str = "", **kwargs) -> discord.Embed:
    return make_embed(title, description, color=WARNING_COLOR, **kwargs)
