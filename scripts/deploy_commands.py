from __future__ import annotations

import asyncio
import os
import sys

import discord
from discord import app_commands

from chat.games import default_games_path
from chat.games import load_game_catalog
from misc.commands.slash_manifest import register_slash_commands

_ERROR_HINTS = {
    50001: "Missing Access: make sure the bot was invited with the applications.commands scope.",
    10004: "Unknown Guild: check the guild id and that the bot is a member of that server.",
    50035: "Invalid Form Body: one of the command definitions was rejected.",
}


def parse_guild_arg(argv: list[str]) -> int | None:
    if len(argv) < 2 or not argv[1].strip():
        return None
    raw = argv[1].strip()
    if not raw.isdigit():
        raise ValueError(f"Guild id must be numeric, got {raw!r}")
    return int(raw)


def error_hint(exc: BaseException) -> str | None:
    return _ERROR_HINTS.get(getattr(exc, "code", None))


def build_tree(client: discord.Client) -> tuple[app_commands.CommandTree, list[str]]:
    catalog, warning = load_game_catalog(os.getenv("GUILDKEEPER_GAMES_PATH", default_games_path()))
    if warning:
        print(f"[CFG] {warning}")
    tree = app_commands.CommandTree(client)
    names = register_slash_commands(tree, game_choices=catalog.choices())
    return tree, names


async def deploy(token: str, *, guild_id: int | None, application_id: int | None) -> list[str]:
    client = discord.Client(intents=discord.Intents.none(), application_id=application_id)
    tree, names = build_tree(client)
    print(f"[Deploy] registering {len(names)} commands: {', '.join(names)}")

    async with client:
        await client.login(token)
        if guild_id is not None:
            guild = discord.Object(id=guild_id)
            tree.copy_global_to(guild=guild)
            synced = await tree.sync(guild=guild)
            print(f"[Deploy] synced {len(synced)} commands to guild {guild_id} (available immediately)")
        else:
            synced = await tree.sync()
            print(f"[Deploy] synced {len(synced)} global commands (may take up to an hour to appear)")
    return [cmd.name for cmd in synced]


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv if argv is None else argv)
    token = (os.getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        print("[Deploy] Missing DISCORD_TOKEN env var")
        return 1

    try:
        guild_id = parse_guild_arg(argv)
    except ValueError as e:
        print(f"[Deploy] {e}")
        return 1

    raw_app_id = (os.getenv("CLIENT_ID") or "").strip()
    application_id = int(raw_app_id) if raw_app_id.isdigit() else None

    try:
        asyncio.run(deploy(token, guild_id=guild_id, application_id=application_id))
    except discord.HTTPException as e:
        print(f"[Deploy] failed: {e}")
        hint = error_hint(e)
        if hint:
            print(f"[Deploy] hint: {hint}")
        return 1
    except Exception as e:
        print(f"[Deploy] failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
