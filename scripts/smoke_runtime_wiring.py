from __future__ import annotations

import asyncio
import importlib
from types import SimpleNamespace


class _DummyCompletions:
    def create(self, *args, **kwargs):
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="hi"))]
        )


class _DummyClient:
    def __init__(self):
        self.chat = SimpleNamespace(completions=_DummyCompletions())


async def _noop_async(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install the project and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0
    if not _try_import_or_skip("openai"):
        return 0
    if not _try_import_or_skip("yaml", "PyYAML"):
        return 0

    import discord
    from discord.ext import commands
    from chat.games import default_game_catalog
    from chat.llm import OpenAIChatProvider
    from chat.memory import ConversationMemory
    from chat.service import ChatService
    from misc.runtime_wiring import wire_bot_runtime
    from runtime.leases import LeaseManager
    from runtime.rate_limit import RateLimiter

    intents = discord.Intents.none()
    bot = commands.Bot(command_prefix="!", intents=intents)
    db_lock = asyncio.Lock()
    db_conn = object()
    leases = LeaseManager()
    rate_limiter = RateLimiter()
    memory = ConversationMemory(rate_limiter=rate_limiter)
    chat = ChatService(
        provider=OpenAIChatProvider(client=_DummyClient(), model="gpt-4o-mini"),
        memory=memory,
        rate_limiter=rate_limiter,
        games=default_game_catalog(),
    )
    settings = SimpleNamespace(cached_guilds=0)

    dispatcher = wire_bot_runtime(
        bot,
        user_is_owner=lambda user: True,
        owner_user_ids={123456789012345678},
        list_schema_migrations_sync=lambda conn, limit: [],
        db_lock=db_lock,
        db_conn=db_conn,
        send_chunked=_noop_async,
        leases=leases,
        rate_limiter=rate_limiter,
        memory=memory,
        settings=settings,
        chat=chat,
        tickets=SimpleNamespace(),
        moderation=SimpleNamespace(),
        levels=SimpleNamespace(),
        giveaways=SimpleNamespace(),
        selfroles=SimpleNamespace(),
        command_cooldown_seconds=3.0,
        ticket_cooldown_seconds=30.0,
        leaderboard_cooldown_seconds=1.0,
        giveaway_cooldown_seconds=2.0,
        giveaway_sweep_seconds=30.0,
        channel_history_keep=100,
        recent_context_limit=3,
        lease_sweep_seconds=60.0,
        maintenance_interval_seconds=3600,
    )

    expected_prefix_commands = {"runtime", "dbmigrations"}
    missing = sorted(expected_prefix_commands - set(bot.all_commands.keys()))
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    slash_names = {cmd.name for cmd in bot.tree.get_commands()}
    unrouted = sorted(slash_names - set(dispatcher.command_names()))
    if unrouted:
        raise RuntimeError(f"Slash commands without a dispatcher route: {unrouted}")

    for event_name in ("on_ready", "on_interaction", "on_message"):
        if getattr(bot, event_name, None) is None:
            raise RuntimeError(f"Runtime event {event_name} was not registered")

    print(f"Smoke wiring check passed ({len(slash_names)} slash commands).")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
