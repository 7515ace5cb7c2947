from __future__ import annotations

from typing import Awaitable, Callable, Literal, Optional

import discord
from discord import app_commands

Forward = Callable[[discord.Interaction, str, dict], Awaitable[None]]


async def _discard(interaction: discord.Interaction, name: str, options: dict) -> None:
    return None


def register_slash_commands(
    tree: app_commands.CommandTree,
    *,
    forward: Forward = _discard,
    game_choices: list[tuple[str, str]] | None = None,
) -> list[str]:
    """Declares every slash command. Callbacks only hand their options to ``forward``."""
    games = [app_commands.Choice(name=label, value=value) for label, value in (game_choices or [])][:25]

    # ---- AI chat ----

    @tree.command(name="ai-toggle", description="Enable or disable AI chat in this server")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(enabled="Turn AI chat on or off")
    async def ai_toggle(interaction: discord.Interaction, enabled: bool):
        await forward(interaction, "ai-toggle", {"enabled": enabled})

    @tree.command(name="ai-channel", description="Restrict AI chat to one channel (omit to allow all)")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(channel="Channel where the AI responds")
    async def ai_channel(interaction: discord.Interaction, channel: discord.TextChannel | None = None):
        await forward(interaction, "ai-channel", {"channel": channel})

    @tree.command(name="ai-symbol", description="Set the symbol that triggers AI replies")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(symbol="Trigger symbol, e.g. ! or ?")
    async def ai_symbol(interaction: discord.Interaction, symbol: app_commands.Range[str, 1, 5]):
        await forward(interaction, "ai-symbol", {"symbol": symbol})

    @tree.command(name="ai-status", description="Show AI chat settings for this server")
    @app_commands.guild_only()
    async def ai_status(interaction: discord.Interaction):
        await forward(interaction, "ai-status", {})

    @tree.command(name="ai-reset", description="Reset AI chat settings to defaults")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def ai_reset(interaction: discord.Interaction):
        await forward(interaction, "ai-reset", {})

    @tree.command(name="ai-personality", description="Set the AI personality")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(type="Personality style")
    async def ai_personality(
        interaction: discord.Interaction,
        type: Literal["friendly", "professional", "casual", "funny"],
    ):
        await forward(interaction, "ai-personality", {"type": type})

    @tree.command(name="ai-clear", description="Forget your conversation history and active game")
    async def ai_clear(interaction: discord.Interaction):
        await forward(interaction, "ai-clear", {})

    @tree.command(name="ai-game", description="Start a conversation game with the AI")
    @app_commands.guild_only()
    @app_commands.describe(game="Which game to play")
    @app_commands.choices(game=games)
    async def ai_game(interaction: discord.Interaction, game: app_commands.Choice[str]):
        await forward(interaction, "ai-game", {"game": game.value})

    # ---- tickets ----

    @tree.command(name="ticket-setup", description="Configure the ticket system and post a panel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(
        category="Category where ticket channels are created",
        log_channel="Channel for ticket logs",
        title="Panel title",
        description="Panel description",
    )
    async def ticket_setup(
        interaction: discord.Interaction,
        category: discord.CategoryChannel,
        log_channel: discord.TextChannel | None = None,
        title: Optional[app_commands.Range[str, 1, 200]] = None,
        description: Optional[app_commands.Range[str, 1, 1000]] = None,
    ):
        await forward(
            interaction,
            "ticket-setup",
            {"category": category, "log_channel": log_channel, "title": title, "description": description},
        )

    @tree.command(name="ticket-close", description="Close the ticket in this channel")
    @app_commands.guild_only()
    @app_commands.describe(reason="Why the ticket is being closed")
    async def ticket_close(interaction: discord.Interaction, reason: Optional[app_commands.Range[str, 1, 500]] = None):
        await forward(interaction, "ticket-close", {"reason": reason})

    # ---- moderation ----

    @tree.command(name="warn", description="Warn a member")
    @app_commands.guild_only()
    @app_commands.default_permissions(moderate_members=True)
    @app_commands.describe(user="Member to warn", reason="Reason for the warning")
    async def warn(interaction: discord.Interaction, user: discord.Member, reason: app_commands.Range[str, 1, 500]):
        await forward(interaction, "warn", {"user": user, "reason": reason})

    @tree.command(name="warnings", description="List a member's active warnings")
    @app_commands.guild_only()
    @app_commands.default_permissions(moderate_members=True)
    async def warnings(interaction: discord.Interaction, user: discord.Member):
        await forward(interaction, "warnings", {"user": user})

    @tree.command(name="clear-warnings", description="Remove all warnings for a member")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def clear_warnings(interaction: discord.Interaction, user: discord.Member):
        await forward(interaction, "clear-warnings", {"user": user})

    @tree.command(name="automod", description="Turn automatic moderation on or off")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def automod(interaction: discord.Interaction, enabled: bool):
        await forward(interaction, "automod", {"enabled": enabled})

    # ---- levels ----

    @tree.command(name="rank", description="Show your level or another member's")
    @app_commands.guild_only()
    async def rank(interaction: discord.Interaction, user: discord.Member | None = None):
        await forward(interaction, "rank", {"user": user})

    @tree.command(name="leaderboard", description="Show the server XP leaderboard")
    @app_commands.guild_only()
    async def leaderboard(interaction: discord.Interaction):
        await forward(interaction, "leaderboard", {})

    @tree.command(name="level-role", description="Grant a role when members reach a level")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_roles=True)
    async def level_role(
        interaction: discord.Interaction,
        level: app_commands.Range[int, 1, 500],
        role: discord.Role,
    ):
        await forward(interaction, "level-role", {"level": level, "role": role})

    # ---- giveaways ----

    @tree.command(name="giveaway-start", description="Start a giveaway in this channel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(
        prize="What the winners get",
        duration_minutes="How long entries stay open",
        winners="Number of winners",
        description="Extra details shown on the giveaway",
    )
    async def giveaway_start(
        interaction: discord.Interaction,
        prize: app_commands.Range[str, 1, 200],
        duration_minutes: app_commands.Range[int, 1, 40320],
        winners: Optional[app_commands.Range[int, 1, 20]] = None,
        description: Optional[app_commands.Range[str, 1, 1000]] = None,
    ):
        await forward(
            interaction,
            "giveaway-start",
            {"prize": prize, "duration_minutes": duration_minutes, "winners": winners, "description": description},
        )

    @tree.command(name="giveaway-end", description="End a giveaway early and draw its winners")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    @app_commands.describe(message_id="ID of the giveaway message")
    async def giveaway_end(interaction: discord.Interaction, message_id: app_commands.Range[str, 1, 25]):
        await forward(interaction, "giveaway-end", {"message_id": message_id})

    # ---- self roles ----

    @tree.command(name="selfrole-add", description="Let members pick a role from the self-role panel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_roles=True)
    @app_commands.describe(role="Role to offer", emoji="Emoji shown next to it", description="Short description")
    async def selfrole_add(
        interaction: discord.Interaction,
        role: discord.Role,
        emoji: Optional[app_commands.Range[str, 1, 32]] = None,
        description: Optional[app_commands.Range[str, 1, 100]] = None,
    ):
        await forward(interaction, "selfrole-add", {"role": role, "emoji": emoji, "description": description})

    @tree.command(name="selfrole-remove", description="Stop offering a role on the self-role panel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_roles=True)
    async def selfrole_remove(interaction: discord.Interaction, role: discord.Role):
        await forward(interaction, "selfrole-remove", {"role": role})

    @tree.command(name="selfrole-panel", description="Post the self-role picker in this channel")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_roles=True)
    async def selfrole_panel(interaction: discord.Interaction):
        await forward(interaction, "selfrole-panel", {})

    # ---- admin ----

    @tree.command(name="command-disable", description="Disable a command in this server")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def command_disable(
        interaction: discord.Interaction,
        command: app_commands.Range[str, 1, 32],
        reason: Optional[app_commands.Range[str, 1, 200]] = None,
    ):
        await forward(interaction, "command-disable", {"command": command, "reason": reason})

    @tree.command(name="command-enable", description="Re-enable a disabled command")
    @app_commands.guild_only()
    @app_commands.default_permissions(manage_guild=True)
    async def command_enable(interaction: discord.Interaction, command: app_commands.Range[str, 1, 32]):
        await forward(interaction, "command-enable", {"command": command})

    return sorted(cmd.name for cmd in tree.get_commands())
