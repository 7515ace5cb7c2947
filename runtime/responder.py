from __future__ import annotations

import discord
from runtime.dispatcher import InteractionEvent
from runtime.errors import BotError
from runtime.errors import PlatformRaceError
from runtime.errors import UnknownError
from runtime.interaction_state import ReplyPayload

UNKNOWN_INTERACTION = 10062
ALREADY_ACKNOWLEDGED = 40060
MISSING_PERMISSIONS = 50013

_RACE_CODES = {UNKNOWN_INTERACTION, ALREADY_ACKNOWLEDGED}


def translate_platform_error(exc: BaseException) -> BotError:
    if isinstance(exc, BotError):
        return exc
    if isinstance(exc, discord.InteractionResponded):
        return PlatformRaceError(str(exc))
    code = getattr(exc, "code", None)
    if code in _RACE_CODES:
        return PlatformRaceError(f"discord code={code}: {exc}")
    return UnknownError(f"{exc.__class__.__name__}: {exc}")


class DiscordResponder:
    """Adapts a ``discord.Interaction`` to the session's responder boundary."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    async def acknowledge(self, *, ephemeral: bool = False, update: bool = False) -> None:
        try:
            if update:
                await self.interaction.response.defer()
            else:
                await self.interaction.response.defer(ephemeral=ephemeral, thinking=True)
        except discord.DiscordException as e:
            raise translate_platform_error(e) from e

    async def reply(self, payload: ReplyPayload) -> None:
        try:
            await self.interaction.response.send_message(**payload.to_kwargs())
        except discord.DiscordException as e:
            raise translate_platform_error(e) from e

    async def follow_up(self, payload: ReplyPayload) -> None:
        try:
            await self.interaction.followup.send(**payload.to_kwargs())
        except discord.DiscordException as e:
            raise translate_platform_error(e) from e

    async def edit_message(self, payload: ReplyPayload) -> None:
        try:
            await self.interaction.edit_original_response(**payload.to_kwargs(include_ephemeral=False))
        except discord.DiscordException as e:
            raise translate_platform_error(e) from e

    async def open_modal(self, modal: discord.ui.Modal) -> None:
        try:
            await self.interaction.response.send_modal(modal)
        except discord.DiscordException as e:
            raise translate_platform_error(e) from e


def event_from_interaction(interaction: discord.Interaction, *, name: str | None = None, options: dict | None = None) -> InteractionEvent:
    data = interaction.data or {}
    if interaction.type == discord.InteractionType.application_command:
        kind = "command"
        logical_name = name or str(data.get("name") or "")
    elif interaction.type == discord.InteractionType.modal_submit:
        kind = "modal"
        logical_name = str(data.get("custom_id") or "")
    else:
        component_type = int(data.get("component_type") or 0)
        kind = "button" if component_type == discord.ComponentType.button.value else "select"
        logical_name = str(data.get("custom_id") or "")

    fields: dict[str, str] = {}
    for row in data.get("components", []) or []:
        for component in row.get("components", []) or []:
            if component.get("custom_id"):
                fields[str(component["custom_id"])] = str(component.get("value") or "")

    return InteractionEvent(
        kind=kind,
        name=logical_name,
        interaction_id=int(interaction.id),
        user_id=int(interaction.user.id),
        guild_id=int(interaction.guild_id) if interaction.guild_id else None,
        channel_id=int(interaction.channel_id) if interaction.channel_id else None,
        options=dict(options or {}),
        values=[str(v) for v in (data.get("values") or [])],
        fields=fields,
        raw=interaction,
    )
