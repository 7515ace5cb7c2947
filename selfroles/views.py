from __future__ import annotations

import discord
from config.defaults import SELF_ROLE_MAX_OPTIONS

SELF_ROLE_SELECT_ID = "selfrole_select"


def build_self_role_view(options: list[tuple[object, dict]]) -> discord.ui.View:
    """``options`` pairs each guild role with its stored self-role row."""
    choices = [
        discord.SelectOption(
            label=role.name[:100],
            value=str(role.id),
            description=(row.get("description") or "")[:100] or None,
            emoji=row.get("emoji") or None,
        )
        for role, row in options[:SELF_ROLE_MAX_OPTIONS]
    ]
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Select(
            custom_id=SELF_ROLE_SELECT_ID,
            placeholder="Pick the roles you want",
            min_values=0,
            max_values=max(1, len(choices)),
            options=choices,
        )
    )
    return view
