from __future__ import annotations

import discord

GIVEAWAY_ENTER_ID = "giveaway_enter"


def build_giveaway_view(*, ended: bool = False) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            label="Giveaway Ended" if ended else "Enter Giveaway",
            style=discord.ButtonStyle.secondary if ended else discord.ButtonStyle.success,
            emoji="🎉",
            custom_id=GIVEAWAY_ENTER_ID,
            disabled=ended,
        )
    )
    return view
