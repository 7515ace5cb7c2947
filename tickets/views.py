from __future__ import annotations

import discord
from config.defaults import TICKET_MAX_STAFF_ROLES

CREATE_TICKET_ID = "create_ticket"
CLAIM_TICKET_ID = "claim_ticket"
CLOSE_TICKET_ID = "close_ticket"
STAFF_ROLES_SELECT_ID = "ticket_staff_roles"
CLOSE_TICKET_MODAL_ID = "closeticketmodal"
CLOSE_REASON_FIELD_ID = "close_reason"
CLOSE_REASON_MAX_LEN = 500


def build_ticket_panel_view(button_label: str = "Create Ticket") -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            label=(button_label or "Create Ticket")[:80],
            style=discord.ButtonStyle.primary,
            emoji="🎫",
            custom_id=CREATE_TICKET_ID,
        )
    )
    return view


def build_ticket_controls_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            label="Claim Ticket",
            style=discord.ButtonStyle.success,
            emoji="🙋",
            custom_id=CLAIM_TICKET_ID,
        )
    )
    view.add_item(
        discord.ui.Button(
            label="Close Ticket",
            style=discord.ButtonStyle.danger,
            emoji="🔒",
            custom_id=CLOSE_TICKET_ID,
        )
    )
    return view


def build_staff_role_select_view() -> discord.ui.View:
    view = discord.ui.View(timeout=600)
    view.add_item(
        discord.ui.RoleSelect(
            custom_id=STAFF_ROLES_SELECT_ID,
            placeholder="Pick the staff roles that can see tickets",
            min_values=1,
            max_values=TICKET_MAX_STAFF_ROLES,
        )
    )
    return view


def build_close_ticket_modal() -> discord.ui.Modal:
    modal = discord.ui.Modal(title="Close Ticket Confirmation", custom_id=CLOSE_TICKET_MODAL_ID, timeout=300)
    modal.add_item(
        discord.ui.TextInput(
            label="Reason for closing (optional)",
            custom_id=CLOSE_REASON_FIELD_ID,
            style=discord.TextStyle.paragraph,
            placeholder="Enter a reason for closing this ticket...",
            required=False,
            max_length=CLOSE_REASON_MAX_LEN,
        )
    )
    return modal
