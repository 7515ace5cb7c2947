from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Protocol

from runtime.errors import PlatformRaceError
from runtime.errors import classify_error
from runtime.errors import error_notice
from runtime.errors import log_debug
from runtime.errors import log_error

MAX_RENDER_CHARS = 1900


class InteractionState(str, enum.Enum):
    UNACKNOWLEDGED = "unacknowledged"
    DEFERRED = "deferred"
    REPLIED = "replied"
    FAILED = "failed"


TERMINAL_STATES = frozenset({InteractionState.REPLIED, InteractionState.FAILED})
ACK_MODES = ("defer", "defer_update", "reply", "modal")


def truncate_for_render(text: str | None, limit: int = MAX_RENDER_CHARS) -> str | None:
    if text is None:
        return None
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


@dataclass(slots=True)
class ReplyPayload:
    content: str | None = None
    embed: Any = None
    view: Any = None
    ephemeral: bool = False
    # Edits keep the old text unless content is sent as an explicit None.
    clear_content: bool = False

    def to_kwargs(self, *, include_ephemeral: bool = True) -> dict:
        out: dict = {}
        content = truncate_for_render(self.content)
        if content is not None:
            out["content"] = content
        elif self.clear_content:
            out["content"] = None
        if self.embed is not None:
            out["embed"] = self.embed
        if self.view is not None:
            out["view"] = self.view
        if include_ephemeral:
            out["ephemeral"] = bool(self.ephemeral)
        return out


def as_payload(value: ReplyPayload | str, *, ephemeral: bool = False) -> ReplyPayload:
    if isinstance(value, ReplyPayload):
        return value
    return ReplyPayload(content=str(value), ephemeral=ephemeral)


class Responder(Protocol):
    async def acknowledge(self, *, ephemeral: bool = False, update: bool = False) -> None: ...

    async def reply(self, payload: ReplyPayload) -> None: ...

    async def follow_up(self, payload: ReplyPayload) -> None: ...

    async def edit_message(self, payload: ReplyPayload) -> None: ...

    async def open_modal(self, modal: Any) -> None: ...

class InteractionSession:
    """Single-terminal-response contract for one interaction.

    ``REPLIED`` and ``FAILED`` are terminal; once reached, ``resolve`` and
    ``fail`` return False without touching the responder.
    """

    def __init__(self, interaction_id: int, responder: Responder):
        self.interaction_id = int(interaction_id)
        self.responder = responder
        self.state = InteractionState.UNACKNOWLEDGED
        self.ack_mode: str | None = None
        self.ephemeral = False
        self.error = None

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    async def acknowledge(
        self,
        mode: str = "defer",
        *,
        ephemeral: bool = False,
        payload: ReplyPayload | str | None = None,
    ) -> bool:
        if mode not in ACK_MODES:
            raise ValueError(f"Unknown acknowledge mode: {mode}")
        if self.state is not InteractionState.UNACKNOWLEDGED:
            log_debug("Interaction", f"acknowledge({mode}) ignored id={self.interaction_id} state={self.state.value}")
            return False

        if mode == "modal" and payload is None:
            raise ValueError("A modal acknowledgement needs the modal to open")

        try:
            if mode == "reply":
                body = as_payload(payload if payload is not None else "", ephemeral=ephemeral)
                await self.responder.reply(body)
                self.state = InteractionState.REPLIED
            elif mode == "modal":
                # Opening a modal is the whole response; the submit arrives as a new interaction.
                await self.responder.open_modal(payload)
                self.state = InteractionState.REPLIED
            else:
                await self.responder.acknowledge(ephemeral=ephemeral, update=(mode == "defer_update"))
                self.state = InteractionState.DEFERRED
        except Exception as e:
            # The platform already answered (or rejected) this interaction; nothing more can be delivered.
            self.error = log_error("Interaction", e)
            self.state = InteractionState.FAILED
            return False

        self.ack_mode = mode
        self.ephemeral = bool(ephemeral)
        return True

    async def resolve(self, payload: ReplyPayload | str) -> bool:
        if self.terminal:
            log_debug("Interaction", f"resolve ignored id={self.interaction_id} state={self.state.value}")
            return False

        body = as_payload(payload, ephemeral=self.ephemeral)
        try:
            if self.state is InteractionState.UNACKNOWLEDGED:
                await self.responder.reply(body)
            elif self.ack_mode == "defer_update" and not body.ephemeral:
                await self.responder.edit_message(body)
            else:
                await self.responder.follow_up(body)
        except PlatformRaceError as e:
            log_error("Interaction", e)
            self.state = InteractionState.REPLIED
            return True
        except Exception as e:
            raise classify_error(e) from e

        self.state = InteractionState.REPLIED
        return True

    async def fail(self, error: BaseException | None = None) -> bool:
        if self.terminal:
            log_debug("Interaction", f"fail ignored id={self.interaction_id} state={self.state.value}")
            return False

        prior = self.state
        self.state = InteractionState.FAILED
        self.error = log_error("Interaction", error)
        notice = ReplyPayload(content=error_notice(self.error), ephemeral=True)
        try:
            if prior is InteractionState.UNACKNOWLEDGED:
                await self.responder.reply(notice)
            else:
                await self.responder.follow_up(notice)
        except Exception as e:
            log_error("Interaction", e)
        return True
