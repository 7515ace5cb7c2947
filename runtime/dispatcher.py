from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any, Awaitable, Callable, Iterable

from runtime.errors import UnknownError
from runtime.errors import log_debug
from runtime.interaction_state import ACK_MODES
from runtime.interaction_state import InteractionSession
from runtime.interaction_state import ReplyPayload
from runtime.interaction_state import Responder
from runtime.leases import LeaseManager
from runtime.leases import interaction_key
from runtime.rate_limit import RateLimiter

INTERACTION_KINDS = ("command", "button", "select", "modal")

UNKNOWN_ROUTE_NOTICE = "❓ This interaction is not recognized or may have expired."


@dataclass(slots=True)
class InteractionEvent:
    kind: str
    name: str
    interaction_id: int
    user_id: int
    guild_id: int | None = None
    channel_id: int | None = None
    options: dict = field(default_factory=dict)
    values: list[str] = field(default_factory=list)
    fields: dict = field(default_factory=dict)
    raw: Any = None


@dataclass
class InteractionContext:
    event: InteractionEvent
    session: InteractionSession

    async def resolve(self, payload: ReplyPayload | str) -> bool:
        return await self.session.resolve(payload)

    async def fail(self, error: BaseException | None = None) -> bool:
        return await self.session.fail(error)

    async def open_modal(self, modal: Any) -> bool:
        return await self.session.acknowledge("modal", payload=modal)


Handler = Callable[[InteractionContext], Awaitable[None]]
Guard = Callable[[InteractionEvent], Awaitable["str | None"]]


@dataclass(frozen=True)
class Route:
    kind: str
    handler: Handler
    name: str | None = None
    prefix: str | None = None
    ack: str = "defer"
    ephemeral: bool = False
    cooldown_seconds: float | None = None

    @property
    def cooldown_kind(self) -> str:
        return f"{self.kind}:{self.name or self.prefix}"

    def matches(self, event: InteractionEvent) -> bool:
        if event.kind != self.kind:
            return False
        if self.name is not None:
            return event.name == self.name
        return bool(self.prefix) and event.name.startswith(self.prefix)


def cooldown_notice(seconds_left: float) -> str:
    return f"⏰ Slow down! Try again in {max(0.1, seconds_left):.1f}s."


class InteractionDispatcher:
    """One routing table and lifecycle for every command, button, select and modal."""

    def __init__(
        self,
        *,
        leases: LeaseManager,
        rate_limiter: RateLimiter | None = None,
        guards: Iterable[Guard] = (),
    ):
        self.leases = leases
        self.rate_limiter = rate_limiter
        self.guards = list(guards)
        self._exact: dict[tuple[str, str], Route] = {}
        self._prefixes: dict[str, list[Route]] = {kind: [] for kind in INTERACTION_KINDS}

    def route(
        self,
        kind: str,
        *,
        handler: Handler,
        name: str | None = None,
        prefix: str | None = None,
        ack: str = "defer",
        ephemeral: bool = False,
        cooldown: float | None = None,
    ) -> Route:
        if kind not in INTERACTION_KINDS:
            raise ValueError(f"Unknown interaction kind: {kind}")
        if ack not in ACK_MODES:
            raise ValueError(f"Unknown acknowledge mode: {ack}")
        if (name is None) == (prefix is None):
            raise ValueError("A route needs exactly one of name or prefix")

        entry = Route(
            kind=kind,
            handler=handler,
            name=name,
            prefix=prefix,
            ack=ack,
            ephemeral=ephemeral,
            cooldown_seconds=cooldown,
        )
        if name is not None:
            if (kind, name) in self._exact:
                raise ValueError(f"Duplicate route: {kind}:{name}")
            self._exact[(kind, name)] = entry
        else:
            self._prefixes[kind].append(entry)
        return entry

    def command(self, name: str, handler: Handler, **kwargs) -> Route:
        return self.route("command", name=name, handler=handler, **kwargs)

    def add_guard(self, guard: Guard) -> None:
        self.guards.append(guard)

    def command_names(self) -> list[str]:
        return sorted(name for (kind, name) in self._exact if kind == "command")

    def lookup(self, event: InteractionEvent) -> Route | None:
        exact = self._exact.get((event.kind, event.name))
        if exact is not None:
            return exact
        for entry in self._prefixes.get(event.kind, []):
            if entry.matches(event):
                return entry
        return None

    async def _guard_notice(self, event: InteractionEvent) -> str | None:
        for guard in self.guards:
            notice = await guard(event)
            if notice:
                return notice
        return None

    async def dispatch(self, event: InteractionEvent, responder: Responder) -> InteractionSession | None:
        key = interaction_key(event.user_id, event.interaction_id)
        with self.leases.hold(key) as admitted:
            if not admitted:
                return None

            session = InteractionSession(event.interaction_id, responder)
            entry = self.lookup(event)
            ack = entry.ack if entry is not None else "defer"
            ephemeral = entry.ephemeral if entry is not None else True
            # Modal routes stay unacknowledged until the handler opens its modal.
            if ack != "modal" and not await session.acknowledge(ack, ephemeral=ephemeral):
                return session

            ctx = InteractionContext(event=event, session=session)
            try:
                if entry is None:
                    log_debug("Interaction", f"no route kind={event.kind} name={event.name}")
                    await session.resolve(ReplyPayload(content=UNKNOWN_ROUTE_NOTICE, ephemeral=True))
                    return session

                notice = await self._guard_notice(event)
                if notice:
                    await session.resolve(ReplyPayload(content=notice, ephemeral=True))
                    return session

                if entry.cooldown_seconds and self.rate_limiter is not None:
                    if not self.rate_limiter.allow(event.user_id, entry.cooldown_kind, entry.cooldown_seconds):
                        left = self.rate_limiter.remaining(event.user_id, entry.cooldown_kind, entry.cooldown_seconds)
                        await session.resolve(ReplyPayload(content=cooldown_notice(left), ephemeral=True))
                        return session

                await entry.handler(ctx)
                if not session.terminal:
                    await session.fail(UnknownError(f"handler for {event.kind}:{event.name} returned without responding"))
            except Exception as e:
                await session.fail(e)
            return session
