from __future__ import annotations

import unittest
from types import SimpleNamespace

from runtime.dispatcher import InteractionDispatcher
from runtime.dispatcher import InteractionEvent
from runtime.interaction_state import ReplyPayload
from runtime.leases import LeaseManager

try:
    from misc.commands import commands_admin
    from misc.commands.command_deps import CommandDeps
    from misc.commands.command_deps import CommandGates
except ModuleNotFoundError:
    commands_admin = None


class RecordingResponder:
    def __init__(self):
        self.calls: list[tuple[str, object]] = []

    async def acknowledge(self, *, ephemeral: bool = False, update: bool = False) -> None:
        self.calls.append(("acknowledge", {"ephemeral": ephemeral, "update": update}))

    async def reply(self, payload: ReplyPayload) -> None:
        self.calls.append(("reply", payload))

    async def follow_up(self, payload: ReplyPayload) -> None:
        self.calls.append(("follow_up", payload))

    async def edit_message(self, payload: ReplyPayload) -> None:
        self.calls.append(("edit_message", payload))

    def last_payload(self) -> ReplyPayload:
        return self.calls[-1][1]


class FakeSettings:
    def __init__(self):
        self.disabled: dict[tuple[int, str], dict] = {}

    async def disabled_command(self, guild_id, command_name):
        return self.disabled.get((guild_id, command_name))

    async def disable_command(self, guild_id, command_name, *, disabled_by, reason):
        self.disabled[(guild_id, command_name)] = {"disabled_by": disabled_by, "reason": reason}

    async def enable_command(self, guild_id, command_name):
        return self.disabled.pop((guild_id, command_name), None) is not None


_next_id = [0]


def _event(name: str, options: dict | None = None, *, guild_id: int | None = 1, manager: bool = True) -> InteractionEvent:
    _next_id[0] += 1
    user = SimpleNamespace(id=7, manager=manager)
    return InteractionEvent(
        kind="command",
        name=name,
        interaction_id=_next_id[0],
        user_id=7,
        guild_id=guild_id,
        options=dict(options or {}),
        raw=SimpleNamespace(user=user),
    )


@unittest.skipIf(commands_admin is None, "discord.py not installed")
class CommandToggleTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.settings = FakeSettings()
        self.dispatcher = InteractionDispatcher(leases=LeaseManager())
        self.pings: list[int] = []

        async def ping(ctx):
            self.pings.append(ctx.event.interaction_id)
            await ctx.resolve("pong")

        self.dispatcher.command("ping", ping)
        commands_admin.register(
            self.dispatcher,
            deps=CommandDeps(settings=self.settings),
            gates=CommandGates(can_manage_guild=lambda user: bool(getattr(user, "manager", False))),
        )

    async def _run(self, event: InteractionEvent) -> RecordingResponder:
        responder = RecordingResponder()
        await self.dispatcher.dispatch(event, responder)
        return responder

    async def test_disabled_command_is_blocked_with_reason(self):
        responder = await self._run(_event("command-disable", {"command": "/Ping", "reason": "maintenance"}))
        self.assertIn("Disabled", responder.last_payload().embed.title)

        blocked = await self._run(_event("ping"))
        self.assertEqual(self.pings, [])
        self.assertIn("`/ping` is disabled", blocked.last_payload().content)
        self.assertIn("maintenance", blocked.last_payload().content)

        await self._run(_event("command-enable", {"command": "ping"}))
        await self._run(_event("ping"))
        self.assertEqual(len(self.pings), 1)

    async def test_disable_is_scoped_per_guild(self):
        await self._run(_event("command-disable", {"command": "ping"}))
        await self._run(_event("ping", guild_id=2))
        await self._run(_event("ping", guild_id=None))
        self.assertEqual(len(self.pings), 2)

    async def test_toggle_commands_cannot_be_disabled(self):
        responder = await self._run(_event("command-disable", {"command": "command-enable"}))
        self.assertIn("can't be disabled", responder.last_payload().content)
        self.assertEqual(self.settings.disabled, {})

    async def test_unknown_command_is_rejected(self):
        responder = await self._run(_event("command-disable", {"command": "nope"}))
        self.assertIn("no `/nope` command", responder.last_payload().content)

    async def test_requires_manage_server(self):
        responder = await self._run(_event("command-disable", {"command": "ping"}, manager=False))
        self.assertIn("Manage Server", responder.last_payload().content)
        self.assertEqual(self.settings.disabled, {})

    async def test_permission_notice_stays_private(self):
        responder = await self._run(_event("command-disable", {"command": "ping"}, manager=False))
        self.assertEqual(responder.calls[0], ("acknowledge", {"ephemeral": True, "update": False}))
        self.assertTrue(responder.last_payload().ephemeral)

    async def test_enable_when_not_disabled(self):
        responder = await self._run(_event("command-enable", {"command": "ping"}))
        self.assertIn("was not disabled", responder.last_payload().content)


class NormalizeCommandNameTests(unittest.TestCase):
    @unittest.skipIf(commands_admin is None, "discord.py not installed")
    def test_normalize(self):
        self.assertEqual(commands_admin.normalize_command_name(" /Warn "), "warn")
        self.assertEqual(commands_admin.normalize_command_name(None), "")


if __name__ == "__main__":
    unittest.main()
