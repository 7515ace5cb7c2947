from __future__ import annotations

import unittest

from runtime.errors import PlatformRaceError
from runtime.errors import QuotaError
from runtime.errors import UnknownError
from runtime.interaction_state import InteractionSession
from runtime.interaction_state import InteractionState
from runtime.interaction_state import ReplyPayload
from runtime.interaction_state import truncate_for_render


class RecordingResponder:
    def __init__(self, *, fail_on: dict[str, BaseException] | None = None):
        self.calls: list[tuple[str, object]] = []
        self.fail_on = dict(fail_on or {})

    async def _record(self, name: str, value):
        self.calls.append((name, value))
        err = self.fail_on.get(name)
        if err is not None:
            raise err

    async def acknowledge(self, *, ephemeral: bool = False, update: bool = False) -> None:
        await self._record("acknowledge", {"ephemeral": ephemeral, "update": update})

    async def reply(self, payload: ReplyPayload) -> None:
        await self._record("reply", payload)

    async def follow_up(self, payload: ReplyPayload) -> None:
        await self._record("follow_up", payload)

    async def edit_message(self, payload: ReplyPayload) -> None:
        await self._record("edit_message", payload)

    async def open_modal(self, modal) -> None:
        await self._record("open_modal", modal)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


class TruncateTests(unittest.TestCase):
    def test_short_text_is_unchanged(self):
        self.assertEqual(truncate_for_render("hi", 10), "hi")

    def test_long_text_gets_ellipsis(self):
        self.assertEqual(truncate_for_render("abcdef", 3), "abc...")

    def test_payload_kwargs_skip_empty_fields(self):
        kwargs = ReplyPayload(content="x" * 2000, ephemeral=True).to_kwargs()
        self.assertEqual(set(kwargs), {"content", "ephemeral"})
        self.assertEqual(len(kwargs["content"]), 1903)
        self.assertNotIn("ephemeral", ReplyPayload(content="x").to_kwargs(include_ephemeral=False))

    def test_clear_content_sends_explicit_none(self):
        kwargs = ReplyPayload(embed="page", clear_content=True).to_kwargs(include_ephemeral=False)
        self.assertEqual(kwargs, {"content": None, "embed": "page"})
        self.assertNotIn("content", ReplyPayload(embed="page").to_kwargs())


class InteractionSessionTests(unittest.IsolatedAsyncioTestCase):
    async def test_defer_then_resolve_uses_follow_up(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)

        self.assertTrue(await session.acknowledge("defer", ephemeral=True))
        self.assertIs(session.state, InteractionState.DEFERRED)
        self.assertTrue(await session.resolve("done"))
        self.assertIs(session.state, InteractionState.REPLIED)
        self.assertEqual(responder.names(), ["acknowledge", "follow_up"])
        self.assertTrue(responder.calls[1][1].ephemeral)

    async def test_defer_update_then_resolve_edits_message(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.acknowledge("defer_update")
        await session.resolve("page 2")
        self.assertEqual(responder.names(), ["acknowledge", "edit_message"])
        self.assertTrue(responder.calls[0][1]["update"])

    async def test_defer_update_sends_ephemeral_notice_as_follow_up(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.acknowledge("defer_update")
        await session.resolve(ReplyPayload(content="slow down", ephemeral=True))
        self.assertEqual(responder.names(), ["acknowledge", "follow_up"])
        self.assertTrue(responder.calls[1][1].ephemeral)

    async def test_modal_mode_opens_modal_and_is_terminal(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        modal = object()

        self.assertTrue(await session.acknowledge("modal", payload=modal))
        self.assertIs(session.state, InteractionState.REPLIED)
        self.assertFalse(await session.resolve("late"))
        self.assertEqual(responder.calls, [("open_modal", modal)])

    async def test_modal_mode_needs_a_modal(self):
        session = InteractionSession(1, RecordingResponder())
        with self.assertRaises(ValueError):
            await session.acknowledge("modal")
        self.assertIs(session.state, InteractionState.UNACKNOWLEDGED)

    async def test_modal_open_failure_moves_to_failed(self):
        responder = RecordingResponder(fail_on={"open_modal": PlatformRaceError("expired")})
        session = InteractionSession(1, responder)
        self.assertFalse(await session.acknowledge("modal", payload=object()))
        self.assertIs(session.state, InteractionState.FAILED)

    async def test_resolve_without_ack_replies_directly(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.resolve("hello")
        self.assertEqual(responder.names(), ["reply"])

    async def test_reply_mode_is_terminal_immediately(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        self.assertTrue(await session.acknowledge("reply", payload="hi"))
        self.assertIs(session.state, InteractionState.REPLIED)
        self.assertFalse(await session.resolve("again"))
        self.assertEqual(responder.names(), ["reply"])

    async def test_unknown_ack_mode_raises(self):
        session = InteractionSession(1, RecordingResponder())
        with self.assertRaises(ValueError):
            await session.acknowledge("shout")

    async def test_second_acknowledge_is_ignored(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.acknowledge("defer")
        self.assertFalse(await session.acknowledge("defer"))
        self.assertEqual(responder.names(), ["acknowledge"])

    async def test_acknowledge_failure_moves_to_failed_without_notice(self):
        responder = RecordingResponder(fail_on={"acknowledge": PlatformRaceError("expired")})
        session = InteractionSession(1, responder)

        self.assertFalse(await session.acknowledge("defer"))
        self.assertIs(session.state, InteractionState.FAILED)
        self.assertFalse(await session.resolve("late"))
        self.assertFalse(await session.fail(RuntimeError("late")))
        self.assertEqual(responder.names(), ["acknowledge"])

    async def test_only_one_terminal_response(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.acknowledge("defer")
        self.assertTrue(await session.resolve("one"))
        self.assertFalse(await session.resolve("two"))
        self.assertFalse(await session.fail(RuntimeError("three")))
        self.assertEqual(responder.names(), ["acknowledge", "follow_up"])

    async def test_fail_after_defer_sends_ephemeral_notice(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.acknowledge("defer")

        self.assertTrue(await session.fail(QuotaError("no credits")))
        self.assertIs(session.state, InteractionState.FAILED)
        name, payload = responder.calls[-1]
        self.assertEqual(name, "follow_up")
        self.assertTrue(payload.ephemeral)
        self.assertIn("quota", payload.content.lower())

    async def test_fail_before_ack_replies(self):
        responder = RecordingResponder()
        session = InteractionSession(1, responder)
        await session.fail(ValueError("bad"))
        self.assertEqual(responder.names(), ["reply"])
        self.assertIsInstance(session.error, UnknownError)
        self.assertIn(session.error.correlation_id, responder.calls[0][1].content)

    async def test_fail_swallows_delivery_error(self):
        responder = RecordingResponder(fail_on={"follow_up": RuntimeError("network down")})
        session = InteractionSession(1, responder)
        await session.acknowledge("defer")
        self.assertTrue(await session.fail(RuntimeError("handler blew up")))
        self.assertIs(session.state, InteractionState.FAILED)

    async def test_platform_race_on_resolve_counts_as_replied(self):
        responder = RecordingResponder(fail_on={"follow_up": PlatformRaceError("already acknowledged")})
        session = InteractionSession(1, responder)
        await session.acknowledge("defer")
        self.assertTrue(await session.resolve("hi"))
        self.assertIs(session.state, InteractionState.REPLIED)

    async def test_other_resolve_errors_are_classified_and_raised(self):
        responder = RecordingResponder(fail_on={"follow_up": OSError("socket closed")})
        session = InteractionSession(1, responder)
        await session.acknowledge("defer")
        with self.assertRaises(UnknownError):
            await session.resolve("hi")
        self.assertIs(session.state, InteractionState.DEFERRED)


if __name__ == "__main__":
    unittest.main()
