from __future__ import annotations

import unittest
from types import SimpleNamespace

try:
    from misc.events_runtime import handle_user_message
    from misc.runtime_deps import RuntimeDeps
except ModuleNotFoundError:
    handle_user_message = None


class _Typing:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeChannel:
    def __init__(self, channel_id: int = 50):
        self.id = channel_id

    def typing(self):
        return _Typing()


class _FakeMessage:
    def __init__(self, content: str, *, guild: bool = True):
        self.id = 900
        self.content = content
        self.guild = SimpleNamespace(id=1) if guild else None
        self.channel = _FakeChannel()
        self.author = SimpleNamespace(id=7, bot=False)
        self.replies: list[str] = []

    async def reply(self, content, **kwargs):
        self.replies.append(content)


class _FakeBot:
    def __init__(self, *, valid_command: bool = False):
        self.user = SimpleNamespace(id=99)
        self.valid_command = valid_command
        self.invoked: list[object] = []

    async def get_context(self, message):
        return SimpleNamespace(valid=self.valid_command, message=message)

    async def invoke(self, ctx):
        self.invoked.append(ctx)


class _FakeSettings:
    def __init__(self, **overrides):
        self.row = {
            "automod_enabled": 0,
            "leveling_enabled": 1,
            "ai_enabled": 1,
            "ai_channel_id": None,
            "ai_trigger_symbol": "!",
            "ai_personality": "funny",
        }
        self.row.update(overrides)

    async def get_guild_settings(self, guild_id):
        return dict(self.row)


class _FakeChat:
    def __init__(self):
        self.calls: list[dict] = []

    async def reply_to(self, user_id, prompt, *, personality, channel_context=None):
        self.calls.append({"prompt": prompt, "personality": personality, "context": channel_context})
        return SimpleNamespace(text=f"echo: {prompt}", ok=True)


class _FakeModeration:
    def __init__(self, verdict=None):
        self.verdict = verdict
        self.checked = 0

    async def enforce(self, message, bot_user_id):
        self.checked += 1
        return self.verdict


class _FakeLevels:
    def __init__(self, level_up=None):
        self.level_up = level_up
        self.awards = 0
        self.announced: list[dict] = []

    async def award_message_xp(self, *, guild_id, user_id, message_id):
        self.awards += 1
        return self.level_up

    async def handle_level_up(self, message, row):
        self.announced.append(row)


def _deps(*, settings=None, chat=None, moderation=None, levels=None, logged=None):
    logged = logged if logged is not None else []

    async def log_message(message):
        logged.append(message.id)

    async def recent_context(channel_id, before_message_id, *, limit):
        return f"ctx:{channel_id}:{limit}"

    return RuntimeDeps(
        db_lock=None,
        db_conn=None,
        leases=None,
        dispatcher=None,
        settings=settings or _FakeSettings(),
        chat=chat or _FakeChat(),
        moderation=moderation or _FakeModeration(),
        levels=levels or _FakeLevels(),
        log_message_func=log_message,
        recent_channel_context_func=recent_context,
        recent_context_limit=3,
    )


@unittest.skipIf(handle_user_message is None, "discord.py not installed")
class HandleUserMessageTests(unittest.IsolatedAsyncioTestCase):
    async def test_trigger_symbol_gets_ai_reply_with_channel_context(self):
        chat = _FakeChat()
        logged: list[int] = []
        message = _FakeMessage("!tell me a joke")
        await handle_user_message(_FakeBot(), message, deps=_deps(chat=chat, logged=logged))

        self.assertEqual(logged, [900])
        self.assertEqual(chat.calls, [{"prompt": "tell me a joke", "personality": "funny", "context": "ctx:50:3"}])
        self.assertEqual(message.replies, ["echo: tell me a joke"])

    async def test_plain_message_only_earns_xp(self):
        chat = _FakeChat()
        levels = _FakeLevels(level_up={"level": 2})
        await handle_user_message(_FakeBot(), _FakeMessage("hello all"), deps=_deps(chat=chat, levels=levels))

        self.assertEqual(chat.calls, [])
        self.assertEqual(levels.awards, 1)
        self.assertEqual(levels.announced, [{"level": 2}])

    async def test_automod_verdict_stops_processing(self):
        chat = _FakeChat()
        levels = _FakeLevels()
        moderation = _FakeModeration(verdict=SimpleNamespace(rule="caps"))
        deps = _deps(settings=_FakeSettings(automod_enabled=1), chat=chat, moderation=moderation, levels=levels)
        await handle_user_message(_FakeBot(), _FakeMessage("!HEY"), deps=deps)

        self.assertEqual(moderation.checked, 1)
        self.assertEqual((chat.calls, levels.awards), ([], 0))

    async def test_prefix_command_is_invoked_instead_of_ai(self):
        bot = _FakeBot(valid_command=True)
        chat = _FakeChat()
        await handle_user_message(bot, _FakeMessage("!runtime"), deps=_deps(chat=chat))

        self.assertEqual(len(bot.invoked), 1)
        self.assertEqual(chat.calls, [])

    async def test_leveling_disabled_skips_xp(self):
        levels = _FakeLevels()
        deps = _deps(settings=_FakeSettings(leveling_enabled=0), levels=levels)
        await handle_user_message(_FakeBot(), _FakeMessage("hi"), deps=deps)
        self.assertEqual(levels.awards, 0)

    async def test_direct_messages_are_logged_but_not_answered(self):
        chat = _FakeChat()
        levels = _FakeLevels()
        logged: list[int] = []
        message = _FakeMessage("!hello", guild=False)
        await handle_user_message(_FakeBot(), message, deps=_deps(chat=chat, levels=levels, logged=logged))

        self.assertEqual(logged, [900])
        self.assertEqual((chat.calls, levels.awards, message.replies), ([], 0, []))


if __name__ == "__main__":
    unittest.main()
