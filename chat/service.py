from __future__ import annotations

import random
from dataclasses import dataclass

from chat.games import GameCatalog
from chat.games import advance_game
from chat.games import start_game
from chat.memory import CHAT_COOLDOWN_KIND
from chat.memory import ConversationEntry
from chat.memory import ConversationMemory
from chat.prompt_assembly import build_chat_messages
from chat.prompt_assembly import build_system_prompt
from config.defaults import CHAT_COOLDOWN_SECONDS
from config.defaults import DEFAULT_CHAT_MAX_TOKENS
from config.defaults import DEFAULT_CHAT_TEMPERATURE
from config.defaults import DEFAULT_CHAT_TOKEN_BUDGET
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from config.defaults import VIP_CHAT_TEMPERATURE
from runtime.errors import BotError
from runtime.errors import error_notice
from runtime.errors import log_error
from runtime.interaction_state import truncate_for_render
from runtime.rate_limit import RateLimiter

CHAT_COOLDOWN_NOTICE = "⏰ Please wait a moment before sending another message."
EMPTY_REPLY_NOTICE = "🤔 I couldn't come up with a reply. Try rephrasing?"


@dataclass(slots=True)
class ChatReply:
    text: str
    ok: bool
    error_code: str | None = None


class ChatService:
    def __init__(
        self,
        *,
        provider,
        memory: ConversationMemory,
        rate_limiter: RateLimiter,
        games: GameCatalog,
        token_budget: int = DEFAULT_CHAT_TOKEN_BUDGET,
        cooldown_seconds: float = CHAT_COOLDOWN_SECONDS,
        max_tokens: int = DEFAULT_CHAT_MAX_TOKENS,
        vip_user_ids: set[int] | None = None,
        rng: random.Random | None = None,
    ):
        self.provider = provider
        self.memory = memory
        self.rate_limiter = rate_limiter
        self.games = games
        self.token_budget = max(1, int(token_budget or DEFAULT_CHAT_TOKEN_BUDGET))
        self.cooldown_seconds = float(cooldown_seconds)
        self.max_tokens = max(1, int(max_tokens or DEFAULT_CHAT_MAX_TOKENS))
        self.vip_user_ids = set(vip_user_ids or set())
        self._rng = rng

    def is_vip(self, user_id: int) -> bool:
        return int(user_id) in self.vip_user_ids

    async def reply_to(
        self,
        user_id: int,
        prompt: str,
        *,
        personality: str,
        channel_context: str | None = None,
    ) -> ChatReply:
        uid = int(user_id)
        prompt = (prompt or "").strip()
        if not self.rate_limiter.allow(uid, CHAT_COOLDOWN_KIND, self.cooldown_seconds):
            return ChatReply(text=CHAT_COOLDOWN_NOTICE, ok=False, error_code="cooldown")

        game_context = None
        session = self.memory.get_session(uid)
        if session is not None:
            game = self.games.get(str(session.get("type") or ""))
            if game is None:
                self.memory.end_session(uid)
            else:
                game_context, finished = advance_game(game, session, prompt)
                if finished:
                    self.memory.end_session(uid)

        vip = self.is_vip(uid)
        system_prompt = build_system_prompt(
            personality=personality,
            vip=vip,
            game_context=game_context,
            channel_context=channel_context,
        )
        context = self.memory.select_context(uid, self.token_budget)
        messages = build_chat_messages(context=context, prompt=prompt, max_chars=DISCORD_MAX_MESSAGE_LEN * 2)

        try:
            text = await self.provider.complete(
                system_prompt,
                messages,
                max_tokens=self.max_tokens,
                temperature=VIP_CHAT_TEMPERATURE if vip else DEFAULT_CHAT_TEMPERATURE,
            )
        except BotError as e:
            log_error("OpenAI", e)
            return ChatReply(text=error_notice(e), ok=False, error_code=e.code)

        if not text:
            return ChatReply(text=EMPTY_REPLY_NOTICE, ok=False, error_code="empty")

        self.memory.append(uid, ConversationEntry(role="user", content=prompt))
        self.memory.append(uid, ConversationEntry(role="assistant", content=text))
        self.memory.evict_if_needed()
        return ChatReply(text=truncate_for_render(text, DISCORD_MAX_MESSAGE_LEN), ok=True)

    def start_game(self, user_id: int, game_key: str) -> tuple[str, str] | None:
        game = self.games.get(game_key)
        if game is None:
            return None
        state, intro = start_game(game, rng=self._rng)
        self.memory.start_session(int(user_id), state)
        return (game.name, intro)

    def reset_user(self, user_id: int) -> int:
        return self.memory.clear(int(user_id))
