from __future__ import annotations

PERSONALITY_DESCRIPTIONS = {
    "friendly": "Warm and welcoming responses",
    "professional": "Formal and business-like communication",
    "casual": "Relaxed and informal conversation",
    "funny": "Humorous and entertaining responses",
}

SYSTEM_PROMPT_BASE = """
You are a helpful AI assistant in a Discord server. Always respond in English.

Guidelines:
- Read the user's mood from their message and respond appropriately.
- Keep responses concise (under 1400 characters).
- Be helpful and informative.
- Refer to earlier messages in the conversation naturally when relevant.
- Add a fitting emoji now and then, but don't overdo it.
- Avoid controversial topics.
""".strip()


def describe_personality(personality: str | None) -> str:
    key = (personality or "").strip().lower()
    return PERSONALITY_DESCRIPTIONS.get(key, PERSONALITY_DESCRIPTIONS["friendly"])


def build_system_prompt(
    *,
    personality: str,
    vip: bool,
    game_context: str | None = None,
    channel_context: str | None = None,
    max_chars: int = 6000,
) -> str:
    parts = [
        SYSTEM_PROMPT_BASE,
        f"Personality: {personality} ({describe_personality(personality)})",
    ]
    if vip:
        parts.append("User type: VIP. Be respectful, polite, and professional.")
    else:
        parts.append("User type: regular member. Be frank and casual; light humor is welcome.")
    if game_context:
        parts.append(game_context)
    if channel_context and channel_context.strip():
        parts.append(f"Recent channel context:\n{channel_context.strip()}")
    return "\n\n".join(parts)[:max_chars]


def build_chat_messages(*, context: list, prompt: str, max_chars: int) -> list[dict]:
    msgs = [entry.as_message() for entry in context]
    msgs.append({"role": "user", "content": (prompt or "")[:max_chars]})
    return msgs
