from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass(slots=True)
class GameItem:
    text: str
    answer: str = ""


@dataclass(slots=True)
class ChatGame:
    key: str
    name: str
    intro: str
    prompt: str = "**{item}**"
    items: list[GameItem] = field(default_factory=list)
    turn_context: str = ""
    single_turn: bool = False


@dataclass(slots=True)
class GameCatalog:
    version: str = "chat_games_v1"
    games: dict[str, ChatGame] = field(default_factory=dict)

    def get(self, key: str) -> ChatGame | None:
        return self.games.get((key or "").strip().lower())

    def choices(self) -> list[tuple[str, str]]:
        return [(game.name, key) for key, game in self.games.items()]


def default_games_path() -> str:
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(repo_root, "config", "chat_games.yml")


def default_game_catalog() -> GameCatalog:
    games = [
        ChatGame(
            key="20questions",
            name="20 Questions",
            intro="🎯 I'm thinking of something! Ask me yes/no questions to guess what it is!",
            prompt="*I've chosen something... Ask your first yes/no question!*",
            items=[GameItem(text=t) for t in ("pizza", "smartphone", "rainbow", "ocean", "guitar")],
            turn_context=(
                'You\'re thinking of "{item}". The user is asking question #{turn}. '
                "Answer only YES or NO, and give a hint if they're close."
            ),
        ),
        ChatGame(
            key="storytelling",
            name="Story Building",
            intro="📚 Let's create a story together!",
            prompt="**Story starter:** *{item}...*",
            items=[GameItem(text="The old lighthouse keeper noticed something strange washing up on shore")],
            turn_context='Story so far: "{story}" Continue the narrative naturally.',
        ),
        ChatGame(
            key="wouldyourather",
            name="Would You Rather",
            intro="🤔 Here's a tough choice for you...",
            items=[GameItem(text="Would you rather have the ability to fly or be invisible?")],
            turn_context='The question was: "{item}" Respond to their reasoning.',
            single_turn=True,
        ),
        ChatGame(
            key="riddles",
            name="Riddle Time",
            intro="🧩 Here's a riddle for you to solve...",
            items=[GameItem(text="I speak without a mouth and hear without ears. What am I?", answer="echo")],
            turn_context='The riddle was: "{item}" and the answer is "{answer}". Check their answer.',
            single_turn=True,
        ),
    ]
    return GameCatalog(games={g.key: g for g in games})


def _parse_items(value: Any) -> list[GameItem]:
    if not isinstance(value, list):
        return []
    out: list[GameItem] = []
    for raw in value:
        if isinstance(raw, dict):
            text = str(raw.get("text") or "").strip()
            answer = str(raw.get("answer") or "").strip()
        else:
            text = str(raw or "").strip()
            answer = ""
        if text:
            out.append(GameItem(text=text, answer=answer))
    return out


def load_game_catalog(path: str | Path | None) -> tuple[GameCatalog, str | None]:
    """
    Returns (catalog, warning_message). warning_message is None on clean load.
    """
    defaults = default_game_catalog()
    if not path:
        return (defaults, "Game catalog path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Game catalog not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read game catalog from {p}: {exc}; using built-in defaults.")

    if not isinstance(payload, dict) or not isinstance(payload.get("games"), dict):
        return (defaults, f"Invalid game catalog format in {p}; using built-in defaults.")

    games: dict[str, ChatGame] = {}
    for key, raw in payload["games"].items():
        if not isinstance(raw, dict):
            continue
        slug = str(key or "").strip().lower()
        items = _parse_items(raw.get("items"))
        if not slug or not items:
            continue
        games[slug] = ChatGame(
            key=slug,
            name=str(raw.get("name") or slug),
            intro=str(raw.get("intro") or ""),
            prompt=str(raw.get("prompt") or "**{item}**"),
            items=items,
            turn_context=str(raw.get("turn_context") or ""),
            single_turn=bool(raw.get("single_turn", False)),
        )

    if not games:
        return (defaults, f"No usable games in {p}; using built-in defaults.")
    return (GameCatalog(version=str(payload.get("version") or defaults.version), games=games), None)


def start_game(game: ChatGame, *, rng: random.Random | None = None) -> tuple[dict[str, Any], str]:
    picker = rng or random
    item = picker.choice(game.items)
    state = {
        "type": game.key,
        "item": item.text,
        "answer": item.answer,
        "turn": 0,
        "story": item.text if game.key == "storytelling" else "",
    }
    intro = f"{game.intro}\n\n{game.prompt.format(item=item.text)}"
    return (state, intro)


def advance_game(game: ChatGame, state: dict[str, Any], user_text: str) -> tuple[str, bool]:
    """Builds this turn's model context and mutates ``state`` for the next turn.

    Returns (context, finished); finished games should be removed from memory.
    """
    state["turn"] = int(state.get("turn") or 0) + 1
    context = game.turn_context.format(
        item=state.get("item", ""),
        answer=state.get("answer", ""),
        turn=state["turn"],
        story=state.get("story", ""),
    )
    if game.key == "storytelling":
        state["story"] = f"{state.get('story', '')} {user_text}".strip()
    header = f"ACTIVE GAME CONTEXT: The user is currently playing {game.name}. "
    return (header + context, bool(game.single_turn))
