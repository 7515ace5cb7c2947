from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from config.defaults import AUTOMOD_CAPS_MIN_LENGTH
from config.defaults import AUTOMOD_CAPS_RATIO
from config.defaults import AUTOMOD_LINK_WHITELIST
from config.defaults import AUTOMOD_MAX_MENTIONS
from config.defaults import AUTOMOD_MAX_MESSAGE_CHARS
from config.defaults import AUTOMOD_REPEAT_RUN

URL_RE = re.compile(r"https?://[^\s<>]+", re.I)


@dataclass(frozen=True)
class AutomodRules:
    max_message_chars: int = AUTOMOD_MAX_MESSAGE_CHARS
    repeat_run: int = AUTOMOD_REPEAT_RUN
    max_mentions: int = AUTOMOD_MAX_MENTIONS
    caps_ratio: float = AUTOMOD_CAPS_RATIO
    caps_min_length: int = AUTOMOD_CAPS_MIN_LENGTH
    link_whitelist: tuple[str, ...] = AUTOMOD_LINK_WHITELIST


@dataclass(slots=True)
class AutomodVerdict:
    rule: str
    reason: str


def _has_repeat_run(text: str, run: int) -> bool:
    if run <= 1:
        return bool(text)
    return re.search(r"(.)\1{" + str(run - 1) + r",}", text, flags=re.S) is not None


def _caps_ratio(text: str) -> float:
    letters = [c for c in text if c.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for c in letters if c.isupper()) / len(letters)


def _host_allowed(host: str, whitelist: tuple[str, ...]) -> bool:
    host = host.lower().split(":", 1)[0]
    return any(host == allowed or host.endswith("." + allowed) for allowed in whitelist)


def check_message(content: str | None, *, mention_count: int = 0, rules: AutomodRules | None = None) -> AutomodVerdict | None:
    rules = rules or AutomodRules()
    text = content or ""

    if len(text) > rules.max_message_chars or _has_repeat_run(text, rules.repeat_run):
        return AutomodVerdict("spam", "Spam detected")

    if int(mention_count) >= rules.max_mentions:
        return AutomodVerdict("mentions", f"Mass mentions ({int(mention_count)})")

    if len(text) >= rules.caps_min_length and _caps_ratio(text) >= rules.caps_ratio:
        return AutomodVerdict("caps", "Excessive caps")

    for url in URL_RE.findall(text):
        host = urlparse(url).netloc
        if host and not _host_allowed(host, rules.link_whitelist):
            return AutomodVerdict("links", f"Unapproved link ({host.lower()})")

    return None
