from __future__ import annotations

import os
import uuid


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:8]


def _debug_enabled() -> bool:
    return os.getenv("GUILDKEEPER_DEBUG", "0").strip() == "1"


class BotError(RuntimeError):
    code = "unknown"

    def __init__(self, message: str = "", *, code: str | None = None, correlation_id: str | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = str(code)
        self.correlation_id = correlation_id


class TransientProviderError(BotError):
    code = "rate_limited"


class QuotaError(BotError):
    code = "quota_exceeded"


class CredentialError(BotError):
    code = "invalid_credential"


class PlatformRaceError(BotError):
    code = "already_resolved"


class UnknownError(BotError):
    code = "unknown"

    def __init__(self, message: str = "", *, code: str | None = None, correlation_id: str | None = None):
        super().__init__(message, code=code, correlation_id=correlation_id or _new_correlation_id())


def classify_error(exc: BaseException | None) -> BotError:
    if isinstance(exc, BotError):
        return exc
    if exc is None:
        return UnknownError("unspecified failure")
    return UnknownError(f"{exc.__class__.__name__}: {exc}")


_NOTICES = {
    TransientProviderError.code: "🚦 I'm thinking too fast! Please wait a moment and try again.",
    QuotaError.code: "💳 The AI provider quota is exhausted. An admin needs to check billing.",
    CredentialError.code: "🔑 The AI provider rejected our credentials. An admin needs to check the configuration.",
}


def error_notice(err: BaseException | None) -> str:
    classified = classify_error(err)
    text = _NOTICES.get(classified.code)
    if text:
        return text
    cid = classified.correlation_id
    suffix = f" (error id `{cid}`)" if cid else ""
    return f"🤖 Sorry, something went wrong while handling that.{suffix}"


def log_error(tag: str, err: BaseException | None) -> BotError:
    classified = classify_error(err)
    if isinstance(classified, PlatformRaceError):
        if _debug_enabled():
            print(f"[{tag}] benign race: {classified}")
        return classified
    cid = classified.correlation_id or "-"
    print(f"[{tag}] code={classified.code} cid={cid} {classified}")
    return classified


def log_debug(tag: str, message: str) -> None:
    if _debug_enabled():
        print(f"[{tag}] {message}")
