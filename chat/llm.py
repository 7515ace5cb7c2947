from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import openai
from config.defaults import DEFAULT_CHAT_MAX_TOKENS
from config.defaults import DEFAULT_CHAT_TEMPERATURE
from config.defaults import DEFAULT_LLM_BACKOFF_BASE_SECONDS
from config.defaults import DEFAULT_LLM_MAX_RETRIES
from runtime.errors import BotError
from runtime.errors import CredentialError
from runtime.errors import QuotaError
from runtime.errors import TransientProviderError
from runtime.errors import UnknownError

_QUOTA_CODES = {"insufficient_quota", "billing_hard_limit_reached"}
_CREDENTIAL_CODES = {"invalid_api_key", "invalid_organization"}


def translate_provider_error(exc: BaseException) -> BotError:
    if isinstance(exc, BotError):
        return exc

    code = str(getattr(exc, "code", "") or "")
    status = getattr(exc, "status_code", None)
    text = f"{exc.__class__.__name__}: {exc}"

    if code in _QUOTA_CODES:
        return QuotaError(text, code=QuotaError.code)
    if isinstance(exc, openai.RateLimitError) or code == "rate_limit_exceeded" or status == 429:
        return TransientProviderError(text)
    if (
        isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))
        or code in _CREDENTIAL_CODES
        or status in {401, 403}
    ):
        return CredentialError(text)
    return UnknownError(text)


class OpenAIChatProvider:
    def __init__(
        self,
        *,
        client: Any,
        model: str,
        max_retries: int = DEFAULT_LLM_MAX_RETRIES,
        backoff_base_seconds: float = DEFAULT_LLM_BACKOFF_BASE_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        self.client = client
        self.model = str(model or "").strip()
        self.max_retries = max(0, int(max_retries))
        self.backoff_base_seconds = max(0.0, float(backoff_base_seconds))
        self._sleep = sleep or asyncio.sleep

    def backoff_delay(self, attempt: int) -> float:
        return self.backoff_base_seconds * (2 ** max(0, attempt - 1))

    async def complete(
        self,
        system_prompt: str,
        messages: list[dict],
        *,
        max_tokens: int = DEFAULT_CHAT_MAX_TOKENS,
        temperature: float = DEFAULT_CHAT_TEMPERATURE,
    ) -> str:
        payload = [{"role": "system", "content": system_prompt}] + list(messages)
        attempt = 0
        while True:
            try:
                resp = await asyncio.to_thread(
                    self.client.chat.completions.create,
                    model=self.model,
                    messages=payload,
                    max_tokens=int(max_tokens),
                    temperature=float(temperature),
                )
                return (resp.choices[0].message.content or "").strip()
            except Exception as e:
                err = translate_provider_error(e)
                if isinstance(err, TransientProviderError) and attempt < self.max_retries:
                    attempt += 1
                    delay = self.backoff_delay(attempt)
                    print(f"[OpenAI] rate limited; retry {attempt}/{self.max_retries} in {delay:.1f}s")
                    await self._sleep(delay)
                    continue
                raise err from e
