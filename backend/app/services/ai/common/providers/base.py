"""Abstract base for chat-completion providers used by the spam filter."""

from __future__ import annotations

import abc
import time
from dataclasses import dataclass
from typing import Optional

import httpx


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class ProviderResponseError(ValueError):
    """The provider answered 2xx but the body is not a usable completion."""


def _token_count(value) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    name: str = "base"

    @abc.abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        model: str = "",
        temperature: float = 0.0,
        max_tokens: int = 200,
        timeout_seconds: float = 10.0,
    ) -> ProviderResult:
        """Send *prompt* and return a ``ProviderResult``."""


class ChatCompletionProvider(BaseProvider):
    """OpenAI-compatible ``/chat/completions`` endpoint.

    Groq, OpenAI and GitHub Models all speak this wire format; subclasses
    only pin the endpoint and a default model.
    """

    endpoint: str = ""
    default_model: str = ""

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint or self.endpoint
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        model: str = "",
        temperature: float = 0.0,
        max_tokens: int = 200,
        timeout_seconds: float = 10.0,
    ) -> ProviderResult:
        model = model or self.default_model
        t0 = time.monotonic()

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                self._endpoint,
                headers=self._headers(),
                json={
                    "model": model,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": messages,
                },
            )
            resp.raise_for_status()
            data = resp.json()

        elapsed = (time.monotonic() - t0) * 1000
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderResponseError(f"{self.name}: unexpected completion payload") from exc
        if not isinstance(text, str):
            raise ProviderResponseError(f"{self.name}: completion content is not text")
        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=_token_count(usage.get("prompt_tokens")),
            completion_tokens=_token_count(usage.get("completion_tokens")),
            latency_ms=round(elapsed, 2),
        )
