"""Mock provider: a fixed reply, for local runs and tests.

Only used when ``AI_PROVIDER=mock`` is set explicitly.
"""

from __future__ import annotations

import time
from typing import Optional

from .base import BaseProvider, ProviderResult


class MockProvider(BaseProvider):
    name = "mock"

    def __init__(self, reply: str = "ALLOW") -> None:
        self.reply = reply
        self.calls: list[dict] = []

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
        t0 = time.monotonic()
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "model": model})
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=self.reply,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(self.reply.split()),
            latency_ms=round(elapsed, 2),
        )
