"""Classification policy sources.

``StaticPolicyFetcher`` serves the configured model/prompt.
``RemotePolicyFetcher`` reads both from two plain-text documents (for
example raw Gist files) on every call, so edits take effect on the next
request without a deploy.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import time
from typing import Optional

import httpx

from app.services.contact.errors import PolicyUnavailable

from .contracts import ClassificationPolicy

logger = logging.getLogger(__name__)


class PolicyFetcher(abc.ABC):
    @abc.abstractmethod
    async def fetch_policy(self) -> ClassificationPolicy:
        """Return the policy for one request or raise ``PolicyUnavailable``."""


class StaticPolicyFetcher(PolicyFetcher):
    def __init__(self, model: str, system_prompt: str) -> None:
        self._policy = ClassificationPolicy(model=model, system_prompt=system_prompt, source="static")

    async def fetch_policy(self) -> ClassificationPolicy:
        return self._policy


class RemotePolicyFetcher(PolicyFetcher):
    def __init__(
        self,
        model_url: str,
        prompt_url: str,
        *,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._model_url = model_url
        self._prompt_url = prompt_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def _fetch_text(self, client: httpx.AsyncClient, url: str, what: str) -> str:
        resp = await client.get(
            url,
            params={"t": str(int(time.time() * 1000))},
            headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
        )
        resp.raise_for_status()
        text = resp.text.strip()
        if not text:
            raise ValueError(f"remote {what} document is empty")
        return text

    async def fetch_policy(self) -> ClassificationPolicy:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                tasks = [
                    asyncio.ensure_future(self._fetch_text(client, self._model_url, "model")),
                    asyncio.ensure_future(self._fetch_text(client, self._prompt_url, "prompt")),
                ]
                try:
                    model, prompt = await asyncio.gather(*tasks)
                except Exception:
                    # Settle the sibling fetch before the client closes.
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                    raise
        except httpx.HTTPError as exc:
            logger.error("Policy fetch failed: %s", exc.__class__.__name__)
            raise PolicyUnavailable() from exc
        except ValueError as exc:
            logger.error("Policy fetch failed: %s", exc)
            raise PolicyUnavailable() from exc

        logger.info("Loaded remote classification policy: model=%s prompt_chars=%d", model, len(prompt))
        return ClassificationPolicy(model=model, system_prompt=prompt, source="remote")
