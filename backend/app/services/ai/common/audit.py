"""AI audit: one structured log line per model call.

Prompt and response are hashed; submissions contain personal data and
message bodies never go to the log.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from .providers.base import ProviderResult

logger = logging.getLogger(__name__)

SCOPE_ACTIONS: dict[str, str] = {
    "spam_filter": "AI_SPAM_CLASSIFIED",
}


def log_ai_run(
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    parsed_output: dict[str, Any] | None,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Log an ``AI_RUN`` entry and return the metadata that was logged."""
    metadata: dict[str, Any] = {
        "action": SCOPE_ACTIONS.get(scope, "AI_RUN"),
        "scope": scope,
        "provider": provider_result.provider,
        "model": provider_result.model,
        "prompt_tokens": provider_result.prompt_tokens,
        "completion_tokens": provider_result.completion_tokens,
        "latency_ms": provider_result.latency_ms,
        "prompt_hash": hashlib.sha256(prompt_text.encode()).hexdigest(),
        "response_hash": hashlib.sha256(provider_result.raw_text.encode()).hexdigest(),
        "output": parsed_output,
    }
    if extra_meta:
        metadata.update(extra_meta)

    logger.info("AI run %s", metadata)
    return metadata
