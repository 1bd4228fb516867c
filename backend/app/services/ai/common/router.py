"""AI Router: resolves provider + generation parameters for a scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import Settings, get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Provider instance plus the knobs passed to ``generate``."""

    provider: BaseProvider
    temperature: float
    max_tokens: int
    timeout_seconds: float


def resolve(
    scope: str,
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ResolvedConfig:
    """Resolve the provider for *scope* from ``AI_PROVIDER``.

    The model is not part of this config: it belongs to the classification
    policy, which may be fetched remotely per request.

    Raises ``ProviderNotConfigured`` when the provider cannot be built.
    """
    settings = settings or get_settings()
    provider = get_provider(settings.ai_provider, settings, transport=transport)
    logger.debug("AI scope %s resolved to provider %s", scope, provider.name)
    return ResolvedConfig(
        provider=provider,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
    )
