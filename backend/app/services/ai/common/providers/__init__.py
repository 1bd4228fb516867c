"""Provider factory: returns the configured provider or refuses loudly."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from app.core.config import Settings, get_settings

from .base import BaseProvider, ProviderResponseError, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "get_provider",
    "BaseProvider",
    "ProviderNotConfigured",
    "ProviderResponseError",
    "ProviderResult",
    "MockProvider",
    "SUPPORTED_PROVIDERS",
]

SUPPORTED_PROVIDERS = ("groq", "openai", "github", "mock")


class ProviderNotConfigured(RuntimeError):
    """The requested provider is unknown or has no credentials."""


def get_provider(
    provider_name: str,
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    A missing API key is an error, never a quiet switch to ``MockProvider``:
    the spam filter must not approve mail because a key was left unset.
    """
    settings = settings or get_settings()
    name = provider_name.lower().strip()

    if name == "mock":
        logger.warning("AI provider is 'mock': replies are fixed to %r", settings.mock_ai_reply)
        return MockProvider(reply=settings.mock_ai_reply)

    if name == "groq":
        if not settings.groq_api_key:
            raise ProviderNotConfigured("GROQ_API_KEY not set")
        from .groq import GroqProvider

        return GroqProvider(api_key=settings.groq_api_key, transport=transport)

    if name == "openai":
        if not settings.openai_api_key:
            raise ProviderNotConfigured("OPENAI_API_KEY not set")
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key, transport=transport)

    if name == "github":
        if not settings.github_token:
            raise ProviderNotConfigured("GITHUB_TOKEN not set")
        from .github import GitHubModelsProvider

        return GitHubModelsProvider(
            api_key=settings.github_token,
            endpoint=settings.github_models_endpoint,
            transport=transport,
        )

    raise ProviderNotConfigured(f"Unknown AI provider {name!r}; supported: {', '.join(SUPPORTED_PROVIDERS)}")
