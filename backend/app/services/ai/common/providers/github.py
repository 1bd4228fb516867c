"""GitHub Models provider.

Authenticates with a GitHub token; the inference endpoint is configurable
because GitHub has moved it before (``GITHUB_MODELS_ENDPOINT``).
"""

from __future__ import annotations

from .base import ChatCompletionProvider


class GitHubModelsProvider(ChatCompletionProvider):
    name = "github"
    endpoint = "https://models.github.ai/inference/chat/completions"
    default_model = "openai/gpt-4.1-mini"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github+json"
        return headers
