"""OpenAI provider."""

from __future__ import annotations

from .base import ChatCompletionProvider


class OpenAIProvider(ChatCompletionProvider):
    name = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-4o-mini"
