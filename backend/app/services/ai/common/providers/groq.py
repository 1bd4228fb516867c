"""Groq provider (OpenAI-compatible API)."""

from __future__ import annotations

from .base import ChatCompletionProvider


class GroqProvider(ChatCompletionProvider):
    name = "groq"
    endpoint = "https://api.groq.com/openai/v1/chat/completions"
    default_model = "llama-3.1-8b-instant"
