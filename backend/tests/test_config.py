import pytest

from app.core.config import DEFAULT_SYSTEM_PROMPT, Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("MODE", "CORS_ALLOW_ORIGINS", "EXTRA_DISPOSABLE_DOMAINS", "AI_PROVIDER", "POLICY_MODEL_URL", "POLICY_PROMPT_URL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = Settings()
    assert s.mode == "SECURE"
    assert s.is_secure_mode
    assert s.max_message_length == 2000
    assert s.recaptcha_min_score == 0.5
    assert s.ai_system_prompt == DEFAULT_SYSTEM_PROMPT
    assert not s.remote_policy_configured


def test_csv_and_json_lists_from_env(clean_env):
    clean_env.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")
    clean_env.setenv("EXTRA_DISPOSABLE_DOMAINS", '["junk.example"]')
    s = Settings()
    assert s.cors_allow_origins == ["https://a.example", "https://b.example"]
    assert s.extra_disposable_domains == ["junk.example"]


def test_mode_normalized(clean_env):
    clean_env.setenv("MODE", " lab ")
    s = Settings()
    assert s.mode == "LAB"
    assert s.is_lab_mode
    assert not s.is_secure_mode


def test_unknown_mode_is_secure(clean_env):
    clean_env.setenv("MODE", "staging")
    assert Settings().is_secure_mode


def test_remote_policy_needs_both_urls(clean_env):
    assert not Settings(policy_model_url="https://x/model").remote_policy_configured
    assert Settings(policy_model_url="https://x/m", policy_prompt_url="https://x/p").remote_policy_configured


def test_provider_name_normalized(clean_env):
    clean_env.setenv("AI_PROVIDER", " GitHub ")
    assert Settings().ai_provider == "github"
