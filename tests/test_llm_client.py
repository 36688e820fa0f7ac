from __future__ import annotations

from types import SimpleNamespace

from research_copilot import llm_client
from research_copilot.config import Settings, settings


def test_get_client_points_at_groq(monkeypatch):
    monkeypatch.setattr(settings, "groq_api_key", "gsk-test")
    monkeypatch.setattr(settings, "groq_base_url", "  ")

    client = llm_client.get_client()

    assert str(client.base_url).rstrip("/") == "https://api.groq.com/openai/v1"
    assert client.api_key == "gsk-test"
    assert client.max_retries == 0


def test_is_configured_requires_non_blank_key(monkeypatch):
    monkeypatch.setattr(settings, "groq_api_key", "   ")
    assert llm_client.is_configured() is False

    monkeypatch.setattr(settings, "groq_api_key", "gsk-test")
    assert llm_client.is_configured() is True


def test_field_reads_dicts_and_objects():
    assert llm_client.field({"a": 1}, "a") == 1
    assert llm_client.field(SimpleNamespace(a=2), "a") == 2
    assert llm_client.field(None, "a", "fallback") == "fallback"


def test_usage_tokens_tolerates_missing_usage():
    assert llm_client.usage_tokens(SimpleNamespace(usage=None)) == (0, 0)
    assert llm_client.usage_tokens({"usage": {"prompt_tokens": 3, "completion_tokens": 4}}) == (3, 4)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT", "3")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test")

    loaded = Settings()

    assert loaded.rate_limit == 3
    assert loaded.cors_origin_list == ["https://a.test", "https://b.test"]
