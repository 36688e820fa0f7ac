from __future__ import annotations

import pytest

from research_copilot.services.prompt_store import render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt(
        "fast_search.system_prompt",
        prior_year=2025,
        current_year=2026,
        context_block="\nResearch Context: Company: Acme",
    )
    assert "(2025-2026 data preferred)" in prompt
    assert prompt.endswith("Research Context: Company: Acme")


def test_escaped_dollar_survives_rendering():
    prompt = render_prompt("synthesis.system_prompt")
    assert '"value": "$50B"' in prompt


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError):
        render_prompt("synthesis.user_prompt", query="q")


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_rejects_non_string_entry():
    with pytest.raises(TypeError):
        render_prompt("synthesis")
