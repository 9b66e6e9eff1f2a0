import math

import pytest

from models.helpers import EmailLength, RewriteAction, Tone
from services.composer import (
    EXPAND_PARAGRAPH,
    EmailComposer,
    parse_subjects,
    template_subjects,
)
from services.errors import ProviderFailure, ProviderUnavailable, ValidationFailed

from conftest import FakeCompletionProvider


def test_generate_without_provider_fails():
    with pytest.raises(ProviderUnavailable) as exc_info:
        EmailComposer(provider=None).generate("ask for a meeting", Tone.FORMAL, EmailLength.SHORT)

    assert exc_info.value.to_content() == {"error": "GROQ not configured"}
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("prompt", [None, "", "   "])
def test_generate_requires_prompt(prompt):
    with pytest.raises(ValidationFailed, match="Prompt is required"):
        EmailComposer(provider=FakeCompletionProvider()).generate(prompt)


def test_generate_returns_provider_text_verbatim():
    provider = FakeCompletionProvider(response="  Dear team,\n\nLet's meet.\n  ")

    draft = EmailComposer(provider).generate("ask for a meeting", Tone.CASUAL, EmailLength.LONG)

    assert draft.text == "  Dear team,\n\nLet's meet.\n  "
    assert draft.degraded is False
    assert draft.provider == "fake"

    system_prompt, user_prompt = provider.calls[0]
    assert "casual" in system_prompt
    assert "long" in system_prompt
    assert user_prompt == "ask for a meeting"


def test_generate_propagates_provider_failure():
    provider = FakeCompletionProvider(error=RuntimeError("rate limited"))

    with pytest.raises(ProviderFailure):
        EmailComposer(provider).generate("hello")


def test_suggest_subjects_requires_input():
    with pytest.raises(ValidationFailed, match="Prompt or email content is required"):
        EmailComposer(provider=None).suggest_subjects("", "  ")


def test_suggest_subjects_degraded_is_deterministic():
    composer = EmailComposer(provider=None)

    first = composer.suggest_subjects("ask for a meeting", None)
    second = composer.suggest_subjects("ask for a meeting", None)

    assert first.degraded is True
    assert first.subjects == second.subjects
    assert len(first.subjects) == 3
    assert first.subjects[0] == "Regarding: Ask for a meeting"


def test_suggest_subjects_from_content_only():
    suggestions = EmailComposer(provider=None).suggest_subjects(None, "Quarterly report attached")

    assert suggestions.subjects == template_subjects("Quarterly report attached")


def test_suggest_subjects_parses_json_array():
    provider = FakeCompletionProvider(response='["Meeting request", "Can we talk?", "Quick sync", "Extra"]')

    suggestions = EmailComposer(provider).suggest_subjects("ask for a meeting", "Hi Sam")

    assert suggestions.subjects == ["Meeting request", "Can we talk?", "Quick sync"]
    assert suggestions.degraded is False
    assert "Email content:\nHi Sam" in provider.calls[0][1]


def test_suggest_subjects_falls_back_to_lines():
    provider = FakeCompletionProvider(response="Here you go:\n\n1. Meeting request\n- \"Can we talk?\"\nQuick sync\nFourth")

    suggestions = EmailComposer(provider).suggest_subjects("ask for a meeting", None)

    assert suggestions.subjects == ["Here you go:", "Meeting request", "Can we talk?"]


def test_suggest_subjects_tops_up_short_answers():
    provider = FakeCompletionProvider(response='["Only one"]')

    suggestions = EmailComposer(provider).suggest_subjects("ask for a meeting", None)

    assert suggestions.subjects[0] == "Only one"
    assert len(suggestions.subjects) == 3


def test_parse_subjects_handles_fenced_json():
    raw = '```json\n["A", "B", "C"]\n```'

    assert parse_subjects(raw) == ["A", "B", "C"]


@pytest.mark.parametrize("line_count", [1, 2, 3, 4, 7])
def test_rewrite_shorten_without_provider_keeps_half_the_lines(line_count):
    content = "\n".join(f"line {i}" for i in range(line_count))

    result = EmailComposer(provider=None).rewrite(content, RewriteAction.SHORTEN)

    assert result.degraded is True
    assert len(result.text.split("\n")) == math.ceil(line_count / 2)
    assert content.startswith(result.text)


def test_rewrite_expand_without_provider():
    result = EmailComposer(provider=None).rewrite("Hello there.\n", RewriteAction.EXPAND)

    assert result.text == f"Hello there.\n\n{EXPAND_PARAGRAPH}"
    assert result.degraded is True


def test_rewrite_formalize_without_provider():
    result = EmailComposer(provider=None).rewrite("See you soon.", RewriteAction.FORMALIZE)

    assert result.text == "Dear Sir or Madam,\n\nSee you soon.\n\nYours faithfully,"


def test_rewrite_improve_without_provider_trims():
    result = EmailComposer(provider=None).rewrite("  Hi  \n", RewriteAction.IMPROVE)

    assert result.text == "Hi"
    assert result.degraded is True


def test_rewrite_requires_content():
    with pytest.raises(ValidationFailed, match="Content is required"):
        EmailComposer(provider=None).rewrite("")


def test_rewrite_with_provider():
    provider = FakeCompletionProvider(response="Shorter.")

    result = EmailComposer(provider).rewrite("A long email.", RewriteAction.SHORTEN, Tone.FRIENDLY)

    assert result.text == "Shorter."
    assert result.degraded is False
    assert "Shorten" in provider.calls[0][0]
    assert "friendly" in provider.calls[0][0]
