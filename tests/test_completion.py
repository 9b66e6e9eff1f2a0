from types import SimpleNamespace

import pytest

from services.completion import GroqCompletionProvider, build_completion_provider
from services.errors import ProviderFailure
from utils.settings import Settings


class StubCompletions:
    def __init__(self, content="Hello!", error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def stub_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_groq_provider_sends_system_and_user_prompts():
    completions = StubCompletions(content="Draft body")
    provider = GroqCompletionProvider(api_key="gsk_test", model="llama3-70b-8192", client=stub_client(completions))

    assert provider.complete("system text", "user text") == "Draft body"
    assert completions.kwargs["model"] == "llama3-70b-8192"
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["max_tokens"] == 1000
    assert completions.kwargs["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]


def test_groq_provider_wraps_errors():
    completions = StubCompletions(error=RuntimeError("invalid api key"))
    provider = GroqCompletionProvider(api_key="gsk_test", client=stub_client(completions))

    with pytest.raises(ProviderFailure) as exc_info:
        provider.complete("system", "user")

    assert exc_info.value.details == "invalid api key"


def test_no_api_key_means_no_provider():
    assert build_completion_provider(Settings(groq_api_key=None)) is None


def test_api_key_builds_groq_provider():
    provider = build_completion_provider(Settings(groq_api_key="gsk_test"))

    assert isinstance(provider, GroqCompletionProvider)
    assert provider.provider_name == "groq"
