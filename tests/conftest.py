import os

# Must be set before the app (and its cached settings) is imported
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"
os.environ["CLIENT_URL"] = "http://localhost:3000"
os.environ.pop("GROQ_API_KEY", None)
os.environ.pop("LOGFIRE_WRITE_TOKEN", None)

import itertools

import pytest

from fastapi.testclient import TestClient

from main import app

from models.emails import RelayCredentials, RelayMessage
from services.completion import CompletionProvider, get_completion_provider
from services.credentials import CredentialStore, get_credential_store
from services.email import MailRelay, get_mail_relay
from services.errors import ProviderFailure, SendFailure

APP_PASSWORD = "abcdefghijklmnop"


class FakeCompletionProvider(CompletionProvider):
    """Returns canned text and records every prompt it receives."""

    provider_name = "fake"

    def __init__(self, response: str = "Generated text", error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise ProviderFailure("Completion provider request failed", details=str(self.error))
        return self.response


class FakeMailRelay(MailRelay):
    """Records sent messages instead of talking to SMTP."""

    def __init__(self, fail_with: str | None = None):
        self.fail_with = fail_with
        self.sent: list[tuple[RelayMessage, RelayCredentials]] = []
        self._ids = itertools.count(1)

    def send(self, message: RelayMessage, credentials: RelayCredentials) -> str:
        if self.fail_with:
            raise SendFailure("Failed to send email", details=self.fail_with)
        self.sent.append((message, credentials))
        return f"<fake-{next(self._ids)}@mailcraft.test>"


@pytest.fixture
def credential_store():
    return CredentialStore()


@pytest.fixture
def configured_store(credential_store):
    credential_store.configure("sender@gmail.com", APP_PASSWORD)
    return credential_store


@pytest.fixture
def relay():
    return FakeMailRelay()


@pytest.fixture
def client(credential_store, relay):
    app.dependency_overrides[get_credential_store] = lambda: credential_store
    app.dependency_overrides[get_mail_relay] = lambda: relay
    app.dependency_overrides[get_completion_provider] = lambda: None

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def provider(client):
    fake = FakeCompletionProvider()
    app.dependency_overrides[get_completion_provider] = lambda: fake
    return fake
