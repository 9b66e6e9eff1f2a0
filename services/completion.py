"""
Completion providers used to draft, rewrite and title emails.
The dispatch logic only depends on `CompletionProvider.complete()`.
"""
import abc
import time

import logfire

from typing import Optional

from openai import OpenAI

from utils.settings import Settings, get_settings

from .errors import ProviderFailure


class CompletionProvider(abc.ABC):
    """Abstract text-completion provider."""

    provider_name: str = "base"

    @abc.abstractmethod
    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send a system/user prompt pair and return the generated text verbatim.

        Raises:
            ProviderFailure on any failure of the underlying call.
        """
        ...


class GroqCompletionProvider(CompletionProvider):
    """Groq chat completions, reached through its OpenAI-compatible API."""

    provider_name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str = "llama3-70b-8192",
        base_url: str = "https://api.groq.com/openai/v1",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        client: Optional[OpenAI] = None,
    ):
        self._client = client or OpenAI(api_key=api_key, base_url=base_url)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        start = time.perf_counter()

        try:
            completion = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            logfire.error(f"Groq completion failed after {(time.perf_counter() - start) * 1000:.0f}ms: {exc}")
            raise ProviderFailure("Completion provider request failed", details=str(exc)) from exc

        logfire.info(
            f"Groq completion finished in {(time.perf_counter() - start) * 1000:.0f}ms "
            f"(model={self._model})"
        )
        return completion.choices[0].message.content or ""


def build_completion_provider(settings: Settings) -> Optional[CompletionProvider]:
    """Create the configured provider, or None when no API key is set."""
    if not settings.groq_api_key:
        logfire.warning("GROQ_API_KEY is not set, AI drafting will run in degraded mode")
        return None

    return GroqCompletionProvider(
        api_key=settings.groq_api_key,
        model=settings.groq_model,
        base_url=settings.groq_base_url,
        temperature=settings.completion_temperature,
        max_tokens=settings.completion_max_tokens,
    )


_provider: Optional[CompletionProvider] = None
_provider_loaded = False


def get_completion_provider() -> Optional[CompletionProvider]:
    """Factory function returning the shared completion provider (or None).

    Returns:
        Optional[CompletionProvider]: The provider, built on first use.
    """
    global _provider, _provider_loaded

    if not _provider_loaded:
        _provider = build_completion_provider(get_settings())
        _provider_loaded = True
    return _provider
