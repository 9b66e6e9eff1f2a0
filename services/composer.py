"""Drafting, rewriting and subject suggestions on top of a completion provider.

When no provider is configured, subject suggestions and rewrites fall back to
local templates and are flagged as degraded. Drafting a new email has no
sensible local fallback and fails with `ProviderUnavailable` instead.
"""

import json
import math
import re

import logfire

from typing import Annotated, List, Optional

from fastapi import Depends
from pydantic import BaseModel, Field

from models.helpers import EmailLength, RewriteAction, Tone

from .completion import CompletionProvider, get_completion_provider
from .errors import ProviderUnavailable, ValidationFailed

SUBJECT_COUNT = 3

LENGTH_GUIDANCE = {
    EmailLength.SHORT: "short (roughly 50 to 100 words)",
    EmailLength.MEDIUM: "medium (roughly 150 to 250 words)",
    EmailLength.LONG: "long (roughly 300 to 400 words)",
}

REWRITE_INSTRUCTIONS = {
    RewriteAction.SHORTEN: "Shorten the following email while keeping its key points and intent.",
    RewriteAction.EXPAND: "Expand the following email with more helpful detail while keeping its intent.",
    RewriteAction.FORMALIZE: "Rewrite the following email in a formal, polished register.",
    RewriteAction.IMPROVE: "Improve the clarity, grammar and flow of the following email.",
}

EXPAND_PARAGRAPH = (
    "I would be happy to share any further details that might be useful, and I am "
    "available to discuss this at a time that suits you. Please let me know if you "
    "have any questions in the meantime."
)
FORMAL_SALUTATION = "Dear Sir or Madam,"
FORMAL_CLOSING = "Yours faithfully,"

# Leading list markers and quotes a model tends to put in front of each line
_LINE_DECORATION = re.compile(r"^\s*(?:[-*•]+|\d+[.)])?\s*[\"']?|[\"']?\s*$")


class ComposedText(BaseModel):
    """Result of a drafting or rewriting call."""

    text: Annotated[str, Field()]
    degraded: Annotated[bool, Field(default=False)]
    provider: Annotated[Optional[str], Field(default=None)]


class SubjectSuggestions(BaseModel):
    """Result of a subject suggestion call."""

    subjects: Annotated[List[str], Field()]
    degraded: Annotated[bool, Field(default=False)]


class EmailComposer:
    """Service wrapping the completion provider with email-specific prompts."""

    def __init__(self, provider: Optional[CompletionProvider]):
        self.provider = provider

    def generate(self, prompt: Optional[str], tone: Tone = Tone.PROFESSIONAL, length: EmailLength = EmailLength.MEDIUM) -> ComposedText:
        """Draft an email from a free-text prompt.

        Args:
            prompt (Optional[str]): What the email should say
            tone (Tone, optional): Tone instruction. Defaults to Tone.PROFESSIONAL.
            length (EmailLength, optional): Advisory length. Defaults to EmailLength.MEDIUM.

        Raises:
            ValidationFailed: If `prompt` is empty
            ProviderUnavailable: If no completion provider is configured
            ProviderFailure: If the provider call fails

        Returns:
            ComposedText: The provider's text, unmodified.
        """
        if not prompt or not prompt.strip():
            raise ValidationFailed("Prompt is required")

        if self.provider is None:
            raise ProviderUnavailable("GROQ not configured")

        system_prompt = (
            f"You are a professional email writer. Generate a {tone.value} email based on the following prompt. "
            f"The email should be {LENGTH_GUIDANCE[length]} in length and follow proper email etiquette. "
            "Return only the email content without any additional formatting or explanations."
        )

        with logfire.span(f"Generating {tone.value}/{length.value} email draft"):
            text = self.provider.complete(system_prompt, prompt)

        return ComposedText(text=text, provider=self.provider.provider_name)

    def suggest_subjects(self, prompt: Optional[str], existing_content: Optional[str]) -> SubjectSuggestions:
        """Suggest exactly three subject lines for a prompt and/or draft.

        Raises:
            ValidationFailed: If both `prompt` and `existing_content` are empty
            ProviderFailure: If the provider call fails
        """
        prompt = (prompt or "").strip()
        existing_content = (existing_content or "").strip()

        if not prompt and not existing_content:
            raise ValidationFailed("Prompt or email content is required")

        if self.provider is None:
            logfire.info("No completion provider configured, using template subjects")
            return SubjectSuggestions(subjects=template_subjects(prompt or existing_content), degraded=True)

        system_prompt = (
            f"You write concise, compelling email subject lines. Suggest exactly {SUBJECT_COUNT} subject lines. "
            "Respond with a JSON array of strings and nothing else."
        )
        sections = []
        if prompt:
            sections.append(f"Email purpose: {prompt}")
        if existing_content:
            sections.append(f"Email content:\n{existing_content}")

        raw = self.provider.complete(system_prompt, "\n\n".join(sections))
        subjects = parse_subjects(raw)

        # Top up short answers so callers always get three candidates
        if len(subjects) < SUBJECT_COUNT:
            subjects += template_subjects(prompt or existing_content)[len(subjects):]

        return SubjectSuggestions(subjects=subjects)

    def rewrite(
        self,
        content: Optional[str],
        action: RewriteAction = RewriteAction.IMPROVE,
        tone: Tone = Tone.PROFESSIONAL,
        length: EmailLength = EmailLength.MEDIUM,
    ) -> ComposedText:
        """Rewrite a draft according to `action`.

        Raises:
            ValidationFailed: If `content` is empty
            ProviderFailure: If the provider call fails
        """
        if not content or not content.strip():
            raise ValidationFailed("Content is required")

        if self.provider is None:
            logfire.info(f"No completion provider configured, applying local '{action.value}' rewrite")
            return ComposedText(text=local_rewrite(content, action), degraded=True)

        system_prompt = (
            f"{REWRITE_INSTRUCTIONS[action]} Use a {tone.value} tone and aim for a {LENGTH_GUIDANCE[length]} length. "
            "Return only the rewritten email content without any additional formatting or explanations."
        )

        with logfire.span(f"Rewriting email draft ({action.value})"):
            text = self.provider.complete(system_prompt, content)

        return ComposedText(text=text, provider=self.provider.provider_name)


def parse_subjects(raw: str) -> List[str]:
    """Read subject lines from a provider response.

    A JSON array is preferred; anything else is read line by line.
    """
    start, end = raw.find("["), raw.rfind("]")
    if start != -1 and end > start:
        try:
            parsed = json.loads(raw[start:end + 1])
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, list):
            subjects = [str(item).strip() for item in parsed if str(item).strip()]
            if subjects:
                return subjects[:SUBJECT_COUNT]

    lines = (_LINE_DECORATION.sub("", line) for line in raw.splitlines())
    return [line for line in lines if line][:SUBJECT_COUNT]


def template_subjects(source: str) -> List[str]:
    """Three deterministic subject lines derived from `source`."""
    topic = " ".join(source.split()[:8])
    if len(topic) > 60:
        topic = topic[:57].rstrip() + "..."
    topic = topic[:1].upper() + topic[1:]

    return [
        f"Regarding: {topic}",
        f"Quick question about {topic}",
        f"Follow-up: {topic}",
    ]


def local_rewrite(content: str, action: RewriteAction) -> str:
    """Mechanical rewrite used when no provider is configured."""
    if action == RewriteAction.SHORTEN:
        lines = content.split("\n")
        return "\n".join(lines[: math.ceil(len(lines) / 2)])

    if action == RewriteAction.EXPAND:
        return f"{content.rstrip()}\n\n{EXPAND_PARAGRAPH}"

    if action == RewriteAction.FORMALIZE:
        return f"{FORMAL_SALUTATION}\n\n{content.strip()}\n\n{FORMAL_CLOSING}"

    return content.strip()


def get_email_composer(
    provider: Annotated[Optional[CompletionProvider], Depends(get_completion_provider)],
) -> EmailComposer:
    """Factory function to create an EmailComposer instance.

    Returns:
        EmailComposer: Composer bound to the configured provider.
    """
    return EmailComposer(provider=provider)
