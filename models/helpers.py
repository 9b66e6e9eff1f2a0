"""Contains all enums commonly used across different modules."""
from enum import Enum


class Tone(str, Enum):
    """Enum for the tone a drafted email should take."""

    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    FORMAL = "formal"
    CASUAL = "casual"
    PERSUASIVE = "persuasive"


class EmailLength(str, Enum):
    """Enum for the advisory length of a drafted email."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class RewriteAction(str, Enum):
    """Enum for the rewrite operations offered by the editor."""

    SHORTEN = "shorten"
    EXPAND = "expand"
    FORMALIZE = "formalize"
    IMPROVE = "improve"


class ScheduledSendState(str, Enum):
    """Enum for the lifecycle of a scheduled send."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
