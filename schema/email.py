"""Describes the structure of the email drafting and sending requests and responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, Any, List, Optional

from models.helpers import EmailLength, RewriteAction, ScheduledSendState, Tone


class GenerateEmailRequest(BaseModel):
    """Describes the structure of the generate email request."""

    prompt: Annotated[Optional[str], Field(default=None)]
    tone: Annotated[Tone, Field(default=Tone.PROFESSIONAL)]
    length: Annotated[EmailLength, Field(default=EmailLength.MEDIUM)]


class GenerationMetadata(BaseModel):
    tone: Tone
    length: EmailLength
    provider: Optional[str] = None


class GenerateEmailResponse(BaseModel):
    """Describes the structure of the generate email response."""

    success: Annotated[bool, Field(default=True)]
    email: Annotated[str, Field(description="Generated email body, exactly as returned by the provider")]
    metadata: Annotated[GenerationMetadata, Field()]


class RewriteEmailRequest(BaseModel):
    """Describes the structure of the rewrite email request."""

    content: Annotated[Optional[str], Field(default=None)]
    action: Annotated[RewriteAction, Field(default=RewriteAction.IMPROVE)]
    tone: Annotated[Tone, Field(default=Tone.PROFESSIONAL)]
    length: Annotated[EmailLength, Field(default=EmailLength.MEDIUM)]


class RewriteEmailResponse(BaseModel):
    """Describes the structure of the rewrite email response."""

    success: Annotated[bool, Field(default=True)]
    content: Annotated[str, Field()]
    action: Annotated[RewriteAction, Field()]
    degraded: Annotated[bool, Field(description="True when produced by the local fallback instead of the provider")]


class SuggestSubjectRequest(BaseModel):
    """Describes the structure of the subject suggestion request."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: Annotated[Optional[str], Field(default=None)]
    email_content: Annotated[Optional[str], Field(default=None, alias="emailContent")]


class SuggestSubjectResponse(BaseModel):
    """Describes the structure of the subject suggestion response."""

    success: Annotated[bool, Field(default=True)]
    subjects: Annotated[List[str], Field(min_length=3, max_length=3)]
    degraded: Annotated[bool, Field()]


class ValidateEmailsRequest(BaseModel):
    """Describes the structure of the validate emails request."""

    emails: Annotated[Any, Field(default=None)]  # checked by the validation service


class ValidateEmailsResponse(BaseModel):
    """Describes the structure of the validate emails response."""

    success: Annotated[bool, Field(default=True)]
    valid_emails: Annotated[List[Any], Field(serialization_alias="validEmails")]
    invalid_emails: Annotated[List[Any], Field(serialization_alias="invalidEmails")]
    valid_count: Annotated[int, Field(serialization_alias="validCount")]
    invalid_count: Annotated[int, Field(serialization_alias="invalidCount")]


class SendEmailRequest(BaseModel):
    """Describes the structure of the send email request.

    `to`, `cc` and `bcc` accept either a list or a comma separated string.
    """

    model_config = ConfigDict(populate_by_name=True)

    sender: Annotated[Optional[str], Field(default=None, alias="from")]
    to: Annotated[List[str], Field(default_factory=list)]
    cc: Annotated[List[str], Field(default_factory=list)]
    bcc: Annotated[List[str], Field(default_factory=list)]
    subject: Annotated[Optional[str], Field(default=None)]
    content: Annotated[Optional[str], Field(default=None)]
    scheduled_at: Annotated[Optional[datetime], Field(default=None, alias="scheduledAt")]
    gmail_email: Annotated[Optional[str], Field(default=None, alias="gmailEmail")]
    gmail_app_password: Annotated[Optional[str], Field(default=None, alias="gmailAppPassword", repr=False)]

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def split_address_string(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [address.strip() for address in value.split(",") if address.strip()]
        return value

    @field_validator("scheduled_at")
    @classmethod
    def assume_local_time_when_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Browsers send datetime-local values without an offset
        if value is not None and value.tzinfo is None:
            return value.astimezone()
        return value


class SendEmailResponse(BaseModel):
    """Describes the structure of the send email response.

    Immediate sends carry `messageId`; scheduled sends carry `scheduled`,
    `scheduledAt` and `taskId`.
    """

    success: Annotated[bool, Field(default=True)]
    message_id: Annotated[Optional[str], Field(default=None, serialization_alias="messageId")]
    timestamp: Annotated[Optional[datetime], Field(default=None)]
    scheduled: Annotated[Optional[bool], Field(default=None)]
    scheduled_at: Annotated[Optional[datetime], Field(default=None, serialization_alias="scheduledAt")]
    task_id: Annotated[Optional[str], Field(default=None, serialization_alias="taskId")]


class ScheduledEmail(BaseModel):
    """Public view of a scheduled send. Never includes credentials or the body."""

    id: str
    state: ScheduledSendState
    to: List[str]
    subject: str
    scheduled_at: Annotated[datetime, Field(serialization_alias="scheduledAt")]
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]
    sent_at: Annotated[Optional[datetime], Field(default=None, serialization_alias="sentAt")]
    message_id: Annotated[Optional[str], Field(default=None, serialization_alias="messageId")]
    error: Annotated[Optional[str], Field(default=None)]


class ScheduledEmailResponse(BaseModel):
    success: Annotated[bool, Field(default=True)]
    task: Annotated[ScheduledEmail, Field()]


class ScheduledEmailListResponse(BaseModel):
    success: Annotated[bool, Field(default=True)]
    tasks: Annotated[List[ScheduledEmail], Field()]
