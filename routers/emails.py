"""
Email router for drafting, validating and sending emails.
"""

import logfire

from fastapi import APIRouter, status, Depends
from fastapi.responses import JSONResponse

from typing import Annotated, Optional

from schema.common import ErrorResponse
from schema.email import (
    GenerateEmailRequest,
    GenerateEmailResponse,
    GenerationMetadata,
    RewriteEmailRequest,
    RewriteEmailResponse,
    SuggestSubjectRequest,
    SuggestSubjectResponse,
    ValidateEmailsRequest,
    ValidateEmailsResponse,
    SendEmailRequest,
    SendEmailResponse,
    ScheduledEmail,
    ScheduledEmailResponse,
    ScheduledEmailListResponse,
)

from models.emails import ScheduledSend

from services.composer import EmailComposer, get_email_composer
from services.dispatch import DispatchService, get_dispatch_service
from services.errors import DispatchError, ProviderFailure, SendFailure
from services.scheduler import SendScheduler, get_send_scheduler
from services.validation import partition_emails

router = APIRouter(
    prefix="/api",
    tags=["Emails"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)


def error_response(exc: DispatchError, error: Optional[str] = None) -> JSONResponse:
    """Render a `DispatchError` as the standard error body.

    Args:
        exc (DispatchError): The error raised by a service
        error (Optional[str], optional): Replaces the error message while keeping the details. Defaults to None.
    """
    content = exc.to_content()
    if error:
        content["error"] = error
    return JSONResponse(status_code=exc.status_code, content=content)


def to_scheduled_email(record: ScheduledSend) -> ScheduledEmail:
    return ScheduledEmail(
        id=record.id,
        state=record.state,
        to=record.message.to,
        subject=record.message.subject,
        scheduled_at=record.scheduled_at,
        created_at=record.created_at,
        sent_at=record.sent_at,
        message_id=record.message_id,
        error=record.error,
    )


@router.post("/generate-email", response_model=GenerateEmailResponse)
def generate_email(
    payload: GenerateEmailRequest,
    composer: Annotated[EmailComposer, Depends(get_email_composer)],
):
    """Draft an email body from a free-text prompt.

    ## Possible Errors
    - 400 Bad Request: If the prompt is empty or no completion provider is configured.
    - 500 Internal Server Error: If the completion provider call fails.
    """
    try:
        draft = composer.generate(payload.prompt, payload.tone, payload.length)

        logfire.info(f"Generated {payload.tone.value} email draft of {len(draft.text)} characters")
        return GenerateEmailResponse(
            email=draft.text,
            metadata=GenerationMetadata(tone=payload.tone, length=payload.length, provider=draft.provider),
        )
    except ProviderFailure as e:
        return error_response(e, "Failed to generate email")
    except DispatchError as e:
        logfire.warning(f"Email generation rejected: {e.error}")
        return error_response(e)
    except Exception as e:
        logfire.error(f"Unexpected error generating email: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to generate email"},
        )


@router.post("/rewrite-email", response_model=RewriteEmailResponse)
def rewrite_email(
    payload: RewriteEmailRequest,
    composer: Annotated[EmailComposer, Depends(get_email_composer)],
):
    """Shorten, expand, formalize or improve an existing draft.

    Without a completion provider a local rewrite is applied and the
    response is flagged with `degraded: true`.
    """
    try:
        rewritten = composer.rewrite(payload.content, payload.action, payload.tone, payload.length)

        return RewriteEmailResponse(content=rewritten.text, action=payload.action, degraded=rewritten.degraded)
    except ProviderFailure as e:
        return error_response(e, "Failed to rewrite email")
    except DispatchError as e:
        logfire.warning(f"Email rewrite rejected: {e.error}")
        return error_response(e)
    except Exception as e:
        logfire.error(f"Unexpected error rewriting email: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to rewrite email"},
        )


@router.post("/suggest-subject", response_model=SuggestSubjectResponse)
def suggest_subject(
    payload: SuggestSubjectRequest,
    composer: Annotated[EmailComposer, Depends(get_email_composer)],
):
    """Suggest three subject lines from the prompt and/or the current draft."""
    try:
        suggestions = composer.suggest_subjects(payload.prompt, payload.email_content)

        return SuggestSubjectResponse(subjects=suggestions.subjects, degraded=suggestions.degraded)
    except ProviderFailure as e:
        return error_response(e, "Failed to suggest subjects")
    except DispatchError as e:
        return error_response(e)
    except Exception as e:
        logfire.error(f"Unexpected error suggesting subjects: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to suggest subjects"},
        )


@router.post("/validate-emails", response_model=ValidateEmailsResponse)
def validate_emails(payload: ValidateEmailsRequest):
    """Split a list of addresses into valid and invalid ones."""
    try:
        valid, invalid = partition_emails(payload.emails)
    except DispatchError as e:
        return error_response(e)

    return ValidateEmailsResponse(
        valid_emails=valid,
        invalid_emails=invalid,
        valid_count=len(valid),
        invalid_count=len(invalid),
    )


@router.post("/send-email", response_model=SendEmailResponse, response_model_exclude_none=True)
async def send_email(
    payload: SendEmailRequest,
    dispatch_service: Annotated[DispatchService, Depends(get_dispatch_service)],
):
    """Send an email through the Gmail relay, now or at `scheduledAt`.

    The message is always sent from the configured Gmail address. `from`
    becomes the Reply-To header when it differs from that address.

    A future `scheduledAt` returns immediately with `scheduled: true` and a
    `taskId` that can be polled at `/api/scheduled-emails/{taskId}`.
    Acceptance is not a delivery guarantee.

    ## Possible Errors
    - 400 Bad Request: Missing to/subject/content, an invalid address, or Gmail not configured.
    - 500 Internal Server Error: If the relay rejects the message. Nothing is retried.
    """
    try:
        result = await dispatch_service.send(
            to=payload.to,
            subject=payload.subject,
            content=payload.content,
            cc=payload.cc,
            bcc=payload.bcc,
            sender=payload.sender,
            scheduled_at=payload.scheduled_at,
            inline_address=payload.gmail_email,
            inline_secret=payload.gmail_app_password,
        )
    except SendFailure as e:
        return error_response(e)
    except DispatchError as e:
        logfire.warning(f"Send rejected: {e.error}")
        return error_response(e)
    except Exception as e:
        logfire.error(f"Unexpected error sending email: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to send email"},
        )

    if result.scheduled is not None:
        return SendEmailResponse(
            scheduled=True,
            scheduled_at=result.scheduled.scheduled_at,
            task_id=result.scheduled.id,
        )

    return SendEmailResponse(message_id=result.message_id, timestamp=result.sent_at)


@router.get("/scheduled-emails", response_model=ScheduledEmailListResponse)
async def list_scheduled_emails(scheduler: Annotated[SendScheduler, Depends(get_send_scheduler)]):
    """List every scheduled send known to this process, oldest first.

    The service is single-tenant: any caller the origin check admits sees every
    record. Records expose recipients, subject and state only, never the body
    or credentials, and finished ones expire after the retention window.
    """
    return ScheduledEmailListResponse(tasks=[to_scheduled_email(record) for record in scheduler.list()])


@router.get(
    "/scheduled-emails/{task_id}",
    response_model=ScheduledEmailResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def get_scheduled_email(task_id: str, scheduler: Annotated[SendScheduler, Depends(get_send_scheduler)]):
    """Get the state of a scheduled send: pending, sent or failed.

    Records live in memory only and disappear when the process restarts.
    """
    record = scheduler.get(task_id)

    if record is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Scheduled email not found"},
        )

    return ScheduledEmailResponse(task=to_scheduled_email(record))
