"""Send dispatch: precondition checks, message building, immediate or deferred transmission."""

import pytz
import logfire

from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import Depends
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from models.emails import RelayCredentials, ScheduledSend

from .credentials import CredentialStore, get_credential_store, validate_credentials
from .email import MailRelay, build_relay_message, get_mail_relay
from .errors import MissingField
from .scheduler import SendScheduler, get_send_scheduler
from .validation import ensure_addresses_valid


class DispatchResult(BaseModel):
    """Outcome of a send: either a relay message id or a scheduled record."""

    message_id: Annotated[Optional[str], Field(default=None)]
    sent_at: Annotated[Optional[datetime], Field(default=None)]
    scheduled: Annotated[Optional[ScheduledSend], Field(default=None)]


class DispatchService:
    """Service for validating and dispatching outbound email."""

    def __init__(self, credential_store: CredentialStore, relay: MailRelay, scheduler: SendScheduler):
        self.credential_store = credential_store
        self.relay = relay
        self.scheduler = scheduler

    async def send(
        self,
        to: List[str],
        subject: Optional[str],
        content: Optional[str],
        cc: Optional[List[str]] = None,
        bcc: Optional[List[str]] = None,
        sender: Optional[str] = None,
        scheduled_at: Optional[datetime] = None,
        inline_address: Optional[str] = None,
        inline_secret: Optional[str] = None,
    ) -> DispatchResult:
        """Validate and send (or schedule) an email.

        Checks run in order and stop at the first failure, always before the
        relay is touched: required fields, credentials, then addresses.

        Args:
            to (List[str]): Recipient addresses
            subject (Optional[str]): Subject line
            content (Optional[str]): Plain text body
            cc (Optional[List[str]], optional): Carbon copy addresses. Defaults to None.
            bcc (Optional[List[str]], optional): Blind carbon copy addresses. Defaults to None.
            sender (Optional[str], optional): Reply-To candidate. Defaults to None.
            scheduled_at (Optional[datetime], optional): Timezone-aware send time. Defaults to None.
            inline_address (Optional[str], optional): Relay address for this request only. Defaults to None.
            inline_secret (Optional[str], optional): App password for this request only. Defaults to None.

        Raises:
            MissingField: If `to`, `subject` or `content` is empty
            ValidationFailed: If inline credentials are incomplete or malformed
            NotConfigured: If no credentials are available
            InvalidAddress: For the first malformed address in to, cc and bcc
            SendFailure: If an immediate transmission fails

        Returns:
            DispatchResult: The message id, or the scheduled record.
        """
        cc, bcc = cc or [], bcc or []

        missing = [
            name
            for name, value in (("to", to), ("subject", subject), ("content", content))
            if not value
        ]
        if missing:
            raise MissingField("To, subject, and content are required", fields=missing)

        credentials = self.credential_store.resolve(resolve_inline_credentials(inline_address, inline_secret))

        ensure_addresses_valid([*to, *cc, *bcc])

        message = build_relay_message(
            credentials, to=to, subject=subject, content=content, cc=cc, bcc=bcc, sender=sender
        )

        now = datetime.now(pytz.utc)
        if scheduled_at is not None and scheduled_at > now:
            record = self.scheduler.schedule(message, credentials, scheduled_at, self.relay)
            return DispatchResult(scheduled=record)

        with logfire.span(f"Sending email to {', '.join(to)}"):
            message_id = await run_in_threadpool(self.relay.send, message, credentials)

        return DispatchResult(message_id=message_id, sent_at=datetime.now(pytz.utc))


def resolve_inline_credentials(address: Optional[str], secret: Optional[str]) -> Optional[RelayCredentials]:
    """Build per-request credentials, or None when neither field was supplied.

    Raises:
        ValidationFailed: If only one field is given or either is malformed.
    """
    if not address and not secret:
        return None
    return validate_credentials(address, secret)


def get_dispatch_service(
    credential_store: Annotated[CredentialStore, Depends(get_credential_store)],
    relay: Annotated[MailRelay, Depends(get_mail_relay)],
    scheduler: Annotated[SendScheduler, Depends(get_send_scheduler)],
) -> DispatchService:
    """Factory function to create a DispatchService instance.

    Returns:
        DispatchService: Service wired to the shared store, relay and scheduler.
    """
    return DispatchService(credential_store=credential_store, relay=relay, scheduler=scheduler)
