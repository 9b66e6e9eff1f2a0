"""Defines the domain models that flow through the dispatch pipeline.
"""
import pytz

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from typing import Annotated, List, Optional

from .helpers import ScheduledSendState


class RelayCredentials(BaseModel):
    """An authenticated Gmail identity: address plus 16 character app password."""

    model_config = ConfigDict(frozen=True)

    address: Annotated[str, Field()]
    secret: Annotated[str, Field(repr=False)]

    @property
    def masked_secret(self) -> str:
        return mask_secret(self.secret)


class RelayMessage(BaseModel):
    """A fully resolved outbound message, ready to hand to the relay."""

    model_config = ConfigDict(frozen=True)

    sender: Annotated[str, Field()]  # authenticated relay address
    reply_to: Annotated[Optional[str], Field(default=None)]
    to: Annotated[List[str], Field()]
    cc: Annotated[List[str], Field(default_factory=list)]
    bcc: Annotated[List[str], Field(default_factory=list)]
    subject: Annotated[str, Field()]
    text: Annotated[str, Field()]
    html: Annotated[str, Field()]

    @property
    def recipients(self) -> List[str]:
        """Every envelope recipient, bcc included."""
        return [*self.to, *self.cc, *self.bcc]


class ScheduledSend(BaseModel):
    """In-memory record of a deferred send.

    Credentials are held by the pending task, not the record, so a later
    `/api/setup-gmail` call does not change who the message is sent as.
    """

    id: Annotated[str, Field()]
    message: Annotated[RelayMessage, Field()]
    scheduled_at: Annotated[datetime, Field()]
    created_at: Annotated[datetime, Field(default_factory=lambda: datetime.now(pytz.utc))]
    state: Annotated[ScheduledSendState, Field(default=ScheduledSendState.PENDING)]
    sent_at: Annotated[Optional[datetime], Field(default=None)]
    message_id: Annotated[Optional[str], Field(default=None)]
    error: Annotated[Optional[str], Field(default=None)]
    finished_at: Annotated[Optional[datetime], Field(default=None)]  # set once sent or failed


def mask_secret(secret: str) -> str:
    """Mask all but the last four characters of `secret`."""
    if len(secret) <= 4:
        return "*" * len(secret)
    return "*" * (len(secret) - 4) + secret[-4:]
