"""In-memory scheduler for deferred sends.

Each scheduled send is an asyncio task on the server's event loop plus an
observable `ScheduledSend` record (pending, sent or failed). Nothing is
persisted: pending sends are dropped when the process stops.

Relay credentials live only in the pending task, never on the record, so they
are released as soon as the send fires. Finished records are kept for
`retention_seconds` and then forgotten.
"""

import asyncio
import uuid

import pytz
import logfire

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from models.emails import RelayCredentials, RelayMessage, ScheduledSend
from models.helpers import ScheduledSendState
from utils.settings import get_settings

from .email import MailRelay
from .errors import SendFailure


class SendScheduler:
    """Registry of one-shot deferred sends."""

    def __init__(self, retention_seconds: float = 3600):
        self.retention = timedelta(seconds=retention_seconds)
        self._records: Dict[str, ScheduledSend] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(
        self,
        message: RelayMessage,
        credentials: RelayCredentials,
        scheduled_at: datetime,
        relay: MailRelay,
    ) -> ScheduledSend:
        """Register a send that fires once at (or after) `scheduled_at`.

        Must be called from the running event loop. The message and
        credentials are captured as given.

        Returns:
            ScheduledSend: The pending record.
        """
        self._prune()

        record = ScheduledSend(id=uuid.uuid4().hex, message=message, scheduled_at=scheduled_at)
        delay = max(0.0, (scheduled_at - datetime.now(pytz.utc)).total_seconds())

        self._records[record.id] = record
        self._tasks[record.id] = asyncio.create_task(self._fire(record, credentials, relay, delay))

        logfire.info(f"Scheduled email {record.id} to {', '.join(message.to)} in {delay:.0f}s")
        return record

    async def _fire(self, record: ScheduledSend, credentials: RelayCredentials, relay: MailRelay, delay: float) -> None:
        try:
            await asyncio.sleep(delay)

            with logfire.span(f"Sending scheduled email {record.id}"):
                try:
                    message_id = await run_in_threadpool(relay.send, record.message, credentials)
                except SendFailure as e:
                    record.state = ScheduledSendState.FAILED
                    record.error = e.details or e.error
                    logfire.error(f"Scheduled email {record.id} failed: {record.error}")
                except Exception as e:
                    record.state = ScheduledSendState.FAILED
                    record.error = str(e)
                    logfire.error(f"Unexpected error sending scheduled email {record.id}: {str(e)}")
                else:
                    record.state = ScheduledSendState.SENT
                    record.message_id = message_id
                    record.sent_at = datetime.now(pytz.utc)
                    logfire.info(f"Scheduled email {record.id} sent as {message_id}")

                record.finished_at = datetime.now(pytz.utc)
        finally:
            self._tasks.pop(record.id, None)

    def _prune(self) -> None:
        """Forget finished records older than the retention window."""
        cutoff = datetime.now(pytz.utc) - self.retention
        expired = [
            record_id
            for record_id, record in self._records.items()
            if record.finished_at is not None and record.finished_at <= cutoff
        ]
        for record_id in expired:
            del self._records[record_id]

        if expired:
            logfire.info(f"Expired {len(expired)} finished scheduled email record(s)")

    def get(self, task_id: str) -> Optional[ScheduledSend]:
        self._prune()
        return self._records.get(task_id)

    def list(self) -> List[ScheduledSend]:
        self._prune()
        return sorted(self._records.values(), key=lambda record: record.created_at)

    def pending_count(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every pending send. Their records stay `pending`."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logfire.warning(f"Dropped {len(tasks)} pending scheduled email(s) on shutdown")

        self._tasks.clear()


send_scheduler = SendScheduler(retention_seconds=get_settings().scheduled_retention_seconds)


def get_send_scheduler() -> SendScheduler:
    """Factory function returning the process-wide SendScheduler.

    Returns:
        SendScheduler: The shared scheduler.
    """
    return send_scheduler
