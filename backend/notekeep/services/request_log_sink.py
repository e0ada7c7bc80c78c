"""
Notekeep Backend: Request Log Sink
====================================

What:  Persists one audit row per HTTP request, off the request path.
Why:   Writing the audit row inline would add a database round trip to every
       response and turn a logging failure into a request failure.
How:   The audit middleware calls `submit()`, which puts the entry on a
       bounded asyncio.Queue without waiting. One worker task drains the
       queue and inserts each entry with its own session.
Who:   Created by `create_app()`; started and stopped by the lifespan handler.

Delivery contract (at-most-once, best-effort):
    - Queue full      → entry dropped, warning logged
    - Insert fails    → entry dropped, error logged, worker keeps running
    - Nothing is retried and nothing is reported to the client
    - On shutdown the worker drains what is queued, bounded by a timeout
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notekeep.models.request_log import RequestLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestLogEntry:
    """One captured request, already redacted and truncated."""

    datetime: datetime
    method: str
    endpoint: str
    headers: str
    request_body: Optional[str]
    response_body: Optional[str]
    status_code: int


class RequestLogSink:
    """
    Bounded queue plus a single background writer.

    Args:
        session_factory: Opens a fresh session per insert
        max_queue_size:  Pending entries kept before new ones are dropped
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_queue_size: int = 1000,
    ):
        self._session_factory = session_factory
        self._queue: "asyncio.Queue[RequestLogEntry]" = asyncio.Queue(maxsize=max_queue_size)
        self._worker: Optional[asyncio.Task] = None
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def submit(self, entry: RequestLogEntry) -> bool:
        """
        Enqueue without waiting.

        Returns False when the queue is full and the entry was dropped.
        """
        try:
            self._queue.put_nowait(entry)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Request log queue full; dropped entry for %s %s (dropped so far: %d)",
                entry.method,
                entry.endpoint,
                self.dropped,
            )
            return False
        return True

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="request-log-sink")
        logger.info("Request log sink started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Wait up to `timeout` seconds for queued entries, then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Request log sink stopped with %d entries unwritten", self.pending)

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Request log sink stopped")

    async def _run(self) -> None:
        while True:
            entry = await self._queue.get()
            try:
                await self.write(entry)
            finally:
                self._queue.task_done()

    async def write(self, entry: RequestLogEntry) -> bool:
        """
        Insert one entry. Failures are logged and swallowed.

        Returns True when the row was committed.
        """
        try:
            async with self._session_factory() as session:
                session.add(
                    RequestLog(
                        datetime=entry.datetime,
                        method=entry.method,
                        endpoint=entry.endpoint,
                        headers=entry.headers,
                        request_body=entry.request_body,
                        response_body=entry.response_body,
                        status_code=entry.status_code,
                    )
                )
                await session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("Failed to persist request log for %s %s: %s", entry.method, entry.endpoint, e)
        except Exception:
            # The worker must survive anything a single entry throws
            logger.exception("Unexpected error persisting request log for %s %s", entry.method, entry.endpoint)
        return False
