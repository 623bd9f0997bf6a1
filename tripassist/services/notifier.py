"""
Result Broker - Push notification of finished sessions to open streams.

Each stream subscribes with its own single-slot queue. Publishing delivers
the record to every queue registered for the session and then clears the
registration, so a listener is notified at most once. Registrations live
in this process only and do not survive a restart.
"""
from typing import Optional
import asyncio
import logging

from ..models.session import SessionRecord

logger = logging.getLogger(__name__)


class ResultBroker:
    """Fan-out of session results to subscribed streams."""

    def __init__(self):
        self._subscribers: dict[str, list[asyncio.Queue]] = {}

    def subscribe(self, session_id: str) -> asyncio.Queue:
        """Register interest in a session. Several listeners per session are allowed."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._subscribers.setdefault(session_id, []).append(queue)
        logger.debug(f"Listener subscribed to {session_id} ({len(self._subscribers[session_id])} total)")
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        """Drop a listener, e.g. when its client disconnects. Safe to call twice."""
        queues = self._subscribers.get(session_id)
        if not queues:
            return
        if queue in queues:
            queues.remove(queue)
        if not queues:
            del self._subscribers[session_id]

    def publish(self, session_id: str, record: SessionRecord) -> int:
        """
        Notify every listener of a session once and clear them.

        Returns:
            Number of listeners notified
        """
        queues = self._subscribers.pop(session_id, [])
        for queue in queues:
            queue.put_nowait(record)
        if queues:
            logger.info(f"Notified {len(queues)} listener(s) for session {session_id}")
        return len(queues)

    def listener_count(self, session_id: Optional[str] = None) -> int:
        if session_id is not None:
            return len(self._subscribers.get(session_id, []))
        return sum(len(queues) for queues in self._subscribers.values())
