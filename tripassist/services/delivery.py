"""
Delivery Service - Coordinates a session from submission to result.

Submission discipline is chosen by configuration, never mixed:
- async: register a pending session, hand the engine a callback URL and
  return the session id; the result arrives on the webhook
- sync: the engine's HTTP response body is the result; no session exists

Results reach clients by polling the store (read) or by an event stream
(stream) that is pushed the moment the webhook writes the store.
"""
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional, Union
import asyncio
import json
import logging

from ..config import Settings, settings
from ..errors import SubmissionError
from ..models.preferences import TravelPreferences
from ..models.session import ErrorCode, SessionRecord, SessionStatus
from .callback_payload import ParsedCallback, parse_callback_body
from .engine_client import EngineClient
from .notifier import ResultBroker
from .session_store import SessionStore, create_session_store
from .sessions import build_callback_url, new_session_id, resolve_public_base_url, session_age

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": keep-alive\n\n"
TIMEOUT_MESSAGE = "The itinerary service did not respond in time. Please try again."
NOT_FOUND_MESSAGE = "Session not found or expired."


def format_sse(data: dict) -> str:
    """Serialize one server-sent event."""
    return f"data: {json.dumps(data)}\n\n"


@dataclass
class AsyncSubmission:
    """Submitted; the result will arrive on the callback."""
    session_id: str

    def to_response(self) -> dict:
        return {"sessionId": self.session_id}


@dataclass
class SyncSubmission:
    """The engine answered with the finished itinerary."""
    itinerary: dict

    def to_response(self) -> dict:
        return {"itinerary": self.itinerary}


SubmitOutcome = Union[AsyncSubmission, SyncSubmission]


class DeliveryService:
    """
    Owns the session lifecycle.

    The store is the single source of truth; the broker only carries
    notifications to streams open in this process.
    """

    def __init__(
        self,
        config: Settings,
        store: SessionStore,
        broker: Optional[ResultBroker] = None,
        engine: Optional[EngineClient] = None
    ):
        self.config = config
        self.store = store
        self.broker = broker or ResultBroker()
        self.engine = engine or EngineClient(
            config.engine_webhook_url,
            timeout=config.engine_timeout_seconds
        )

    # Submission

    async def submit(self, preferences: TravelPreferences) -> SubmitOutcome:
        """
        Send preferences to the engine.

        Raises:
            ConfigurationError: before any network call
            SubmissionError: engine unreachable, non-2xx, or unusable sync body
        """
        if self.config.submission_mode == "sync":
            return await self._submit_sync(preferences)
        return await self._submit_async(preferences)

    async def _submit_async(self, preferences: TravelPreferences) -> AsyncSubmission:
        self.engine.require_url()
        base_url = resolve_public_base_url(self.config.app_url)

        session_id = new_session_id()
        callback_url = build_callback_url(base_url, session_id)
        self.store.create(session_id)
        logger.info(f"Session {session_id} registered, callback URL {callback_url}")

        payload = {
            **preferences.to_engine_payload(),
            "sessionId": session_id,
            "callbackUrl": callback_url,
        }
        try:
            await self.engine.send(payload)
        except SubmissionError as e:
            self._resolve(session_id, SessionRecord.failed(e.message, ErrorCode.SUBMISSION_ERROR))
            raise

        return AsyncSubmission(session_id)

    async def _submit_sync(self, preferences: TravelPreferences) -> SyncSubmission:
        self.engine.require_url()
        body = await self.engine.request(preferences.to_engine_payload())

        # The submitted dates are authoritative over whatever the engine echoes
        parsed = parse_callback_body(body, overrides={
            "startDate": preferences.dates.start.isoformat(),
            "endDate": preferences.dates.end.isoformat(),
        })
        if not parsed.ok:
            logger.error(f"Unusable engine response: {parsed.error}")
            raise SubmissionError(parsed.error)
        return SyncSubmission(parsed.itinerary)

    # Callback

    def handle_callback(self, session_id: str, body: Any) -> ParsedCallback:
        """
        Record the engine's result for a session and notify open streams.

        Payload problems become a failed session, never an exception, so the
        engine always gets its acknowledgement.
        """
        parsed = parse_callback_body(body)
        if parsed.ok:
            logger.info(f"Validated itinerary for session {session_id}")
        elif parsed.error_code == ErrorCode.ENGINE_ERROR:
            logger.warning(f"An error occurred in the workflow for session {session_id}: {parsed.error}")
        else:
            logger.warning(f"Session {session_id} failed: {parsed.error}")

        self._resolve(session_id, parsed.to_record())
        return parsed

    def _resolve(self, session_id: str, record: SessionRecord) -> int:
        if record.status == SessionStatus.COMPLETED:
            self.store.complete(session_id, record.itinerary)
        else:
            self.store.fail(session_id, record.error, record.error_code)
        return self.broker.publish(session_id, record)

    # Delivery

    def read(self, session_id: str) -> SessionRecord:
        """
        Current state for the polling endpoint.

        An absent key is pending, unless the id shows it was issued longer
        ago than the TTL, in which case it is reported as not found.
        """
        record = self.store.read(session_id)
        if record is not None:
            return record

        age = session_age(session_id)
        if age is not None and age > self.config.session_ttl_seconds:
            return SessionRecord(status=SessionStatus.NOT_FOUND, error=NOT_FOUND_MESSAGE)
        return SessionRecord.pending()

    def _settled_record(self, session_id: str) -> Optional[SessionRecord]:
        """The record a stream can end on: terminal or not found, else None."""
        record = self.read(session_id)
        if record.status == SessionStatus.PENDING:
            return None
        return record

    async def stream(self, session_id: str) -> AsyncIterator[str]:
        """
        Yield SSE frames until exactly one data event has been sent.

        Subscribes before reading the store, so a callback landing in
        between is never missed. Each keep-alive tick also re-reads the
        store, which catches callbacks handled by another process and
        sessions that expired while the stream was open.
        """
        queue = self.broker.subscribe(session_id)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.stream_timeout_seconds

        try:
            record = self._settled_record(session_id)
            while record is None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning(f"Stream for session {session_id} timed out")
                    record = SessionRecord.failed(TIMEOUT_MESSAGE, ErrorCode.TIMEOUT)
                    break
                try:
                    record = await asyncio.wait_for(
                        queue.get(),
                        timeout=min(self.config.stream_keepalive_seconds, remaining)
                    )
                except asyncio.TimeoutError:
                    yield KEEPALIVE_FRAME
                    record = self._settled_record(session_id)

            if record.status == SessionStatus.NOT_FOUND:
                logger.info(f"Stream for session {session_id} ended: session not found or expired")
            yield format_sse(record.to_event())
        finally:
            # Runs on normal completion and on client disconnect
            self.broker.unsubscribe(session_id, queue)


# Global delivery service instance
delivery_service: Optional[DeliveryService] = None


def get_delivery_service() -> DeliveryService:
    """Get or create the global delivery service."""
    global delivery_service
    if delivery_service is None:
        delivery_service = DeliveryService(settings, create_session_store(settings))
    return delivery_service
