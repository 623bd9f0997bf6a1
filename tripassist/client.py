"""
Itinerary Client.
Submits preferences to a running trip assist server and waits for the result,
either by polling the result endpoint or by listening on the event stream.
"""
import httpx
import asyncio
import json
import logging
from typing import Optional, Union

from .errors import (
    EngineError,
    ResultTimeoutError,
    SessionNotFoundError,
    SubmissionError,
    TripAssistError,
)
from .models.preferences import TravelPreferences

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 3.0
POLL_MAX_ATTEMPTS = 100


def _error_from(body: dict) -> TripAssistError:
    """Map an error body from the server onto the matching exception."""
    message = body.get("error") or "An unknown error occurred. Please try again."
    code = body.get("code")
    if code == "timeout":
        return ResultTimeoutError(message)
    if code == "not_found" or body.get("status") == "not_found":
        return SessionNotFoundError(message)
    return EngineError(message)


class ItineraryClient:
    """Async client for the submit / result / stream endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport
        )

    async def submit(self, preferences: Union[TravelPreferences, dict]) -> Union[str, dict]:
        """
        Submit preferences.

        Returns:
            The session id (async mode) or the itinerary (sync mode)
        """
        if isinstance(preferences, TravelPreferences):
            payload = preferences.to_engine_payload()
        else:
            payload = preferences

        async with self._client() as client:
            response = await client.post("/api/submit", json=payload)

        body = response.json()
        if "error" in body:
            raise SubmissionError(body["error"], status_code=response.status_code)
        if not response.is_success:
            raise SubmissionError(
                f"Submission rejected with status {response.status_code}: {body.get('detail')}",
                status_code=response.status_code
            )
        if "sessionId" in body:
            return body["sessionId"]
        return body["itinerary"]

    async def poll_result(
        self,
        session_id: str,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = POLL_MAX_ATTEMPTS
    ) -> dict:
        """
        Poll until the session leaves the pending state.

        Raises:
            ResultTimeoutError: attempts exhausted while still pending
            EngineError: the engine reported a failure
            SessionNotFoundError: the session expired
        """
        async with self._client() as client:
            for attempt in range(1, max_attempts + 1):
                response = await client.get("/api/result", params={"sessionId": session_id})
                response.raise_for_status()
                body = response.json()

                status = body.get("status")
                if status == "completed":
                    return body["itinerary"]
                if status != "pending":
                    raise _error_from(body)

                logger.debug(f"Session {session_id} still pending (attempt {attempt}/{max_attempts})")
                if attempt < max_attempts:
                    await asyncio.sleep(interval)

        raise ResultTimeoutError(
            f"The itinerary service did not respond after {max_attempts} attempts."
        )

    async def stream_result(self, session_id: str) -> dict:
        """Wait on the event stream for the single result event."""
        async with self._client() as client:
            async with client.stream("GET", "/api/stream", params={"sessionId": session_id}) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        # Keep-alive comments and frame separators
                        continue
                    event = json.loads(line[len("data: "):])
                    if "itinerary" in event:
                        return event["itinerary"]
                    raise _error_from(event)

        raise ResultTimeoutError("The result stream closed without delivering a result.")
