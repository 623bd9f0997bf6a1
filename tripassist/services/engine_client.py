"""
Engine Client.
Posts travel preferences to the workflow engine's webhook (n8n in practice).
"""
import httpx
from typing import Any, Optional
import logging

from ..errors import ConfigurationError, SubmissionError

logger = logging.getLogger(__name__)


class EngineClient:
    """Single-attempt HTTP submission to the workflow engine."""

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }

    def require_url(self) -> str:
        """Fail before any network call if the engine address is missing."""
        if not self.webhook_url:
            raise ConfigurationError(
                "The ENGINE_WEBHOOK_URL environment variable is not set. "
                "Add it to your .env file."
            )
        return self.webhook_url

    async def _post(self, payload: dict) -> httpx.Response:
        url = self.require_url()

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(url, json=payload, headers=self.headers)
            except httpx.TimeoutException as e:
                logger.error(f"Engine timed out after {self.timeout}s: {e}")
                raise SubmissionError(
                    "The itinerary generation service did not respond in time."
                ) from e
            except httpx.HTTPError as e:
                logger.error(f"Engine unreachable: {e}")
                raise SubmissionError(
                    f"Could not reach the itinerary generation service: {e}"
                ) from e

        if not response.is_success:
            logger.error(f"Engine error {response.status_code}: {response.text[:500]}")
            raise SubmissionError(
                f"The itinerary generation service failed with status: "
                f"{response.status_code} {response.reason_phrase}.",
                status_code=response.status_code
            )
        return response

    async def send(self, payload: dict) -> None:
        """
        Fire-and-forget submission.
        Only the status is checked; the result arrives later on the callback.
        """
        await self._post(payload)
        logger.info("Successfully sent request to the engine")

    async def request(self, payload: dict) -> Any:
        """
        Synchronous submission.
        The response body itself carries the result.
        """
        response = await self._post(payload)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Engine returned non-JSON body: {response.text[:500]}")
            raise SubmissionError(
                "The itinerary generation service returned a response that is not JSON."
            ) from e
