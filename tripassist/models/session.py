"""
Session records - Tracks a submitted request until its result is delivered.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from enum import Enum
import time


class SessionStatus(str, Enum):
    """Current state of a session."""
    PENDING = "pending"  # Submitted, waiting for the engine
    COMPLETED = "completed"  # Itinerary received
    FAILED = "failed"  # Engine or validation error received
    NOT_FOUND = "not_found"  # Expired or never registered (read-only)


class ErrorCode(str, Enum):
    """Why a session failed."""
    ENGINE_ERROR = "engine_error"
    VALIDATION_ERROR = "validation_error"
    SUBMISSION_ERROR = "submission_error"
    TIMEOUT = "timeout"


class SessionRecord(BaseModel):
    """Stored state of one session."""
    model_config = ConfigDict(populate_by_name=True)

    status: SessionStatus = Field(
        default=SessionStatus.PENDING,
        description="Current session state"
    )
    itinerary: Optional[dict] = Field(
        None,
        description="Validated itinerary, present only when completed"
    )
    error: Optional[str] = Field(
        None,
        description="Error message, present only when failed"
    )
    error_code: Optional[ErrorCode] = Field(None, alias="errorCode")
    created_at: float = Field(
        default_factory=time.time,
        alias="createdAt",
        description="Creation time in epoch seconds, used for expiry"
    )

    @classmethod
    def pending(cls) -> "SessionRecord":
        return cls(status=SessionStatus.PENDING)

    @classmethod
    def completed(cls, itinerary: dict) -> "SessionRecord":
        return cls(status=SessionStatus.COMPLETED, itinerary=itinerary)

    @classmethod
    def failed(cls, error: str, code: ErrorCode = ErrorCode.ENGINE_ERROR) -> "SessionRecord":
        return cls(status=SessionStatus.FAILED, error=error, error_code=code)

    @property
    def is_terminal(self) -> bool:
        return self.status in (SessionStatus.COMPLETED, SessionStatus.FAILED)

    def is_expired(self, ttl_seconds: float, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.created_at > ttl_seconds

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str) -> "SessionRecord":
        return cls.model_validate_json(raw)

    def to_response(self) -> dict:
        """Body returned by the polling endpoint."""
        body = {"status": self.status.value}
        if self.itinerary is not None:
            body["itinerary"] = self.itinerary
        if self.error is not None:
            body["error"] = self.error
        if self.error_code is not None:
            body["code"] = self.error_code.value
        return body

    def to_event(self) -> dict:
        """Payload of the single data event on the result stream."""
        if self.status == SessionStatus.COMPLETED:
            return {"itinerary": self.itinerary}
        if self.status == SessionStatus.NOT_FOUND:
            return {"error": self.error or "Session not found or expired.", "code": "not_found"}
        return {
            "error": self.error or "Unknown error",
            "code": (self.error_code or ErrorCode.ENGINE_ERROR).value,
        }
