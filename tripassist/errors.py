"""
Error types raised across the submission and delivery path.
"""
from typing import Optional


class TripAssistError(Exception):
    """Base class for errors surfaced to the caller as a readable message."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(TripAssistError):
    """Missing or invalid configuration, detected before any network call."""

    code = "configuration_error"


class SubmissionError(TripAssistError):
    """The engine could not be reached or rejected the submission."""

    code = "submission_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EngineError(TripAssistError):
    """The engine reported its own failure for a session."""

    code = "engine_error"


class ResultTimeoutError(TripAssistError):
    """The engine did not deliver a result in time."""

    code = "timeout"


class SessionNotFoundError(TripAssistError):
    """The session expired or was never registered."""

    code = "not_found"
