"""
Callback Payload - Turns an engine response body into a result or an error.

Canonical shapes:
    {"itinerary": {...}}                      success
    {"error": "...", "message": "..."}       engine-reported failure

Fallback order, applied in sequence:
    1. a JSON array holding exactly one element is unwrapped
    2. a truthy "error" field is an engine failure
    3. the object under "itinerary"
    4. the object under "data"
    5. the body itself, as an inline itinerary
The chosen candidate must validate as an Itinerary; anything else is a
validation error. Nothing is coerced silently.
"""
from dataclasses import dataclass
from typing import Any, Optional
import json

from pydantic import ValidationError

from ..models.itinerary import Itinerary
from ..models.session import ErrorCode, SessionRecord

MAX_REPORTED_ISSUES = 5


@dataclass
class ParsedCallback:
    """Outcome of parsing one engine body."""
    itinerary: Optional[dict] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @property
    def ok(self) -> bool:
        return self.itinerary is not None

    def to_record(self) -> SessionRecord:
        if self.ok:
            return SessionRecord.completed(self.itinerary)
        return SessionRecord.failed(self.error or "Unknown error", self.error_code or ErrorCode.ENGINE_ERROR)


def _validation_failure(message: str) -> ParsedCallback:
    return ParsedCallback(error=message, error_code=ErrorCode.VALIDATION_ERROR)


def extract_engine_error(body: dict) -> Optional[str]:
    """Readable message if the engine reported its own failure."""
    error = body.get("error")
    if not error:
        return None
    if error is True:
        detail = body.get("message") or "The workflow reported an error."
    elif isinstance(error, str):
        detail = error
    else:
        detail = json.dumps(error)
    return detail


def summarize_validation_error(exc: ValidationError) -> str:
    """Compact, human-readable form of a pydantic validation error."""
    issues = []
    for err in exc.errors()[:MAX_REPORTED_ISSUES]:
        location = ".".join(str(part) for part in err["loc"]) or "itinerary"
        issues.append(f"{location}: {err['msg']}")
    remaining = exc.error_count() - len(issues)
    if remaining > 0:
        issues.append(f"and {remaining} more")
    return "; ".join(issues)


def _select_candidate(body: dict) -> tuple[Any, bool]:
    """Returns (candidate, inline) following the fallback order."""
    for key in ("itinerary", "data"):
        nested = body.get(key)
        if isinstance(nested, dict):
            return nested, False
    return body, True


def parse_callback_body(body: Any, overrides: Optional[dict] = None) -> ParsedCallback:
    """
    Parse an engine body.

    Args:
        body: Decoded JSON from the engine
        overrides: Fields forced onto the itinerary before validation

    Returns:
        ParsedCallback holding either the validated itinerary or an error
    """
    if isinstance(body, list):
        if len(body) != 1:
            return _validation_failure(
                f"Expected a single result object from the workflow, got a list of {len(body)}."
            )
        body = body[0]

    if not isinstance(body, dict):
        return _validation_failure("The workflow response must be a JSON object.")

    engine_error = extract_engine_error(body)
    if engine_error is not None:
        return ParsedCallback(
            error=engine_error,
            error_code=ErrorCode.ENGINE_ERROR,
        )

    candidate, inline = _select_candidate(body)
    if overrides:
        candidate = {**candidate, **overrides}

    try:
        itinerary = Itinerary.model_validate(candidate)
    except ValidationError as e:
        prefix = "The itinerary data from the workflow has an invalid format"
        if inline:
            prefix = "Payload is missing the 'itinerary' object and is not an inline itinerary"
        return _validation_failure(f"{prefix}: {summarize_validation_error(e)}")

    return ParsedCallback(itinerary=itinerary.to_wire())
