"""
Session identifiers and callback addresses.

Session ids are version-1 UUIDs with a random node: globally unique, never
reused, and they carry their issue time so an expired id can be told apart
from one that is still pending. The callback address is the only thing the
engine needs to reach us, so it is resolved and validated in one place.
"""
from typing import Optional
from urllib.parse import urlencode, urlparse
import ipaddress
import logging
import re
import secrets
import time
import uuid

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/webhook"

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

# 100ns intervals between the UUID epoch (1582-10-15) and the Unix epoch
_UUID_EPOCH_OFFSET = 0x01B21DD213814000


def new_session_id() -> str:
    """Issue a fresh session id."""
    # Random node with the multicast bit set, per RFC 4122 section 4.5
    node = secrets.randbits(48) | 0x010000000000
    return str(uuid.uuid1(node=node))


def validate_session_id(session_id: Optional[str]) -> bool:
    """Session ids double as file names, so only a safe alphabet is allowed."""
    return bool(session_id) and bool(_SESSION_ID_RE.match(session_id))


def session_age(session_id: str, now: Optional[float] = None) -> Optional[float]:
    """
    Seconds since a session id was issued.

    Returns None for ids this service did not issue (anything that is not a
    version-1 UUID), whose age is unknowable.
    """
    try:
        parsed = uuid.UUID(session_id)
    except (ValueError, TypeError):
        return None
    if parsed.version != 1:
        return None

    issued_at = (parsed.time - _UUID_EPOCH_OFFSET) / 1e7
    now = time.time() if now is None else now
    return now - issued_at


def _is_local_host(hostname: str) -> bool:
    host = hostname.lower().strip("[]")
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_unspecified


def resolve_public_base_url(app_url: Optional[str]) -> str:
    """
    Validate the configured public address of this app.

    Must be an absolute http(s) URL whose host the engine can reach.

    Raises:
        ConfigurationError: if unset, malformed or local-only
    """
    if not app_url or not app_url.strip():
        raise ConfigurationError(
            "The APP_URL environment variable is not set. "
            "It must be the public URL the workflow engine calls back."
        )

    candidate = app_url.strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ConfigurationError(f"Failed to parse APP_URL {candidate!r}. Expected an absolute http(s) URL.")
    if parsed.query or parsed.fragment:
        raise ConfigurationError(
            f"Failed to parse APP_URL {candidate!r}. It must not carry a query string or fragment."
        )

    if _is_local_host(parsed.hostname):
        logger.error(f"APP_URL {candidate!r} resolves to a local address")
        raise ConfigurationError(
            f"Invalid callback URL: APP_URL {candidate!r} is local. "
            "It must be a public URL the workflow engine can reach."
        )

    return candidate.rstrip("/")


def build_callback_url(base_url: str, session_id: str) -> str:
    """Webhook address the engine posts the result to."""
    return f"{base_url}{CALLBACK_PATH}?{urlencode({'sessionId': session_id})}"
