"""Tests for session ids and callback URL resolution."""
import time
import uuid
from urllib.parse import parse_qs, urlparse

import pytest

from tripassist.errors import ConfigurationError
from tripassist.services.sessions import (
    build_callback_url,
    new_session_id,
    resolve_public_base_url,
    session_age,
    validate_session_id,
)


class TestSessionIds:
    """Session id issue and validation."""

    def test_ids_are_unique(self):
        """Issued ids never collide."""
        ids = {new_session_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_ids_are_valid_and_time_derived(self):
        """Issued ids are valid version-1 UUIDs."""
        session_id = new_session_id()

        assert validate_session_id(session_id)
        assert uuid.UUID(session_id).version == 1

    def test_age_of_fresh_id(self):
        """A new id is seconds old."""
        age = session_age(new_session_id())
        assert age is not None
        assert 0 <= age < 5

    def test_age_grows_with_time(self):
        """Age follows the clock."""
        session_id = new_session_id()
        age = session_age(session_id, now=time.time() + 900)

        assert 895 < age < 905

    def test_foreign_ids_have_no_age(self):
        """Ids we did not issue cannot be aged."""
        assert session_age("qrs") is None
        assert session_age(str(uuid.uuid4())) is None

    @pytest.mark.parametrize("session_id", [
        None, "", "../secret", "a/b", "a b", "x" * 129, "abc.json",
    ])
    def test_invalid_ids(self, session_id):
        """Empty, oversized and path-like ids are refused."""
        assert not validate_session_id(session_id)

    @pytest.mark.parametrize("session_id", ["abc", "qrs", "trip_1-2"])
    def test_valid_ids(self, session_id):
        """Short word-like ids are accepted."""
        assert validate_session_id(session_id)


class TestCallbackUrl:
    """Public base URL resolution and callback construction."""

    def test_public_url(self):
        """A public URL loses its trailing slash."""
        assert resolve_public_base_url("https://trips.example.com/") == "https://trips.example.com"

    def test_keeps_path_prefix(self):
        """A path prefix is preserved."""
        assert resolve_public_base_url("https://example.com/trips") == "https://example.com/trips"

    @pytest.mark.parametrize("app_url", [
        "http://localhost:3000",
        "http://LOCALHOST",
        "http://app.localhost:8000",
        "http://127.0.0.1:8000",
        "http://127.0.1.1",
        "http://[::1]:8000",
        "http://0.0.0.0:8000",
    ])
    def test_local_addresses_are_rejected(self, app_url):
        """Loopback and unspecified hosts are refused."""
        with pytest.raises(ConfigurationError, match="public URL"):
            resolve_public_base_url(app_url)

    @pytest.mark.parametrize("app_url", [None, "", "   "])
    def test_missing_app_url(self, app_url):
        """An unset APP_URL is a configuration error."""
        with pytest.raises(ConfigurationError, match="APP_URL"):
            resolve_public_base_url(app_url)

    @pytest.mark.parametrize("app_url", [
        "trips.example.com",
        "ftp://trips.example.com",
        "https://",
        "https://trips.example.com/?a=b",
        "https://trips.example.com/#top",
    ])
    def test_malformed_app_url(self, app_url):
        """Anything a path cannot be appended to is refused."""
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            resolve_public_base_url(app_url)

    def test_callback_embeds_session_id(self):
        """The callback URL carries the session id as a query parameter."""
        url = build_callback_url("https://trips.example.com", "abc-123")
        parsed = urlparse(url)

        assert parsed.netloc == "trips.example.com"
        assert parsed.path == "/api/webhook"
        assert parse_qs(parsed.query) == {"sessionId": ["abc-123"]}
