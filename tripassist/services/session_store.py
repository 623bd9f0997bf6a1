"""
Session Store - Keyed registry of pending, completed and failed sessions.

Three interchangeable backends share one contract:
- MemorySessionStore: process-local dict (single instance only)
- FileSessionStore: one JSON file per session, visible across processes
- KVSessionStore: Upstash Redis with native TTL, visible across instances

An unknown key is business as usual (the engine's callback can outrace
registration), so reads return None instead of raising and writes accept
keys that were never created.
"""
from abc import ABC, abstractmethod
from typing import Optional
import asyncio
import logging
import os
import tempfile
import time

from ..config import Settings, get_store_dir
from ..errors import ConfigurationError
from ..models.session import ErrorCode, SessionRecord

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Contract shared by every backend."""

    backend_name = "base"

    def __init__(self, ttl_seconds: int = 600):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    def create(self, session_id: str) -> None:
        """Register a pending session. Never overwrites a live record."""

    @abstractmethod
    def _put(self, session_id: str, record: SessionRecord) -> None:
        """Unconditionally write a record."""

    @abstractmethod
    def read(self, session_id: str) -> Optional[SessionRecord]:
        """Current record, or None if absent or expired. No side effects."""

    @abstractmethod
    def expire(self) -> int:
        """Drop records older than the TTL. Returns how many were removed."""

    def complete(self, session_id: str, itinerary: dict) -> None:
        """Store a finished itinerary."""
        self._put(session_id, SessionRecord.completed(itinerary))
        logger.info(f"[{self.backend_name}] Session {session_id} completed")

    def fail(self, session_id: str, error: str, code: ErrorCode = ErrorCode.ENGINE_ERROR) -> None:
        """Store a failure message."""
        self._put(session_id, SessionRecord.failed(error, code))
        logger.info(f"[{self.backend_name}] Session {session_id} failed ({code.value})")


class MemorySessionStore(SessionStore):
    """In-process store. Results are lost if callback and client hit different instances."""

    backend_name = "memory"

    def __init__(self, ttl_seconds: int = 600):
        super().__init__(ttl_seconds)
        self._records: dict[str, SessionRecord] = {}

    def create(self, session_id: str) -> None:
        if self.read(session_id) is None:
            self._records[session_id] = SessionRecord.pending()

    def _put(self, session_id: str, record: SessionRecord) -> None:
        self._records[session_id] = record

    def read(self, session_id: str) -> Optional[SessionRecord]:
        record = self._records.get(session_id)
        if record is None or record.is_expired(self.ttl_seconds):
            return None
        return record

    def expire(self) -> int:
        now = time.time()
        expired = [
            session_id for session_id, record in self._records.items()
            if record.is_expired(self.ttl_seconds, now)
        ]
        for session_id in expired:
            del self._records[session_id]
            logger.debug(f"[memory] Cleaned up expired session: {session_id}")
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


class FileSessionStore(SessionStore):
    """One JSON document per session at <directory>/<session_id>.json."""

    backend_name = "file"

    def __init__(self, directory: str, ttl_seconds: int = 600):
        super().__init__(ttl_seconds)
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, session_id: str) -> str:
        # Ids are validated at the API boundary; this guards direct callers
        if not session_id or os.sep in session_id or "/" in session_id or session_id.startswith("."):
            raise ValueError(f"Unsafe session id: {session_id!r}")
        return os.path.join(self.directory, f"{session_id}.json")

    def _load(self, path: str) -> Optional[SessionRecord]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        if not raw:
            # Exclusive create in flight on another process
            return None
        try:
            return SessionRecord.from_json(raw)
        except ValueError as e:
            logger.warning(f"[file] Unreadable session file {path}: {e}")
            return None

    def create(self, session_id: str) -> None:
        path = self._path(session_id)
        try:
            with open(path, "x", encoding="utf-8") as f:
                f.write(SessionRecord.pending().to_json())
            return
        except FileExistsError:
            pass

        existing = self._load(path)
        if existing is None or existing.is_expired(self.ttl_seconds):
            self._put(session_id, SessionRecord.pending())

    def _put(self, session_id: str, record: SessionRecord) -> None:
        path = self._path(session_id)
        # Write then rename so readers never see a partial document
        with tempfile.NamedTemporaryFile(
            "w", dir=self.directory, suffix=".tmp", delete=False, encoding="utf-8"
        ) as f:
            f.write(record.to_json())
            tmp_path = f.name
        os.replace(tmp_path, path)

    def read(self, session_id: str) -> Optional[SessionRecord]:
        record = self._load(self._path(session_id))
        if record is None or record.is_expired(self.ttl_seconds):
            return None
        return record

    def expire(self) -> int:
        now = time.time()
        removed = 0
        with os.scandir(self.directory) as entries:
            for entry in entries:
                if not entry.name.endswith(".json"):
                    continue
                try:
                    record = self._load(entry.path)
                    created_at = record.created_at if record else entry.stat().st_mtime
                    if now - created_at <= self.ttl_seconds:
                        continue
                    os.remove(entry.path)
                    removed += 1
                except FileNotFoundError:
                    # Deleted by another process mid-scan
                    continue
        if removed:
            logger.debug(f"[file] Removed {removed} expired session files")
        return removed


class KVSessionStore(SessionStore):
    """Upstash Redis store. Expiry is handled by the provider's TTL."""

    backend_name = "kv"

    def __init__(self, redis, ttl_seconds: int = 600, key_prefix: str = "itinerary:"):
        super().__init__(ttl_seconds)
        self.redis = redis
        self.key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    def create(self, session_id: str) -> None:
        self.redis.set(
            self._key(session_id),
            SessionRecord.pending().to_json(),
            ex=self.ttl_seconds,
            nx=True,
        )

    def _put(self, session_id: str, record: SessionRecord) -> None:
        self.redis.set(self._key(session_id), record.to_json(), ex=self.ttl_seconds)

    def read(self, session_id: str) -> Optional[SessionRecord]:
        raw = self.redis.get(self._key(session_id))
        if raw is None:
            return None
        try:
            record = SessionRecord.from_json(raw)
        except ValueError as e:
            logger.warning(f"[kv] Unreadable value for session {session_id}: {e}")
            return None
        if record.is_expired(self.ttl_seconds):
            return None
        return record

    def expire(self) -> int:
        return 0


def create_session_store(config: Settings) -> SessionStore:
    """Build the backend selected by STORE_BACKEND."""
    if config.store_backend == "file":
        directory = get_store_dir(config)
        logger.info(f"Using file session store at {directory}")
        return FileSessionStore(directory, ttl_seconds=config.session_ttl_seconds)

    if config.store_backend == "kv":
        if not config.kv_rest_api_url or not config.kv_rest_api_token:
            raise ConfigurationError(
                "STORE_BACKEND=kv requires KV_REST_API_URL and KV_REST_API_TOKEN."
            )
        # Only the kv backend needs the Upstash client
        from upstash_redis import Redis

        redis = Redis(url=config.kv_rest_api_url, token=config.kv_rest_api_token)
        logger.info("Using Upstash KV session store")
        return KVSessionStore(
            redis,
            ttl_seconds=config.session_ttl_seconds,
            key_prefix=config.kv_key_prefix,
        )

    logger.info("Using in-memory session store")
    return MemorySessionStore(ttl_seconds=config.session_ttl_seconds)


async def run_expiry(store: SessionStore, interval_seconds: float) -> None:
    """Sweep expired sessions forever; cancelled on shutdown."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = store.expire()
        except Exception:
            # A failed pass (e.g. unreadable directory) is retried next interval
            logger.exception(f"[{store.backend_name}] Session expiry pass failed")
            continue
        if removed:
            logger.info(f"[{store.backend_name}] Expired {removed} session(s)")
