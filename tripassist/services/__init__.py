"""Services for trip assist."""
from .session_store import SessionStore, MemorySessionStore, FileSessionStore, KVSessionStore
from .notifier import ResultBroker
from .engine_client import EngineClient
from .delivery import DeliveryService

__all__ = [
    "SessionStore",
    "MemorySessionStore",
    "FileSessionStore",
    "KVSessionStore",
    "ResultBroker",
    "EngineClient",
    "DeliveryService",
]
