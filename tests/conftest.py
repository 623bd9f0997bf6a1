"""Shared test fixtures."""
import httpx
import pytest

from tripassist.config import Settings
from tripassist.services.delivery import DeliveryService
from tripassist.services.engine_client import EngineClient
from tripassist.services.notifier import ResultBroker
from tripassist.services.session_store import MemorySessionStore


ENGINE_URL = "https://engine.example.com/webhook/travel-planner"
APP_URL = "https://trips.example.com"


class FakeRedis:
    """Minimal stand-in for upstash_redis.Redis (set/get with ex and nx)."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.calls: list[dict] = []

    def set(self, key, value, ex=None, nx=False):
        self.calls.append({"key": key, "ex": ex, "nx": nx})
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    def get(self, key):
        return self.data.get(key)


class EngineStub:
    """Records requests sent to the engine and answers with a canned response."""

    def __init__(self, status_code: int = 200, json_body=None, error: Exception = None):
        self.status_code = status_code
        self.json_body = json_body if json_body is not None else {"message": "Workflow was started"}
        self.error = error
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_settings(**overrides) -> Settings:
    values = {
        "engine_webhook_url": ENGINE_URL,
        "app_url": APP_URL,
        "submission_mode": "async",
        "store_backend": "memory",
        "session_ttl_seconds": 600,
        "stream_keepalive_seconds": 20.0,
        "stream_timeout_seconds": 180.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_service(engine: EngineStub = None, **overrides) -> DeliveryService:
    config = make_settings(**overrides)
    engine = engine or EngineStub()
    return DeliveryService(
        config,
        MemorySessionStore(ttl_seconds=config.session_ttl_seconds),
        ResultBroker(),
        EngineClient(config.engine_webhook_url, timeout=5.0, transport=engine.transport),
    )


@pytest.fixture
def preferences_data() -> dict:
    return {
        "destination": "Rome",
        "dates": {"from": "2025-06-01", "to": "2025-06-03"},
        "numPeople": 2,
        "ageGroups": ["adults"],
        "interests": ["historical_sites", "local_cuisine"],
        "budget": {"currency": "EUR", "amount": 1500},
        "transport": ["walking", "train"],
        "foodPreferences": ["vegetarian"],
    }


@pytest.fixture
def itinerary_data() -> dict:
    return {
        "id": "trip-1717200000000",
        "destination": "Rome",
        "startDate": "2025-06-01",
        "endDate": "2025-06-03",
        "days": [
            {
                "day": 1,
                "date": "June 1st, 2025",
                "activities": [
                    {
                        "time": "9:00 AM",
                        "name": "Colosseum",
                        "description": "Guided tour of the Colosseum",
                        "type": "attraction",
                        "icon": "landmark",
                        "location": "Piazza del Colosseo",
                        "cost": 24,
                    },
                    {
                        "time": "1:00 PM",
                        "description": "Lunch in Monti",
                        "type": "food",
                        "icon": "food",
                    },
                ],
            },
            {
                "day": 2,
                "date": "June 2nd, 2025",
                "activities": [
                    {"time": "Morning", "description": "Vatican Museums", "type": "attraction"}
                ],
            },
        ],
        "costBreakdown": {"total": "850 EUR"},
    }


@pytest.fixture
def engine() -> EngineStub:
    return EngineStub()


@pytest.fixture
def service(engine) -> DeliveryService:
    return make_service(engine)
