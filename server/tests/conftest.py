"""Shared test configuration and fixtures for party registration tests"""

import logging

import fakeredis
import httpx
import pytest
from fastapi.testclient import TestClient

from party_registration.backends.json_file_backend import JsonFileBackend
from party_registration.main import app
from party_registration.models.database import get_registration_store
from party_registration.models.draft import RegistrationDraft
from party_registration.services.registration_store import RegistrationStore
from party_registration.workflow.api_client import RegistrationApiClient
from party_registration.workflow.session_store import (
    MemorySessionStore,
    RedisSessionStore,
)
from tests.config import test_config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FakeClock:
    """Epoch-seconds clock that only moves when told to"""

    def __init__(self, start: float = test_config["start_time"]):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def data_file(tmp_path):
    """Location of the registrations file for one test"""
    return tmp_path / "data" / "users.json"


@pytest.fixture
def registration_store(data_file):
    """Create a RegistrationStore backed by a temporary file"""
    return RegistrationStore(
        JsonFileBackend(data_file),
        base_amount=test_config["base_amount"],
        per_kid_amount=test_config["per_kid_amount"],
    )


@pytest.fixture
def store_override(registration_store):
    """Point the app's store dependency at the test store"""
    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides.clear()
    app.dependency_overrides[get_registration_store] = lambda: registration_store

    yield registration_store

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)


@pytest.fixture
def client(store_override):
    """TestClient for the API using the temporary store"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_client(store_override):
    """Workflow-side API client talking to the app in-process"""
    return RegistrationApiClient(
        test_config["api_base_url"], transport=httpx.ASGITransport(app=app)
    )


@pytest.fixture
def make_failing_api_client():
    """Build an API client whose every request gets ``handler``'s response"""

    def _create(handler):
        return RegistrationApiClient(
            test_config["api_base_url"], transport=httpx.MockTransport(handler)
        )

    return _create


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test"""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def redis_session_store(fake_redis):
    return RedisSessionStore(
        fake_redis,
        session_id=test_config["session_id"],
        ttl_seconds=test_config["session_ttl_seconds"],
    )


@pytest.fixture
def memory_session_store():
    return MemorySessionStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def draft():
    """A valid intake draft: two adults, two kids"""
    return RegistrationDraft.from_form(
        couple_name="A & B",
        phone="555-1234",
        number_of_kids=2,
        base_amount=test_config["base_amount"],
        per_kid_amount=test_config["per_kid_amount"],
    )
