import os
import tempfile
import threading
import time

# Settings are read once at import, so the environment is fixed before any app import.
_UPLOAD_DIR = tempfile.mkdtemp(prefix="hack-a-problem-uploads-")
os.environ["USE_MOCK_DB"] = "true"
os.environ["MOCK_DB_PATH"] = ""
os.environ["UPLOAD_DIR"] = _UPLOAD_DIR
os.environ["SEED_SAMPLE_DATA"] = "false"
os.environ["AI_ENABLED"] = "true"
os.environ["GEMINI_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""

import pytest
from fastapi.testclient import TestClient

from app.config import firebase
from app.config.mock_firestore import MockFirestore
from app.main import app
from app.services import sms_service
from app.services.ai_enrichment import registry
from app.services.ai_enrichment.base import EnrichmentProvider


class StubProvider(EnrichmentProvider):
    """Enrichment provider that answers from memory, fails, or hangs until released."""

    def __init__(self, text="Routine repair, minor impact on residents.", error=None, gate=None):
        self.text = text
        self.error = error
        self.gate = gate
        self.calls = []
        self.finished = threading.Event()

    def is_enabled(self):
        return True

    def get_model_info(self):
        return {"name": "stub", "version": "test"}

    def generate(self, prompt, image=None):
        self.calls.append((prompt, image))
        try:
            if self.gate is not None:
                self.gate.wait(timeout=30)
            if self.error is not None:
                raise self.error
            return self.text
        finally:
            self.finished.set()


@pytest.fixture(autouse=True)
def mock_db(monkeypatch):
    """Fresh in-memory Firestore for every test."""
    db = MockFirestore()
    monkeypatch.setattr(firebase, "db", db)
    return db


@pytest.fixture
def make_provider():
    """Build StubProviders; hung ones are released when the test ends."""
    gates = []

    def _make(text="Routine repair, minor impact on residents.", error=None, hang=False):
        gate = None
        if hang:
            gate = threading.Event()
            gates.append(gate)
        return StubProvider(text=text, error=error, gate=gate)

    yield _make
    for gate in gates:
        gate.set()


@pytest.fixture(autouse=True)
def enrichment_client(monkeypatch):
    """App-wide enrichment client backed by a StubProvider."""
    client = registry.EnrichmentClient(StubProvider(), timeout_seconds=2.0)
    monkeypatch.setattr(registry, "_client", client)
    return client


@pytest.fixture(autouse=True)
def sms_disabled(monkeypatch):
    service = sms_service.SMSService(account_sid="", auth_token="")
    monkeypatch.setattr(sms_service, "_sms_service", service)
    return service


@pytest.fixture
def wait_until():
    """Poll a predicate until it is true or the timeout expires."""

    def _wait(predicate, timeout=5.0, interval=0.05):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait


def _register(client, username):
    response = client.post(
        "/api/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "secret123"},
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_client():
    """Client logged in as 'asha'. The user is available as auth_client.user."""
    client = TestClient(app)
    client.user = _register(client, "asha")
    return client


@pytest.fixture
def other_client():
    """A second logged-in user, 'ravi'."""
    client = TestClient(app)
    client.user = _register(client, "ravi")
    return client


@pytest.fixture
def submit_problem(auth_client):
    """Submit a problem as auth_client and return the response JSON."""

    def _submit(**fields):
        data = {
            "title": "Broken Street Light",
            "description": "Light at the main crossing is out.",
            "category": "INFRASTRUCTURE",
        }
        data.update(fields)
        response = auth_client.post("/api/problems", data=data)
        assert response.status_code == 201, response.text
        return response.json()

    return _submit
