import pytest
from fastapi.testclient import TestClient

from portal.backend.main import create_app
from portal.backend.db.memory_store import MemoryStore
from portal.backend.api.utilities.limiter import limiter


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(store):
    """A TestClient over a fresh in-memory backend; rate-limit counters start at zero."""
    limiter.reset()
    app = create_app(store=store)
    with TestClient(app) as test_client:
        yield test_client


def login_headers(client: TestClient, course_code: str = "CSC102", security_key: str = "k1", name: str = "Dr. Ade") -> dict:
    """Registers a lecturer (if needed), logs in and returns the bearer header."""
    client.post("/api/v1/auth/register", json={"name": name, "course_code": course_code, "security_key": security_key})
    response = client.post("/api/v1/auth/login", json={"course_code": course_code, "security_key": security_key})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['session']['access_token']}"}


@pytest.fixture
def login(client):
    """Returns a callable that registers and logs in a lecturer, giving back the bearer header."""
    def _login(**kwargs) -> dict:
        return login_headers(client, **kwargs)
    return _login


@pytest.fixture
def auth_headers(client):
    return login_headers(client)
