import io
import json
from typing import List

import httpx
import pytest
from fastapi.testclient import TestClient

from channel_landing.core import database
from channel_landing.core.config import settings
from channel_landing.main import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-secret"

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


class FakeConversionsAPI:
    """Records Conversions API calls and answers with a configurable response."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.body = {"events_received": 1, "fbtrace_id": "trace"}
        # when set, the request fails at the transport level with this message
        self.connect_error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_error:
            raise httpx.ConnectError(self.connect_error, request=request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def fake_api() -> FakeConversionsAPI:
    return FakeConversionsAPI()


@pytest.fixture
def app(tmp_path, monkeypatch, fake_api):
    db_url = f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    monkeypatch.setattr(settings, "DATABASE_URL", db_url)
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "FIRST_ADMIN_USERNAME", ADMIN_USERNAME)
    monkeypatch.setattr(settings, "FIRST_ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setattr(settings, "CORS_ORIGINS", "")
    database.configure_engine(db_url)
    return create_app(conversion_transport=httpx.MockTransport(fake_api.handler))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def login(client: TestClient, username: str, password: str) -> httpx.Response:
    """Log in on this client, replacing whatever session cookie it held."""
    client.cookies.clear()
    return client.post("/api/login", json={"username": username, "password": password})


def logout(client: TestClient) -> None:
    """Drop the session cookie so the next requests are anonymous."""
    client.cookies.clear()


def run_db(client: TestClient, fn):
    """Run ``await fn(db)`` on the app's event loop with a fresh database session."""
    async def _call():
        async with database.SessionLocal() as db:
            return await fn(db)

    return client.portal.call(_call)


@pytest.fixture
def admin_client(client) -> TestClient:
    resp = login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    assert resp.status_code == 200, resp.text
    return client


@pytest.fixture
def employee_client(admin_client) -> TestClient:
    resp = admin_client.post("/api/register", json={"username": "alice", "password": "alice-pass"})
    assert resp.status_code == 201, resp.text
    assert login(admin_client, "alice", "alice-pass").status_code == 200
    return admin_client


def logo_file(name: str = "logo.png", content: bytes = PNG_BYTES, content_type: str = "image/png"):
    return {"logo": (name, io.BytesIO(content), content_type)}


def create_channel(client: TestClient, **fields) -> httpx.Response:
    data = {
        "name": "Alpha",
        "subscribers": "100",
        "inviteLink": "https://t.me/x",
    }
    data.update({k: str(v) for k, v in fields.items()})
    return client.post("/api/channels", data=data, files=logo_file())
