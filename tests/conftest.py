"""Pytest configuration and shared fixtures."""

import json
import os
from datetime import UTC, datetime

import httpx
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("OTEL_ENABLE_TRACES", "false")
os.environ.setdefault("OTEL_ENABLE_METRICS", "false")
os.environ.setdefault("LOG_FORMAT", "console")

from api.config import Settings  # noqa: E402
from api.storage import LocalStorage  # noqa: E402
from connectors.gist import GistConnector  # noqa: E402

TEST_TOKEN = "ghp_test_credential"
NOTES_GIST_ID = "notesgist0001"


class FakeGistServer:
    """In-memory stand-in for the parts of the Gist API the service calls.

    Set ``fail_with`` to answer every request with that status,
    ``unreachable`` to make every request fail at the transport level, or
    ``timeout`` to make every request time out.
    """

    def __init__(self, token: str = TEST_TOKEN):
        self.token = token
        self.gists: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None
        self.unreachable = False
        self.timeout = False
        self._created = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def add_gist(self, gist_id: str, files: dict[str, str] | None = None) -> dict:
        gist = {
            "id": gist_id,
            "html_url": f"https://gist.github.com/{gist_id}",
            "owner": {"login": "tester"},
            "updated_at": datetime.now(UTC).isoformat(),
            "files": {},
        }
        self.gists[gist_id] = gist
        for name, content in (files or {}).items():
            gist["files"][name] = {"filename": name, "content": content}
        return gist

    def file_json(self, gist_id: str, filename: str):
        return json.loads(self.gists[gist_id]["files"][filename]["content"])

    def writes(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.method in ("PATCH", "POST")]

    def _authorized(self, request: httpx.Request) -> bool:
        return request.headers.get("Authorization") == f"token {self.token}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if self.timeout:
            raise httpx.ReadTimeout("read timed out", request=request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"message": "forced failure"})

        path = request.url.path
        if path == "/user":
            if not self._authorized(request):
                return httpx.Response(401, json={"message": "Bad credentials"})
            return httpx.Response(200, json={"login": "tester"})

        if path == "/gists" and request.method == "POST":
            if not self._authorized(request):
                return httpx.Response(401, json={"message": "Bad credentials"})
            body = json.loads(request.content)
            self._created += 1
            gist = self.add_gist(
                f"created{self._created:04d}",
                {name: spec["content"] for name, spec in body["files"].items()},
            )
            return httpx.Response(201, json=gist)

        if path.startswith("/gists/"):
            gist = self.gists.get(path.split("/")[2])
            if gist is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if request.method == "GET":
                return httpx.Response(200, json=gist)
            if request.method == "PATCH":
                if not self._authorized(request):
                    return httpx.Response(401, json={"message": "Bad credentials"})
                body = json.loads(request.content)
                for name, spec in body["files"].items():
                    gist["files"][name] = {"filename": name, "content": spec["content"]}
                gist["updated_at"] = datetime.now(UTC).isoformat()
                return httpx.Response(200, json=gist)

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_gist():
    """Fake Gist API with an empty notes document."""
    server = FakeGistServer()
    server.add_gist(NOTES_GIST_ID)
    return server


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "data")


@pytest.fixture
def connector(fake_gist):
    """Gist connector wired to the fake server."""
    return GistConnector(transport=fake_gist.transport, timeout=2.0)


@pytest.fixture
def settings(tmp_path):
    """Settings with sync configured against the fake notes gist."""
    return Settings(
        data_dir=tmp_path / "data",
        gist_id=NOTES_GIST_ID,
        github_token=TEST_TOKEN,
        share_tokens_gist_id=NOTES_GIST_ID,
        sync_debounce_seconds=0.05,
        share_base_url="http://notes.test",
    )


@pytest.fixture
def api_client(settings, fake_gist):
    """FastAPI test client fixture with lifespan context."""
    from api.app import create_app

    app = create_app(settings=settings, gist_transport=fake_gist.transport)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def offline_client(tmp_path, fake_gist):
    """Test client with no remote document configured."""
    from api.app import create_app

    app = create_app(
        settings=Settings(data_dir=tmp_path / "offline"), gist_transport=fake_gist.transport
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_note_data():
    """Sample note data for testing."""
    return {
        "title": "Groceries",
        "content": "<p>milk</p><p>eggs &amp; bread</p>",
        "tags": ["home", "shopping"],
    }
