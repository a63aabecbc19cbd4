from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from narrator.app import app as gateway_app
from narrator.services.narration.app import app as narration_app, get_orchestrator
from narrator.services.narration.orchestrator import NarrationOrchestrator
from narrator.shared.errors import UpstreamSynthesisError
from narrator.shared.storage import RedisStorage


@pytest.fixture
def client(orchestrator: NarrationOrchestrator) -> Generator[TestClient, None, None]:
    narration_app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        yield TestClient(narration_app)
    finally:
        narration_app.dependency_overrides.pop(get_orchestrator, None)


@pytest.fixture
def gateway_client(orchestrator: NarrationOrchestrator) -> Generator[TestClient, None, None]:
    gateway_app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        yield TestClient(gateway_app)
    finally:
        gateway_app.dependency_overrides.pop(get_orchestrator, None)


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["storage"] == "memory"


def test_narration_then_cached(client: TestClient, fake_engine) -> None:
    first = client.post("/narration", json={"slug": "hello-world"})
    second = client.post("/narration", json={"slug": ["hello-world"]})

    assert first.status_code == 200
    body = first.json()
    assert body["audioUrl"].startswith("/media/tts/hello-world/")
    assert body["audioUrl"].endswith(".mp3")
    assert len(body["hash"]) == 16
    assert body["cached"] is False
    assert body["timestamps"][0]["normalized"] == "hello"

    assert second.json()["cached"] is True
    assert second.json()["audioUrl"] == body["audioUrl"]
    assert len(fake_engine.calls) == 1


def test_media_route_serves_stored_audio(client: TestClient) -> None:
    body = client.post("/narration", json={"slug": "notes"}).json()

    audio = client.get(body["audioUrl"])
    assert audio.status_code == 200
    assert audio.headers["content-type"] == "audio/mpeg"
    assert audio.content == b"audio:Short note about caching."

    timestamps = client.get(body["audioUrl"].replace(".mp3", ".json"))
    assert timestamps.status_code == 200
    assert [entry["word"] for entry in timestamps.json()] == ["Short", "note", "about", "caching."]


def test_media_not_found(client: TestClient) -> None:
    response = client.get("/media/tts/none/0000.mp3")
    assert response.status_code == 404


@pytest.mark.parametrize("payload", [{}, {"slug": ""}, {"slug": []}, {"slug": "../../etc"}])
def test_missing_slug(client: TestClient, payload: dict) -> None:
    response = client.post("/narration", json=payload)
    if payload.get("slug") == "../../etc":
        # Unsafe segments are dropped; what remains does not exist.
        assert response.status_code == 404
    else:
        assert response.status_code == 400
        assert response.json() == {"error": "Missing article slug"}


def test_article_not_found(client: TestClient) -> None:
    response = client.post("/narration", json={"slug": "nope"})
    assert response.status_code == 404
    assert response.json() == {"error": "Article not found"}


def test_synthesis_failure(client: TestClient, fake_engine) -> None:
    async def broken(*args, **kwargs):
        raise UpstreamSynthesisError("quota exceeded")

    fake_engine.synthesize = broken
    response = client.post("/narration", json={"slug": "notes"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unable to generate narration"}


def test_unexpected_failure(client: TestClient, orchestrator: NarrationOrchestrator) -> None:
    async def explode(slug):
        raise RuntimeError("disk on fire")

    orchestrator.request_narration = explode
    response = client.post("/narration", json={"slug": "notes"})

    assert response.status_code == 500
    assert response.json() == {"error": "Unable to generate narration"}


def test_gateway_routes(gateway_client: TestClient) -> None:
    assert gateway_client.get("/health").json()["service"] == "narrator"

    body = gateway_client.post("/api/narration", json={"slug": "guides/intro"}).json()
    assert body["audioUrl"].startswith("/media/tts/guides__intro/")
    assert gateway_client.get(body["audioUrl"]).status_code == 200


@pytest.mark.parametrize("payload", [{"slug": 42}, {"slug": {"path": "notes"}}, {"slug": [7, None]}])
def test_unusable_slug_values(client: TestClient, payload: dict) -> None:
    response = client.post("/narration", json=payload)
    assert response.status_code == 400
    assert response.json() == {"error": "Missing article slug"}


def test_non_string_segments_are_dropped(client: TestClient) -> None:
    response = client.post("/narration", json={"slug": ["notes", 7]})
    assert response.status_code == 200
    assert response.json()["audioUrl"].startswith("/media/tts/notes/")


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b""])
def test_malformed_body(client: TestClient, body: bytes) -> None:
    response = client.post("/narration", content=body, headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing article slug"}


def test_gateway_malformed_body(gateway_client: TestClient) -> None:
    response = gateway_client.post("/api/narration", content=b"{", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing article slug"}


class DictRedis:
    """Minimal async Redis stand-in holding unrelated keys next to narration blobs."""

    def __init__(self, values: dict[str, bytes]) -> None:
        self.values = dict(values)

    async def get(self, key: str) -> bytes | None:
        return self.values.get(key)

    async def exists(self, key: str) -> int:
        return int(key in self.values)

    async def set(self, key: str, value: bytes) -> None:
        self.values[key] = value


@pytest.mark.parametrize(
    "path",
    ["/media/session:admin", "/media/tts/notes/secret.txt", "/media/other/notes/0000.mp3", "/media/tts"],
)
def test_media_only_serves_narration_artifacts(orchestrator: NarrationOrchestrator, path: str) -> None:
    orchestrator.storage = RedisStorage(
        "redis://localhost:6379/0",
        client=DictRedis(
            {
                "session:admin": b"secret-token",
                "tts/notes/secret.txt": b"secret",
                "other/notes/0000.mp3": b"audio",
                "tts/notes/0000.mp3": b"audio",
            }
        ),
    )
    narration_app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        client = TestClient(narration_app)
        assert client.get(path).status_code == 404
        assert client.get("/media/tts/notes/0000.mp3").content == b"audio"
    finally:
        narration_app.dependency_overrides.pop(get_orchestrator, None)
