import sys
from pathlib import Path
from typing import Any

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = ROOT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from narrator.services.narration.documents import DocumentSource
from narrator.services.narration.normalizer import normalize_word
from narrator.services.narration.orchestrator import NarrationOrchestrator
from narrator.services.tts_service.drivers.base import TTSEngine
from narrator.services.tts_service.service import TTSService
from narrator.shared.models import SynthesisResult, WordTimestamp
from narrator.shared.storage import InMemoryStorage
from narrator.shared.utils import config as service_config

ARTICLE = """---
title: Hello World
date: 2024-01-01
---

# Hello world

This is **the** first [article](https://example.com).

```ts
const ignored = true;
```
"""


class FakeTTSEngine(TTSEngine):
    """Deterministic driver: one word every half second, audio derived from the text."""

    name = "fake"

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def synthesize(
        self,
        text: str,
        voice: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> SynthesisResult:
        self.calls.append(text)
        timestamps = [
            WordTimestamp(word=word, start=index * 0.5, end=index * 0.5 + 0.4, normalized=normalize_word(word))
            for index, word in enumerate(text.split())
        ]
        return SynthesisResult(audio=f"audio:{text}".encode("utf-8"), timestamps=timestamps)


@pytest.fixture(autouse=True)
def test_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point configuration at per-test directories and in-memory storage."""
    monkeypatch.setitem(service_config.config, "media_root", str(tmp_path / "media"))
    monkeypatch.setitem(service_config.config, "content_dir", str(tmp_path / "content"))
    monkeypatch.setitem(service_config.config, "storage_backend", "memory")
    monkeypatch.setitem(service_config.config, "cache_prefix", "tts")
    monkeypatch.setitem(service_config.config, "content_hash_length", 16)
    monkeypatch.setitem(service_config.config, "elevenlabs_api_key", "test-key")


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    root = tmp_path / "content"
    (root / "hello-world").mkdir(parents=True)
    (root / "hello-world" / "index.mdx").write_text(ARTICLE, encoding="utf-8")
    (root / "notes.md").write_text("Short note about caching.\n", encoding="utf-8")
    (root / "guides").mkdir()
    (root / "guides" / "intro.mdx").write_text("# Intro\n\nGetting started quickly.\n", encoding="utf-8")
    (root / "empty.mdx").write_text("---\ntitle: Empty\n---\n\n<Figure />\n", encoding="utf-8")
    return root


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage(base_url="/media")


@pytest.fixture
def fake_engine() -> FakeTTSEngine:
    return FakeTTSEngine()


@pytest.fixture
def orchestrator(content_dir: Path, storage: InMemoryStorage, fake_engine: FakeTTSEngine) -> NarrationOrchestrator:
    return NarrationOrchestrator(
        documents=DocumentSource(content_dir),
        storage=storage,
        tts_service=TTSService(drivers={"fake": fake_engine}, default_driver="fake"),
    )
