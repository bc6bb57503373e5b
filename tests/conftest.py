"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def tmp_data_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for the conversation file during tests."""
    d = tmp_path / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in ["THREAD_GATEWAY_CONFIG", "OPENAI_API_KEY", "PORT", "HOST", "APP_ENV"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("THREAD_GATEWAY__"):
            monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(scope="function")
def config_file(tmp_path: Path, tmp_data_dir: Path, clean_env) -> Path:
    """A config pointing the store and the public dir at temp locations."""
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>Conversations</h1>", encoding="utf-8")
    cfg = {
        "environment": "test",
        "server": {"public_dir": str(public)},
        "store": {"path": str(tmp_data_dir / "conversations.json")},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


# -----------------------------
# Fake upstream client
# -----------------------------
def text_message(msg_id: str, role: str, value: str) -> SimpleNamespace:
    block = SimpleNamespace(type="text", text=SimpleNamespace(value=value, annotations=[]))
    return SimpleNamespace(id=msg_id, role=role, content=[block])


class FakeThreadsClient:
    """Mimics the ``beta.threads`` / ``models`` surface of ``openai.AsyncOpenAI``."""

    def __init__(self, messages=None, models=None, error: Exception | None = None):
        self.threads = {}
        self.messages = messages or {}
        self.models_data = models or []
        self.error = error
        self.calls = []
        self._counter = 0
        self.beta = SimpleNamespace(
            threads=SimpleNamespace(
                create=self._create,
                messages=SimpleNamespace(list=self._list_messages),
            )
        )
        self.models = SimpleNamespace(list=self._list_models)

    async def _create(self, **kwargs):
        self.calls.append(("create", kwargs))
        if self.error is not None:
            raise self.error
        self._counter += 1
        thread = SimpleNamespace(
            id=f"thread_fake{self._counter:08d}abc{self._counter:03d}",
            created_at=1_700_000_000 + self._counter,
            metadata=kwargs.get("metadata") or {},
        )
        self.threads[thread.id] = thread
        return thread

    async def _list_messages(self, thread_id, **kwargs):
        self.calls.append(("messages.list", thread_id, kwargs))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=list(self.messages.get(thread_id, [])))

    async def _list_models(self):
        self.calls.append(("models.list",))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=list(self.models_data))


@pytest.fixture(scope="function")
def fake_client() -> FakeThreadsClient:
    return FakeThreadsClient()
