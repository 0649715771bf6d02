"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from config.settings import Settings
from integrations.api_client import ApiClient
from models.finding import Finding, Severity, Source
from services.local_store import NotesStore, TokenStore


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tokens, notes and reports out of the working tree."""
    monkeypatch.setattr(Settings, "STATE_DIR", tmp_path / "state")
    monkeypatch.setattr(Settings, "REPORT_OUTPUT_DIR", tmp_path / "reports")
    monkeypatch.setattr(Settings, "HTTP_RETRY_ATTEMPTS", 1)
    return tmp_path


@pytest.fixture
def make_finding() -> Callable[..., Finding]:
    def _make(name: str = "OpenSSL RCE", host: str = "h1", **kwargs) -> Finding:
        kwargs.setdefault("severity", Severity.HIGH)
        kwargs.setdefault("source", Source.INTERNAL)
        return Finding(name=name, host=host, **kwargs)

    return _make


@pytest.fixture
def token_store(tmp_path: Path) -> TokenStore:
    return TokenStore(tmp_path / "token.json")


@pytest.fixture
def notes_store(tmp_path: Path) -> NotesStore:
    return NotesStore(tmp_path / "notes.json")


@pytest.fixture
def make_api(token_store: TokenStore) -> Callable[..., ApiClient]:
    """ApiClient wired to an in-process handler instead of the network."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ApiClient:
        return ApiClient(base_url="http://backend.test", token_store=token_store,
                         retry_attempts=1, transport=httpx.MockTransport(handler))

    return _make
