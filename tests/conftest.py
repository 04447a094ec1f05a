"""Pytest configuration and fixtures for manuals tests."""
from __future__ import annotations

import io
import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest
from rich.console import Console

from manuals.client import API_VERSION, ManualsClient
from manuals.output import Renderer

API_URL = "http://manuals.test"
API_KEY = "test-key"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeAPI:
    """In-memory stand-in for the Manuals service, served via httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def route(self, path: str, handler: Handler) -> None:
        self.routes[f"/api/{API_VERSION}{path}"] = handler

    def add(
        self,
        path: str,
        *,
        json: Any = None,
        status: int = 200,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status, content=content, headers=headers)
            return httpx.Response(status, json=json, headers=headers)

        self.route(path, respond)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> Path:
    """Isolate tests from the user's environment and config files.

    HOME points at an empty directory and the working directory is a separate
    empty directory, so no .manuals.yaml or .env is picked up.
    """
    for name in list(os.environ):
        if name.startswith("MANUALS_"):
            monkeypatch.delenv(name)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

    home = temp_dir / "home"
    work = temp_dir / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return temp_dir


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def client(fake_api: FakeAPI) -> Iterator[ManualsClient]:
    """A client whose requests are answered by ``fake_api``."""
    with ManualsClient(API_URL, API_KEY, transport=fake_api.transport()) as c:
        yield c


@pytest.fixture
def make_renderer() -> Callable[[str], tuple[Renderer, io.StringIO]]:
    """Build a renderer writing into a buffer."""

    def factory(output_format: str = "table") -> tuple[Renderer, io.StringIO]:
        buffer = io.StringIO()
        console = Console(file=buffer, width=200)
        return Renderer(output_format, console=console), buffer

    return factory


@pytest.fixture
def search_payload() -> dict[str, Any]:
    return {
        "results": [
            {
                "device_id": "abc123ef4567890",
                "name": "ESP32 Dev Board",
                "domain": "hardware",
                "type": "dev-boards",
                "path": "hardware/dev-boards/esp32",
                "score": 0.92,
                "snippet": "The ESP32 is a low-power system on a chip with Wi-Fi.",
            }
        ],
        "total": 1,
        "query": "esp32",
    }


@pytest.fixture
def device_payload() -> dict[str, Any]:
    return {
        "id": "dev0001abcdef",
        "domain": "hardware",
        "type": "sensors",
        "name": "BME280",
        "path": "hardware/sensors/bme280",
        "content": "Combined humidity, pressure and temperature sensor.",
        "metadata": {"vendor": "Bosch", "interfaces": ["i2c", "spi"]},
        "indexed_at": "2025-12-01T10:00:00Z",
    }


@pytest.fixture
def document_payload() -> dict[str, Any]:
    return {
        "id": "doc0001abcdef",
        "device_id": "dev0001abcdef",
        "path": "hardware/sensors/bme280/datasheet.pdf",
        "filename": "datasheet.pdf",
        "mime_type": "application/pdf",
        "size_bytes": 1536,
        "checksum": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
        "indexed_at": "2025-12-01T10:00:00Z",
    }
