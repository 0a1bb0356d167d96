"""Shared pytest fixtures for forensics client tests."""

from __future__ import annotations

import asyncio
import re
from io import BytesIO
from typing import Any

import httpx
import pytest
import sse_starlette.sse as sse
from fastapi import FastAPI
from PIL import Image

from forensics_client.models.files import FileRecord
from forensics_client.plugins.registry import PluginRegistry
from forensics_client.repositories.content_store import ContentStore
from forensics_client.routers import face_recognition
from forensics_client.services.batch_orchestrator import BatchOrchestrator
from forensics_client.services.comparison_client import ComparisonClient
from forensics_client.services.file_set_collector import RawFile
from forensics_client.services.session import FaceRecognitionSession

_INPUT_RE = re.compile(rb'name="input_files"; filename="([^"]+)"')
_COMPARE_RE = re.compile(rb'name="compare_files"; filename="([^"]+)"')
_THRESHOLD_RE = re.compile(rb'name="threshold"\r\n\r\n([^\r]+)\r\n')


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def make_jpeg(color: str = "blue", size: tuple[int, int] = (32, 32)) -> bytes:
    """Return the bytes of a small JPEG image."""
    buffer = BytesIO()
    Image.new("RGB", size, color=color).save(buffer, "JPEG")
    return buffer.getvalue()


def raw_image(name: str) -> RawFile:
    return RawFile(name=name, media_type="image/jpeg", data=make_jpeg())


def make_records(store: ContentStore, kind: str, names: list[str]) -> list[FileRecord]:
    """Register *names* in *store* and return matching records."""
    return [
        FileRecord(
            id=f"{kind}-{i}",
            name=name,
            media_type="image/jpeg",
            content_ref=store.acquire(make_jpeg(), "image/jpeg"),
        )
        for i, name in enumerate(names)
    ]


def match_entry(
    input_file: str,
    compare_file: str,
    result: float,
    distance: float,
    matched: bool = True,
    threshold: float = 50,
) -> dict[str, Any]:
    """One backend ``matches`` entry."""
    return {
        "input_file": input_file,
        "compare_file": compare_file,
        "matched": matched,
        "distance": distance,
        "threshold": threshold,
        "result": result,
    }


class FakeBackend:
    """Scriptable stand-in for the analysis backend's /compare-faces.

    * ``matches[probe]`` -- match entries returned for that probe.
    * ``failures[probe]`` -- HTTP status returned instead of a result.
    * ``delays[probe]`` -- seconds to wait before answering.
    * ``bodies[probe]`` -- raw 200 body sent instead of the JSON result.
    """

    def __init__(self) -> None:
        self.matches: dict[str, list[dict[str, Any]]] = {}
        self.failures: dict[str, int] = {}
        self.delays: dict[str, float] = {}
        self.errors: dict[str, list[str]] = {}
        self.bodies: dict[str, bytes] = {}
        self.requests: list[dict[str, Any]] = []

    async def handle(self, request: httpx.Request) -> httpx.Response:
        body = request.content
        probes = [m.decode() for m in _INPUT_RE.findall(body)]
        candidates = [m.decode() for m in _COMPARE_RE.findall(body)]
        threshold_match = _THRESHOLD_RE.search(body)
        self.requests.append(
            {
                "path": request.url.path,
                "headers": request.headers,
                "probes": probes,
                "candidates": candidates,
                "threshold": threshold_match.group(1).decode() if threshold_match else None,
            }
        )

        delay = max((self.delays.get(p, 0.0) for p in probes), default=0.0)
        if delay:
            await asyncio.sleep(delay)

        for probe in probes:
            if probe in self.failures:
                return httpx.Response(self.failures[probe], text=f"error for {probe}")
            if probe in self.bodies:
                return httpx.Response(200, content=self.bodies[probe])

        matches = [m for p in probes for m in self.matches.get(p, [])]
        errors = [e for p in probes for e in self.errors.get(p, [])]
        return httpx.Response(
            200,
            json={
                "threshold": 50,
                "total_matches": sum(1 for m in matches if m["matched"]),
                "matches": matches,
                "errors": errors,
            },
        )


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_sse_app_status() -> None:
    """sse-starlette keeps a module-level exit event bound to the first loop."""
    app_status = getattr(sse, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None


@pytest.fixture()
def store() -> ContentStore:
    return ContentStore()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
async def comparison_client(store: ContentStore, backend: FakeBackend) -> ComparisonClient:
    """ComparisonClient wired to the FakeBackend through a MockTransport."""
    client = ComparisonClient(
        store=store,
        base_url="http://backend.test",
        access_token="token-123",
        timeout=5.0,
        transport=httpx.MockTransport(backend.handle),
    )
    yield client
    await client.aclose()


@pytest.fixture()
def plugin_registry() -> PluginRegistry:
    return PluginRegistry()


@pytest.fixture()
def orchestrator(
    comparison_client: ComparisonClient, plugin_registry: PluginRegistry
) -> BatchOrchestrator:
    return BatchOrchestrator(client=comparison_client, plugins=plugin_registry)


@pytest.fixture()
def session(store: ContentStore, orchestrator: BatchOrchestrator) -> FaceRecognitionSession:
    return FaceRecognitionSession(store=store, orchestrator=orchestrator, default_threshold=50)


@pytest.fixture()
async def app_client(
    store: ContentStore, session: FaceRecognitionSession
) -> httpx.AsyncClient:
    """Create a FastAPI test app around the session and yield an async HTTP client."""
    test_app = FastAPI()
    test_app.state.content_store = store
    test_app.state.session = session
    test_app.include_router(face_recognition.router)

    @test_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=test_app),
        base_url="http://testserver",
    ) as client:
        yield client
