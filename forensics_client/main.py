"""Forensics client FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forensics_client.config import get_settings
from forensics_client.plugins.registry import PluginRegistry
from forensics_client.repositories.content_store import ContentStore
from forensics_client.services.batch_orchestrator import BatchOrchestrator
from forensics_client.services.comparison_client import ComparisonClient
from forensics_client.services.session import FaceRecognitionSession

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown.

    On startup:
    - Create the ContentStore for uploaded file bytes.
    - Create the ComparisonClient for the analysis backend.
    - Discover plugins from the configured plugin directory.
    - Create the BatchOrchestrator and the FaceRecognitionSession.
    - Store all services on app.state for dependency injection.

    On shutdown:
    - Cancel any running batch and release all content handles.
    - Close the HTTP client and shut down the plugin registry.
    """
    settings = get_settings()

    content_store = ContentStore()
    app.state.content_store = content_store

    comparison_client = ComparisonClient(
        store=content_store,
        base_url=settings.api_base_url,
        compare_path=settings.compare_faces_path,
        access_token=settings.access_token,
        timeout=settings.request_timeout,
    )
    app.state.comparison_client = comparison_client

    plugin_registry = PluginRegistry()
    discovered = plugin_registry.discover_plugins(Path(settings.plugin_dir))
    if discovered:
        logger.info("Loaded plugins: %s", ", ".join(discovered))
    app.state.plugin_registry = plugin_registry

    orchestrator = BatchOrchestrator(
        client=comparison_client,
        plugins=plugin_registry,
        step_delay=settings.progress_step_delay,
    )
    app.state.session = FaceRecognitionSession(
        store=content_store,
        orchestrator=orchestrator,
        default_threshold=settings.default_threshold,
    )
    logger.info("Forensics client ready, analysis backend at %s", settings.api_base_url)

    yield

    # Shutdown
    app.state.session.close()
    content_store.release_all()
    await comparison_client.aclose()
    plugin_registry.shutdown()


app = FastAPI(
    title="Forensics Client",
    description="Face recognition batch client for the image forensics service",
    version="0.1.0",
    lifespan=lifespan,
)

# Behind a reverse proxy serving the UI (same origin): no CORS needed.
# In local dev: allow the Vite dev server origin.
settings = get_settings()
if not settings.behind_proxy:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Router includes
from forensics_client.routers import face_recognition  # noqa: E402

app.include_router(face_recognition.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Console entry point: configure logging and serve the app."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
