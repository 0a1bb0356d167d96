"""FastAPI dependency injection for the face-recognition services."""

from fastapi import Request

from forensics_client.repositories.content_store import ContentStore
from forensics_client.services.session import FaceRecognitionSession


def get_session(request: Request) -> FaceRecognitionSession:
    """Return the application-wide FaceRecognitionSession stored on app.state."""
    return request.app.state.session


def get_content_store(request: Request) -> ContentStore:
    """Return the application-wide ContentStore stored on app.state."""
    return request.app.state.content_store
