"""Pydantic models for user-selected file sets."""

from typing import Literal

from pydantic import BaseModel

FileSetKind = Literal["input", "comparison"]


class FileRecord(BaseModel):
    """One accepted file from a user selection.

    Immutable once created; owned by the file set it was added to.
    """

    id: str
    """Generated identifier, unique within its set (``input-3f9a0c1d2``)."""

    name: str
    """Original file name, also the key the backend reports matches by."""

    media_type: str
    """Declared media type (``image/jpeg``, ``application/pdf``, ...)."""

    content_ref: str
    """Opaque content handle issued by the content store."""

    model_config = {"frozen": True}


class FileSetResponse(BaseModel):
    """Response for the ``/face-recognition/sets/{kind}`` endpoints."""

    kind: FileSetKind
    files: list[FileRecord]
    count: int
    message: str = ""


class ThresholdUpdate(BaseModel):
    """Request body for ``PUT /face-recognition/threshold``."""

    threshold: float


class ThresholdResponse(BaseModel):
    """Current threshold and its valid range."""

    threshold: float
    minimum: float
    maximum: float
