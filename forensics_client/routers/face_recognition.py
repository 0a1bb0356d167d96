"""Face recognition API router.

Endpoints:
- POST   /face-recognition/sets/{kind}       -- upload the input or comparison files
- GET    /face-recognition/sets/{kind}       -- list a file set
- GET    /face-recognition/files/{file_id}   -- serve a file's content for preview
- GET    /face-recognition/threshold         -- current threshold and range
- PUT    /face-recognition/threshold         -- change the threshold
- POST   /face-recognition/batch             -- run a batch with SSE progress streaming
- DELETE /face-recognition/batch             -- cancel the running batch
- GET    /face-recognition/progress          -- current progress
- GET    /face-recognition/results           -- results snapshot
- PUT    /face-recognition/results/selected  -- select a result for display
- GET    /face-recognition/export            -- download results as CSV or JSON
- POST   /face-recognition/reset             -- discard results and progress
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sse_starlette.sse import EventSourceResponse

from forensics_client.dependencies import get_content_store, get_session
from forensics_client.errors import (
    BatchAlreadyRunning,
    ExportError,
    HandleReleasedError,
    MissingInput,
    NoResultsToExport,
    NoValidFiles,
    UnknownFileError,
)
from forensics_client.models.face_recognition import (
    BatchSnapshot,
    CancelResponse,
    ProbeResult,
    ProgressState,
    SelectResultRequest,
)
from forensics_client.models.files import (
    FileSetKind,
    FileSetResponse,
    ThresholdResponse,
    ThresholdUpdate,
)
from forensics_client.repositories.content_store import ContentStore
from forensics_client.services.file_set_collector import RawFile
from forensics_client.services.match_classifier import THRESHOLD_MAX, THRESHOLD_MIN
from forensics_client.services.session import FaceRecognitionSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/face-recognition", tags=["face-recognition"])


# ---------------------------------------------------------------------------
# File sets
# ---------------------------------------------------------------------------


@router.post("/sets/{kind}", response_model=FileSetResponse)
async def upload_file_set(
    kind: FileSetKind,
    files: list[UploadFile] = File(...),
    session: FaceRecognitionSession = Depends(get_session),
) -> FileSetResponse:
    """Replace the *kind* set with the uploaded files.

    Only images and PDFs are kept.  When none remain the request fails
    with 400 and the previous selection is left unchanged.
    """
    raw_files = [
        RawFile(
            name=upload.filename or "",
            media_type=upload.content_type or "",
            data=await upload.read(),
        )
        for upload in files
    ]

    try:
        file_set = session.replace_set(kind, raw_files)
    except NoValidFiles as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))

    return FileSetResponse(
        kind=kind,
        files=list(file_set.records),
        count=len(file_set),
        message=f"{len(file_set)} images uploaded successfully.",
    )


@router.get("/sets/{kind}", response_model=FileSetResponse)
def get_file_set(
    kind: FileSetKind,
    session: FaceRecognitionSession = Depends(get_session),
) -> FileSetResponse:
    """List the files in the *kind* set (empty when nothing is selected)."""
    file_set = session.get_set(kind)
    records = list(file_set.records) if file_set is not None else []
    return FileSetResponse(kind=kind, files=records, count=len(records))


@router.get("/files/{file_id}")
def get_file_content(
    file_id: str,
    session: FaceRecognitionSession = Depends(get_session),
    store: ContentStore = Depends(get_content_store),
) -> Response:
    """Serve the uploaded bytes of a selected file for preview."""
    try:
        record = session.find_file(file_id)
        content = store.get(record.content_ref)
    except (UnknownFileError, HandleReleasedError):
        raise HTTPException(status_code=404, detail="File not found")
    return Response(content=content.data, media_type=content.media_type)


# ---------------------------------------------------------------------------
# Threshold
# ---------------------------------------------------------------------------


@router.get("/threshold", response_model=ThresholdResponse)
def get_threshold(
    session: FaceRecognitionSession = Depends(get_session),
) -> ThresholdResponse:
    return ThresholdResponse(
        threshold=session.threshold, minimum=THRESHOLD_MIN, maximum=THRESHOLD_MAX
    )


@router.put("/threshold", response_model=ThresholdResponse)
def set_threshold(
    request: ThresholdUpdate,
    session: FaceRecognitionSession = Depends(get_session),
) -> ThresholdResponse:
    """Set the match threshold.

    Values outside ``[30, 100]`` are replaced with 30.  Returns 409 while
    a batch is running.
    """
    try:
        threshold = session.set_threshold(request.threshold)
    except BatchAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ThresholdResponse(
        threshold=threshold, minimum=THRESHOLD_MIN, maximum=THRESHOLD_MAX
    )


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


@router.post("/batch")
async def run_batch(
    session: FaceRecognitionSession = Depends(get_session),
) -> EventSourceResponse:
    """Compare every input file against the comparison set.

    Streams ``probe`` events (one per input file, with progress and the
    probe's matches), then a final ``complete`` event carrying the batch
    summary, or ``cancelled`` if the batch was stopped.  Disconnecting
    cancels the batch.
    """
    try:
        events = session.start_batch()
    except MissingInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))

    async def event_generator():
        async for event in events:
            yield {"event": event.event, "data": event.model_dump_json()}

    return EventSourceResponse(event_generator())


@router.delete("/batch", response_model=CancelResponse)
def cancel_batch(
    session: FaceRecognitionSession = Depends(get_session),
) -> CancelResponse:
    """Cancel the running batch; results received so far are kept."""
    cancelled = session.orchestrator.cancel()
    return CancelResponse(cancelled=cancelled, state=session.orchestrator.state)


@router.get("/progress", response_model=ProgressState)
def get_progress(
    session: FaceRecognitionSession = Depends(get_session),
) -> ProgressState:
    return session.orchestrator.progress()


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@router.get("/results", response_model=BatchSnapshot)
def get_results(
    threshold: float | None = Query(
        default=None,
        description="Re-classify match tiers at this threshold for display",
    ),
    matched_only: bool = Query(
        default=False, description="Only include input files with matches"
    ),
    session: FaceRecognitionSession = Depends(get_session),
) -> BatchSnapshot:
    """Return the current batch's results, progress and summary."""
    return session.orchestrator.snapshot(
        display_threshold=threshold, matched_only=matched_only
    )


@router.put("/results/selected", response_model=ProbeResult)
def select_result(
    request: SelectResultRequest,
    session: FaceRecognitionSession = Depends(get_session),
) -> ProbeResult:
    try:
        return session.orchestrator.select(request.probe_id)
    except UnknownFileError:
        raise HTTPException(status_code=404, detail="Result not found")


@router.get("/export")
def export_results(
    format: str = Query(default="csv", description="csv or json"),
    session: FaceRecognitionSession = Depends(get_session),
) -> Response:
    """Download the current results as a CSV or JSON file."""
    try:
        export_file = session.export(format)
    except NoResultsToExport as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ExportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Exported %s (%d bytes)", export_file.filename, len(export_file.content))
    return Response(
        content=export_file.content,
        media_type=export_file.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{export_file.filename}"'
        },
    )


@router.post("/reset", status_code=204)
def reset_results(
    session: FaceRecognitionSession = Depends(get_session),
) -> None:
    """Discard the last batch's results and progress."""
    try:
        session.reset()
    except BatchAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
