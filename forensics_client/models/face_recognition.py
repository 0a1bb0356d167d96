"""Pydantic models for the face-recognition batch pipeline.

Covers the remote ``/compare-faces`` wire format, the per-probe result
records accumulated by the orchestrator, progress, and the summary and
snapshot views served to the browser.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from forensics_client.models.files import FileRecord

MatchTier = Literal["strong", "borderline", "none"]


class BatchState(str, Enum):
    """Pipeline states.

    ``idle -> validating -> running -> completed | completed_with_errors``,
    ``idle -> rejected`` when preconditions fail, and
    ``running -> cancelled`` when the batch is torn down.
    """

    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Remote service wire format
# ---------------------------------------------------------------------------


class CompareFacesMatch(BaseModel):
    """One (input, compare) pair as reported by the analysis backend."""

    input_file: str
    compare_file: str
    matched: bool
    distance: float
    threshold: float
    result: float


class CompareFacesResponse(BaseModel):
    """Success body of ``POST /compare-faces``."""

    threshold: float | None = None
    total_matches: int | None = None
    matches: list[CompareFacesMatch] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Accumulated results
# ---------------------------------------------------------------------------


class MatchResult(BaseModel):
    """A candidate the backend reported as matching a probe."""

    candidate_id: str
    candidate_name: str
    score: float
    """Backend ``result`` value, same 0-100 scale as the threshold."""

    distance: float
    tier: MatchTier

    model_config = {"frozen": True}


class ProbeResult(BaseModel):
    """Outcome of one probe's comparison call, success or failure."""

    probe: FileRecord
    matches: tuple[MatchResult, ...] = ()
    failed: bool = False
    service_errors: tuple[str, ...] = ()
    """Non-fatal errors the backend reported alongside a successful call."""

    model_config = {"frozen": True}


class ProbeError(BaseModel):
    """Error accumulator entry for a failed probe."""

    probe_id: str
    probe_name: str
    kind: Literal["call", "auth"]
    status_code: int | None = None
    message: str


class ProgressState(BaseModel):
    """Immutable progress snapshot."""

    current: int = 0
    total: int = 0
    percent: float = 0.0

    model_config = {"frozen": True}


class BatchSummary(BaseModel):
    """Batch-level report produced once the loop has finished."""

    batch_id: str
    state: BatchState
    threshold: float
    total_probes: int
    processed: int
    total_matches: int
    matched_probes: int
    failed_probes: list[str]
    """Names of the probes whose call failed, in probe order."""

    errors: list[ProbeError]
    message: str


class BatchEvent(BaseModel):
    """One message emitted by the orchestrator per pipeline step."""

    event: Literal["probe", "complete", "cancelled"]
    batch_id: str
    progress: ProgressState
    result: ProbeResult | None = None
    summary: BatchSummary | None = None


class BatchSnapshot(BaseModel):
    """Read-only view of the current (or last) batch for display."""

    batch_id: str | None
    state: BatchState
    threshold: float | None
    progress: ProgressState
    results: list[ProbeResult]
    selected_probe_id: str | None = None
    summary: BatchSummary | None = None


class SelectResultRequest(BaseModel):
    """Request body for ``PUT /face-recognition/results/selected``."""

    probe_id: str


class CancelResponse(BaseModel):
    """Response for ``DELETE /face-recognition/batch``."""

    cancelled: bool
    state: BatchState
