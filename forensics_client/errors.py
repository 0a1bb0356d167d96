"""Error taxonomy for the face-recognition pipeline.

Validation and export errors are raised to the caller.  Per-probe call
failures are raised by the comparison client but caught by the batch
orchestrator, which records them in the batch summary instead of
propagating them.
"""

from __future__ import annotations


class ForensicsClientError(Exception):
    """Base class for all errors raised by the forensics client."""


# ----------------------------------------------------------------------
# Validation (batch-fatal, raised before any network activity)
# ----------------------------------------------------------------------


class ValidationError(ForensicsClientError):
    """Input rejected before a batch could start."""


class MissingInput(ValidationError):
    """The input or comparison set is empty."""

    def __init__(self, message: str = "Please select both input and comparison folders.") -> None:
        super().__init__(message)


class NoValidFiles(ValidationError):
    """A selection contained no image or PDF files."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(
            f"No valid images: please select images (JPEG, PNG, etc.) "
            f"for the {kind} folder."
        )


class BatchAlreadyRunning(ForensicsClientError):
    """A batch was started, or the threshold changed, while one is running."""

    def __init__(self, message: str = "A batch is already running") -> None:
        super().__init__(message)


# ----------------------------------------------------------------------
# Per-probe call failures (recovered by the orchestrator)
# ----------------------------------------------------------------------


class ProbeCallFailure(ForensicsClientError):
    """One comparison call failed (network error, bad status, bad body)."""

    kind = "call"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class AuthFailure(ProbeCallFailure):
    """The backend rejected the access token (HTTP 401).

    The surrounding application should invalidate the session.
    """

    kind = "auth"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=401)


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------


class ExportError(ForensicsClientError):
    """Export was requested in a state that cannot produce a file."""


class NoResultsToExport(ExportError):
    def __init__(self) -> None:
        super().__init__("No results to export: process images first.")


class UnsupportedExportFormat(ExportError):
    def __init__(self, format: str) -> None:
        self.format = format
        super().__init__(f"Unsupported export format '{format}' (use csv or json)")


# ----------------------------------------------------------------------
# Content handles and lookups
# ----------------------------------------------------------------------


class HandleReleasedError(ForensicsClientError):
    """A content handle was used or released after it was released."""

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"Content handle {handle} has already been released")


class UnknownFileError(ForensicsClientError):
    """No file with the given id exists in the current selection."""

    def __init__(self, file_id: str) -> None:
        self.file_id = file_id
        super().__init__(f"File {file_id} not found")
