"""Face-recognition session state.

One :class:`FaceRecognitionSession` per application instance holds the
user's two file selections, the threshold control and the batch
orchestrator, replacing page-level mutable state with a single owned
object that routers read and update through its methods.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable

from forensics_client.errors import (
    BatchAlreadyRunning,
    UnknownFileError,
)
from forensics_client.models.face_recognition import BatchEvent
from forensics_client.models.files import FileRecord, FileSetKind
from forensics_client.repositories.content_store import ContentStore
from forensics_client.services.batch_orchestrator import BatchOrchestrator
from forensics_client.services.file_set_collector import (
    FileSet,
    FileSetCollector,
    RawFile,
)
from forensics_client.services.match_classifier import normalize_threshold
from forensics_client.services.result_exporter import ExportFile, export

logger = logging.getLogger(__name__)


class FaceRecognitionSession:
    """Owns file sets, threshold and orchestrator for one user session."""

    def __init__(
        self,
        store: ContentStore,
        orchestrator: BatchOrchestrator,
        default_threshold: float = 75.0,
    ) -> None:
        self.store = store
        self.collector = FileSetCollector(store)
        self.orchestrator = orchestrator
        self._threshold = normalize_threshold(default_threshold)
        self._sets: dict[str, FileSet] = {}

    # ------------------------------------------------------------------
    # File sets
    # ------------------------------------------------------------------

    def replace_set(self, kind: FileSetKind, raw_files: Iterable[RawFile]) -> FileSet:
        """Collect *raw_files* as the new *kind* set.

        The previous set is released only after the new one validated;
        on :class:`NoValidFiles` the previous set stays in place.
        """
        if self.orchestrator.is_running:
            raise BatchAlreadyRunning("Cannot change files while a batch is running")
        new_set = self.collector.collect(raw_files, kind)
        # A submitted but unstarted batch still refers to the old records.
        self.orchestrator.discard_pending()
        old_set = self._sets.get(kind)
        self._sets[kind] = new_set
        if old_set is not None:
            old_set.release()
        return new_set

    def get_set(self, kind: FileSetKind) -> FileSet | None:
        return self._sets.get(kind)

    def find_file(self, file_id: str) -> FileRecord:
        """Return the record with *file_id* from either set."""
        for file_set in self._sets.values():
            record = file_set.get(file_id)
            if record is not None:
                return record
        raise UnknownFileError(file_id)

    # ------------------------------------------------------------------
    # Threshold
    # ------------------------------------------------------------------

    @property
    def threshold(self) -> float:
        return self._threshold

    def set_threshold(self, value: float) -> float:
        """Update the threshold; locked while a batch is running."""
        if self.orchestrator.is_running:
            raise BatchAlreadyRunning("Threshold cannot change while a batch is running")
        self._threshold = normalize_threshold(value)
        return self._threshold

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def start_batch(self) -> AsyncIterator[BatchEvent]:
        """Start a batch over the current sets at the current threshold."""
        probes = self._sets.get("input")
        candidates = self._sets.get("comparison")
        return self.orchestrator.submit_batch(
            probes.records if probes else (),
            candidates.records if candidates else (),
            self._threshold,
        )

    def export(self, format: str) -> ExportFile:
        """Export the current results at the batch's threshold."""
        run = self.orchestrator.current_run
        if run is None:
            return export((), self._threshold, format)
        return export(run.results, run.threshold, format)

    def reset(self) -> None:
        """Discard results and progress; file selections are kept."""
        self.orchestrator.reset()

    def close(self) -> None:
        """End the session: cancel any batch and release all handles."""
        self.orchestrator.cancel()
        for file_set in self._sets.values():
            if not file_set.released:
                file_set.release()
        self._sets.clear()
        logger.info("Face recognition session closed")
