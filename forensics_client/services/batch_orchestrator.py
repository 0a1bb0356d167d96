"""Sequential face-recognition batch orchestration with streaming progress.

Submits probes to the :class:`ComparisonClient` one at a time, against
the whole candidate set, and emits a :class:`BatchEvent` after every
call.  Exposed to the API layer as an async iterator via
:meth:`BatchOrchestrator.submit_batch`, which the router wraps in an
SSE response.

Calls are never issued concurrently, so results are appended in probe
order without any merge step and the backend sees at most one request
per batch at a time.  A failed call only marks its own probe as failed;
the loop always continues with the next probe.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field

from forensics_client.errors import (
    AuthFailure,
    BatchAlreadyRunning,
    MissingInput,
    ProbeCallFailure,
    UnknownFileError,
)
from forensics_client.models.face_recognition import (
    BatchEvent,
    BatchSnapshot,
    BatchState,
    BatchSummary,
    ProbeError,
    ProbeResult,
    ProgressState,
)
from forensics_client.models.files import FileRecord
from forensics_client.plugins.base_plugin import PluginContext
from forensics_client.plugins.hooks import (
    HOOK_BATCH_COMPLETE,
    HOOK_BATCH_START,
    HOOK_PROBE_COMPLETE,
    HOOK_SESSION_INVALIDATED,
)
from forensics_client.plugins.registry import PluginRegistry
from forensics_client.services.comparison_client import ComparisonClient
from forensics_client.services.match_classifier import (
    normalize_threshold,
    retier,
    to_match_result,
)
from forensics_client.services.progress import ProgressModel

logger = logging.getLogger(__name__)


@dataclass
class BatchRun:
    """State owned by one batch: append-only result log, progress, errors."""

    batch_id: str
    threshold: float
    probes: tuple[FileRecord, ...]
    candidates: tuple[FileRecord, ...]
    state: BatchState = BatchState.VALIDATING
    progress: ProgressModel = field(default_factory=ProgressModel)
    errors: list[ProbeError] = field(default_factory=list)
    selected_probe_id: str | None = None
    summary: BatchSummary | None = None
    cancel_requested: bool = False
    session_invalidated: bool = False
    inflight: asyncio.Future | None = None
    _results: list[ProbeResult] = field(default_factory=list)

    @property
    def results(self) -> tuple[ProbeResult, ...]:
        """Snapshot of the results appended so far, in probe order."""
        return tuple(self._results)

    def append(self, result: ProbeResult) -> None:
        self._results.append(result)
        if result.matches:
            self.selected_probe_id = result.probe.id

    @property
    def total_matches(self) -> int:
        return sum(len(r.matches) for r in self._results)


class BatchOrchestrator:
    """Drives one batch at a time through the comparison client.

    *step_delay* adds a pause after every probe to pace the progress
    indicator; ``0`` disables it.  *plugins* receives the batch
    lifecycle hooks.
    """

    def __init__(
        self,
        client: ComparisonClient,
        plugins: PluginRegistry | None = None,
        step_delay: float = 0.0,
    ) -> None:
        self.client = client
        self.plugins = plugins or PluginRegistry()
        self.step_delay = step_delay
        self._run: BatchRun | None = None
        self._pending: BatchRun | None = None
        self._state = BatchState.IDLE

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is BatchState.RUNNING

    @property
    def current_run(self) -> BatchRun | None:
        return self._run

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_batch(
        self,
        probe_set: Iterable[FileRecord],
        candidate_set: Iterable[FileRecord],
        threshold: float,
    ) -> AsyncIterator[BatchEvent]:
        """Validate the inputs and return the event stream for a new batch.

        Validation happens eagerly: :class:`MissingInput` and
        :class:`BatchAlreadyRunning` are raised here, before any call is
        made.  The batch only becomes ``running`` once the returned
        iterator is first advanced; a stream that is never consumed
        leaves the orchestrator untouched, and a later submission
        supersedes it.  The iterator yields one ``probe`` event per
        probe followed by a single ``complete`` (or ``cancelled``) event.

        A rejected submission leaves the previous batch, and its state,
        in place; only an orchestrator with no batch yet moves to
        ``rejected``.
        """
        if self.is_running:
            raise BatchAlreadyRunning()

        probes = tuple(probe_set)
        candidates = tuple(candidate_set)
        if not probes or not candidates:
            if self._run is None:
                self._state = BatchState.REJECTED
            logger.warning(
                "Batch rejected: %d probes, %d candidates",
                len(probes),
                len(candidates),
            )
            raise MissingInput()

        run = BatchRun(
            batch_id=str(uuid.uuid4()),
            threshold=normalize_threshold(threshold),
            probes=probes,
            candidates=candidates,
        )
        self._pending = run
        return self._drive(run)

    async def run_batch(
        self,
        probe_set: Iterable[FileRecord],
        candidate_set: Iterable[FileRecord],
        threshold: float,
    ) -> BatchSummary | None:
        """Run a batch to the end and return its summary.

        Returns ``None`` when the batch was cancelled.
        """
        summary: BatchSummary | None = None
        async for event in self.submit_batch(probe_set, candidate_set, threshold):
            if event.summary is not None:
                summary = event.summary
        return summary

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _start(self, run: BatchRun) -> bool:
        """Promote the pending *run* to the current batch."""
        if self._pending is not run:
            run.state = BatchState.CANCELLED
            logger.info("Batch %s superseded before it started", run.batch_id)
            return False
        self._pending = None
        self._run = run
        run.state = BatchState.RUNNING
        run.progress.start(len(run.probes))
        self._state = BatchState.RUNNING
        logger.info(
            "Batch %s started: %d probes x %d candidates at threshold %g",
            run.batch_id,
            len(run.probes),
            len(run.candidates),
            run.threshold,
        )
        return True

    async def _drive(self, run: BatchRun) -> AsyncIterator[BatchEvent]:
        if not self._start(run):
            yield BatchEvent(
                event="cancelled",
                batch_id=run.batch_id,
                progress=run.progress.snapshot(),
            )
            return

        context = PluginContext(batch_id=run.batch_id, threshold=run.threshold)
        self.plugins.trigger_hook(
            HOOK_BATCH_START,
            context=context,
            total_probes=len(run.probes),
            total_candidates=len(run.candidates),
        )
        candidates_by_name = {c.name: c for c in run.candidates}

        try:
            for probe in run.probes:
                if run.cancel_requested:
                    break
                result = await self._process_probe(run, probe, candidates_by_name, context)
                if result is None or run.cancel_requested:
                    break

                run.append(result)
                progress = run.progress.advance()
                self.plugins.trigger_hook(
                    HOOK_PROBE_COMPLETE, context=context, result=result
                )
                yield BatchEvent(
                    event="probe",
                    batch_id=run.batch_id,
                    progress=progress,
                    result=result,
                )
                if self.step_delay > 0 and not run.cancel_requested:
                    await asyncio.sleep(self.step_delay)

            if run.cancel_requested:
                self._mark_cancelled(run)
                yield BatchEvent(
                    event="cancelled",
                    batch_id=run.batch_id,
                    progress=run.progress.snapshot(),
                )
                return

            summary = self._complete(run)
            self.plugins.trigger_hook(
                HOOK_BATCH_COMPLETE, context=context, summary=summary
            )
            yield BatchEvent(
                event="complete",
                batch_id=run.batch_id,
                progress=run.progress.snapshot(),
                summary=summary,
            )
        finally:
            # Closed by the consumer (e.g. the browser disconnected).
            if run.state is BatchState.RUNNING:
                self._mark_cancelled(run)

    async def _process_probe(
        self,
        run: BatchRun,
        probe: FileRecord,
        candidates_by_name: dict[str, FileRecord],
        context: PluginContext,
    ) -> ProbeResult | None:
        """Run one comparison call.  Returns ``None`` if cancelled mid-call."""
        call = asyncio.ensure_future(
            self.client.compare_faces([probe], run.candidates, run.threshold)
        )
        run.inflight = call
        try:
            response = await call
        except asyncio.CancelledError:
            if run.cancel_requested and call.cancelled():
                logger.info("Batch %s: call for %s abandoned", run.batch_id, probe.name)
                return None
            raise
        except ProbeCallFailure as e:
            logger.warning(
                "Batch %s: probe %s failed: %s", run.batch_id, probe.name, e
            )
            run.errors.append(
                ProbeError(
                    probe_id=probe.id,
                    probe_name=probe.name,
                    kind=e.kind,
                    status_code=e.status_code,
                    message=str(e),
                )
            )
            if isinstance(e, AuthFailure) and not run.session_invalidated:
                run.session_invalidated = True
                self.plugins.trigger_hook(
                    HOOK_SESSION_INVALIDATED, context=context, reason=str(e)
                )
            return ProbeResult(probe=probe, failed=True)
        finally:
            run.inflight = None

        if run.cancel_requested:
            return None

        matches = tuple(
            to_match_result(m, candidates_by_name, run.threshold)
            for m in response.matches
            if m.matched and m.input_file == probe.name
        )
        logger.debug(
            "Batch %s: probe %s matched %d candidates",
            run.batch_id,
            probe.name,
            len(matches),
        )
        return ProbeResult(
            probe=probe, matches=matches, service_errors=tuple(response.errors)
        )

    def _complete(self, run: BatchRun) -> BatchSummary:
        progress = run.progress.finish()
        run.state = (
            BatchState.COMPLETED_WITH_ERRORS if run.errors else BatchState.COMPLETED
        )
        results = run.results
        matched_probes = sum(1 for r in results if r.matches)
        message = (
            f"Found {run.total_matches} matches for {matched_probes} "
            f"out of {len(run.probes)} images."
        )
        if run.errors:
            message += f" {len(run.errors)} image(s) could not be processed."

        run.summary = BatchSummary(
            batch_id=run.batch_id,
            state=run.state,
            threshold=run.threshold,
            total_probes=len(run.probes),
            processed=progress.current,
            total_matches=run.total_matches,
            matched_probes=matched_probes,
            failed_probes=[e.probe_name for e in run.errors],
            errors=list(run.errors),
            message=message,
        )
        self._state = run.state
        logger.info("Batch %s %s: %s", run.batch_id, run.state.value, message)
        return run.summary

    def _mark_cancelled(self, run: BatchRun) -> None:
        if run.state is not BatchState.RUNNING:
            return
        run.cancel_requested = True
        run.state = BatchState.CANCELLED
        if run is self._run:
            self._state = BatchState.CANCELLED
        logger.info(
            "Batch %s cancelled after %d of %d probes",
            run.batch_id,
            len(run.results),
            len(run.probes),
        )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel(self) -> bool:
        """Abandon the running batch.

        The in-flight call is cancelled; a call that still resolves is
        discarded.  Results appended so far stay readable.  Returns
        ``False`` when no batch was running.  A submitted batch whose
        stream has not started yet is dropped as well.
        """
        dropped_pending = self.discard_pending()
        run = self._run
        if run is None or run.state is not BatchState.RUNNING:
            return dropped_pending
        run.cancel_requested = True
        if run.inflight is not None and not run.inflight.done():
            run.inflight.cancel()
        self._mark_cancelled(run)
        return True

    def discard_pending(self) -> bool:
        """Drop a submitted batch whose stream has not started.

        Its stream, if consumed later, only yields ``cancelled``.
        """
        if self._pending is None:
            return False
        logger.info("Batch %s discarded before it started", self._pending.batch_id)
        self._pending = None
        return True

    def reset(self) -> None:
        """Discard the last batch's results and progress."""
        if self.is_running:
            raise BatchAlreadyRunning("Cannot reset while a batch is running")
        self.discard_pending()
        self._run = None
        self._state = BatchState.IDLE

    def select(self, probe_id: str) -> ProbeResult:
        """Make the result for *probe_id* the selected one for display."""
        run = self._run
        if run is not None:
            for result in run.results:
                if result.probe.id == probe_id:
                    run.selected_probe_id = probe_id
                    return result
        raise UnknownFileError(probe_id)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def progress(self) -> ProgressState:
        if self._run is None:
            return ProgressState()
        return self._run.progress.snapshot()

    def results(self) -> tuple[ProbeResult, ...]:
        if self._run is None:
            return ()
        return self._run.results

    def snapshot(
        self, display_threshold: float | None = None, matched_only: bool = False
    ) -> BatchSnapshot:
        """Return a read-only view of the current batch.

        *display_threshold* re-tiers every match for display without
        dropping any; *matched_only* hides probes without matches.
        """
        run = self._run
        if run is None:
            return BatchSnapshot(
                batch_id=None,
                state=self.state,
                threshold=None,
                progress=ProgressState(),
                results=[],
            )

        results = list(run.results)
        if matched_only:
            results = [r for r in results if r.matches]
        if display_threshold is not None:
            results = [
                r.model_copy(
                    update={
                        "matches": tuple(
                            retier(m, display_threshold) for m in r.matches
                        )
                    }
                )
                for r in results
            ]

        return BatchSnapshot(
            batch_id=run.batch_id,
            state=self.state,
            threshold=run.threshold,
            progress=run.progress.snapshot(),
            results=results,
            selected_probe_id=run.selected_probe_id,
            summary=run.summary,
        )
