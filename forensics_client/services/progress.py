"""Per-batch progress counter."""

from forensics_client.models.face_recognition import ProgressState


class ProgressModel:
    """Current/total/percent counter mutated by the batch orchestrator.

    Readers get immutable :class:`ProgressState` snapshots.  ``current``
    never decreases within a batch and ``percent`` is always
    ``round(current / total * 100)``.
    """

    def __init__(self) -> None:
        self._current = 0
        self._total = 0

    def start(self, total: int) -> None:
        """Reset to ``{0, total, 0}``."""
        if total < 0:
            raise ValueError("total must be non-negative")
        self._current = 0
        self._total = total

    def advance(self) -> ProgressState:
        """Count one more processed item and return the new snapshot."""
        if self._current < self._total:
            self._current += 1
        return self.snapshot()

    def finish(self) -> ProgressState:
        """Mark the batch complete: ``{total, total, 100}``."""
        self._current = self._total
        return self.snapshot()

    @property
    def percent(self) -> float:
        if self._total == 0:
            return 0.0
        return float(round(self._current / self._total * 100))

    def snapshot(self) -> ProgressState:
        return ProgressState(
            current=self._current, total=self._total, percent=self.percent
        )
