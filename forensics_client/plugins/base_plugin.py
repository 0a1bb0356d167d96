"""BasePlugin abstract class and PluginContext dataclass.

Defines the plugin contract for the forensics client. All plugins subclass
BasePlugin and override hooks they care about. Hooks use keyword-only
arguments to prevent breakage when new parameters are added in future
versions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from forensics_client.models.face_recognition import BatchSummary, ProbeResult


@dataclass
class PluginContext:
    """Extensible context object passed to all batch hooks.

    Future phases add fields (with defaults) without breaking existing plugins.
    """

    batch_id: str
    threshold: float
    metadata: dict[str, Any] | None = field(default=None)


class BasePlugin(ABC):
    """Abstract base class for all forensics client plugins.

    Subclass this and override the hooks you need. All hooks use keyword-only
    arguments (the ``*`` separator) so new parameters can be added without
    breaking existing plugins.

    Class Variables:
        api_version: Protocol version for future compatibility checks.
    """

    api_version: int = 1

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique plugin name. Must be implemented by subclasses."""
        ...

    @property
    def description(self) -> str:
        """Optional human-readable description."""
        return ""

    # ------------------------------------------------------------------
    # Batch hooks (keyword-only arguments)
    # ------------------------------------------------------------------

    def on_batch_start(
        self, *, context: PluginContext, total_probes: int, total_candidates: int
    ) -> None:
        """Called when a batch passes validation and starts running."""

    def on_probe_complete(
        self, *, context: PluginContext, result: ProbeResult
    ) -> None:
        """Called after each probe's result has been appended."""

    def on_batch_complete(
        self, *, context: PluginContext, summary: BatchSummary
    ) -> None:
        """Called when a batch finishes (with or without errors)."""

    def on_session_invalidated(self, *, context: PluginContext, reason: str) -> None:
        """Called when the backend rejects the access token (HTTP 401).

        Fired at most once per batch.  The host application is expected
        to log the user out.
        """

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_activate(self) -> None:
        """Called when the plugin is registered/activated."""

    def on_deactivate(self) -> None:
        """Called when the plugin is being shut down."""
