"""Example plugin demonstrating the forensics client hook API.

This plugin subclasses :class:`BasePlugin` and overrides all batch
hooks to show how the plugin contract works.  It serves as both a
reference implementation and a smoke-test for the plugin system.
"""

from __future__ import annotations

import logging

from forensics_client.models.face_recognition import BatchSummary, ProbeResult
from forensics_client.plugins.base_plugin import BasePlugin, PluginContext

logger = logging.getLogger(__name__)


class ExamplePlugin(BasePlugin):
    """A demonstration plugin that logs batch events and counts probes."""

    def __init__(self) -> None:
        self.probes_seen = 0
        self.invalidations: list[str] = []

    @property
    def name(self) -> str:
        return "example"

    @property
    def description(self) -> str:
        return "Example plugin demonstrating the hook API"

    # ------------------------------------------------------------------
    # Batch hooks
    # ------------------------------------------------------------------

    def on_batch_start(
        self, *, context: PluginContext, total_probes: int, total_candidates: int
    ) -> None:
        self.probes_seen = 0
        logger.info(
            "Example plugin: batch %s starting (%d x %d)",
            context.batch_id,
            total_probes,
            total_candidates,
        )

    def on_probe_complete(
        self, *, context: PluginContext, result: ProbeResult
    ) -> None:
        self.probes_seen += 1

    def on_batch_complete(
        self, *, context: PluginContext, summary: BatchSummary
    ) -> None:
        logger.info(
            "Example plugin: batch %s complete -- %s",
            context.batch_id,
            summary.message,
        )

    def on_session_invalidated(self, *, context: PluginContext, reason: str) -> None:
        self.invalidations.append(reason)
        logger.warning("Example plugin: session invalidated -- %s", reason)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_activate(self) -> None:
        logger.info("Example plugin activated")

    def on_deactivate(self) -> None:
        logger.info("Example plugin deactivated")
