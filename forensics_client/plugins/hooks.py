"""Hook name constants for the plugin system.

Centralizes hook names so registry and tests reference constants,
not magic strings. All plugin hooks are defined here.
"""

from __future__ import annotations

# Batch hooks
HOOK_BATCH_START: str = "on_batch_start"
HOOK_PROBE_COMPLETE: str = "on_probe_complete"
HOOK_BATCH_COMPLETE: str = "on_batch_complete"
HOOK_SESSION_INVALIDATED: str = "on_session_invalidated"

# Lifecycle hooks
HOOK_ACTIVATE: str = "on_activate"
HOOK_DEACTIVATE: str = "on_deactivate"

# All hooks in invocation order (lifecycle first, then batch)
ALL_HOOKS: list[str] = [
    HOOK_ACTIVATE,
    HOOK_BATCH_START,
    HOOK_PROBE_COMPLETE,
    HOOK_SESSION_INVALIDATED,
    HOOK_BATCH_COMPLETE,
    HOOK_DEACTIVATE,
]
