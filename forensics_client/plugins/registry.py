"""Plugin registry for batch lifecycle hooks.

PluginRegistry loads BasePlugin subclasses from a plugin directory and
dispatches batch hooks to them.  A plugin that raises is logged and
skipped; it can never abort a running batch.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Any

from forensics_client.plugins.base_plugin import BasePlugin

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Holds plugin instances by name and fans hook calls out to them."""

    def __init__(self) -> None:
        self._plugins: dict[str, BasePlugin] = {}

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_plugins(self, plugin_dir: Path) -> list[str]:
        """Load every plugin package found directly under *plugin_dir*.

        A package is a sub-directory with an ``__init__.py``.  Each
        concrete :class:`BasePlugin` subclass it defines is instantiated
        and registered.  Returns the names that were registered.
        """
        if not plugin_dir.is_dir():
            logger.debug("Plugin directory %s not found, skipping", plugin_dir)
            return []

        discovered: list[str] = []
        for package in sorted(p for p in plugin_dir.iterdir() if p.is_dir()):
            init_file = package / "__init__.py"
            if not init_file.exists():
                continue
            try:
                module = self._load_module(f"plugins.{package.name}", init_file)
            except Exception:
                logger.exception("Failed to load plugin package %s", package.name)
                continue
            if module is None:
                continue

            for _attr_name, cls in inspect.getmembers(module, inspect.isclass):
                if not issubclass(cls, BasePlugin) or inspect.isabstract(cls):
                    continue
                try:
                    plugin = cls()
                except Exception:
                    logger.exception("Could not instantiate plugin %s", cls.__name__)
                    continue
                self.register_plugin(plugin)
                discovered.append(plugin.name)
                logger.info("Discovered plugin: %s", plugin.name)

        return discovered

    @staticmethod
    def _load_module(module_name: str, init_file: Path):
        spec = importlib.util.spec_from_file_location(module_name, str(init_file))
        if spec is None or spec.loader is None:
            logger.warning("Could not create module spec for %s", module_name)
            return None
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
        return module

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_plugin(self, plugin: BasePlugin) -> None:
        """Register *plugin* and call its ``on_activate`` hook."""
        self._plugins[plugin.name] = plugin
        try:
            plugin.on_activate()
        except Exception:
            logger.exception("Plugin %s raised during on_activate", plugin.name)

    def unregister_plugin(self, name: str) -> BasePlugin | None:
        """Deactivate and remove the plugin called *name*, if registered."""
        plugin = self._plugins.pop(name, None)
        if plugin is not None:
            try:
                plugin.on_deactivate()
            except Exception:
                logger.exception("Plugin %s raised during on_deactivate", name)
        return plugin

    # ------------------------------------------------------------------
    # Hook invocation
    # ------------------------------------------------------------------

    def trigger_hook(self, hook_name: str, **kwargs: Any) -> list[Any]:
        """Call *hook_name* on every plugin, in registration order.

        Returns the collected return values of the plugins that did not
        raise.
        """
        results: list[Any] = []
        for plugin_name, plugin in list(self._plugins.items()):
            method = getattr(plugin, hook_name, None)
            if method is None:
                continue
            try:
                results.append(method(**kwargs))
            except Exception:
                logger.exception(
                    "Plugin %s raised in hook %s", plugin_name, hook_name
                )
        return results

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get_plugin(self, name: str) -> BasePlugin | None:
        """Return a registered plugin by *name*, or ``None``."""
        return self._plugins.get(name)

    def list_plugins(self) -> list[str]:
        """Return the names of all registered plugins."""
        return list(self._plugins)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Deactivate and drop every registered plugin."""
        for name in list(self._plugins):
            self.unregister_plugin(name)
