"""Plugin registry for discovering and managing plugins."""

import importlib
import logging
from importlib.metadata import entry_points

from .base import PluginBase

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "weaver_plugins"

BUILTIN_PLUGINS = [
    "weaver.plugins.libraries",
    "weaver.plugins.pages",
]


class PluginRegistry:
    """Registry for discovering and managing weaver plugins."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._plugins = {}
            cls._instance._initialised = False
        return cls._instance

    def __init__(self):
        if not self._initialised:
            self._plugins = {}
            self._initialised = True

    def discover_plugins(self, builtin_only=False):
        """Discover and load all available plugins.

        Args:
            builtin_only: If True, only load built-in plugins

        Returns:
            int: Number of plugins discovered
        """
        logger.info("Discovering plugins...")

        builtin_count = self._load_builtin_plugins()

        external_count = 0
        if not builtin_only:
            external_count = self._load_external_plugins()

        total_count = builtin_count + external_count
        logger.info(
            f"Discovered {total_count} plugins ({builtin_count} builtin, {external_count} external)"
        )

        return total_count

    def _load_builtin_plugins(self):
        """Load built-in plugins from the weaver.plugins package."""
        loaded_count = 0
        for plugin_module in BUILTIN_PLUGINS:
            try:
                module = importlib.import_module(plugin_module)
            except ImportError as e:
                logger.warning(f"Could not load builtin plugin {plugin_module}: {e}")
                continue

            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if isinstance(attr, type) and issubclass(attr, PluginBase) and attr != PluginBase:
                    if self.register_plugin(attr()):
                        loaded_count += 1
                    break

        return loaded_count

    def _load_external_plugins(self):
        """Load external plugins via Python entry points."""
        loaded_count = 0

        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            if entry_point.module in BUILTIN_PLUGINS:
                logger.debug(f"Skipping entry point {entry_point.name}: built-in plugin")
                continue

            try:
                plugin_class = entry_point.load()
            except ImportError as e:
                logger.error(f"Failed to load external plugin {entry_point.name}: {e}")
                continue

            if not (isinstance(plugin_class, type) and issubclass(plugin_class, PluginBase)):
                logger.error(f"Plugin {entry_point.name} does not inherit from PluginBase")
                continue

            plugin_instance = plugin_class()
            if self.register_plugin(plugin_instance):
                loaded_count += 1
                logger.info(f"Loaded external plugin: {plugin_instance.name}")

        return loaded_count

    def register_plugin(self, plugin):
        """Register a plugin instance.

        Args:
            plugin: Plugin instance to register

        Returns:
            bool: True if registration successful, False otherwise
        """
        if not isinstance(plugin, PluginBase):
            logger.error(f"Plugin must inherit from PluginBase: {type(plugin)}")
            return False

        plugin_name = plugin.name

        if plugin_name in self._plugins:
            existing_version = self._plugins[plugin_name].version
            logger.warning(
                f"Plugin {plugin_name} already registered "
                f"(existing: {existing_version}, new: {plugin.version})"
            )
            return False

        self._plugins[plugin_name] = plugin
        logger.debug(f"Registered plugin: {plugin_name} v{plugin.version}")
        return True

    def initialise_all_plugins(self):
        """Initialise all registered plugins.

        Returns:
            Dict[str, bool]: Map of plugin names to initialisation success status
        """
        logger.info("Initialising all plugins...")

        results = {name: plugin.initialise() for name, plugin in self._plugins.items()}

        successful_count = sum(1 for success in results.values() if success)
        logger.info(f"Initialised {successful_count}/{len(self._plugins)} plugins successfully")

        return results

    def initialised_plugins(self):
        """Plugins whose initialisation succeeded, in registration order."""
        return [plugin for plugin in self._plugins.values() if plugin._initialised]

    def register_all_handlers(self, catalog, registry=None):
        """Register kopf handlers for all initialised plugins."""
        logger.info("Registering handlers for all plugins...")

        for plugin_name, plugin in self._plugins.items():
            if not plugin._initialised:
                logger.warning(
                    f"Skipping handler registration for uninitialised plugin: {plugin_name}"
                )
                continue

            plugin.register_handlers(catalog, registry=registry)
            logger.debug(f"Registered handlers for plugin: {plugin_name}")

    def get_plugin(self, name: str):
        """Get a plugin by name."""
        return self._plugins.get(name)

    def list_plugin_names(self):
        """Get list of all plugin names."""
        return list(self._plugins.keys())

    def clear(self):
        """Forget every registered plugin (useful for testing)."""
        self._plugins.clear()
