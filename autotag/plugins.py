"""
autotag plugin architecture

Tag extraction strategies are plugins implementing ``TagExtractor``. The
dispatcher looks them up in a ``PluginRegistry`` by the method name carried
in each call's ``ExtractionConfig``, so a new strategy is a new plugin, not a
new branch.

Key features:
- Instantiable registry (not global) for testing and isolation
- Version compatibility checking
- Priority-based plugin selection
- Event hooks for post-processing
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Callable
from dataclasses import dataclass
import logging
from enum import Enum

from .config import ExtractionConfig, ExtractionMethod

logger = logging.getLogger(__name__)

AUTOTAG_PLUGIN_API_VERSION = "1.0"


# ============================================================================
# Plugin Metadata
# ============================================================================

@dataclass
class PluginMetadata:
    """Metadata for a plugin."""
    name: str
    version: str
    author: str = ""
    description: str = ""
    api_version_required: str = AUTOTAG_PLUGIN_API_VERSION
    priority: int = 50  # 0-100, with 50 as default
    enabled: bool = True


class PluginPriority(Enum):
    """Standard priority levels for plugins."""
    LOWEST = 0
    LOW = 25
    NORMAL = 50
    HIGH = 75
    HIGHEST = 100


# ============================================================================
# Plugin Interfaces
# ============================================================================

class Plugin(ABC):
    """Base class for all plugins."""

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Return plugin metadata."""
        pass

    @property
    def name(self) -> str:
        return self.metadata.name

    def validate(self) -> bool:
        """
        Validate that the plugin is properly configured.
        Override for custom validation logic.
        """
        return True

    def on_register(self, registry: 'PluginRegistry') -> None:
        """Called when plugin is registered."""
        pass

    def on_unregister(self, registry: 'PluginRegistry') -> None:
        """Called when plugin is unregistered."""
        pass


class TagExtractor(Plugin):
    """
    Interface for tag extraction strategies.

    Implementations must not raise for runtime failures (network errors,
    bad responses, empty input); they return an empty list instead.
    """

    @property
    @abstractmethod
    def method(self) -> ExtractionMethod:
        """The extraction method this plugin serves."""
        pass

    @abstractmethod
    def extract(self, content: str, config: ExtractionConfig) -> List[str]:
        """Extract candidate tags from content."""
        pass


# ============================================================================
# Plugin Registry
# ============================================================================

class PluginError(Exception):
    """Base exception for plugin-related errors."""
    pass


class PluginVersionError(PluginError):
    """Raised when plugin version is incompatible."""
    pass


class PluginValidationError(PluginError):
    """Raised when plugin validation fails."""
    pass


class PluginRegistry:
    """Registry of extraction plugins and event hooks."""

    PLUGIN_INTERFACES = {
        'tag_extractor': TagExtractor,
    }

    def __init__(self, validate_strict: bool = True):
        """
        Initialize the plugin registry.

        Args:
            validate_strict: If True, raise errors on validation failures.
                           If False, log warnings and skip invalid plugins.
        """
        self._plugins: Dict[str, List[Plugin]] = {
            plugin_type: [] for plugin_type in self.PLUGIN_INTERFACES
        }
        self._hooks: Dict[str, List[Callable]] = {}
        self.validate_strict = validate_strict

    def register(self, plugin: Plugin, plugin_type: str = None) -> None:
        """
        Register a plugin instance.

        Args:
            plugin: The plugin instance
            plugin_type: Type of plugin (auto-detected if not provided)

        Raises:
            PluginError: If plugin type is invalid
            PluginVersionError: If plugin requires an incompatible API version
            PluginValidationError: If plugin validation fails
        """
        if plugin_type is None:
            plugin_type = self._detect_plugin_type(plugin)

        if plugin_type not in self.PLUGIN_INTERFACES:
            raise PluginError(f"Unknown plugin type: {plugin_type}")

        expected_interface = self.PLUGIN_INTERFACES[plugin_type]
        if not isinstance(plugin, expected_interface):
            raise PluginError(
                f"Plugin {plugin.metadata.name} does not implement {expected_interface.__name__}"
            )

        if not self._check_version_compatibility(plugin.metadata.api_version_required):
            self._reject(
                PluginVersionError,
                f"Plugin {plugin.metadata.name} requires plugin API version "
                f"{plugin.metadata.api_version_required}, but current version is "
                f"{AUTOTAG_PLUGIN_API_VERSION}"
            )
            return

        try:
            valid = plugin.validate()
        except Exception as e:
            self._reject(PluginValidationError, f"Plugin {plugin.metadata.name} validation error: {e}", e)
            return
        if not valid:
            self._reject(PluginValidationError, f"Plugin {plugin.metadata.name} validation failed")
            return

        for existing in self._plugins[plugin_type]:
            if existing.metadata.name == plugin.metadata.name:
                logger.warning(
                    f"Plugin {plugin.metadata.name} already registered for {plugin_type}, "
                    f"replacing"
                )
                self._plugins[plugin_type].remove(existing)
                existing.on_unregister(self)
                break

        self._plugins[plugin_type].append(plugin)
        self._plugins[plugin_type].sort(
            key=lambda p: p.metadata.priority,
            reverse=True
        )

        plugin.on_register(self)

        logger.debug(
            f"Registered {plugin_type}: {plugin.metadata.name} "
            f"(priority: {plugin.metadata.priority})"
        )

    def _reject(self, error_class, message: str, cause: Exception = None) -> None:
        if self.validate_strict:
            raise error_class(message) from cause
        logger.warning(message)

    def unregister(self, plugin_type: str, name: str) -> bool:
        """
        Unregister a plugin.

        Returns:
            True if plugin was found and unregistered
        """
        if plugin_type not in self._plugins:
            return False

        for plugin in self._plugins[plugin_type]:
            if plugin.metadata.name == name:
                plugin.on_unregister(self)
                self._plugins[plugin_type].remove(plugin)
                logger.debug(f"Unregistered {plugin_type}: {name}")
                return True

        return False

    def get_plugins(self, plugin_type: str, enabled_only: bool = True) -> List[Plugin]:
        """Get all plugins of a specific type."""
        if plugin_type not in self._plugins:
            return []

        plugins = self._plugins[plugin_type]
        if enabled_only:
            plugins = [p for p in plugins if p.metadata.enabled]

        return plugins

    def get_plugin(self, plugin_type: str, name: str = None) -> Optional[Plugin]:
        """Get a specific plugin or the highest priority one."""
        plugins = self.get_plugins(plugin_type)

        if not plugins:
            return None

        if name:
            for plugin in plugins:
                if plugin.metadata.name == name:
                    return plugin
            return None

        return plugins[0]

    def get_extractor(self, method: ExtractionMethod) -> Optional[TagExtractor]:
        """Get the highest priority enabled extractor serving ``method``."""
        for plugin in self.get_plugins('tag_extractor'):
            if plugin.method is method:
                return plugin
        return None

    def set_plugin_enabled(self, plugin_type: str, name: str, enabled: bool) -> bool:
        """Enable or disable a plugin."""
        for plugin in self._plugins.get(plugin_type, []):
            if plugin.metadata.name == name:
                plugin.metadata.enabled = enabled
                logger.info(f"{'Enabled' if enabled else 'Disabled'} {plugin_type}: {name}")
                return True
        return False

    def register_hook(self, event: str, callback: Callable) -> None:
        """Register a callback for an event."""
        self._hooks.setdefault(event, []).append(callback)
        logger.debug(f"Registered hook for event: {event}")

    def unregister_hook(self, event: str, callback: Callable) -> bool:
        """Unregister a callback for an event."""
        if event in self._hooks and callback in self._hooks[event]:
            self._hooks[event].remove(callback)
            if not self._hooks[event]:
                del self._hooks[event]
            logger.debug(f"Unregistered hook for event: {event}")
            return True
        return False

    def trigger_hook(self, event: str, *args, **kwargs) -> List[Any]:
        """Trigger all callbacks for an event."""
        results = []
        for callback in self._hooks.get(event, []):
            try:
                results.append(callback(*args, **kwargs))
            except Exception as e:
                logger.error(f"Hook {getattr(callback, '__name__', callback)} failed for event {event}: {e}")
                if self.validate_strict:
                    raise
        return results

    def get_plugin_info(self, plugin_type: str = None) -> Dict[str, Any]:
        """Get information about registered plugins."""
        info = {}

        types_to_check = [plugin_type] if plugin_type else self._plugins.keys()

        for ptype in types_to_check:
            info[ptype] = []
            for plugin in self._plugins.get(ptype, []):
                entry = {
                    'name': plugin.metadata.name,
                    'version': plugin.metadata.version,
                    'author': plugin.metadata.author,
                    'description': plugin.metadata.description,
                    'priority': plugin.metadata.priority,
                    'enabled': plugin.metadata.enabled,
                }
                if isinstance(plugin, TagExtractor):
                    entry['method'] = plugin.method.value
                info[ptype].append(entry)

        return info

    def _detect_plugin_type(self, plugin: Plugin) -> str:
        """Auto-detect plugin type based on inheritance."""
        for plugin_type, interface in self.PLUGIN_INTERFACES.items():
            if isinstance(plugin, interface):
                return plugin_type
        raise PluginError(f"Could not detect plugin type for {plugin.__class__.__name__}")

    def _check_version_compatibility(self, required_version: str) -> bool:
        """Major version check against the current plugin API version."""
        current_major = AUTOTAG_PLUGIN_API_VERSION.split('.')[0]
        required_major = required_version.split('.')[0]
        return current_major == required_major

    def clear(self) -> None:
        """Clear all registered plugins and hooks."""
        for plugin_type in self._plugins:
            for plugin in list(self._plugins[plugin_type]):
                plugin.on_unregister(self)
            self._plugins[plugin_type].clear()
        self._hooks.clear()
        logger.debug("Cleared all plugins from registry")
