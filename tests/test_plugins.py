"""
Tests for the autotag plugin system.
"""

import pytest
from unittest.mock import MagicMock

from autotag.config import ExtractionMethod
from autotag.keywords import BuiltinExtractor
from autotag.plugins import (
    PluginRegistry, PluginMetadata, Plugin, PluginError,
    PluginVersionError, PluginValidationError, PluginPriority,
    TagExtractor,
)


class MockExtractorPlugin(TagExtractor):
    """Test implementation of TagExtractor."""

    def __init__(self, name="test_extractor", priority=50,
                 method=ExtractionMethod.BUILTIN):
        self._method = method
        self._metadata = PluginMetadata(
            name=name,
            version="1.0.0",
            author="Test Author",
            description="Test extractor",
            priority=priority
        )

    @property
    def metadata(self):
        return self._metadata

    @property
    def method(self):
        return self._method

    def extract(self, content, config):
        return ["test", "tag"]


class InvalidPlugin(Plugin):
    """Invalid plugin that doesn't implement any interface."""

    @property
    def metadata(self):
        return PluginMetadata(name="invalid", version="1.0.0")


class FailingValidationPlugin(MockExtractorPlugin):
    """Plugin that fails validation."""

    def validate(self):
        return False


class RaisingValidationPlugin(MockExtractorPlugin):
    """Plugin whose validation raises."""

    def validate(self):
        raise RuntimeError("no model configured")


class IncompatibleVersionPlugin(MockExtractorPlugin):
    """Plugin with incompatible version."""

    @property
    def metadata(self):
        return PluginMetadata(
            name="incompatible",
            version="1.0.0",
            api_version_required="2.0"
        )


class TestPluginRegistry:
    """Test PluginRegistry functionality."""

    @pytest.fixture
    def registry(self):
        """Create a fresh registry for each test."""
        return PluginRegistry()

    @pytest.fixture
    def lenient_registry(self):
        """Create a registry with lenient validation."""
        return PluginRegistry(validate_strict=False)

    def test_registry_initialization(self, registry):
        assert registry.validate_strict is True
        assert list(registry._plugins) == ["tag_extractor"]
        assert registry.get_plugins("tag_extractor") == []

    def test_register_valid_plugin(self, registry):
        plugin = MockExtractorPlugin()
        registry.register(plugin)

        assert registry.get_plugin("tag_extractor", "test_extractor") is plugin
        assert registry.get_plugins("tag_extractor") == [plugin]

    def test_register_invalid_type(self, registry):
        with pytest.raises(PluginError, match="Unknown plugin type"):
            registry.register(MockExtractorPlugin(), "content_extractor")

    def test_register_plugin_without_interface(self, registry):
        with pytest.raises(PluginError, match="Could not detect plugin type"):
            registry.register(InvalidPlugin())

    def test_register_wrong_interface(self, registry):
        with pytest.raises(PluginError, match="does not implement"):
            registry.register(InvalidPlugin(), "tag_extractor")

    def test_version_compatibility_check(self, registry):
        with pytest.raises(PluginVersionError):
            registry.register(IncompatibleVersionPlugin())

    def test_version_compatibility_lenient(self, lenient_registry):
        lenient_registry.register(IncompatibleVersionPlugin())
        assert lenient_registry.get_plugins("tag_extractor") == []

    def test_plugin_validation(self, registry):
        with pytest.raises(PluginValidationError):
            registry.register(FailingValidationPlugin())

    def test_plugin_validation_raising(self, registry):
        with pytest.raises(PluginValidationError, match="no model configured"):
            registry.register(RaisingValidationPlugin())

    def test_plugin_validation_lenient(self, lenient_registry):
        lenient_registry.register(FailingValidationPlugin())
        lenient_registry.register(RaisingValidationPlugin())
        assert lenient_registry.get_plugins("tag_extractor") == []

    def test_duplicate_plugin_replacement(self, registry):
        plugin1 = MockExtractorPlugin()
        plugin2 = MockExtractorPlugin()

        registry.register(plugin1)
        registry.register(plugin2)

        assert registry.get_plugins("tag_extractor") == [plugin2]

    def test_plugin_priority_ordering(self, registry):
        low = MockExtractorPlugin(name="low", priority=PluginPriority.LOW.value)
        high = MockExtractorPlugin(name="high", priority=PluginPriority.HIGH.value)

        registry.register(low)
        registry.register(high)

        assert registry.get_plugins("tag_extractor") == [high, low]
        assert registry.get_plugin("tag_extractor") is high
        assert registry.get_plugin("tag_extractor", "low") is low
        assert registry.get_plugin("tag_extractor", "missing") is None

    def test_get_extractor_by_method(self, registry):
        builtin = MockExtractorPlugin(name="b", method=ExtractionMethod.BUILTIN)
        remote = MockExtractorPlugin(name="r", method=ExtractionMethod.REMOTE)
        registry.register(builtin)
        registry.register(remote)

        assert registry.get_extractor(ExtractionMethod.BUILTIN) is builtin
        assert registry.get_extractor(ExtractionMethod.REMOTE) is remote
        assert registry.get_extractor(ExtractionMethod.UNSUPPORTED) is None

    def test_get_extractor_prefers_priority(self, registry):
        normal = MockExtractorPlugin(name="normal", method=ExtractionMethod.REMOTE)
        preferred = MockExtractorPlugin(name="preferred", priority=90,
                                        method=ExtractionMethod.REMOTE)
        registry.register(normal)
        registry.register(preferred)

        assert registry.get_extractor(ExtractionMethod.REMOTE) is preferred

    def test_unregister(self, registry):
        plugin = MockExtractorPlugin()
        registry.register(plugin)

        assert registry.unregister("tag_extractor", "test_extractor")
        assert registry.get_plugins("tag_extractor", enabled_only=False) == []
        assert not registry.unregister("tag_extractor", "test_extractor")
        assert not registry.unregister("unknown_type", "test_extractor")

    def test_enable_disable(self, registry):
        registry.register(MockExtractorPlugin())

        assert registry.set_plugin_enabled("tag_extractor", "test_extractor", False)
        assert registry.get_plugins("tag_extractor") == []
        assert len(registry.get_plugins("tag_extractor", enabled_only=False)) == 1
        assert not registry.set_plugin_enabled("tag_extractor", "missing", True)

    def test_register_and_unregister_callbacks(self, registry):
        plugin = MockExtractorPlugin()
        plugin.on_register = MagicMock()
        plugin.on_unregister = MagicMock()

        registry.register(plugin)
        plugin.on_register.assert_called_once_with(registry)

        registry.unregister("tag_extractor", "test_extractor")
        plugin.on_unregister.assert_called_once_with(registry)

    def test_get_plugin_info(self, registry):
        registry.register(BuiltinExtractor())
        info = registry.get_plugin_info()

        assert info["tag_extractor"][0]["name"] == "builtin"
        assert info["tag_extractor"][0]["method"] == "builtin"
        assert info["tag_extractor"][0]["enabled"] is True

    def test_clear(self, registry):
        registry.register(MockExtractorPlugin())
        registry.register_hook("event", lambda: None)

        registry.clear()

        assert registry.get_plugins("tag_extractor", enabled_only=False) == []
        assert registry.trigger_hook("event") == []


class TestHooks:
    """Test event hooks."""

    def test_trigger_collects_results(self):
        registry = PluginRegistry()
        registry.register_hook("event", lambda x: x * 2)
        registry.register_hook("event", lambda x: x + 1)

        assert registry.trigger_hook("event", 3) == [6, 4]

    def test_unregister_hook(self):
        registry = PluginRegistry()
        callback = MagicMock(return_value=1)
        registry.register_hook("event", callback)

        assert registry.unregister_hook("event", callback)
        assert not registry.unregister_hook("event", callback)
        assert registry.trigger_hook("event") == []

    def test_failing_hook_strict(self):
        registry = PluginRegistry(validate_strict=True)
        registry.register_hook("event", MagicMock(side_effect=ValueError("bad hook")))

        with pytest.raises(ValueError):
            registry.trigger_hook("event")

    def test_failing_hook_lenient(self):
        registry = PluginRegistry(validate_strict=False)
        registry.register_hook("event", MagicMock(side_effect=ValueError("bad hook")))
        registry.register_hook("event", lambda: "ok")

        assert registry.trigger_hook("event") == ["ok"]
