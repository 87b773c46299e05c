"""Tests for plugin discovery and handler registration."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from weaver.plugins import registry as registry_module
from weaver.plugins.base import PluginBase
from weaver.plugins.libraries import LibrariesPlugin
from weaver.plugins.pages import PagesPlugin
from weaver.plugins.registry import PluginRegistry


class BrokenPlugin(PluginBase):
    name = "broken"
    version = "0.1.0"
    description = "Fails to initialise"
    reconcilers = []

    @property
    def models(self):
        raise RuntimeError("models unavailable")


@pytest.fixture
def plugin_registry():
    registry = PluginRegistry()
    registry.clear()
    yield registry
    registry.clear()


class TestPluginRegistry:
    def test_singleton(self, plugin_registry):
        assert PluginRegistry() is plugin_registry

    def test_builtin_discovery(self, plugin_registry):
        assert plugin_registry.discover_plugins(builtin_only=True) == 2
        assert plugin_registry.list_plugin_names() == ["libraries", "pages"]
        assert plugin_registry.initialise_all_plugins() == {"libraries": True, "pages": True}
        assert [p.name for p in plugin_registry.initialised_plugins()] == ["libraries", "pages"]

    def test_duplicate_registration(self, plugin_registry):
        assert plugin_registry.register_plugin(PagesPlugin())
        assert not plugin_registry.register_plugin(PagesPlugin())
        assert not plugin_registry.register_plugin(object())

    def test_external_plugins(self, plugin_registry, monkeypatch):
        good = MagicMock()
        good.name = "broken"
        good.load.return_value = BrokenPlugin
        bad = MagicMock()
        bad.name = "not-a-plugin"
        bad.load.return_value = dict
        missing = MagicMock()
        missing.name = "missing"
        missing.load.side_effect = ImportError("No module named 'missing'")

        monkeypatch.setattr(
            registry_module, "entry_points", lambda group: [good, bad, missing]
        )
        assert plugin_registry.discover_plugins() == 3
        assert "broken" in plugin_registry.list_plugin_names()

    def test_builtin_entry_points_are_skipped(self, plugin_registry, monkeypatch, caplog):
        builtin = MagicMock()
        builtin.name = "pages"
        builtin.module = "weaver.plugins.pages"
        monkeypatch.setattr(registry_module, "entry_points", lambda group: [builtin])

        with caplog.at_level(logging.WARNING):
            assert plugin_registry.discover_plugins() == 2

        builtin.load.assert_not_called()
        assert "already registered" not in caplog.text

    def test_failed_initialisation_is_reported(self, plugin_registry):
        plugin_registry.register_plugin(BrokenPlugin())
        plugin_registry.register_plugin(PagesPlugin())
        assert plugin_registry.initialise_all_plugins() == {"broken": False, "pages": True}
        assert [p.name for p in plugin_registry.initialised_plugins()] == ["pages"]

    def test_handlers_registered_for_initialised_plugins(self, plugin_registry, catalog, monkeypatch):
        registered = []
        monkeypatch.setattr(
            "weaver.handlers.reconcile.register_reconcile_handlers",
            lambda descriptor, registry=None: registered.append(descriptor.kind),
        )
        plugin_registry.register_plugin(LibrariesPlugin())
        plugin_registry.register_plugin(PagesPlugin())
        plugin_registry.get_plugin("libraries").initialise()

        plugin_registry.register_all_handlers(catalog)

        assert registered == [
            "ScriptLibrary",
            "ClusterScriptLibrary",
            "Theme",
            "ClusterTheme",
            "App",
            "ClusterApp",
        ]


class TestPlugins:
    def test_metadata(self):
        metadata = PagesPlugin().get_metadata()
        assert metadata["name"] == "pages"
        assert "PageBindingSpec" in metadata["models"]
        assert {"UtilityPageSpec", "TranslationSpec", "InternalTranslationSpec"} <= set(
            metadata["models"]
        )
        assert "InternalTranslation" not in metadata["kinds"]
        assert metadata["kinds"][-1] == "PageBinding"

    def test_models_are_registered(self):
        for plugin in (LibrariesPlugin(), PagesPlugin()):
            assert all(hasattr(model, "_crd_group") for model in plugin.models)

    def test_build_reconcilers(self, catalog, config):
        reconcilers = LibrariesPlugin().build_reconcilers(catalog, config)
        assert [r.kind for r in reconcilers] == ["ScriptLibrary", "Theme", "App"]
        assert all(r.config is config for r in reconcilers)


def test_packaging_matches_discovery():
    pyproject = (Path(__file__).parent.parent / "pyproject.toml").read_text()
    # entry_points(group=...) needs Python 3.10
    assert 'requires-python = ">=3.10"' in pyproject
    assert "[project.entry-points.weaver_plugins]" not in pyproject
