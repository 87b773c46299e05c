"""Script library, theme and app plugin for the weaver operator."""

import logging

from .base import PluginBase

logger = logging.getLogger(__name__)


class LibrariesPlugin(PluginBase):
    """Plugin for script libraries, themes and apps (and their cluster variants)."""

    @property
    def name(self):
        return "libraries"

    @property
    def version(self):
        return "1.0.0"

    @property
    def description(self):
        return "Validates script libraries, themes and apps published to an npm registry"

    @property
    def models(self):
        from weaver.models.libraries import (
            AppSpec,
            ClusterAppSpec,
            ClusterScriptLibrarySpec,
            ClusterThemeSpec,
            ScriptLibrarySpec,
            ThemeSpec,
        )

        return [
            ScriptLibrarySpec,
            ClusterScriptLibrarySpec,
            ThemeSpec,
            ClusterThemeSpec,
            AppSpec,
            ClusterAppSpec,
        ]

    @property
    def reconcilers(self):
        from weaver.reconcilers import AppReconciler, ScriptLibraryReconciler, ThemeReconciler

        return [ScriptLibraryReconciler, ThemeReconciler, AppReconciler]
