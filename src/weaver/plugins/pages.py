"""Page composition plugin for the weaver operator."""

import logging

from .base import PluginBase

logger = logging.getLogger(__name__)


class PagesPlugin(PluginBase):
    """Plugin for hosts, page fragments, archetypes, translations and pages."""

    @property
    def name(self):
        return "pages"

    @property
    def version(self):
        return "1.0.0"

    @property
    def description(self):
        return "Composes pages from hosts, archetypes and fragments into ConfigMaps"

    @property
    def models(self):
        from weaver.models.pages import (
            ClusterPageArchetypeSpec,
            ClusterPageFooterSpec,
            ClusterPageHeaderSpec,
            ClusterPageNavigationSpec,
            ClusterUtilityPageSpec,
            HostSpec,
            PageArchetypeSpec,
            PageBindingSpec,
            PageFooterSpec,
            PageHeaderSpec,
            PageNavigationSpec,
            UtilityPageSpec,
        )
        from weaver.models.translations import InternalTranslationSpec, TranslationSpec

        return [
            HostSpec,
            PageHeaderSpec,
            ClusterPageHeaderSpec,
            PageFooterSpec,
            ClusterPageFooterSpec,
            PageNavigationSpec,
            ClusterPageNavigationSpec,
            PageArchetypeSpec,
            ClusterPageArchetypeSpec,
            TranslationSpec,
            InternalTranslationSpec,
            UtilityPageSpec,
            ClusterUtilityPageSpec,
            PageBindingSpec,
        ]

    @property
    def reconcilers(self):
        from weaver.reconcilers import (
            HostReconciler,
            PageArchetypeReconciler,
            PageBindingReconciler,
            PageFooterReconciler,
            PageHeaderReconciler,
            PageNavigationReconciler,
            TranslationReconciler,
            UtilityPageReconciler,
        )

        return [
            PageHeaderReconciler,
            PageFooterReconciler,
            PageNavigationReconciler,
            PageArchetypeReconciler,
            HostReconciler,
            TranslationReconciler,
            UtilityPageReconciler,
            PageBindingReconciler,
        ]
