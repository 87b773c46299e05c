"""Kind reconcilers for the weaver operator."""

from .libraries import AppReconciler, ScriptLibraryReconciler, ThemeReconciler
from .pages import (
    HostReconciler,
    PageArchetypeReconciler,
    PageFooterReconciler,
    PageHeaderReconciler,
    PageNavigationReconciler,
)
from .translation import TranslationReconciler
from .utility import UtilityPageReconciler
from .binding import PageBindingReconciler

__all__ = [
    "AppReconciler",
    "ScriptLibraryReconciler",
    "ThemeReconciler",
    "HostReconciler",
    "PageArchetypeReconciler",
    "PageFooterReconciler",
    "PageHeaderReconciler",
    "PageNavigationReconciler",
    "TranslationReconciler",
    "UtilityPageReconciler",
    "PageBindingReconciler",
]
