"""Reconcilers for hosts, page fragments and page archetypes."""

import logging

from weaver.constants import (
    KIND_HOST,
    KIND_PAGE_ARCHETYPE,
    KIND_PAGE_FOOTER,
    KIND_PAGE_HEADER,
    KIND_PAGE_NAVIGATION,
    KIND_SCRIPT_LIBRARY,
    KIND_THEME,
)
from weaver.engine.reconciler import KindReconciler
from weaver.engine.references import ReferencePath, ReferenceShape
from weaver.models.references import ObjectReference
from weaver.services.content import validate_content

logger = logging.getLogger(__name__)


def theme_reference(host_spec, default_theme_name):
    """The host's theme, or the default theme when none is set.

    Returns the reference and whether it was defaulted.
    """
    if host_spec.themeRef is not None and host_spec.themeRef.name:
        return host_spec.themeRef, False
    return ObjectReference(name=default_theme_name), True


class PageFragmentReconciler(KindReconciler):
    """Headers, footers and navigations: a template plus a script library."""

    references = ((ReferencePath("scriptLibraryRef"), KIND_SCRIPT_LIBRARY),)

    def reconcile(self, ctx, spec):
        ctx.resolve("scriptLibraryRef", spec.scriptLibraryRef, KIND_SCRIPT_LIBRARY)
        validate_content(ctx.resource.name, spec.content)


class PageHeaderReconciler(PageFragmentReconciler):
    kind = KIND_PAGE_HEADER


class PageFooterReconciler(PageFragmentReconciler):
    kind = KIND_PAGE_FOOTER


class PageNavigationReconciler(PageFragmentReconciler):
    kind = KIND_PAGE_NAVIGATION


class PageArchetypeReconciler(KindReconciler):
    kind = KIND_PAGE_ARCHETYPE
    references = (
        (ReferencePath("defaultFooterRef"), KIND_PAGE_FOOTER),
        (ReferencePath("defaultHeaderRef"), KIND_PAGE_HEADER),
        (ReferencePath("defaultMainNavigationRef"), KIND_PAGE_NAVIGATION),
        (ReferencePath("extraNavigations", ReferenceShape.MAP), KIND_PAGE_NAVIGATION),
        (ReferencePath("scriptLibraryRef"), KIND_SCRIPT_LIBRARY),
        (ReferencePath("overrideThemeRef"), KIND_THEME),
    )

    def reconcile(self, ctx, spec):
        ctx.resolve("defaultFooterRef", spec.defaultFooterRef, KIND_PAGE_FOOTER)
        ctx.resolve("defaultHeaderRef", spec.defaultHeaderRef, KIND_PAGE_HEADER)
        ctx.resolve(
            "defaultMainNavigationRef", spec.defaultMainNavigationRef, KIND_PAGE_NAVIGATION
        )
        ctx.resolve_map("extraNavigations", spec.extraNavigations, KIND_PAGE_NAVIGATION)
        ctx.resolve("scriptLibraryRef", spec.scriptLibraryRef, KIND_SCRIPT_LIBRARY)
        ctx.resolve("overrideThemeRef", spec.overrideThemeRef, KIND_THEME)
        validate_content(ctx.resource.name, spec.content)


class HostReconciler(KindReconciler):
    kind = KIND_HOST
    references = (
        (ReferencePath("themeRef"), KIND_THEME),
        (ReferencePath("scriptLibraryRef"), KIND_SCRIPT_LIBRARY),
    )

    def reconcile(self, ctx, spec):
        theme_ref, is_defaulted = theme_reference(spec, self.config.default_theme_name)
        theme = ctx.resolve("themeRef", theme_ref, KIND_THEME, is_defaulted=is_defaulted)
        if theme.missing_default:
            logger.info(
                f"{ctx.resource.display_name()} has no theme "
                f"(default theme {theme_ref.name} does not exist)"
            )
        ctx.resolve("scriptLibraryRef", spec.scriptLibraryRef, KIND_SCRIPT_LIBRARY)
