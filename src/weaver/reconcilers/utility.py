"""Utility page reconciler."""

import logging

from weaver.constants import (
    KIND_APP,
    KIND_PAGE_ARCHETYPE,
    KIND_PAGE_FOOTER,
    KIND_PAGE_HEADER,
    KIND_PAGE_NAVIGATION,
    KIND_SCRIPT_LIBRARY,
    KIND_UTILITY_PAGE,
)
from weaver.engine.references import ReferencePath, ReferenceShape
from weaver.reconcilers.binding import (
    MAIN_NAVIGATION,
    ArchetypePageReconciler,
    validate_content_entries,
)

logger = logging.getLogger(__name__)


class UtilityPageReconciler(ArchetypePageReconciler):
    """Checks that everything an announcement, error or login page needs is ready."""

    kind = KIND_UTILITY_PAGE
    references = (
        (ReferencePath("pageArchetypeRef", ReferenceShape.SINGLE), KIND_PAGE_ARCHETYPE),
        (
            ReferencePath("contentEntries", ReferenceShape.SEQUENCE, item_field="appRef"),
            KIND_APP,
        ),
        (ReferencePath("overrideHeaderRef"), KIND_PAGE_HEADER),
        (ReferencePath("overrideFooterRef"), KIND_PAGE_FOOTER),
        (ReferencePath("overrideNavigationRefs", ReferenceShape.MAP), KIND_PAGE_NAVIGATION),
        (ReferencePath("scriptLibraryRef"), KIND_SCRIPT_LIBRARY),
    )

    def _navigation_refs(self, archetype, archetype_spec, overrides):
        """The archetype's navigations with the page's overrides applied by name."""
        references = {}
        main = self._from_archetype(
            archetype, archetype_spec.defaultMainNavigationRef, KIND_PAGE_NAVIGATION
        )
        if main is not None:
            references[MAIN_NAVIGATION] = main
        for key, reference in archetype_spec.extraNavigations.items():
            extra = self._from_archetype(archetype, reference, KIND_PAGE_NAVIGATION)
            if extra is not None:
                references[key] = extra
        references.update(overrides)
        return references

    def reconcile(self, ctx, spec):
        archetype, archetype_spec = self._resolve_archetype(ctx, spec.pageArchetypeRef)
        apps = ctx.resolve_sequence("contentEntries", spec.contentEntries, "appRef", KIND_APP)
        self._resolve_fragment(
            ctx,
            "headerRef",
            spec.overrideHeaderRef,
            archetype,
            archetype_spec.defaultHeaderRef,
            KIND_PAGE_HEADER,
        )
        self._resolve_fragment(
            ctx,
            "footerRef",
            spec.overrideFooterRef,
            archetype,
            archetype_spec.defaultFooterRef,
            KIND_PAGE_FOOTER,
        )
        navigations = ctx.resolve_map(
            "navigations",
            self._navigation_refs(archetype, archetype_spec, spec.overrideNavigationRefs),
            KIND_PAGE_NAVIGATION,
        )
        ctx.resolve("scriptLibraryRef", spec.scriptLibraryRef, KIND_SCRIPT_LIBRARY)

        validate_content_entries(spec.contentEntries)
        for entry, app in zip(spec.contentEntries, apps):
            if app.target is not None and entry.customElementName:
                self._validate_custom_element(entry, app.target)

        ctx.resource.status.attributes["page.type"] = spec.type.value
        logger.debug(
            f"{ctx.resource.display_name()} ({spec.type.value}) uses "
            f"{len(navigations)} navigation(s)"
        )
