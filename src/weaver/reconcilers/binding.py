"""Page binding reconciler: resolves a page's parts and renders it."""

import logging

from weaver.constants import (
    KIND_APP,
    KIND_CONFIG_MAP,
    KIND_HOST,
    KIND_PAGE_ARCHETYPE,
    KIND_PAGE_BINDING,
    KIND_PAGE_FOOTER,
    KIND_PAGE_HEADER,
    KIND_PAGE_NAVIGATION,
    KIND_SCRIPT_LIBRARY,
    KIND_THEME,
    PAGE_BINDING_FINALIZER,
)
from weaver.engine.errors import ValidationError
from weaver.engine.kinds import VariantStrategy
from weaver.engine.reconciler import KindReconciler
from weaver.engine.references import Reference, ReferencePath, ReferenceShape, as_reference
from weaver.reconcilers.pages import theme_reference
from weaver.services.content import validate_content
from weaver.services.render import (
    PageParts,
    asset_tags,
    build_page_config_map,
    page_config_map_name,
    package_script_tag,
    script_tags,
)

logger = logging.getLogger(__name__)

MAIN_NAVIGATION = "main"


def validate_content_entries(entries):
    for index, entry in enumerate(entries):
        if entry.rawHTML:
            validate_content(f"contentEntries[{index}].rawHTML", entry.rawHTML)
        if entry.appRef is not None and not entry.appRef.name:
            raise ValidationError(f"contentEntries[{index}].appRef.name is required")


def validate_binding(spec):
    if not spec.basePath.startswith("/"):
        raise ValidationError(f"basePath must start with '/': {spec.basePath}")
    if spec.basePath == "/" and spec.parentPageRef is not None and spec.parentPageRef.name:
        raise ValidationError(
            "a page binding with basePath set to '/' must not specify a parent page binding"
        )
    validate_content_entries(spec.contentEntries)
    for entry in spec.contentEntries:
        if entry.appRef is not None and not entry.customElementName:
            raise ValidationError(
                f"content entry for slot {entry.slot} references an app "
                f"but no customElementName"
            )


class ArchetypePageReconciler(KindReconciler):
    """Shared resolution helpers for pages built from a page archetype.

    References declared on the archetype (default header, footer and
    navigations) are pinned to the archetype's scope; the page's own
    overrides are resolved in the page's scope.
    """

    def _spec_of(self, target):
        return self.catalog.get(target.kind).model.model_validate(target.spec)

    def _from_archetype(self, archetype, reference, target_kind):
        """Pin a reference declared on the archetype to the archetype's scope."""
        reference = as_reference(reference)
        if reference is None:
            return None
        strategy = VariantStrategy.for_request(self.catalog, archetype.namespace)
        return Reference(
            name=reference.name,
            kind=strategy.kind_for(target_kind, reference.kind),
            namespace=reference.namespace or archetype.namespace,
        )

    def _override_or_default(self, override, archetype, default, target_kind):
        if override is not None and override.name:
            return override
        return self._from_archetype(archetype, default, target_kind)

    def _resolve_archetype(self, ctx, reference):
        archetype = ctx.resolve(
            "pageArchetypeRef", reference, KIND_PAGE_ARCHETYPE, required=True
        ).target
        return archetype, self._spec_of(archetype)

    def _resolve_fragment(self, ctx, field, override, archetype, default, target_kind):
        """Resolve a header or footer: the page's override, else the archetype default."""
        return ctx.resolve(
            field, self._override_or_default(override, archetype, default, target_kind), target_kind
        ).target

    def _validate_custom_element(self, entry, app):
        names = [element.name for element in self._spec_of(app).customElements]
        if names and entry.customElementName not in names:
            raise ValidationError(
                f"App {app.name} does not provide custom element {entry.customElementName}"
            )


class PageBindingReconciler(ArchetypePageReconciler):
    kind = KIND_PAGE_BINDING
    finalizer = PAGE_BINDING_FINALIZER
    # Fields on the binding itself. References taken from the archetype
    # (default header, footer and navigations, theme) reach the binding
    # through the archetype's own status.
    references = (
        (ReferencePath("hostRef", ReferenceShape.SINGLE), KIND_HOST),
        (ReferencePath("pageArchetypeRef", ReferenceShape.SINGLE), KIND_PAGE_ARCHETYPE),
        (
            ReferencePath("contentEntries", ReferenceShape.SEQUENCE, item_field="appRef"),
            KIND_APP,
        ),
        (ReferencePath("overrideMainNavigationRef"), KIND_PAGE_NAVIGATION),
        (ReferencePath("parentPageRef"), KIND_PAGE_BINDING),
        (ReferencePath("overrideHeaderRef"), KIND_PAGE_HEADER),
        (ReferencePath("overrideFooterRef"), KIND_PAGE_FOOTER),
        (ReferencePath("scriptLibraryRef"), KIND_SCRIPT_LIBRARY),
    )

    def reconcile(self, ctx, spec):
        host = ctx.resolve("hostRef", spec.hostRef, KIND_HOST, required=True).target
        host_spec = self._spec_of(host)
        archetype, archetype_spec = self._resolve_archetype(ctx, spec.pageArchetypeRef)

        apps = ctx.resolve_sequence("contentEntries", spec.contentEntries, "appRef", KIND_APP)

        navigations = {}
        main_navigation = ctx.resolve(
            "mainNavigationRef",
            self._override_or_default(
                spec.overrideMainNavigationRef,
                archetype,
                archetype_spec.defaultMainNavigationRef,
                KIND_PAGE_NAVIGATION,
            ),
            KIND_PAGE_NAVIGATION,
        )
        if main_navigation.target is not None:
            navigations[MAIN_NAVIGATION] = main_navigation.target
        extra = ctx.resolve_map(
            "extraNavigations",
            {
                key: self._from_archetype(archetype, reference, KIND_PAGE_NAVIGATION)
                for key, reference in archetype_spec.extraNavigations.items()
            },
            KIND_PAGE_NAVIGATION,
        )
        for key, resolution in extra.items():
            if resolution.target is not None:
                navigations[key] = resolution.target

        parent = ctx.resolve("parentPageRef", spec.parentPageRef, KIND_PAGE_BINDING).target

        header = self._resolve_fragment(
            ctx,
            "headerRef",
            spec.overrideHeaderRef,
            archetype,
            archetype_spec.defaultHeaderRef,
            KIND_PAGE_HEADER,
        )
        footer = self._resolve_fragment(
            ctx,
            "footerRef",
            spec.overrideFooterRef,
            archetype,
            archetype_spec.defaultFooterRef,
            KIND_PAGE_FOOTER,
        )
        script_library = ctx.resolve(
            "scriptLibraryRef", spec.scriptLibraryRef, KIND_SCRIPT_LIBRARY
        ).target
        theme = self._resolve_theme(ctx, archetype, archetype_spec, host_spec)

        validate_binding(spec)
        for entry, app in zip(spec.contentEntries, apps):
            if app.target is not None:
                self._validate_custom_element(entry, app.target)

        parts = PageParts(
            name=ctx.resource.name,
            label=spec.label or ctx.resource.name,
            base_path=spec.basePath,
            template=archetype_spec.content,
            organization=host_spec.organization,
            header=self._spec_of(header).content if header is not None else "",
            footer=self._spec_of(footer).content if footer is not None else "",
            navigations={
                key: self._spec_of(navigation).content for key, navigation in navigations.items()
            },
            content_entries=[
                entry.model_dump(exclude_none=True) for entry in spec.contentEntries
            ],
            parent=parent.name if parent is not None else None,
        )
        if script_library is not None:
            library_spec = self._spec_of(script_library)
            if library_spec.packageReference is not None:
                parts.head_scripts.append(package_script_tag(library_spec.packageReference))
            parts.head_scripts.extend(script_tags(library_spec.scripts))
            parts.foot_scripts.extend(script_tags(library_spec.scripts, foot=True))
        if theme is not None:
            parts.stylesheets.extend(asset_tags(self._spec_of(theme).assets))

        ctx.check_cancelled()
        config_map = build_page_config_map(ctx.resource, parts)
        ctx.accessor.apply(config_map)
        ctx.resource.status.attributes["page.configMap"] = config_map.name
        logger.info(f"Rendered {ctx.resource.display_name()} into ConfigMap {config_map.name}")

    def _resolve_theme(self, ctx, archetype, archetype_spec, host_spec):
        """The archetype's theme override, else the host's theme."""
        if archetype_spec.overrideThemeRef is not None and archetype_spec.overrideThemeRef.name:
            return ctx.resolve(
                "themeRef",
                self._from_archetype(archetype, archetype_spec.overrideThemeRef, KIND_THEME),
                KIND_THEME,
            ).target
        theme_ref, is_defaulted = theme_reference(
            host_spec, self.config.default_theme_name
        )
        return ctx.resolve("themeRef", theme_ref, KIND_THEME, is_defaulted=is_defaulted).target

    def finalize(self, ctx):
        name = page_config_map_name(ctx.resource.name)
        ctx.check_cancelled()
        if ctx.accessor.delete(KIND_CONFIG_MAP, ctx.namespace, name):
            logger.info(f"Deleted page ConfigMap {name} of {ctx.resource.display_name()}")
