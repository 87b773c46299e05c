"""Reconcilers for script libraries, themes and apps."""

import logging

from weaver.constants import KIND_APP, KIND_SECRET, KIND_SCRIPT_LIBRARY, KIND_THEME
from weaver.engine.reconciler import KindReconciler
from weaver.engine.references import ReferencePath, ReferenceShape
from weaver.services.content import render_one
from weaver.services.package_registry import (
    NpmRegistry,
    validate_package_name,
    validate_package_reference,
)
from weaver.services.render import asset_tags, package_script_tag, script_tags

logger = logging.getLogger(__name__)


class PackageValidationMixin:
    """Validates a spec's package reference against the configured registry."""

    registry_factory = NpmRegistry

    def validate_package(self, ctx, package_reference, secret):
        if not self.config.validate_packages:
            validate_package_name(package_reference.name)
            logger.debug(f"Registry lookup skipped for {package_reference.name}")
            return
        ctx.check_cancelled()
        validate_package_reference(
            package_reference,
            secret,
            registry_factory=lambda config: self.registry_factory(
                config, timeout=self.config.request_timeout
            ),
            default_host=self.config.npm_registry_host,
        )


class ScriptLibraryReconciler(PackageValidationMixin, KindReconciler):
    kind = KIND_SCRIPT_LIBRARY
    references = (
        (ReferencePath("packageReference.secretRef", ReferenceShape.OPTIONAL), KIND_SECRET),
    )

    def reconcile(self, ctx, spec):
        secret = None
        if spec.packageReference is not None:
            secret = ctx.resolve(
                "packageReference.secretRef", spec.packageReference.secretRef, KIND_SECRET
            ).target

        head = []
        if spec.packageReference is not None:
            head.append(package_script_tag(spec.packageReference))
        head.extend(script_tags(spec.scripts))
        render_one("head-scripts", "\n".join(head))
        render_one("foot-scripts", "\n".join(script_tags(spec.scripts, foot=True)))

        if spec.packageReference is not None:
            self.validate_package(ctx, spec.packageReference, secret)


class ThemeReconciler(KindReconciler):
    kind = KIND_THEME
    references = ((ReferencePath("scriptLibraryRef"), KIND_SCRIPT_LIBRARY),)

    def reconcile(self, ctx, spec):
        ctx.resolve("scriptLibraryRef", spec.scriptLibraryRef, KIND_SCRIPT_LIBRARY)
        render_one("theme-assets", "\n".join(asset_tags(spec.assets)))


class AppReconciler(PackageValidationMixin, KindReconciler):
    kind = KIND_APP
    references = (
        (ReferencePath("packageReference.secretRef", ReferenceShape.OPTIONAL), KIND_SECRET),
    )

    def reconcile(self, ctx, spec):
        secret = ctx.resolve(
            "packageReference.secretRef", spec.packageReference.secretRef, KIND_SECRET
        ).target
        self.validate_package(ctx, spec.packageReference, secret)
