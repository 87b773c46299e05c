"""Translation reconciler: publishes a host's messages once the host is ready."""

import logging

from weaver.constants import (
    KIND_HOST,
    KIND_INTERNAL_TRANSLATION,
    KIND_TRANSLATION,
    TRANSLATION_FINALIZER,
)
from weaver.engine.reconciler import KindReconciler
from weaver.engine.references import ReferencePath, ReferenceShape
from weaver.services.translations import build_internal_translation, validate_translations

logger = logging.getLogger(__name__)


class TranslationReconciler(KindReconciler):
    kind = KIND_TRANSLATION
    finalizer = TRANSLATION_FINALIZER
    references = ((ReferencePath("hostRef", ReferenceShape.SINGLE), KIND_HOST),)

    def reconcile(self, ctx, spec):
        ctx.resolve("hostRef", spec.hostRef, KIND_HOST, required=True)
        validate_translations(spec)

        ctx.check_cancelled()
        internal = ctx.accessor.apply(build_internal_translation(ctx.resource, spec))
        attributes = ctx.resource.status.attributes
        attributes["translation.internal"] = internal.name
        attributes["translation.languages"] = ",".join(
            sorted(translation.lang for translation in spec.translations)
        )
        logger.info(f"Published {ctx.resource.display_name()} as {internal.display_name()}")

    def finalize(self, ctx):
        ctx.check_cancelled()
        if ctx.accessor.delete(KIND_INTERNAL_TRANSLATION, ctx.namespace, ctx.resource.name):
            logger.info(
                f"Deleted {KIND_INTERNAL_TRANSLATION} {ctx.resource.name} "
                f"of {ctx.resource.display_name()}"
            )
