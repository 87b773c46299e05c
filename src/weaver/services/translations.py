"""Derivation of the operator-owned InternalTranslation from a Translation."""

import logging

from weaver.constants import (
    GENERATION_LABEL,
    KIND_INTERNAL_TRANSLATION,
    MANAGED_BY,
    MANAGED_BY_LABEL,
    TRANSLATION_LABEL,
)
from weaver.crd.base import CRDMetadata, Resource
from weaver.engine.errors import ValidationError

logger = logging.getLogger(__name__)


def validate_translations(spec):
    """Each language may appear once."""
    seen = set()
    for index, translation in enumerate(spec.translations):
        if translation.lang in seen:
            raise ValidationError(
                f"translations[{index}]: language {translation.lang} is listed more than once"
            )
        seen.add(translation.lang)


def build_internal_translation(translation: Resource, spec) -> Resource:
    """The InternalTranslation mirroring ``translation``'s spec.

    It carries the source's labels and annotations plus the operator's own
    labels, and is owned by the source.
    """
    labels = dict(translation.metadata.labels)
    labels.update(
        {
            MANAGED_BY_LABEL: MANAGED_BY,
            TRANSLATION_LABEL: translation.name,
            GENERATION_LABEL: str(translation.generation),
        }
    )
    metadata = CRDMetadata(
        name=translation.name,
        namespace=translation.namespace,
        labels=labels,
        annotations=dict(translation.metadata.annotations),
        ownerReferences=[
            {
                "apiVersion": translation.apiVersion,
                "kind": translation.kind,
                "name": translation.name,
                "uid": translation.metadata.uid or "",
                "controller": True,
                "blockOwnerDeletion": True,
            }
        ],
    )
    internal = Resource(
        apiVersion=translation.apiVersion,
        kind=KIND_INTERNAL_TRANSLATION,
        metadata=metadata,
        spec=spec.model_dump(mode="json"),
    )
    logger.debug(
        f"Derived {internal.display_name()} with languages "
        f"{', '.join(t.lang for t in spec.translations)}"
    )
    return internal
