"""Translation CRD models."""

from pydantic import BaseModel, Field
from typing import Dict, List

from weaver.constants import (
    API_GROUP,
    API_VERSION,
    KIND_INTERNAL_TRANSLATION,
    KIND_TRANSLATION,
)
from weaver.crd.registry import CRDRegistry
from weaver.crd.base import CRDSpec
from weaver.models.references import LocalObjectReference


class Translation(BaseModel):
    """Message catalogue of one language."""

    lang: str = Field(..., min_length=1, description="Language tag (e.g. fr, de-CH)")
    keysAndValues: Dict[str, str] = Field(
        ..., min_length=1, description="Message keys and their translated text"
    )


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_TRANSLATION, "translations")
class TranslationSpec(CRDSpec):
    """Translation CRD specification: messages a host serves per language."""

    hostRef: LocalObjectReference = Field(..., description="Host the messages belong to")
    translations: List[Translation] = Field(
        ..., min_length=1, description="One entry per language"
    )


@CRDRegistry.register(
    API_GROUP, API_VERSION, KIND_INTERNAL_TRANSLATION, "internaltranslations"
)
class InternalTranslationSpec(TranslationSpec):
    """Copy of a Translation written by the operator once its host is ready."""
