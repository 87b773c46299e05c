"""Kind metadata and the namespaced/cluster-scoped variant strategy."""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Type

from pydantic import BaseModel

from weaver.constants import KIND_CONFIG_MAP, KIND_SECRET
from weaver.crd.registry import CRDRegistry
from weaver.engine.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KindDescriptor:
    """Everything the engine needs to address objects of one kind."""

    kind: str
    group: str
    version: str
    plural: str
    namespaced: bool = True
    variant_of: Optional[str] = None
    model: Optional[Type[BaseModel]] = None

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def is_core(self) -> bool:
        return not self.group

    @property
    def base_kind(self) -> str:
        """The namespaced form of the concept this kind represents."""
        return self.variant_of or self.kind


CORE_KINDS = (
    KindDescriptor(kind=KIND_SECRET, group="", version="v1", plural="secrets"),
    KindDescriptor(kind=KIND_CONFIG_MAP, group="", version="v1", plural="configmaps"),
)


class KindCatalog:
    """Read-only lookup of kind descriptors, built once at startup."""

    def __init__(self, descriptors: Iterable[KindDescriptor]):
        kinds: Dict[str, KindDescriptor] = {}
        cluster_variants: Dict[str, str] = {}
        for descriptor in descriptors:
            kinds[descriptor.kind] = descriptor
            if descriptor.variant_of:
                cluster_variants[descriptor.variant_of] = descriptor.kind
        self._kinds: Mapping[str, KindDescriptor] = MappingProxyType(kinds)
        self._cluster_variants: Mapping[str, str] = MappingProxyType(cluster_variants)

    @classmethod
    def from_registry(cls, registry: Optional[CRDRegistry] = None) -> "KindCatalog":
        """Build the catalog from every registered CRD model plus core kinds."""
        registry = registry or CRDRegistry()
        descriptors = list(CORE_KINDS)
        for model_info in registry.get_all_models().values():
            descriptors.append(
                KindDescriptor(
                    kind=model_info["kind"],
                    group=model_info["group"],
                    version=model_info["version"],
                    plural=model_info["plural"],
                    namespaced=model_info["scope"] == "Namespaced",
                    variant_of=model_info.get("variant_of"),
                    model=model_info["model"],
                )
            )
        catalog = cls(descriptors)
        logger.debug(f"Kind catalog built with {len(catalog)} kinds")
        return catalog

    def __len__(self):
        return len(self._kinds)

    def __contains__(self, kind):
        return kind in self._kinds

    def __iter__(self):
        return iter(self._kinds.values())

    def get(self, kind: str) -> KindDescriptor:
        try:
            return self._kinds[kind]
        except KeyError:
            raise KeyError(f"Unknown kind: {kind}") from None

    def cluster_variant(self, kind: str) -> Optional[str]:
        return self._cluster_variants.get(kind)

    def is_namespaced(self, kind: str) -> bool:
        return self.get(kind).namespaced

    def kinds_of(self, base_kind: str):
        """The namespaced kind and its cluster-scoped variant, if any."""
        variant = self.cluster_variant(base_kind)
        return (base_kind, variant) if variant else (base_kind,)


class VariantStrategy:
    """Picks the namespaced or cluster-scoped variant of a target kind.

    A request for a cluster-scoped object (empty namespace) can only point at
    cluster-scoped variants; a namespaced request uses the namespaced form.
    One strategy is built per request and reused for every reference on it.
    """

    def __init__(self, catalog: KindCatalog, cluster_scoped: bool):
        self.catalog = catalog
        self.cluster_scoped = cluster_scoped

    @classmethod
    def for_request(cls, catalog: KindCatalog, namespace: Optional[str]):
        return cls(catalog, cluster_scoped=not namespace)

    def kind_for(self, target_kind: str, explicit_kind: Optional[str] = None) -> str:
        """The kind to fetch for a reference to ``target_kind``.

        An explicit kind only chooses between the namespaced and cluster-scoped
        forms of the target; any other kind raises ``ValidationError``.
        """
        if explicit_kind:
            allowed = self.catalog.kinds_of(target_kind)
            if explicit_kind not in allowed:
                raise ValidationError(
                    f"kind {explicit_kind} cannot be used where {target_kind} is expected "
                    f"(allowed: {', '.join(allowed)})"
                )
            return explicit_kind
        if self.cluster_scoped:
            return self.catalog.cluster_variant(target_kind) or target_kind
        return target_kind

    def namespace_for(
        self, kind: str, reference_namespace: Optional[str], source_namespace: Optional[str]
    ) -> Optional[str]:
        if kind in self.catalog and not self.catalog.is_namespaced(kind):
            return None
        return reference_namespace or source_namespace or None
