"""Reverse-dependency indexing: from a changed object to the objects pointing at it."""

import hashlib
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Tuple

from weaver.crd.base import Resource
from weaver.engine.accessor import ObjectAccessor
from weaver.engine.conditions import is_ready
from weaver.engine.errors import ValidationError, WeaverError
from weaver.engine.kinds import KindCatalog, VariantStrategy
from weaver.engine.references import ReferencePath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """``dependent_kind`` points at ``target_kind`` through ``path``.

    ``target_kind`` is the namespaced form of the concept; a registration
    also covers its cluster-scoped variant.
    """

    target_kind: str
    dependent_kind: str
    path: ReferencePath


@dataclass(frozen=True)
class DependentRef:
    kind: str
    namespace: Optional[str]
    name: str

    def __str__(self):
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


class ReverseDependencyIndexer:
    """Answers "who points at this object" using a static registration table.

    Only the dependent kinds registered against the changed object's kind are
    listed, and only their declared reference fields are inspected.
    """

    def __init__(
        self,
        accessor: ObjectAccessor,
        catalog: KindCatalog,
        registrations: Iterable[Registration],
    ):
        self.accessor = accessor
        self.catalog = catalog
        self._registrations = tuple(registrations)
        table: Dict[str, Tuple[Registration, ...]] = {}
        for registration in self._registrations:
            for kind in catalog.kinds_of(registration.target_kind):
                table[kind] = table.get(kind, ()) + (registration,)
        self._table = MappingProxyType(table)

    @property
    def registrations(self) -> Tuple[Registration, ...]:
        return self._registrations

    @property
    def target_kinds(self) -> Tuple[str, ...]:
        return tuple(self._table)

    def registrations_for(self, kind: str) -> Tuple[Registration, ...]:
        return self._table.get(kind, ())

    def invalidate(self, changed: Resource) -> List[DependentRef]:
        """Return the dependents that must be re-evaluated after ``changed`` moved."""
        dependents: Dict[DependentRef, None] = {}
        target_namespaced = self._is_namespaced(changed.kind)

        for registration in self.registrations_for(changed.kind):
            dependent_kinds = self.catalog.kinds_of(registration.dependent_kind)
            for dependent_kind in dependent_kinds:
                if target_namespaced and not self._is_namespaced(dependent_kind):
                    # Cluster-scoped objects cannot point into a namespace.
                    continue
                listing_namespace = changed.namespace if target_namespaced else None
                try:
                    candidates = self.accessor.list(dependent_kind, listing_namespace)
                except WeaverError as e:
                    logger.error(
                        f"Failed to list {dependent_kind} while indexing "
                        f"{changed.display_name()}: {e}"
                    )
                    continue

                for candidate in candidates:
                    if self._points_at(candidate, registration, changed, target_namespaced):
                        dependents.setdefault(
                            DependentRef(candidate.kind, candidate.namespace, candidate.name),
                            None,
                        )

        if dependents:
            logger.info(
                f"{changed.display_name()} changed, "
                f"{len(dependents)} dependent(s) to re-evaluate"
            )
        return list(dependents)

    def _is_namespaced(self, kind: str) -> bool:
        return kind not in self.catalog or self.catalog.is_namespaced(kind)

    def _points_at(
        self,
        candidate: Resource,
        registration: Registration,
        changed: Resource,
        target_namespaced: bool,
    ) -> bool:
        strategy = VariantStrategy.for_request(self.catalog, candidate.namespace)
        try:
            references = list(registration.path.references(candidate.spec))
        except (TypeError, ValueError) as e:
            logger.debug(
                f"Skipping {candidate.display_name()}: cannot read {registration.path}: {e}"
            )
            return False

        for label, reference in references:
            if reference.name != changed.name:
                continue
            try:
                kind = strategy.kind_for(registration.target_kind, reference.kind)
            except ValidationError:
                continue
            if kind != changed.kind:
                continue
            if target_namespaced:
                namespace = reference.namespace or candidate.namespace
                if namespace != changed.namespace:
                    continue
            logger.debug(
                f"{candidate.display_name()} references {changed.display_name()} via {label}"
            )
            return True
        return False


def change_token(resource: Resource) -> str:
    """Summarise the parts of an object its dependents care about.

    Dependents only need re-evaluation when the target's generation, its
    readiness or the generations it observed from its own dependencies move.
    Status-only noise (timestamps, messages) leaves the token unchanged.
    """
    ready = "ready" if is_ready(resource.status.conditions) else "not-ready"
    attributes = resource.status.attributes
    observed = ",".join(
        f"{key}={attributes[key]}" for key in sorted(attributes) if key.endswith(".generation")
    )
    digest = hashlib.sha1(observed.encode()).hexdigest()[:10]
    return f"{resource.kind}/{resource.name}:{resource.generation}:{ready}:{digest}"
