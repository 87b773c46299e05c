"""Reconciliation orchestration.

A cycle for one object runs in a fixed order:

1. fetch the object; if it is being deleted, run its finalizer and stop,
2. make sure the kind's finalizer is present,
3. inside a ``StatusScope`` resolve every reference in declaration order,
   stopping at the first one that is missing, not ready or unreachable,
4. run the kind-specific work and mark the object Ready.

The ``StatusScope`` writes the final status on every exit path except
optimistic-concurrency conflicts, transient access failures and shutdown.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pydantic

from weaver.config import OperatorConfig
from weaver.crd.base import Resource
from weaver.engine.accessor import ObjectAccessor
from weaver.engine.conditions import (
    FAILED,
    RECONCILING,
    SUCCEEDED,
    ConditionReason,
    ConditionStatus,
    ConditionStatuses,
    derive_phase,
    find_condition,
    set_conditions,
)
from weaver.engine.errors import (
    ConflictError,
    NotFoundError,
    ReconcileCancelled,
    ResolutionInterrupted,
    TransientAccessError,
    ValidationError,
    WeaverError,
)
from weaver.engine.indexer import Registration
from weaver.engine.kinds import KindCatalog, VariantStrategy
from weaver.engine.references import ReferencePath
from weaver.engine.resolver import Outcome, ReferenceResolver, Resolution

logger = logging.getLogger(__name__)

GENERATION_SUFFIX = ".generation"


@dataclass(frozen=True)
class ReconcileResult:
    """Requeue instruction handed back to the event loop."""

    requeue_after: Optional[float] = None
    immediate: bool = False

    @property
    def done(self) -> bool:
        return self.requeue_after is None and not self.immediate

    @classmethod
    def after(cls, delay: float) -> "ReconcileResult":
        return cls(requeue_after=delay)

    @classmethod
    def now(cls) -> "ReconcileResult":
        return cls(immediate=True)


def check_cancelled(cancel_event: Optional[threading.Event]):
    if cancel_event is not None and cancel_event.is_set():
        raise ReconcileCancelled("Operator is shutting down")


class StatusScope:
    """Context manager guaranteeing the final status write of a cycle.

    On entry the Reconciling conditions are set in memory when a new
    generation is being processed. On exit ``observedGeneration`` and
    ``phase`` are filled in and the status is written unless it is exactly
    what was read. Conditions whose status ends where it started keep their
    original ``lastTransitionTime``.
    """

    SKIP_WRITE_ON = (ConflictError, TransientAccessError, ReconcileCancelled)

    def __init__(
        self,
        accessor: ObjectAccessor,
        resource: Resource,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.accessor = accessor
        self.resource = resource
        self.cancel_event = cancel_event
        self._initial = None
        self._initial_version = None

    def __enter__(self):
        status = self.resource.status
        self._initial = status.model_copy(deep=True)
        self._initial_version = self.resource.resource_version
        if status.observedGeneration != self.resource.generation:
            set_conditions(
                status.conditions, RECONCILING, ConditionReason.RECONCILING, "Reconciling"
            )
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and issubclass(exc_type, self.SKIP_WRITE_ON):
            return False

        status = self.resource.status
        for condition in status.conditions:
            before = find_condition(self._initial.conditions, condition.type)
            if before is not None and before.status == condition.status:
                condition.lastTransitionTime = before.lastTransitionTime
        status.observedGeneration = self.resource.generation
        status.phase = derive_phase(status.conditions, self.resource.is_deleting).value

        if status == self._initial and self.resource.resource_version == self._initial_version:
            return False

        try:
            check_cancelled(self.cancel_event)
            updated = self.accessor.update_status(self.resource)
            self.resource.metadata.resourceVersion = updated.resource_version
        except NotFoundError:
            logger.debug(f"{self.resource.display_name()} is gone, status not written")
        except WeaverError as e:
            if exc_type is None:
                raise
            logger.error(
                f"Failed to write status of {self.resource.display_name()} "
                f"while handling {exc_type.__name__}: {e}"
            )
        return False


class ReconcileContext:
    """Per-cycle state handed to a kind reconciler.

    Resolves references through the shared resolver with the request's
    variant strategy and records each resolved target's generation under
    ``<field>.generation``.
    """

    def __init__(
        self,
        resource: Resource,
        resolver: ReferenceResolver,
        strategy: VariantStrategy,
        accessor: ObjectAccessor,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.resource = resource
        self.resolver = resolver
        self.strategy = strategy
        self.accessor = accessor
        self.cancel_event = cancel_event
        self.recorded: Dict[str, str] = {}

    @property
    def namespace(self) -> Optional[str]:
        return self.resource.namespace

    def check_cancelled(self):
        check_cancelled(self.cancel_event)

    def resolve(
        self,
        field: str,
        reference: Any,
        target_kind: str,
        is_defaulted: bool = False,
        required: bool = False,
    ) -> Resolution:
        """Resolve one reference, raising ``ResolutionInterrupted`` unless it is ready.

        A ``required`` reference with an empty name raises ``ValidationError``.
        Status is not written here; the surrounding ``StatusScope`` owns the write.
        """
        resolution = self.resolver.resolve(
            self.resource,
            reference,
            target_kind,
            is_defaulted=is_defaulted,
            strategy=self.strategy,
            persist=False,
        )
        if not resolution.ok:
            raise ResolutionInterrupted(resolution)
        if required and resolution.is_absent:
            raise ValidationError(f"{field} is required")
        if resolution.target is not None:
            self.recorded[f"{field}{GENERATION_SUFFIX}"] = str(resolution.target.generation)
        return resolution

    def resolve_map(
        self, field: str, references: Optional[Mapping[str, Any]], target_kind: str
    ) -> Dict[str, Resolution]:
        """Resolve a named map of references in sorted key order."""
        resolved = {}
        for key in sorted(references or {}):
            resolved[key] = self.resolve(f"{field}.{key}", references[key], target_kind)
        return resolved

    def resolve_sequence(
        self, field: str, items: Optional[Sequence[Any]], item_field: str, target_kind: str
    ) -> List[Resolution]:
        """Resolve the nested reference of each item of a list, in list order."""
        resolved = []
        for index, item in enumerate(items or ()):
            reference = getattr(item, item_field, None)
            if reference is None and isinstance(item, dict):
                reference = item.get(item_field)
            resolved.append(
                self.resolve(f"{field}.{index}.{item_field}", reference, target_kind)
            )
        return resolved

    def commit(self, complete: bool):
        """Copy recorded generations to the status attributes.

        After a complete cycle attributes of references that no longer exist
        are dropped; after an interrupted one they are kept.
        """
        attributes = self.resource.status.attributes
        if complete:
            for key in [k for k in attributes if k.endswith(GENERATION_SUFFIX)]:
                if key not in self.recorded:
                    del attributes[key]
        attributes.update(self.recorded)


class KindReconciler:
    """Kind-specific part of reconciliation.

    Subclasses set ``kind`` (the namespaced kind; the cluster-scoped variant
    is handled by the same reconciler), declare their reference fields in
    ``references`` in the order they are resolved, and implement
    ``reconcile``.
    """

    kind: str = None
    finalizer: Optional[str] = None
    # (path, target kind) pairs, in resolution order
    references: Tuple[Tuple[ReferencePath, str], ...] = ()

    def __init__(self, catalog: KindCatalog, config: Optional[OperatorConfig] = None):
        self.catalog = catalog
        self.config = config or OperatorConfig()

    def registrations(self) -> List[Registration]:
        return [
            Registration(target_kind=target_kind, dependent_kind=self.kind, path=path)
            for path, target_kind in self.references
        ]

    def parse_spec(self, resource: Resource):
        model = self.catalog.get(resource.kind).model
        try:
            return model.model_validate(resource.spec)
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid spec: {e}") from e

    def reconcile(self, ctx: ReconcileContext, spec) -> Optional[ReconcileResult]:
        raise NotImplementedError

    def finalize(self, ctx: ReconcileContext):
        """Remove derived state before the finalizer is released."""


class Orchestrator:
    """Runs reconciliation cycles for a set of kinds."""

    def __init__(
        self,
        accessor: ObjectAccessor,
        catalog: KindCatalog,
        resolver: ReferenceResolver,
        reconcilers: Iterable[KindReconciler],
        cancel_event: Optional[threading.Event] = None,
    ):
        self.accessor = accessor
        self.catalog = catalog
        self.resolver = resolver
        self.cancel_event = cancel_event
        self._reconcilers: Dict[str, KindReconciler] = {}
        for reconciler in reconcilers:
            for kind in catalog.kinds_of(reconciler.kind):
                self._reconcilers[kind] = reconciler

    @property
    def kinds(self) -> Tuple[str, ...]:
        return tuple(self._reconcilers)

    def reconciler_for(self, kind: str) -> KindReconciler:
        try:
            return self._reconcilers[kind]
        except KeyError:
            raise KeyError(f"No reconciler registered for {kind}") from None

    def run(self, kind: str, namespace: Optional[str], name: str) -> ReconcileResult:
        """Run one cycle for the object identified by (kind, namespace, name)."""
        reconciler = self.reconciler_for(kind)
        check_cancelled(self.cancel_event)
        try:
            resource = self.accessor.get(kind, namespace, name)
        except NotFoundError:
            logger.info(f"{kind} {name} no longer exists, nothing to reconcile")
            return ReconcileResult()

        strategy = VariantStrategy.for_request(self.catalog, namespace)
        ctx = ReconcileContext(
            resource, self.resolver, strategy, self.accessor, self.cancel_event
        )
        try:
            if resource.is_deleting:
                return self._finalize(reconciler, ctx)
            self._ensure_finalizer(reconciler, ctx)
            return self._reconcile(reconciler, ctx)
        except ConflictError as e:
            logger.info(f"{resource.display_name()} changed during reconciliation: {e}")
            return ReconcileResult.now()

    def _reconcile(self, reconciler: KindReconciler, ctx: ReconcileContext):
        resource = ctx.resource
        logger.debug(f"Reconciling {resource.display_name()} (generation {resource.generation})")
        with StatusScope(self.accessor, resource, self.cancel_event):
            try:
                spec = reconciler.parse_spec(resource)
                result = reconciler.reconcile(ctx, spec) or ReconcileResult()
            except ResolutionInterrupted as e:
                ctx.commit(complete=False)
                return self._interrupted(resource, e.resolution)
            except ValidationError as e:
                logger.warning(f"{resource.display_name()} failed validation: {e}")
                set_conditions(
                    resource.status.conditions,
                    FAILED,
                    ConditionReason.SPEC_VALIDATION_FAILED,
                    str(e),
                )
                raise

            ctx.commit(complete=True)
            set_conditions(
                resource.status.conditions,
                SUCCEEDED,
                ConditionReason.RECONCILE_SUCCESS,
                "Reconciliation successful",
            )
        logger.info(f"{resource.display_name()} reconciled successfully")
        return result

    def _interrupted(self, resource: Resource, resolution: Resolution) -> ReconcileResult:
        if resolution.outcome == Outcome.ERROR:
            raise resolution.error
        logger.warning(
            f"{resource.display_name()} waiting on dependency "
            f"({resolution.message}), requeue in {resolution.requeue_after}s"
        )
        return ReconcileResult.after(resolution.requeue_after)

    def _ensure_finalizer(self, reconciler: KindReconciler, ctx: ReconcileContext):
        finalizer = reconciler.finalizer
        resource = ctx.resource
        if not finalizer or resource.has_finalizer(finalizer):
            return
        check_cancelled(self.cancel_event)
        resource.metadata.finalizers.append(finalizer)
        updated = self.accessor.update(resource)
        resource.metadata.resourceVersion = updated.resource_version
        logger.debug(f"Added finalizer {finalizer} to {resource.display_name()}")

    def _finalize(self, reconciler: KindReconciler, ctx: ReconcileContext):
        finalizer = reconciler.finalizer
        resource = ctx.resource
        if not finalizer or not resource.has_finalizer(finalizer):
            return ReconcileResult()

        logger.info(f"Finalizing {resource.display_name()}")
        status = resource.status
        set_conditions(
            status.conditions,
            ConditionStatuses(progressing=ConditionStatus.TRUE),
            ConditionReason.FINALIZING,
            "Removing derived resources",
        )
        status.phase = derive_phase(status.conditions, deleting=True).value
        check_cancelled(self.cancel_event)
        updated = self.accessor.update_status(resource)
        resource.metadata.resourceVersion = updated.resource_version

        reconciler.finalize(ctx)

        check_cancelled(self.cancel_event)
        resource.metadata.finalizers = [f for f in resource.metadata.finalizers if f != finalizer]
        self.accessor.update(resource)
        logger.info(f"Removed finalizer {finalizer} from {resource.display_name()}")
        return ReconcileResult()
