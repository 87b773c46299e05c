"""Reference resolution: existence and readiness checks with status propagation."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from weaver.crd.base import Resource
from weaver.engine.accessor import ObjectAccessor
from weaver.engine.conditions import (
    FAILED,
    NOT_READY,
    ConditionReason,
    is_ready,
    set_conditions,
)
from weaver.engine.errors import (
    NotFoundError,
    ReconcileCancelled,
    WeaverError,
)
from weaver.engine.kinds import KindCatalog, VariantStrategy
from weaver.engine.references import Reference, as_reference

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    READY = "Ready"
    NOT_FOUND = "NotFound"
    NOT_READY = "NotReady"
    ERROR = "Error"


@dataclass
class Resolution:
    """Result of resolving one reference.

    ``target`` is set for READY (unless the reference was absent) and
    NOT_READY. ``requeue_after`` is the delay before the source should be
    looked at again when the outcome is NOT_FOUND or NOT_READY.
    """

    outcome: Outcome
    reference: Optional[Reference] = None
    kind: Optional[str] = None
    target: Optional[Resource] = None
    error: Optional[Exception] = None
    message: str = ""
    requeue_after: Optional[float] = None
    missing_default: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.READY

    @property
    def is_absent(self) -> bool:
        return self.ok and self.target is None


def not_found_message(kind: str, name: str) -> str:
    return f"referenced {kind} {name} not found"


def not_ready_message(kind: str, name: str) -> str:
    return f"referenced {kind} {name} is not ready"


class ReferenceResolver:
    """Resolves references of a source object against the object store.

    One resolver serves every kind: the target kind is passed in and the
    not-found/not-ready handling is the same for all of them.
    """

    def __init__(
        self,
        accessor: ObjectAccessor,
        catalog: KindCatalog,
        requeue_delay: float = 15,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.accessor = accessor
        self.catalog = catalog
        self.requeue_delay = requeue_delay
        self.cancel_event = cancel_event

    def _check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ReconcileCancelled("Operator is shutting down")

    def resolve(
        self,
        source: Resource,
        reference: Any,
        target_kind: str,
        requeue_delay: Optional[float] = None,
        is_defaulted: bool = False,
        strategy: Optional[VariantStrategy] = None,
        persist: bool = True,
    ) -> Resolution:
        """Resolve ``reference`` held by ``source``.

        On NOT_FOUND and NOT_READY the source's conditions are updated and,
        if they changed and ``persist`` is set, the status is written before
        returning; ``source`` picks up the new ``resourceVersion``. A conflicting
        status write raises ``ConflictError``. Callers running inside a
        ``StatusScope`` pass ``persist=False`` and leave the write to the scope.

        An explicit kind that is not a variant of ``target_kind`` raises
        ``ValidationError``.
        """
        reference = as_reference(reference)
        if reference is None:
            return Resolution(Outcome.READY)

        delay = self.requeue_delay if requeue_delay is None else requeue_delay
        strategy = strategy or VariantStrategy.for_request(self.catalog, source.namespace)
        kind = strategy.kind_for(target_kind, reference.kind)
        namespace = strategy.namespace_for(kind, reference.namespace, source.namespace)

        self._check_cancelled()
        try:
            target = self.accessor.get(kind, namespace, reference.name)
        except NotFoundError:
            if is_defaulted:
                logger.info(
                    f"Default {kind} {reference.name} for {source.display_name()} "
                    f"does not exist, continuing without it"
                )
                return Resolution(
                    Outcome.READY, reference=reference, kind=kind, missing_default=True
                )
            message = not_found_message(kind, reference.name)
            logger.warning(f"{source.display_name()}: {message}")
            if set_conditions(
                source.status.conditions, FAILED, ConditionReason.RECONCILE_ERROR, message
            ) and persist:
                self._persist(source)
            return Resolution(
                Outcome.NOT_FOUND,
                reference=reference,
                kind=kind,
                message=message,
                requeue_after=delay,
            )
        except ReconcileCancelled:
            raise
        except WeaverError as e:
            logger.error(
                f"Failed to fetch {kind} {reference.name} for {source.display_name()}: {e}"
            )
            return Resolution(
                Outcome.ERROR, reference=reference, kind=kind, error=e, message=str(e)
            )

        if self._is_ready(kind, target):
            logger.debug(f"{source.display_name()}: {kind} {reference.name} is ready")
            return Resolution(Outcome.READY, reference=reference, kind=kind, target=target)

        message = not_ready_message(kind, reference.name)
        logger.warning(f"{source.display_name()}: {message}")
        if set_conditions(
            source.status.conditions, NOT_READY, ConditionReason.RECONCILE_ERROR, message
        ) and persist:
            self._persist(source)
        return Resolution(
            Outcome.NOT_READY,
            reference=reference,
            kind=kind,
            target=target,
            message=message,
            requeue_after=delay,
        )

    def _is_ready(self, kind: str, target: Resource) -> bool:
        # Core objects (Secrets, ConfigMaps) carry no conditions.
        if kind in self.catalog and self.catalog.get(kind).is_core:
            return True
        return is_ready(target.status.conditions)

    def _persist(self, source: Resource):
        self._check_cancelled()
        updated = self.accessor.update_status(source)
        source.metadata.resourceVersion = updated.resource_version
