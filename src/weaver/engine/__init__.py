"""Reference resolution and reactive invalidation engine."""

from .accessor import ChangeEvent, EventType, MemoryAccessor, ObjectAccessor
from .conditions import (
    ConditionReason,
    ConditionStatus,
    ConditionStatuses,
    ConditionType,
    Phase,
    derive_phase,
    find_condition,
    is_ready,
    set_condition,
    set_conditions,
)
from .errors import (
    ConflictError,
    NotFoundError,
    ReconcileCancelled,
    ResolutionInterrupted,
    TransientAccessError,
    ValidationError,
    WeaverError,
)
from .indexer import DependentRef, Registration, ReverseDependencyIndexer, change_token
from .kinds import KindCatalog, KindDescriptor, VariantStrategy
from .reconciler import (
    KindReconciler,
    Orchestrator,
    ReconcileContext,
    ReconcileResult,
    StatusScope,
)
from .references import Reference, ReferencePath, ReferenceShape, as_reference
from .resolver import Outcome, ReferenceResolver, Resolution

__all__ = [
    "ChangeEvent",
    "EventType",
    "MemoryAccessor",
    "ObjectAccessor",
    "ConditionReason",
    "ConditionStatus",
    "ConditionStatuses",
    "ConditionType",
    "Phase",
    "derive_phase",
    "find_condition",
    "is_ready",
    "set_condition",
    "set_conditions",
    "ConflictError",
    "NotFoundError",
    "ReconcileCancelled",
    "ResolutionInterrupted",
    "TransientAccessError",
    "ValidationError",
    "WeaverError",
    "DependentRef",
    "Registration",
    "ReverseDependencyIndexer",
    "change_token",
    "KindCatalog",
    "KindDescriptor",
    "VariantStrategy",
    "KindReconciler",
    "Orchestrator",
    "ReconcileContext",
    "ReconcileResult",
    "StatusScope",
    "Reference",
    "ReferencePath",
    "ReferenceShape",
    "as_reference",
    "Outcome",
    "ReferenceResolver",
    "Resolution",
]
