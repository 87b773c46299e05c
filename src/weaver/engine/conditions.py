"""Status condition tracking.

Every object carries at most one condition per type (Ready, Progressing,
Degraded). Writes are last-writer-wins per type; ``lastTransitionTime`` moves
only when the status value itself changes, so a cycle that repeats the same
outcome produces an identical status and no update traffic.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from weaver.crd.base import CRDCondition


class ConditionType(str, Enum):
    READY = "Ready"
    PROGRESSING = "Progressing"
    DEGRADED = "Degraded"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionReason(str, Enum):
    RECONCILING = "Reconciling"
    RECONCILE_SUCCESS = "ReconcileSuccess"
    RECONCILE_ERROR = "ReconcileError"
    SPEC_VALIDATION_FAILED = "SpecValidationFailed"
    FINALIZING = "Finalizing"


class Phase(str, Enum):
    INITIALIZING = "Initializing"
    PROGRESSING = "Progressing"
    READY = "Ready"
    DEGRADED = "Degraded"
    FINALIZING = "Finalizing"


@dataclass(frozen=True)
class ConditionStatuses:
    """Desired status per condition type; ``None`` leaves that type untouched."""

    degraded: Optional[ConditionStatus] = None
    progressing: Optional[ConditionStatus] = None
    ready: Optional[ConditionStatus] = None

    def items(self):
        for condition_type, status in (
            (ConditionType.DEGRADED, self.degraded),
            (ConditionType.PROGRESSING, self.progressing),
            (ConditionType.READY, self.ready),
        ):
            if status is not None:
                yield condition_type, status


RECONCILING = ConditionStatuses(
    degraded=ConditionStatus.FALSE,
    progressing=ConditionStatus.TRUE,
    ready=ConditionStatus.UNKNOWN,
)
SUCCEEDED = ConditionStatuses(
    degraded=ConditionStatus.FALSE,
    progressing=ConditionStatus.FALSE,
    ready=ConditionStatus.TRUE,
)
FAILED = ConditionStatuses(
    degraded=ConditionStatus.TRUE,
    progressing=ConditionStatus.FALSE,
    ready=ConditionStatus.FALSE,
)
NOT_READY = ConditionStatuses(ready=ConditionStatus.FALSE)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _value(item: Union[str, Enum]) -> str:
    return item.value if isinstance(item, Enum) else str(item)


def find_condition(
    conditions: List[CRDCondition], condition_type: Union[str, ConditionType]
) -> Optional[CRDCondition]:
    wanted = _value(condition_type)
    for condition in conditions:
        if condition.type == wanted:
            return condition
    return None


def set_condition(
    conditions: List[CRDCondition],
    condition_type: Union[str, ConditionType],
    status: Union[str, ConditionStatus],
    reason: Union[str, ConditionReason],
    message: str,
    now: Optional[datetime] = None,
) -> bool:
    """Set one condition in place. Returns True if anything changed."""
    condition_type = _value(condition_type)
    status = _value(status)
    reason = _value(reason)

    existing = find_condition(conditions, condition_type)
    if existing is None:
        conditions.append(
            CRDCondition(
                type=condition_type,
                status=status,
                reason=reason,
                message=message,
                lastTransitionTime=now or _now(),
            )
        )
        return True

    changed = False
    if existing.status != status:
        existing.status = status
        existing.lastTransitionTime = now or _now()
        changed = True
    if existing.reason != reason:
        existing.reason = reason
        changed = True
    if existing.message != message:
        existing.message = message
        changed = True
    return changed


def set_conditions(
    conditions: List[CRDCondition],
    statuses: Union[ConditionStatuses, Dict[ConditionType, ConditionStatus]],
    reason: Union[str, ConditionReason],
    message: str,
    now: Optional[datetime] = None,
) -> bool:
    """Apply several condition statuses sharing one reason and message."""
    items = statuses.items()
    now = now or _now()
    changed = False
    for condition_type, status in items:
        changed = set_condition(conditions, condition_type, status, reason, message, now) or changed
    return changed


def is_condition_true(
    conditions: List[CRDCondition], condition_type: Union[str, ConditionType]
) -> bool:
    condition = find_condition(conditions, condition_type)
    return condition is not None and condition.status == ConditionStatus.TRUE.value


def is_ready(conditions: List[CRDCondition]) -> bool:
    """An object is ready only if it carries ``Ready=True``; absence is not ready."""
    return is_condition_true(conditions, ConditionType.READY)


def derive_phase(conditions: List[CRDCondition], deleting: bool = False) -> Phase:
    if deleting:
        return Phase.FINALIZING
    if not conditions:
        return Phase.INITIALIZING
    if is_ready(conditions):
        return Phase.READY
    if is_condition_true(conditions, ConditionType.DEGRADED):
        return Phase.DEGRADED
    return Phase.PROGRESSING
