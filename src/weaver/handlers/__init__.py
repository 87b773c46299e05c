"""kopf handler registration for the weaver operator."""

from .dependencies import register_dependency_watch, register_dependency_watches
from .reconcile import register_reconcile_handlers, run_cycle

__all__ = [
    "register_dependency_watch",
    "register_dependency_watches",
    "register_reconcile_handlers",
    "run_cycle",
]
