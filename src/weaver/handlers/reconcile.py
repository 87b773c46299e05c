"""kopf handlers driving the orchestrator for every reconciled kind."""

import logging

import kopf

from weaver import runtime
from weaver.engine.errors import ReconcileCancelled, TransientAccessError, ValidationError

logger = logging.getLogger(__name__)


def run_cycle(kind, name, namespace):
    """Run one reconciliation cycle and translate its outcome for kopf.

    A requeue becomes ``kopf.TemporaryError`` with the requested delay;
    invalid specs become ``kopf.PermanentError`` so kopf stops retrying until
    the next edit. Transient access errors propagate and kopf's own backoff
    applies.
    """
    try:
        result = runtime.current().orchestrator.run(kind, namespace or None, name)
    except ReconcileCancelled:
        logger.info(f"Reconciliation of {kind} {name} cancelled by shutdown")
        return
    except ValidationError as e:
        raise kopf.PermanentError(str(e)) from e
    except TransientAccessError as e:
        logger.warning(f"Transient error reconciling {kind} {name}: {e}")
        raise

    if result.immediate:
        raise kopf.TemporaryError(f"{kind} {name} changed while reconciling", delay=0)
    if result.requeue_after is not None:
        raise kopf.TemporaryError(
            f"{kind} {name} is waiting on a dependency", delay=result.requeue_after
        )


def register_reconcile_handlers(descriptor, registry=None):
    """Register create/update/resume/delete handlers for one kind."""
    kind = descriptor.kind
    resource = (descriptor.group, descriptor.version, descriptor.plural)
    options = {"registry": registry} if registry is not None else {}

    @kopf.on.create(*resource, **options)
    @kopf.on.update(*resource, **options)
    @kopf.on.resume(*resource, **options)
    def reconcile_fn(name, namespace, **kwargs):
        run_cycle(kind, name, namespace)

    @kopf.on.delete(*resource, optional=True, **options)
    def delete_fn(name, namespace, **kwargs):
        run_cycle(kind, name, namespace)

    logger.debug(f"Registered reconcile handlers for {kind}")
    return reconcile_fn, delete_fn
