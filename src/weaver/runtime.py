"""Wiring of the engine components shared by all handlers."""

import logging
import threading

from weaver.constants import DEPENDENCY_CHANGED_ANNOTATION
from weaver.engine.errors import NotFoundError, ValidationError, WeaverError
from weaver.engine.indexer import ReverseDependencyIndexer, change_token
from weaver.engine.reconciler import Orchestrator
from weaver.engine.resolver import ReferenceResolver

logger = logging.getLogger(__name__)

_runtime = None


class Runtime:
    """Accessor, resolver, orchestrator and indexer of one operator process."""

    def __init__(self, config, accessor, catalog, reconcilers, registrations, cancel_event=None):
        self.config = config
        self.accessor = accessor
        self.catalog = catalog
        self.cancel_event = cancel_event or threading.Event()
        self.resolver = ReferenceResolver(
            accessor, catalog, requeue_delay=config.requeue_delay, cancel_event=self.cancel_event
        )
        self.orchestrator = Orchestrator(
            accessor, catalog, self.resolver, reconcilers, cancel_event=self.cancel_event
        )
        self.indexer = ReverseDependencyIndexer(accessor, catalog, registrations)

    @classmethod
    def from_plugins(cls, config, accessor, catalog, plugins, cancel_event=None):
        reconcilers = []
        registrations = []
        for plugin in plugins:
            plugin_reconcilers = plugin.build_reconcilers(catalog, config)
            reconcilers.extend(plugin_reconcilers)
            for reconciler in plugin_reconcilers:
                registrations.extend(reconciler.registrations())
        logger.info(
            f"Runtime built with {len(reconcilers)} reconcilers "
            f"and {len(registrations)} reverse-index registrations"
        )
        return cls(config, accessor, catalog, reconcilers, registrations, cancel_event)

    def nudge_dependents(self, changed, deleted=False):
        """Mark every dependent of ``changed`` so the event loop re-delivers it."""
        token = change_token(changed)
        if deleted:
            token = f"{token}:deleted"
        dependents = self.indexer.invalidate(changed)
        for dependent in dependents:
            try:
                self.accessor.annotate(
                    dependent.kind,
                    dependent.namespace,
                    dependent.name,
                    {DEPENDENCY_CHANGED_ANNOTATION: token},
                )
                logger.debug(f"Nudged {dependent} after {changed.display_name()} changed")
            except NotFoundError:
                logger.debug(f"{dependent} disappeared before it could be nudged")
        return dependents

    def shutdown(self):
        self.cancel_event.set()

    def settle(self, max_rounds=20):
        """Reconcile every object repeatedly until nothing changes any more.

        Used with an in-memory accessor, where requeues and nudges are
        simply another round. Returns the number of rounds run.
        """
        kinds = self.orchestrator.kinds
        for round_number in range(1, max_rounds + 1):
            before = self._versions(kinds)
            for kind in kinds:
                for resource in self.accessor.list(kind):
                    try:
                        self.orchestrator.run(kind, resource.namespace, resource.name)
                    except ValidationError as e:
                        logger.warning(f"{resource.display_name()} is invalid: {e}")
                    except WeaverError as e:
                        logger.error(f"Reconciling {resource.display_name()} failed: {e}")
            if self._versions(kinds) == before:
                logger.info(f"Settled after {round_number} round(s)")
                return round_number
        logger.warning(f"Objects did not settle within {max_rounds} rounds")
        return max_rounds

    def _versions(self, kinds):
        return {
            (resource.kind, resource.namespace, resource.name): resource.resource_version
            for kind in kinds
            for resource in self.accessor.list(kind)
        }


def configure(runtime):
    global _runtime
    _runtime = runtime
    return runtime


def current():
    if _runtime is None:
        raise RuntimeError("Operator runtime is not configured")
    return _runtime
