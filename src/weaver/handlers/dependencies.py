"""kopf watch handlers turning target changes into dependent re-evaluations."""

import logging

import kopf

from weaver import runtime
from weaver.crd.base import Resource
from weaver.engine.errors import WeaverError

logger = logging.getLogger(__name__)


def on_target_event(kind, event_type, body):
    """Nudge the dependents of a changed object.

    ``event_type`` is None for the initial listing, which matters after a
    restart: dependents may have missed changes while the operator was down.
    """
    changed = Resource.from_body(body)
    changed.kind = changed.kind or kind
    try:
        runtime.current().nudge_dependents(changed, deleted=event_type == "DELETED")
    except WeaverError as e:
        logger.error(f"Failed to invalidate dependents of {changed.display_name()}: {e}")


def register_dependency_watch(descriptor, registry=None):
    """Watch one target kind and nudge its dependents on every change."""
    kind = descriptor.kind
    options = {"registry": registry} if registry is not None else {}
    if descriptor.is_core:
        resource = (descriptor.version, descriptor.plural)
    else:
        resource = (descriptor.group, descriptor.version, descriptor.plural)

    @kopf.on.event(*resource, **options)
    def dependency_fn(event, body, **kwargs):
        on_target_event(kind, event.get("type"), body)

    logger.debug(f"Watching {kind} for dependency changes")
    return dependency_fn


def register_dependency_watches(catalog, registrations, registry=None):
    """Watch every kind that some registration points at, once per kind.

    Returns the watched kinds in registration order.
    """
    watched = {}
    for registration in registrations:
        for kind in catalog.kinds_of(registration.target_kind):
            if kind not in watched:
                watched[kind] = register_dependency_watch(catalog.get(kind), registry=registry)
    logger.info(f"Watching {len(watched)} kinds for dependency changes")
    return list(watched)
