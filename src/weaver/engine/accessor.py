"""Object accessor boundary and its in-memory implementation."""

import copy
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from weaver.crd.base import Resource
from weaver.engine.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class EventType:
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True)
class ChangeEvent:
    type: str
    object: Resource


class ObjectAccessor(ABC):
    """Get/list/update/watch on objects keyed by (kind, namespace, name).

    Implementations raise ``NotFoundError`` for missing objects,
    ``ConflictError`` when a write carries a stale ``resourceVersion`` and
    ``TransientAccessError`` for anything the caller should simply retry.
    """

    @abstractmethod
    def get(self, kind: str, namespace: Optional[str], name: str) -> Resource:
        pass

    @abstractmethod
    def list(
        self,
        kind: str,
        namespace: Optional[str] = None,
        label_selector: Optional[Dict[str, str]] = None,
    ) -> List[Resource]:
        """List objects of ``kind``; ``namespace=None`` lists all namespaces."""
        pass

    @abstractmethod
    def update(self, resource: Resource) -> Resource:
        """Write metadata and spec, conditional on ``resourceVersion``."""
        pass

    @abstractmethod
    def update_status(self, resource: Resource) -> Resource:
        """Write the status sub-resource, conditional on ``resourceVersion``."""
        pass

    @abstractmethod
    def delete(self, kind: str, namespace: Optional[str], name: str) -> bool:
        """Delete an object. Returns False if it was already gone."""
        pass

    @abstractmethod
    def annotate(
        self, kind: str, namespace: Optional[str], name: str, annotations: Dict[str, str]
    ) -> Resource:
        """Merge annotations onto an object without a version check."""
        pass

    @abstractmethod
    def apply(self, resource: Resource) -> Resource:
        """Create the object, or replace its content if it exists."""
        pass

    @abstractmethod
    def watch(self, kind: str, namespace: Optional[str] = None) -> Iterator[ChangeEvent]:
        pass


def _key(kind: str, namespace: Optional[str], name: str) -> Tuple[str, str, str]:
    return kind, namespace or "", name


def _matches(resource: Resource, label_selector: Optional[Dict[str, str]]) -> bool:
    if not label_selector:
        return True
    labels = resource.metadata.labels
    return all(labels.get(key) == value for key, value in label_selector.items())


class MemoryAccessor(ObjectAccessor):
    """In-process object store with API-server write semantics.

    Every write bumps ``resourceVersion``; a change of ``spec`` bumps
    ``generation``; a conditional write with a stale ``resourceVersion``
    raises ``ConflictError``; deleting an object holding finalizers only marks
    it for deletion until the last finalizer is removed.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._objects: Dict[Tuple[str, str, str], Resource] = {}
        self._events: List[ChangeEvent] = []
        self._versions = itertools.count(1)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _record(self, event_type: str, resource: Resource):
        self._events.append(ChangeEvent(event_type, resource.model_copy(deep=True)))

    def _stored(self, kind: str, namespace: Optional[str], name: str) -> Resource:
        stored = self._objects.get(_key(kind, namespace, name))
        if stored is None:
            raise NotFoundError(kind, name, namespace)
        return stored

    def _check_version(self, stored: Resource, resource: Resource):
        if resource.resource_version and resource.resource_version != stored.resource_version:
            raise ConflictError(
                f"{stored.display_name()} has been modified "
                f"(resourceVersion {resource.resource_version} != {stored.resource_version})"
            )

    def create(self, resource: Resource) -> Resource:
        with self._lock:
            key = _key(resource.kind, resource.namespace, resource.name)
            if key in self._objects:
                raise ConflictError(f"{resource.display_name()} already exists")
            stored = resource.model_copy(deep=True)
            stored.metadata.generation = 1
            stored.metadata.resourceVersion = self._next_version()
            stored.metadata.deletionTimestamp = None
            self._objects[key] = stored
            self._record(EventType.ADDED, stored)
            return stored.model_copy(deep=True)

    def get(self, kind, namespace, name):
        with self._lock:
            return self._stored(kind, namespace, name).model_copy(deep=True)

    def list(self, kind, namespace=None, label_selector=None):
        with self._lock:
            found = [
                resource.model_copy(deep=True)
                for (stored_kind, stored_namespace, _), resource in sorted(self._objects.items())
                if stored_kind == kind
                and (namespace is None or stored_namespace == (namespace or ""))
                and _matches(resource, label_selector)
            ]
        return found

    def update(self, resource):
        with self._lock:
            stored = self._stored(resource.kind, resource.namespace, resource.name)
            self._check_version(stored, resource)
            updated = stored.model_copy(deep=True)
            updated.metadata.labels = dict(resource.metadata.labels)
            updated.metadata.annotations = dict(resource.metadata.annotations)
            updated.metadata.finalizers = list(resource.metadata.finalizers)
            updated.metadata.ownerReferences = copy.deepcopy(resource.metadata.ownerReferences)
            if resource.spec != stored.spec:
                updated.spec = copy.deepcopy(resource.spec)
                updated.metadata.generation = stored.generation + 1
            for field, value in (resource.model_extra or {}).items():
                setattr(updated, field, copy.deepcopy(value))
            return self._commit(updated)

    def update_status(self, resource):
        with self._lock:
            stored = self._stored(resource.kind, resource.namespace, resource.name)
            self._check_version(stored, resource)
            updated = stored.model_copy(deep=True)
            updated.status = resource.status.model_copy(deep=True)
            return self._commit(updated)

    def _commit(self, updated: Resource) -> Resource:
        key = _key(updated.kind, updated.namespace, updated.name)
        if updated.is_deleting and not updated.metadata.finalizers:
            del self._objects[key]
            self._record(EventType.DELETED, updated)
            return updated.model_copy(deep=True)
        updated.metadata.resourceVersion = self._next_version()
        self._objects[key] = updated
        self._record(EventType.MODIFIED, updated)
        return updated.model_copy(deep=True)

    def delete(self, kind, namespace, name):
        with self._lock:
            key = _key(kind, namespace, name)
            stored = self._objects.get(key)
            if stored is None:
                return False
            if stored.metadata.finalizers:
                if not stored.is_deleting:
                    updated = stored.model_copy(deep=True)
                    updated.metadata.deletionTimestamp = (
                        datetime.now(timezone.utc).replace(microsecond=0).isoformat()
                    )
                    self._commit(updated)
                return True
            del self._objects[key]
            self._record(EventType.DELETED, stored)
            return True

    def annotate(self, kind, namespace, name, annotations):
        with self._lock:
            stored = self._stored(kind, namespace, name)
            updated = stored.model_copy(deep=True)
            updated.metadata.annotations.update(annotations)
            if updated.metadata.annotations == stored.metadata.annotations:
                return updated
            return self._commit(updated)

    def apply(self, resource):
        with self._lock:
            key = _key(resource.kind, resource.namespace, resource.name)
            if key not in self._objects:
                return self.create(resource)
            current = self._objects[key].model_copy(deep=True)
            current.metadata.labels = dict(resource.metadata.labels)
            current.metadata.ownerReferences = copy.deepcopy(resource.metadata.ownerReferences)
            if resource.spec != current.spec:
                current.spec = copy.deepcopy(resource.spec)
                current.metadata.generation += 1
            for field, value in (resource.model_extra or {}).items():
                setattr(current, field, copy.deepcopy(value))
            if current == self._objects[key]:
                return current
            return self._commit(current)

    def watch(self, kind, namespace=None):
        """Replay recorded change events for ``kind``.

        The store is in-process, so the stream ends at the latest event
        rather than blocking for new ones.
        """
        with self._lock:
            events = list(self._events)
        for event in events:
            if event.object.kind != kind:
                continue
            if namespace is not None and (event.object.namespace or "") != namespace:
                continue
            yield event

    def load(self, resources):
        """Create several objects at once, e.g. from parsed manifests."""
        return [self.create(resource) for resource in resources]
