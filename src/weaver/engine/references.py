"""Reference values and the typed reference-path shapes.

Resources mix several reference shapes across kinds: a plain
``LocalObjectReference`` (name only), a typed ``ObjectReference`` (kind,
namespace, name) that may be unset, a named map of references, and a list of
items each carrying an optional nested reference. ``ReferencePath`` names one
such field together with its shape and yields the ``Reference`` values found
on a resource.
"""

from dataclasses import dataclass
from enum import Enum
from functools import singledispatch
from typing import Any, Dict, Iterator, Optional, Tuple

from pydantic import BaseModel

from weaver.models.references import LocalObjectReference, ObjectReference


@dataclass(frozen=True)
class Reference:
    """A normalised pointer to another object."""

    name: str
    kind: Optional[str] = None
    namespace: Optional[str] = None

    @property
    def is_absent(self) -> bool:
        return not self.name

    def __str__(self):
        location = f"{self.namespace}/{self.name}" if self.namespace else self.name
        return f"{self.kind}:{location}" if self.kind else location


@singledispatch
def as_reference(value) -> Optional[Reference]:
    """Convert a reference-like value to a ``Reference``.

    Returns None for absent values (None, or an empty name).
    """
    raise TypeError(f"Unsupported reference value: {type(value).__name__}")


@as_reference.register(type(None))
def _(value) -> Optional[Reference]:
    return None


@as_reference.register(Reference)
def _(value: Reference) -> Optional[Reference]:
    return None if value.is_absent else value


@as_reference.register(dict)
def _(value: dict) -> Optional[Reference]:
    name = value.get("name") or ""
    if not name:
        return None
    return Reference(
        name=name,
        kind=value.get("kind") or None,
        namespace=value.get("namespace") or None,
    )


@as_reference.register(LocalObjectReference)
def _(value: LocalObjectReference) -> Optional[Reference]:
    return Reference(name=value.name) if value.name else None


@as_reference.register(ObjectReference)
def _(value: ObjectReference) -> Optional[Reference]:
    if not value.name:
        return None
    return Reference(
        name=value.name, kind=value.kind or None, namespace=value.namespace or None
    )


class ReferenceShape(str, Enum):
    SINGLE = "single"
    OPTIONAL = "optional"
    MAP = "map"
    SEQUENCE = "sequence"


def _lookup(container: Any, key: str) -> Any:
    if container is None:
        return None
    if isinstance(container, dict):
        return container.get(key)
    if isinstance(container, BaseModel):
        return getattr(container, key, None)
    return None


def _walk(container: Any, dotted: str) -> Any:
    value = container
    for part in dotted.split("."):
        value = _lookup(value, part)
        if value is None:
            return None
    return value


@dataclass(frozen=True)
class ReferencePath:
    """A reference field of a resource spec.

    ``field`` is a dotted path from the spec root. For ``SEQUENCE`` fields
    ``item_field`` is the dotted path of the reference inside each item.
    """

    field: str
    shape: ReferenceShape = ReferenceShape.OPTIONAL
    item_field: Optional[str] = None

    def __str__(self):
        if self.shape == ReferenceShape.SEQUENCE:
            return f"{self.field}[*].{self.item_field}"
        if self.shape == ReferenceShape.MAP:
            return f"{self.field}[*]"
        return self.field

    def references(self, spec: Any) -> Iterator[Tuple[str, Reference]]:
        """Yield ``(label, reference)`` pairs found on ``spec``.

        ``spec`` is either a plain dict (as stored on a resource) or a spec
        model. Absent values are skipped.
        """
        value = _walk(spec, self.field)
        yield from _SHAPE_HANDLERS[self.shape](self, value)


def _single(path: ReferencePath, value: Any) -> Iterator[Tuple[str, Reference]]:
    # A value reference is always present; its zero value has an empty name.
    reference = as_reference(value if value is not None else {})
    if reference is not None:
        yield path.field, reference


def _optional(path: ReferencePath, value: Any) -> Iterator[Tuple[str, Reference]]:
    if value is None:
        return
    reference = as_reference(value)
    if reference is not None:
        yield path.field, reference


def _map(path: ReferencePath, value: Any) -> Iterator[Tuple[str, Reference]]:
    if not value:
        return
    entries: Dict[str, Any] = value
    for key in sorted(entries):
        reference = as_reference(entries[key])
        if reference is not None:
            yield f"{path.field}.{key}", reference


def _sequence(path: ReferencePath, value: Any) -> Iterator[Tuple[str, Reference]]:
    if not value:
        return
    for index, item in enumerate(value):
        reference = as_reference(_walk(item, path.item_field))
        if reference is not None:
            yield f"{path.field}.{index}.{path.item_field}", reference


_SHAPE_HANDLERS = {
    ReferenceShape.SINGLE: _single,
    ReferenceShape.OPTIONAL: _optional,
    ReferenceShape.MAP: _map,
    ReferenceShape.SEQUENCE: _sequence,
}
