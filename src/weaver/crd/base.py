"""Base classes for CRD specifications and the objects the operator handles."""

from pydantic import BaseModel, Field
from typing import Any, Optional, Dict, List
from datetime import datetime


class CRDMetadata(BaseModel):
    """Standard Kubernetes metadata for CRDs."""

    name: str
    namespace: Optional[str] = None
    uid: Optional[str] = None
    generation: int = 0
    resourceVersion: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    finalizers: List[str] = Field(default_factory=list)
    deletionTimestamp: Optional[str] = None
    ownerReferences: List[Dict[str, Any]] = Field(default_factory=list)

    class Config:
        extra = "allow"


class CRDCondition(BaseModel):
    """Custom Kubernetes condition."""

    type: str
    status: str  # True, False, Unknown
    reason: str
    message: str
    lastTransitionTime: Optional[datetime] = None


class CRDStatus(BaseModel):
    """Base class for all CRD status objects."""

    phase: Optional[str] = None
    conditions: List[CRDCondition] = Field(default_factory=list)
    observedGeneration: Optional[int] = None
    attributes: Dict[str, str] = Field(default_factory=dict)

    class Config:
        extra = "allow"


class CRDSpec(BaseModel):
    """Base class for all CRD spec objects."""

    class Config:
        extra = "forbid"
        validate_assignment = True


class Resource(BaseModel):
    """A Kubernetes object as read from, and written back to, the API server.

    ``spec`` is kept as a plain mapping; kind reconcilers parse it into their
    registered spec model. Only ``status`` (and finalizers/annotations on
    ``metadata``) are ever written by the operator.
    """

    apiVersion: str = ""
    kind: str
    metadata: CRDMetadata
    spec: Dict[str, Any] = Field(default_factory=dict)
    status: CRDStatus = Field(default_factory=CRDStatus)

    class Config:
        extra = "allow"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace or None

    @property
    def generation(self) -> int:
        return self.metadata.generation

    @property
    def resource_version(self) -> Optional[str]:
        return self.metadata.resourceVersion

    @property
    def is_deleting(self) -> bool:
        return bool(self.metadata.deletionTimestamp)

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers

    def display_name(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"

    def to_body(self) -> Dict[str, Any]:
        """Serialise to a JSON-compatible body for the API server."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_body(cls, body) -> "Resource":
        body = dict(body)
        if body.get("status") is None:
            body.pop("status", None)
        return cls.model_validate(body)
