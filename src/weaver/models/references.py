"""Reference models shared by the CRD specs."""

from pydantic import BaseModel, Field
from typing import Optional


class LocalObjectReference(BaseModel):
    """Reference to an object of a fixed kind in the referrer's namespace."""

    name: str = Field(default="", description="Name of the referenced object")


class ObjectReference(BaseModel):
    """Reference to an object whose kind may be namespaced or cluster-scoped.

    ``kind`` may be left unset, in which case the variant matching the
    referrer's scope is used.
    """

    kind: Optional[str] = Field(
        default=None,
        description="Kind of the referenced object (e.g. ScriptLibrary or ClusterScriptLibrary)",
    )
    name: str = Field(default="", description="Name of the referenced object")
    namespace: Optional[str] = Field(
        default=None,
        description="Namespace of the referenced object (defaults to the referrer's)",
    )


class PackageReference(BaseModel):
    """An npm package, optionally pulled from a private registry."""

    name: str = Field(..., description="Scoped package name (@scope/name)")
    version: str = Field(..., description="Package version")
    registry: Optional[str] = Field(
        default=None, description="Registry host overriding the configured default"
    )
    secretRef: Optional[LocalObjectReference] = Field(
        default=None,
        description="Secret holding registry credentials",
    )
