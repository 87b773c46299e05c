"""Script library, theme and app CRD models."""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict

from weaver.constants import (
    API_GROUP,
    API_VERSION,
    KIND_APP,
    KIND_CLUSTER_APP,
    KIND_CLUSTER_SCRIPT_LIBRARY,
    KIND_CLUSTER_THEME,
    KIND_SCRIPT_LIBRARY,
    KIND_THEME,
)
from weaver.crd.registry import CRDRegistry
from weaver.crd.base import CRDSpec
from weaver.models.references import ObjectReference, PackageReference


class Script(BaseModel):
    """A script tag emitted on pages using the library."""

    src: Optional[str] = Field(default=None, description="Script URL")
    script: Optional[str] = Field(default=None, description="Inline script body")
    footScript: bool = Field(
        default=False, description="Emit at the end of the body instead of the head"
    )


class Asset(BaseModel):
    """A theme asset (stylesheet link or inline style)."""

    linkHref: Optional[str] = Field(default=None, description="Stylesheet URL")
    style: Optional[str] = Field(default=None, description="Inline CSS template")
    attributes: Dict[str, str] = Field(
        default_factory=dict, description="Extra attributes for the emitted tag"
    )


class CustomElement(BaseModel):
    name: str = Field(..., description="Custom element tag name")
    description: str = Field(default="", description="What the element renders")


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_SCRIPT_LIBRARY, "scriptlibraries")
class ScriptLibrarySpec(CRDSpec):
    """ScriptLibrary CRD specification."""

    packageReference: Optional[PackageReference] = Field(
        default=None, description="npm package providing the scripts"
    )
    scripts: List[Script] = Field(
        default_factory=list, description="Scripts emitted on pages"
    )


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_SCRIPT_LIBRARY,
    "clusterscriptlibraries",
    scope="Cluster",
    variant_of=KIND_SCRIPT_LIBRARY,
)
class ClusterScriptLibrarySpec(ScriptLibrarySpec):
    """Cluster-scoped ScriptLibrary."""


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_THEME, "themes")
class ThemeSpec(CRDSpec):
    """Theme CRD specification."""

    assets: List[Asset] = Field(default_factory=list, description="Theme assets")
    scriptLibraryRef: Optional[ObjectReference] = Field(
        default=None, description="Script library required by the theme"
    )


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_THEME,
    "clusterthemes",
    scope="Cluster",
    variant_of=KIND_THEME,
)
class ClusterThemeSpec(ThemeSpec):
    """Cluster-scoped Theme."""


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_APP, "apps")
class AppSpec(CRDSpec):
    """App CRD specification: a micro-frontend shipped as an npm package."""

    packageReference: PackageReference = Field(
        ..., description="npm package implementing the app"
    )
    customElements: List[CustomElement] = Field(
        default_factory=list, description="Custom elements the app provides"
    )


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_APP,
    "clusterapps",
    scope="Cluster",
    variant_of=KIND_APP,
)
class ClusterAppSpec(AppSpec):
    """Cluster-scoped App."""
