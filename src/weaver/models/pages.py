"""Page composition CRD models."""

from enum import Enum

from pydantic import BaseModel, Field
from typing import List, Optional, Dict

from weaver.constants import (
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_PAGE_ARCHETYPE,
    KIND_CLUSTER_PAGE_FOOTER,
    KIND_CLUSTER_PAGE_HEADER,
    KIND_CLUSTER_PAGE_NAVIGATION,
    KIND_CLUSTER_UTILITY_PAGE,
    KIND_HOST,
    KIND_PAGE_ARCHETYPE,
    KIND_PAGE_BINDING,
    KIND_PAGE_FOOTER,
    KIND_PAGE_HEADER,
    KIND_PAGE_NAVIGATION,
    KIND_UTILITY_PAGE,
)
from weaver.crd.registry import CRDRegistry
from weaver.crd.base import CRDSpec
from weaver.models.references import LocalObjectReference, ObjectReference


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_HOST, "hosts")
class HostSpec(CRDSpec):
    """Host CRD specification: a site serving page bindings."""

    brandName: str = Field(..., description="Brand name shown on pages")
    domains: List[str] = Field(
        default_factory=list, description="Domains served by the host"
    )
    organization: str = Field(default="", description="Organisation name")
    themeRef: Optional[ObjectReference] = Field(
        default=None,
        description="Theme of the host (falls back to the operator's default theme)",
    )
    scriptLibraryRef: Optional[ObjectReference] = Field(
        default=None, description="Script library loaded on every page of the host"
    )


class PageFragmentSpec(CRDSpec):
    """Common shape of headers, footers and navigations."""

    content: str = Field(..., description="Template rendered into the page")
    scriptLibraryRef: Optional[ObjectReference] = Field(
        default=None, description="Script library required by the fragment"
    )


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_PAGE_HEADER, "pageheaders")
class PageHeaderSpec(PageFragmentSpec):
    """PageHeader CRD specification."""


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_PAGE_HEADER,
    "clusterpageheaders",
    scope="Cluster",
    variant_of=KIND_PAGE_HEADER,
)
class ClusterPageHeaderSpec(PageHeaderSpec):
    """Cluster-scoped PageHeader."""


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_PAGE_FOOTER, "pagefooters")
class PageFooterSpec(PageFragmentSpec):
    """PageFooter CRD specification."""


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_PAGE_FOOTER,
    "clusterpagefooters",
    scope="Cluster",
    variant_of=KIND_PAGE_FOOTER,
)
class ClusterPageFooterSpec(PageFooterSpec):
    """Cluster-scoped PageFooter."""


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_PAGE_NAVIGATION, "pagenavigations")
class PageNavigationSpec(PageFragmentSpec):
    """PageNavigation CRD specification."""


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_PAGE_NAVIGATION,
    "clusterpagenavigations",
    scope="Cluster",
    variant_of=KIND_PAGE_NAVIGATION,
)
class ClusterPageNavigationSpec(PageNavigationSpec):
    """Cluster-scoped PageNavigation."""


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_PAGE_ARCHETYPE, "pagearchetypes")
class PageArchetypeSpec(CRDSpec):
    """PageArchetype CRD specification: the skeleton a page binding fills in."""

    content: str = Field(..., description="Primary page template")
    defaultFooterRef: Optional[ObjectReference] = Field(
        default=None, description="Footer used unless a binding overrides it"
    )
    defaultHeaderRef: Optional[ObjectReference] = Field(
        default=None, description="Header used unless a binding overrides it"
    )
    defaultMainNavigationRef: Optional[ObjectReference] = Field(
        default=None, description="Main navigation used unless a binding overrides it"
    )
    extraNavigations: Dict[str, ObjectReference] = Field(
        default_factory=dict, description="Additional named navigations"
    )
    scriptLibraryRef: Optional[ObjectReference] = Field(
        default=None, description="Script library required by the archetype"
    )
    overrideThemeRef: Optional[ObjectReference] = Field(
        default=None, description="Theme replacing the host theme on these pages"
    )


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_PAGE_ARCHETYPE,
    "clusterpagearchetypes",
    scope="Cluster",
    variant_of=KIND_PAGE_ARCHETYPE,
)
class ClusterPageArchetypeSpec(PageArchetypeSpec):
    """Cluster-scoped PageArchetype."""


class ContentEntry(BaseModel):
    """Content placed in a named slot of the archetype."""

    slot: str = Field(default="main", description="Slot name in the archetype")
    rawHTML: Optional[str] = Field(default=None, description="Literal markup")
    appRef: Optional[ObjectReference] = Field(
        default=None, description="App rendering the slot"
    )
    customElementName: Optional[str] = Field(
        default=None, description="Custom element of the app to render"
    )


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_PAGE_BINDING, "pagebindings")
class PageBindingSpec(CRDSpec):
    """PageBinding CRD specification: a concrete page served by a host."""

    hostRef: LocalObjectReference = Field(..., description="Host serving the page")
    pageArchetypeRef: ObjectReference = Field(
        ..., description="Archetype the page is built from"
    )
    basePath: str = Field(..., description="URL path of the page")
    label: str = Field(default="", description="Page title")
    contentEntries: List[ContentEntry] = Field(
        default_factory=list, description="Slot contents"
    )
    overrideHeaderRef: Optional[ObjectReference] = Field(
        default=None, description="Header replacing the archetype default"
    )
    overrideFooterRef: Optional[ObjectReference] = Field(
        default=None, description="Footer replacing the archetype default"
    )
    overrideMainNavigationRef: Optional[ObjectReference] = Field(
        default=None, description="Main navigation replacing the archetype default"
    )
    parentPageRef: Optional[LocalObjectReference] = Field(
        default=None, description="Parent page in the navigation tree"
    )
    scriptLibraryRef: Optional[ObjectReference] = Field(
        default=None, description="Script library required by the page"
    )


class UtilityPageType(str, Enum):
    ANNOUNCEMENT = "Announcement"
    ERROR = "Error"
    LOGIN = "Login"


@CRDRegistry.register(API_GROUP, API_VERSION, KIND_UTILITY_PAGE, "utilitypages")
class UtilityPageSpec(CRDSpec):
    """UtilityPage CRD specification.

    A page a host serves outside its routing tree (announcement, error or
    login page). It is built from an archetype like a page binding but has no
    base path or parent.
    """

    type: UtilityPageType = Field(..., description="Which utility page this is")
    pageArchetypeRef: ObjectReference = Field(
        ..., description="Archetype the page is built from"
    )
    contentEntries: List[ContentEntry] = Field(
        default_factory=list, description="Slot contents"
    )
    overrideHeaderRef: Optional[ObjectReference] = Field(
        default=None, description="Header replacing the archetype default"
    )
    overrideFooterRef: Optional[ObjectReference] = Field(
        default=None, description="Footer replacing the archetype default"
    )
    overrideNavigationRefs: Dict[str, ObjectReference] = Field(
        default_factory=dict,
        description="Named navigations replacing or adding to the archetype's",
    )
    scriptLibraryRef: Optional[ObjectReference] = Field(
        default=None, description="Script library required by the page"
    )


@CRDRegistry.register(
    API_GROUP,
    API_VERSION,
    KIND_CLUSTER_UTILITY_PAGE,
    "clusterutilitypages",
    scope="Cluster",
    variant_of=KIND_UTILITY_PAGE,
)
class ClusterUtilityPageSpec(UtilityPageSpec):
    """Cluster-scoped UtilityPage, shared by every host."""
