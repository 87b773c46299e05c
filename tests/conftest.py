"""Shared test fixtures for weaver."""

import pytest

from weaver import runtime as runtime_module
from weaver.config import OperatorConfig
from weaver.crd.base import CRDMetadata, Resource
from weaver.crd.registry import CRDRegistry
from weaver.engine.accessor import MemoryAccessor
from weaver.engine.conditions import (
    FAILED,
    SUCCEEDED,
    ConditionReason,
    derive_phase,
    set_conditions,
)
from weaver.engine.kinds import KindCatalog
from weaver.plugins.libraries import LibrariesPlugin
from weaver.plugins.pages import PagesPlugin
from weaver.runtime import Runtime

REQUEUE_DELAY = 5


@pytest.fixture(scope="session")
def catalog() -> KindCatalog:
    """Catalog of every built-in kind plus Secrets and ConfigMaps."""
    CRDRegistry().discover_models()
    return KindCatalog.from_registry()


@pytest.fixture
def accessor() -> MemoryAccessor:
    return MemoryAccessor()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(requeue_delay=REQUEUE_DELAY, validate_packages=False)


@pytest.fixture
def runtime(config, accessor, catalog) -> Runtime:
    """A runtime wired to the in-memory accessor with both built-in plugins."""
    return Runtime.from_plugins(config, accessor, catalog, [LibrariesPlugin(), PagesPlugin()])


@pytest.fixture
def configured_runtime(runtime):
    """The runtime installed as the process-wide runtime used by kopf handlers."""
    runtime_module.configure(runtime)
    yield runtime
    runtime_module.configure(None)


@pytest.fixture
def make_resource(catalog):
    """Build an unsaved resource of any known kind."""

    def make(kind, name, namespace="default", spec=None, **extra):
        descriptor = catalog.get(kind)
        return Resource(
            apiVersion=descriptor.api_version,
            kind=kind,
            metadata=CRDMetadata(
                name=name, namespace=namespace if descriptor.namespaced else None
            ),
            spec=spec or {},
            **extra,
        )

    return make


@pytest.fixture
def mark_ready(accessor):
    """Give a stored object the conditions a successful (or failed) cycle leaves."""

    def mark(resource, ready=True):
        stored = accessor.get(resource.kind, resource.namespace, resource.name)
        statuses = SUCCEEDED if ready else FAILED
        message = "Reconciliation successful" if ready else "broken"
        reason = ConditionReason.RECONCILE_SUCCESS if ready else ConditionReason.RECONCILE_ERROR
        set_conditions(stored.status.conditions, statuses, reason, message)
        stored.status.observedGeneration = stored.generation
        stored.status.phase = derive_phase(stored.status.conditions).value
        return accessor.update_status(stored)

    return mark


@pytest.fixture
def create(accessor, make_resource, mark_ready):
    """Store an object, optionally already Ready."""

    def create_resource(kind, name, namespace="default", spec=None, ready=False, **extra):
        stored = accessor.create(make_resource(kind, name, namespace, spec, **extra))
        if ready:
            stored = mark_ready(stored)
        return stored

    return create_resource
