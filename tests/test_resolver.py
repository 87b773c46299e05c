"""Tests for the reference resolver."""

import threading

import pytest

from weaver.engine.accessor import MemoryAccessor
from weaver.engine.conditions import find_condition
from weaver.engine.errors import ReconcileCancelled, TransientAccessError
from weaver.engine.resolver import Outcome, ReferenceResolver
from weaver.models.references import ObjectReference

DELAY = 5


class FlakyAccessor(MemoryAccessor):
    """Fails every read of one kind with a transient error."""

    def __init__(self, failing_kind):
        super().__init__()
        self.failing_kind = failing_kind

    def get(self, kind, namespace, name):
        if kind == self.failing_kind:
            raise TransientAccessError("connection reset")
        return super().get(kind, namespace, name)


@pytest.fixture
def resolver(accessor, catalog):
    return ReferenceResolver(accessor, catalog, requeue_delay=DELAY)


@pytest.fixture
def header(create):
    return create("PageHeader", "top", spec={"content": "x"})


class TestResolve:
    def test_absent_reference_is_ready(self, resolver, header):
        resolution = resolver.resolve(header, None, "ScriptLibrary")
        assert resolution.outcome == Outcome.READY
        assert resolution.is_absent
        assert header.status.conditions == []

    def test_ready_target(self, resolver, header, create):
        create("ScriptLibrary", "lib", ready=True)
        resolution = resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        assert resolution.ok
        assert resolution.target.name == "lib"
        assert resolution.kind == "ScriptLibrary"

    def test_missing_target(self, resolver, header, accessor):
        resolution = resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        assert resolution.outcome == Outcome.NOT_FOUND
        assert resolution.requeue_after == DELAY

        stored = accessor.get("PageHeader", "default", "top")
        ready = find_condition(stored.status.conditions, "Ready")
        assert ready.status == "False"
        assert ready.reason == "ReconcileError"
        assert ready.message == "referenced ScriptLibrary lib not found"
        assert header.resource_version == stored.resource_version

    def test_repeated_failure_does_not_rewrite_status(self, resolver, header, accessor):
        resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        version = accessor.get("PageHeader", "default", "top").resource_version

        resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        assert accessor.get("PageHeader", "default", "top").resource_version == version

    def test_per_call_delay(self, resolver, header):
        resolution = resolver.resolve(header, {"name": "lib"}, "ScriptLibrary", requeue_delay=30)
        assert resolution.requeue_after == 30

    def test_not_ready_target_gets_generic_message(self, resolver, header, create, mark_ready):
        library = create("ScriptLibrary", "lib")
        mark_ready(library, ready=False)

        resolution = resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        assert resolution.outcome == Outcome.NOT_READY
        assert resolution.target.name == "lib"
        assert resolution.requeue_after == DELAY
        ready = find_condition(header.status.conditions, "Ready")
        assert ready.message == "referenced ScriptLibrary lib is not ready"
        assert "broken" not in ready.message

    def test_unreconciled_target_is_not_ready(self, resolver, header, create):
        create("ScriptLibrary", "lib")
        assert resolver.resolve(header, {"name": "lib"}, "ScriptLibrary").outcome == Outcome.NOT_READY

    def test_missing_default_is_not_an_error(self, resolver, create):
        host = create("Host", "site", spec={"brandName": "Site"})
        resolution = resolver.resolve(host, {"name": "default"}, "Theme", is_defaulted=True)
        assert resolution.ok
        assert resolution.missing_default
        assert resolution.target is None
        assert host.status.conditions == []

    def test_existing_default_is_resolved(self, resolver, create):
        create("Theme", "default", ready=True)
        host = create("Host", "site", spec={"brandName": "Site"})
        resolution = resolver.resolve(host, {"name": "default"}, "Theme", is_defaulted=True)
        assert resolution.target.name == "default"
        assert not resolution.missing_default

    def test_core_objects_are_ready_when_present(self, resolver, create):
        create("Secret", "npm-credentials", data={"token": "dG9rZW4="})
        app = create("App", "shop", spec={"packageReference": {"name": "@a/shop", "version": "1"}})
        assert resolver.resolve(app, {"name": "npm-credentials"}, "Secret").ok

    def test_reference_namespace_overrides_source(self, resolver, header, create):
        create("ScriptLibrary", "lib", namespace="shared", ready=True)
        resolution = resolver.resolve(
            header, ObjectReference(name="lib", namespace="shared"), "ScriptLibrary"
        )
        assert resolution.target.namespace == "shared"

    def test_cluster_source_resolves_cluster_variant(self, resolver, create):
        create("ClusterScriptLibrary", "lib", ready=True)
        create("ScriptLibrary", "lib", ready=True)
        header = create("ClusterPageHeader", "top", spec={"content": "x"})

        resolution = resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        assert resolution.kind == "ClusterScriptLibrary"
        assert resolution.target.namespace is None

    def test_namespaced_source_may_name_cluster_kind(self, resolver, header, create):
        create("ClusterScriptLibrary", "lib", ready=True)
        resolution = resolver.resolve(
            header, ObjectReference(kind="ClusterScriptLibrary", name="lib"), "ScriptLibrary"
        )
        assert resolution.kind == "ClusterScriptLibrary"

    def test_transient_error_leaves_conditions_alone(self, catalog, make_resource):
        accessor = FlakyAccessor("ScriptLibrary")
        header = accessor.create(make_resource("PageHeader", "top", spec={"content": "x"}))
        resolver = ReferenceResolver(accessor, catalog, requeue_delay=DELAY)

        resolution = resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
        assert resolution.outcome == Outcome.ERROR
        assert isinstance(resolution.error, TransientAccessError)
        assert header.status.conditions == []

    def test_cancelled(self, accessor, catalog, header):
        cancel_event = threading.Event()
        cancel_event.set()
        resolver = ReferenceResolver(accessor, catalog, cancel_event=cancel_event)
        with pytest.raises(ReconcileCancelled):
            resolver.resolve(header, {"name": "lib"}, "ScriptLibrary")
