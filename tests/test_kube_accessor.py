"""Tests for the Kubernetes-backed accessor against mocked API clients."""

from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from weaver.engine.errors import ConflictError, NotFoundError, TransientAccessError
from weaver.services.kube_accessor import KubernetesAccessor


def body(kind, name, namespace="default", **extra):
    metadata = {"name": name, "resourceVersion": "7", "generation": 1}
    if namespace:
        metadata["namespace"] = namespace
    return {"apiVersion": "weaver.dev/v1alpha1", "kind": kind, "metadata": metadata, **extra}


@pytest.fixture
def kube(catalog):
    accessor = KubernetesAccessor(catalog, request_timeout=10, api_client=MagicMock())
    accessor.custom = MagicMock()
    accessor.core = MagicMock()
    return accessor


class TestReads:
    def test_get_namespaced_custom_object(self, kube):
        kube.custom.get_namespaced_custom_object.return_value = body(
            "PageHeader", "top", spec={"content": "x"}
        )
        resource = kube.get("PageHeader", "default", "top")

        assert resource.spec == {"content": "x"}
        assert resource.resource_version == "7"
        kube.custom.get_namespaced_custom_object.assert_called_once_with(
            _request_timeout=10,
            group="weaver.dev",
            version="v1alpha1",
            plural="pageheaders",
            namespace="default",
            name="top",
        )

    def test_get_cluster_object(self, kube):
        kube.custom.get_cluster_custom_object.return_value = body("ClusterTheme", "dark", None)
        assert kube.get("ClusterTheme", None, "dark").namespace is None
        assert "namespace" not in kube.custom.get_cluster_custom_object.call_args.kwargs

    def test_get_secret(self, kube):
        kube.core.read_namespaced_secret.return_value = {
            "metadata": {"name": "npm", "namespace": "default"},
            "data": {"token": "dG9r"},
        }
        secret = kube.get("Secret", "default", "npm")
        assert secret.kind == "Secret"
        assert secret.apiVersion == "v1"
        assert secret.data == {"token": "dG9r"}

    def test_list_with_selector(self, kube):
        kube.custom.list_cluster_custom_object.return_value = {
            "items": [body("PageHeader", "a"), body("PageHeader", "b", "web")]
        }
        found = kube.list("PageHeader", label_selector={"team": "web", "app": "x"})

        assert [r.name for r in found] == ["a", "b"]
        assert kube.custom.list_cluster_custom_object.call_args.kwargs["label_selector"] == "app=x,team=web"

    def test_list_secrets_in_all_namespaces(self, kube):
        kube.core.list_secret_for_all_namespaces.return_value = MagicMock(items=[])
        assert kube.list("Secret") == []


@pytest.mark.parametrize(
    "status, error",
    [(404, NotFoundError), (409, ConflictError), (500, TransientAccessError), (403, TransientAccessError)],
)
def test_api_errors_are_translated(kube, status, error):
    kube.custom.get_namespaced_custom_object.side_effect = ApiException(status=status, reason="x")
    with pytest.raises(error):
        kube.get("PageHeader", "default", "top")


class TestWrites:
    def test_update_status_uses_subresource(self, kube, make_resource):
        resource = make_resource("PageHeader", "top", spec={"content": "x"})
        resource.status.phase = "Ready"
        kube.custom.replace_namespaced_custom_object_status.return_value = body("PageHeader", "top")

        kube.update_status(resource)

        sent = kube.custom.replace_namespaced_custom_object_status.call_args.kwargs["body"]
        assert sent["status"]["phase"] == "Ready"

    def test_update_omits_status(self, kube, make_resource):
        resource = make_resource("PageBinding", "home")
        resource.metadata.finalizers.append("weaver.dev/page-binding-finalizer")
        resource.status.phase = "Ready"
        kube.custom.replace_namespaced_custom_object.return_value = body("PageBinding", "home")

        kube.update(resource)

        sent = kube.custom.replace_namespaced_custom_object.call_args.kwargs["body"]
        assert "status" not in sent
        assert sent["metadata"]["finalizers"] == ["weaver.dev/page-binding-finalizer"]

    def test_apply_creates_missing_config_map(self, kube, make_resource):
        kube.core.read_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")
        kube.core.create_namespaced_config_map.return_value = {
            "metadata": {"name": "home-page", "namespace": "default"}
        }
        config_map = make_resource("ConfigMap", "home-page", data={"index.html": "<html/>"})
        config_map.metadata.resourceVersion = "3"

        kube.apply(config_map)

        sent = kube.core.create_namespaced_config_map.call_args.kwargs["body"]
        assert sent["data"] == {"index.html": "<html/>"}
        assert "spec" not in sent
        assert "resourceVersion" not in sent["metadata"]

    def test_apply_replaces_existing(self, kube, make_resource):
        kube.core.read_namespaced_config_map.return_value = {
            "metadata": {"name": "home-page", "namespace": "default", "resourceVersion": "9"}
        }
        kube.core.replace_namespaced_config_map.return_value = {
            "metadata": {"name": "home-page", "namespace": "default", "resourceVersion": "10"}
        }
        kube.apply(make_resource("ConfigMap", "home-page", data={"index.html": "b"}))

        sent = kube.core.replace_namespaced_config_map.call_args.kwargs["body"]
        assert sent["metadata"]["resourceVersion"] == "9"

    def test_delete_missing(self, kube):
        kube.core.delete_namespaced_config_map.side_effect = ApiException(status=404, reason="Not Found")
        assert not kube.delete("ConfigMap", "default", "home-page")

    def test_annotate_patches_metadata(self, kube):
        kube.custom.patch_namespaced_custom_object.return_value = body("PageHeader", "top")
        kube.annotate("PageHeader", "default", "top", {"a": "1"})
        assert kube.custom.patch_namespaced_custom_object.call_args.kwargs["body"] == {
            "metadata": {"annotations": {"a": "1"}}
        }
