"""Tests for CRD generation from the registered models."""

from unittest.mock import MagicMock

import pytest
import yaml
from kubernetes.client.exceptions import ApiException

from weaver.crd.generator import CRDManager, OpenAPIConverter
from weaver.crd.base import CRDSpec
from weaver.crd.registry import CRDRegistry
from weaver.models.pages import PageArchetypeSpec, PageBindingSpec, PageHeaderSpec


@pytest.fixture
def manager(tmp_path):
    return CRDManager(output_dir=tmp_path / "crds")


class TestOpenAPIConverter:
    def test_optional_reference_is_nullable_object(self):
        schema = OpenAPIConverter.convert_schema(PageArchetypeSpec.model_json_schema())
        footer = schema["properties"]["defaultFooterRef"]
        assert footer["nullable"] is True
        assert footer["type"] == "object"
        assert set(footer["properties"]) == {"kind", "name", "namespace"}
        assert schema["required"] == ["content"]

    def test_map_of_references(self):
        schema = OpenAPIConverter.convert_schema(PageArchetypeSpec.model_json_schema())
        navigations = schema["properties"]["extraNavigations"]
        assert navigations["type"] == "object"
        assert navigations["additionalProperties"]["properties"]["name"]["type"] == "string"

    def test_list_of_objects(self):
        schema = OpenAPIConverter.convert_schema(PageBindingSpec.model_json_schema())
        entries = schema["properties"]["contentEntries"]
        assert entries["type"] == "array"
        assert "appRef" in entries["items"]["properties"]
        assert set(schema["required"]) == {"hostRef", "pageArchetypeRef", "basePath"}

    def test_untyped_property(self):
        assert OpenAPIConverter._convert_property({}, {}) == {
            "type": "object",
            "x-kubernetes-preserve-unknown-fields": True,
        }


class TestCRDManager:
    def test_definition_for_cluster_variant(self, manager):
        model_info = CRDRegistry().get_model_by_kind("ClusterPageHeader")
        crd = manager.generate_crd_definition(model_info)

        assert crd["metadata"]["name"] == "clusterpageheaders.weaver.dev"
        assert crd["spec"]["scope"] == "Cluster"
        assert crd["spec"]["names"]["categories"] == ["weaver"]
        version = crd["spec"]["versions"][0]
        assert version["subresources"] == {"status": {}}
        status = version["schema"]["openAPIV3Schema"]["properties"]["status"]
        assert "attributes" in status["properties"]

    def test_generate_writes_files_once(self, manager):
        assert manager.generate_all_crds()
        files = sorted(p.name for p in manager.output_dir.glob("*.yaml"))
        assert "pagebindings.weaver.dev.yaml" in files
        assert "kustomization.yaml" in files

        kustomization = yaml.safe_load((manager.output_dir / "kustomization.yaml").read_text())
        assert len(kustomization["resources"]) == len(files) - 1

        assert not manager.generate_all_crds()
        assert manager.generate_all_crds(force=True)
        assert manager.validate_generated_crds()

    def test_validate_rejects_other_documents(self, manager):
        manager.output_dir.mkdir(parents=True)
        (manager.output_dir / "broken.yaml").write_text("kind: ConfigMap\napiVersion: v1\n")
        assert not manager.validate_generated_crds()

    def test_validate_missing_directory(self, manager):
        assert not manager.validate_generated_crds()

    def test_apply_creates_and_replaces(self, manager):
        api = MagicMock()
        existing = MagicMock()
        existing.metadata.resource_version = "42"

        def read(name):
            if name == "pagebindings.weaver.dev":
                return existing
            raise ApiException(status=404, reason="Not Found")

        api.read_custom_resource_definition.side_effect = read

        total = len(manager.get_crds_as_dict())
        assert manager.apply_crds_to_cluster(api_client=api) == total

        api.replace_custom_resource_definition.assert_called_once()
        replaced = api.replace_custom_resource_definition.call_args.kwargs["body"]
        assert replaced["metadata"]["resourceVersion"] == "42"
        assert api.create_custom_resource_definition.call_count == total - 1

    def test_apply_continues_after_failure(self, manager):
        api = MagicMock()
        api.read_custom_resource_definition.side_effect = ApiException(status=403, reason="Forbidden")
        assert manager.apply_crds_to_cluster(api_client=api) == 0
        api.create_custom_resource_definition.assert_not_called()


class TestCRDRegistry:
    def test_kind_cannot_be_claimed_twice(self):
        with pytest.raises(ValueError, match="already registered by PageHeaderSpec"):

            @CRDRegistry.register("weaver.dev", "v1alpha1", "PageHeader", "otherheaders")
            class OtherHeaderSpec(CRDSpec):
                content: str

        assert CRDRegistry().get_model_by_kind("PageHeader")["model"] is PageHeaderSpec

    def test_reregistering_the_same_model(self):
        decorator = CRDRegistry.register("weaver.dev", "v1alpha1", "PageHeader", "pageheaders")
        assert decorator(PageHeaderSpec) is PageHeaderSpec

    def test_scope_is_checked(self):
        with pytest.raises(ValueError, match="Unknown scope"):
            CRDRegistry.register("weaver.dev", "v1alpha1", "Widget", scope="Global")
        with pytest.raises(ValueError, match="cluster-scoped"):
            CRDRegistry.register("weaver.dev", "v1alpha1", "Widget", variant_of="PageHeader")
