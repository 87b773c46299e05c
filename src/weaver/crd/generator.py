"""CRD generation from the registered pydantic models."""

import hashlib
import json
import logging
from pathlib import Path

import yaml

from .registry import CRDRegistry

logger = logging.getLogger(__name__)

CRD_CATEGORY = "weaver"

CONDITION_SCHEMA = {
    "type": "object",
    "properties": {
        "type": {"type": "string"},
        "status": {"type": "string", "enum": ["True", "False", "Unknown"]},
        "reason": {"type": "string"},
        "message": {"type": "string"},
        "lastTransitionTime": {"type": "string", "format": "date-time"},
    },
    "required": ["type", "status", "reason", "message"],
}

STATUS_SCHEMA = {
    "type": "object",
    "properties": {
        "phase": {"type": "string"},
        "conditions": {"type": "array", "items": CONDITION_SCHEMA},
        "observedGeneration": {"type": "integer"},
        "attributes": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
    },
    "x-kubernetes-preserve-unknown-fields": True,
}

PRINTER_COLUMNS = [
    {
        "name": "Ready",
        "type": "string",
        "jsonPath": '.status.conditions[?(@.type=="Ready")].status',
    },
    {"name": "Phase", "type": "string", "jsonPath": ".status.phase"},
    {"name": "Age", "type": "date", "jsonPath": ".metadata.creationTimestamp"},
]


class OpenAPIConverter:
    """Convert pydantic schemas to OpenAPI v3 compatible schemas for CRDs."""

    @staticmethod
    def convert_schema(pydantic_schema):
        """Convert pydantic JSON schema to OpenAPI v3 schema for Kubernetes CRDs."""
        openapi_schema = {"type": "object", "properties": {}}

        if "properties" in pydantic_schema:
            openapi_schema["properties"] = OpenAPIConverter._convert_properties(
                pydantic_schema["properties"], pydantic_schema.get("$defs", {})
            )

        if "required" in pydantic_schema:
            openapi_schema["required"] = pydantic_schema["required"]

        return openapi_schema

    @staticmethod
    def _convert_properties(properties, defs):
        return {
            name: OpenAPIConverter._convert_property(schema, defs)
            for name, schema in properties.items()
        }

    @staticmethod
    def _convert_property(prop_schema, defs):
        """Convert a single property schema."""
        if "$ref" in prop_schema:
            def_name = prop_schema["$ref"].replace("#/$defs/", "")
            if def_name in defs:
                converted = OpenAPIConverter._convert_property(defs[def_name], defs)
                if "description" in prop_schema:
                    converted["description"] = prop_schema["description"]
                return converted

        # Optional[X] is rendered by pydantic as anyOf [X, null]
        if "anyOf" in prop_schema:
            branches = [b for b in prop_schema["anyOf"] if b.get("type") != "null"]
            if len(branches) == 1:
                converted = OpenAPIConverter._convert_property(branches[0], defs)
                converted["nullable"] = True
                if "description" in prop_schema:
                    converted["description"] = prop_schema["description"]
                return converted
            return {"x-kubernetes-preserve-unknown-fields": True}

        prop_type = prop_schema.get("type")

        if prop_type == "array":
            converted = {"type": "array"}
            if "minItems" in prop_schema:
                converted["minItems"] = prop_schema["minItems"]
            if "items" in prop_schema:
                converted["items"] = OpenAPIConverter._convert_property(
                    prop_schema["items"], defs
                )
        elif prop_type == "object":
            converted = {"type": "object"}
            if "minProperties" in prop_schema:
                converted["minProperties"] = prop_schema["minProperties"]
            if "properties" in prop_schema:
                converted["properties"] = OpenAPIConverter._convert_properties(
                    prop_schema["properties"], defs
                )
                if "required" in prop_schema:
                    converted["required"] = prop_schema["required"]
            elif isinstance(prop_schema.get("additionalProperties"), dict):
                converted["additionalProperties"] = OpenAPIConverter._convert_property(
                    prop_schema["additionalProperties"], defs
                )
            else:
                converted["x-kubernetes-preserve-unknown-fields"] = True
        elif prop_type:
            converted = {"type": prop_type}
            for key in ("default", "enum", "format", "pattern", "minLength"):
                if key in prop_schema:
                    converted[key] = prop_schema[key]
        else:
            converted = {"type": "object", "x-kubernetes-preserve-unknown-fields": True}

        if "description" in prop_schema:
            converted["description"] = prop_schema["description"]
        return converted


class CRDManager:
    """Generates CRD manifests and applies them to a cluster."""

    def __init__(self, output_dir=None, registry=None):
        self.output_dir = Path(output_dir) if output_dir else Path("crds/generated")
        self.registry = registry or CRDRegistry()
        self.converter = OpenAPIConverter()

    def generate_all_crds(self, force=False):
        """Write one YAML file per CRD plus a kustomization.yaml.

        Generation is skipped when the models hash matches the previous run.

        Returns:
            bool: True if CRDs were generated/updated, False if no changes needed
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.registry.discover_models()
        current_hash = self._calculate_models_hash()
        hash_file = self.output_dir / ".models_hash"

        if not force and hash_file.exists():
            if hash_file.read_text().strip() == current_hash:
                logger.info("CRD models unchanged, skipping generation")
                return False

        crds = self.get_crds_as_dict()
        if not crds:
            logger.warning("No CRD models found to generate")
            return False

        logger.info("Generating CRDs from pydantic models...")
        generated_files = []
        for crd_name, crd_def in crds.items():
            filename = f"{crd_name}.yaml"
            with open(self.output_dir / filename, "w") as f:
                yaml.safe_dump(crd_def, f, default_flow_style=False, sort_keys=False)
            generated_files.append(filename)
            logger.info(f"Generated CRD: {filename}")

        self._generate_kustomization(generated_files)
        hash_file.write_text(current_hash)

        logger.info(f"Generated {len(generated_files)} CRD files")
        return True

    def generate_crd_definition(self, model_info):
        """Build a CustomResourceDefinition for one registered model."""
        model_class = model_info["model"]
        group = model_info["group"]
        plural = model_info["plural"]
        singular = model_info["singular"]

        try:
            schema = model_class.model_json_schema()
        except Exception as e:
            raise ValueError(f"Failed to generate schema for {model_class.__name__}: {e}")

        return {
            "apiVersion": "apiextensions.k8s.io/v1",
            "kind": "CustomResourceDefinition",
            "metadata": {"name": f"{plural}.{group}"},
            "spec": {
                "group": group,
                "versions": [
                    {
                        "name": model_info["version"],
                        "served": True,
                        "storage": True,
                        "schema": {
                            "openAPIV3Schema": {
                                "type": "object",
                                "properties": {
                                    "spec": self.converter.convert_schema(schema),
                                    "status": STATUS_SCHEMA,
                                },
                                "required": ["spec"],
                            }
                        },
                        "subresources": {"status": {}},
                        "additionalPrinterColumns": PRINTER_COLUMNS,
                    }
                ],
                "scope": model_info["scope"],
                "names": {
                    "plural": plural,
                    "singular": singular,
                    "kind": model_info["kind"],
                    "categories": [CRD_CATEGORY],
                },
            },
        }

    def _generate_kustomization(self, filenames):
        kustomization = {
            "apiVersion": "kustomize.config.k8s.io/v1beta1",
            "kind": "Kustomization",
            "resources": sorted(filenames),
        }

        with open(self.output_dir / "kustomization.yaml", "w") as f:
            yaml.safe_dump(kustomization, f, default_flow_style=False)

        logger.info("Generated kustomization.yaml")

    def _calculate_models_hash(self):
        """Hash of every model schema, for change detection."""
        model_data = {}
        for model_key, model_info in sorted(self.registry.get_all_models().items()):
            model_data[model_key] = {
                "schema": model_info["model"].model_json_schema(),
                "group": model_info["group"],
                "version": model_info["version"],
                "kind": model_info["kind"],
                "scope": model_info["scope"],
            }

        model_json = json.dumps(model_data, sort_keys=True)
        return hashlib.sha256(model_json.encode()).hexdigest()

    def get_crds_as_dict(self):
        """Generate all CRDs as in-memory dictionary objects.

        Returns:
            Dict mapping CRD names to their definitions
        """
        self.registry.discover_models()

        crds = {}
        for _, model_info in sorted(self.registry.get_all_models().items()):
            crd_def = self.generate_crd_definition(model_info)
            crds[crd_def["metadata"]["name"]] = crd_def
        return crds

    def apply_crds_to_cluster(self, api_client=None) -> int:
        """Create or replace every CRD on the cluster.

        Kubernetes configuration must already be loaded. Returns the number
        of CRDs applied; a failure on one CRD is logged and the rest continue.
        """
        from kubernetes import client

        api = api_client or client.ApiextensionsV1Api()

        applied_count = 0
        for crd_name, crd_def in self.get_crds_as_dict().items():
            try:
                try:
                    existing = api.read_custom_resource_definition(crd_name)
                except client.exceptions.ApiException as e:
                    if e.status != 404:
                        raise
                    api.create_custom_resource_definition(body=crd_def)
                    logger.info(f"Created CRD: {crd_name}")
                else:
                    crd_def["metadata"]["resourceVersion"] = existing.metadata.resource_version
                    api.replace_custom_resource_definition(name=crd_name, body=crd_def)
                    logger.info(f"Updated CRD: {crd_name}")
                applied_count += 1
            except client.exceptions.ApiException as e:
                logger.error(f"Failed to apply CRD {crd_name}: {e.status} {e.reason}")

        logger.info(f"Applied {applied_count} CRDs to cluster")
        return applied_count

    def validate_generated_crds(self):
        """Check that the generated files parse as CustomResourceDefinitions."""
        if not self.output_dir.exists():
            logger.error("CRD output directory does not exist")
            return False

        crd_files = [
            f for f in sorted(self.output_dir.glob("*.yaml")) if f.name != "kustomization.yaml"
        ]
        if not crd_files:
            logger.error("No CRD files found to validate")
            return False

        valid_count = 0
        for crd_file in crd_files:
            try:
                with open(crd_file, "r") as f:
                    crd_def = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error(f"Failed to parse {crd_file}: {e}")
                continue

            if not isinstance(crd_def, dict):
                logger.error(f"Invalid YAML in {crd_file}")
                continue

            if not all(field in crd_def for field in ("apiVersion", "kind", "metadata", "spec")):
                logger.error(f"Missing required fields in {crd_file}")
                continue

            if crd_def["kind"] != "CustomResourceDefinition":
                logger.error(f"Not a CRD: {crd_file}")
                continue

            valid_count += 1
            logger.debug(f"Valid CRD: {crd_file}")

        logger.info(f"Validated {valid_count}/{len(crd_files)} CRD files")
        return valid_count == len(crd_files)
