"""Object accessor backed by the Kubernetes API server."""

import contextlib
import logging

import kubernetes
from kubernetes.client.exceptions import ApiException

from weaver.crd.base import Resource
from weaver.engine.accessor import ChangeEvent, ObjectAccessor
from weaver.engine.errors import ConflictError, NotFoundError, TransientAccessError
from weaver.engine.kinds import KindCatalog, KindDescriptor

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def api_errors(kind, namespace, name=None):
    """Translate ApiException into the engine's error taxonomy."""
    try:
        yield
    except ApiException as e:
        if e.status == 404:
            raise NotFoundError(kind, name or "", namespace) from e
        if e.status == 409:
            raise ConflictError(f"Conflict writing {kind} {name}: {e.reason}") from e
        logger.debug(f"API error on {kind} {namespace}/{name}: {e.status} {e.reason}")
        raise TransientAccessError(
            f"API error on {kind} {name or ''}: {e.status} {e.reason}"
        ) from e


def _selector(label_selector):
    if not label_selector:
        return None
    return ",".join(f"{key}={value}" for key, value in sorted(label_selector.items()))


class KubernetesAccessor(ObjectAccessor):
    """Reads and writes custom objects, Secrets and ConfigMaps.

    Custom kinds go through ``CustomObjectsApi``; core kinds through
    ``CoreV1Api``. Bodies are converted to ``Resource`` with the API
    client's own serializer so core objects and custom objects look alike.
    """

    def __init__(self, catalog: KindCatalog, request_timeout=30, api_client=None):
        self.catalog = catalog
        self.request_timeout = request_timeout
        self.api_client = api_client or kubernetes.client.ApiClient()
        self.custom = kubernetes.client.CustomObjectsApi(self.api_client)
        self.core = kubernetes.client.CoreV1Api(self.api_client)

    def _to_resource(self, descriptor: KindDescriptor, obj) -> Resource:
        body = obj if isinstance(obj, dict) else self.api_client.sanitize_for_serialization(obj)
        body = dict(body)
        body.setdefault("apiVersion", descriptor.api_version)
        body.setdefault("kind", descriptor.kind)
        return Resource.from_body(body)

    def _write_body(self, descriptor, resource):
        # status is written through its own sub-resource; core kinds have no spec
        body = resource.to_body()
        body.pop("status", None)
        if descriptor.is_core:
            body.pop("spec", None)
        return body

    def _core_call(self, descriptor, verb, namespace=None, **kwargs):
        singular = {"secrets": "secret", "configmaps": "config_map"}[descriptor.plural]
        if namespace is None and verb == "list":
            method = getattr(self.core, f"list_{singular}_for_all_namespaces")
            return method(_request_timeout=self.request_timeout, **kwargs)
        method = getattr(self.core, f"{verb}_namespaced_{singular}")
        return method(namespace=namespace, _request_timeout=self.request_timeout, **kwargs)

    def _custom_args(self, descriptor, namespace):
        args = {"group": descriptor.group, "version": descriptor.version, "plural": descriptor.plural}
        if descriptor.namespaced and namespace:
            args["namespace"] = namespace
        return args

    def _custom_call(self, descriptor, verb, namespace=None, suffix="", **kwargs):
        scope = "namespaced" if descriptor.namespaced and namespace else "cluster"
        method = getattr(self.custom, f"{verb}_{scope}_custom_object{suffix}")
        return method(
            _request_timeout=self.request_timeout,
            **self._custom_args(descriptor, namespace),
            **kwargs,
        )

    def get(self, kind, namespace, name):
        descriptor = self.catalog.get(kind)
        if descriptor.is_core and not namespace:
            # Core kinds handled here are all namespaced.
            raise NotFoundError(kind, name)
        with api_errors(kind, namespace, name):
            if descriptor.is_core:
                obj = self._core_call(descriptor, "read", namespace, name=name)
            else:
                obj = self._custom_call(descriptor, "get", namespace, name=name)
        return self._to_resource(descriptor, obj)

    def list(self, kind, namespace=None, label_selector=None):
        descriptor = self.catalog.get(kind)
        selector = _selector(label_selector)
        with api_errors(kind, namespace):
            if descriptor.is_core:
                result = self._core_call(
                    descriptor, "list", namespace, label_selector=selector
                )
                items = result.items or []
            else:
                result = self._custom_call(
                    descriptor, "list", namespace, label_selector=selector
                )
                items = result.get("items", [])
        return [self._to_resource(descriptor, item) for item in items]

    def update(self, resource):
        descriptor = self.catalog.get(resource.kind)
        body = self._write_body(descriptor, resource)
        with api_errors(resource.kind, resource.namespace, resource.name):
            if descriptor.is_core:
                obj = self._core_call(
                    descriptor, "replace", resource.namespace, name=resource.name, body=body
                )
            else:
                obj = self._custom_call(
                    descriptor, "replace", resource.namespace, name=resource.name, body=body
                )
        return self._to_resource(descriptor, obj)

    def update_status(self, resource):
        descriptor = self.catalog.get(resource.kind)
        with api_errors(resource.kind, resource.namespace, resource.name):
            obj = self._custom_call(
                descriptor,
                "replace",
                resource.namespace,
                suffix="_status",
                name=resource.name,
                body=resource.to_body(),
            )
        logger.debug(f"Updated status of {resource.display_name()}")
        return self._to_resource(descriptor, obj)

    def delete(self, kind, namespace, name):
        descriptor = self.catalog.get(kind)
        try:
            with api_errors(kind, namespace, name):
                if descriptor.is_core:
                    self._core_call(descriptor, "delete", namespace, name=name)
                else:
                    self._custom_call(descriptor, "delete", namespace, name=name)
        except NotFoundError:
            logger.debug(f"{kind} {name} already deleted")
            return False
        logger.info(f"Deleted {kind} {name}")
        return True

    def annotate(self, kind, namespace, name, annotations):
        descriptor = self.catalog.get(kind)
        body = {"metadata": {"annotations": annotations}}
        with api_errors(kind, namespace, name):
            if descriptor.is_core:
                obj = self._core_call(descriptor, "patch", namespace, name=name, body=body)
            else:
                obj = self._custom_call(descriptor, "patch", namespace, name=name, body=body)
        return self._to_resource(descriptor, obj)

    def apply(self, resource):
        descriptor = self.catalog.get(resource.kind)
        try:
            existing = self.get(resource.kind, resource.namespace, resource.name)
        except NotFoundError:
            body = self._write_body(descriptor, resource)
            body["metadata"].pop("resourceVersion", None)
            with api_errors(resource.kind, resource.namespace, resource.name):
                if descriptor.is_core:
                    obj = self._core_call(descriptor, "create", resource.namespace, body=body)
                else:
                    obj = self._custom_call(descriptor, "create", resource.namespace, body=body)
            logger.info(f"Created {resource.display_name()}")
            return self._to_resource(descriptor, obj)

        resource = resource.model_copy(deep=True)
        resource.metadata.resourceVersion = existing.resource_version
        updated = self.update(resource)
        logger.info(f"Updated {resource.display_name()}")
        return updated

    def watch(self, kind, namespace=None):
        descriptor = self.catalog.get(kind)
        watcher = kubernetes.watch.Watch()
        if descriptor.is_core:
            singular = {"secrets": "secret", "configmaps": "config_map"}[descriptor.plural]
            if namespace:
                stream = watcher.stream(
                    getattr(self.core, f"list_namespaced_{singular}"), namespace=namespace
                )
            else:
                stream = watcher.stream(getattr(self.core, f"list_{singular}_for_all_namespaces"))
        elif namespace and descriptor.namespaced:
            stream = watcher.stream(
                self.custom.list_namespaced_custom_object,
                **self._custom_args(descriptor, namespace),
            )
        else:
            stream = watcher.stream(
                self.custom.list_cluster_custom_object,
                **self._custom_args(descriptor, None),
            )
        with api_errors(kind, namespace):
            for event in stream:
                yield ChangeEvent(event["type"], self._to_resource(descriptor, event["object"]))
