"""CRD Registry system for automatic CRD discovery."""

import importlib
import pkgutil
import logging

logger = logging.getLogger(__name__)

SCOPES = ("Namespaced", "Cluster")


class CRDRegistry:
    """Global registry of weaver CRD models, keyed by group/version/kind.

    Kind names are unique across the operator: references, the kind catalog
    and the reverse index all address kinds by name alone.
    """

    _instance = None
    _initialised = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._models = {}
            cls._instance._initialised = False
        return cls._instance

    def __init__(self):
        if not self._initialised:
            self._models = {}
            self._initialised = True

    @classmethod
    def register(
        cls, group, version, kind, plural=None, scope="Namespaced", variant_of=None
    ):
        """Decorator to register CRD models.

        Args:
            group: API group (e.g., 'weaver.dev')
            version: API version (e.g., 'v1alpha1')
            kind: Kind name (e.g., 'PageHeader')
            plural: Plural name (defaults to kind.lower() + 's')
            scope: 'Namespaced' or 'Cluster'
            variant_of: For a cluster-scoped variant, the kind of the
                namespaced form of the same concept (e.g., 'PageHeader' for
                'ClusterPageHeader')
        """
        if scope not in SCOPES:
            raise ValueError(f"Unknown scope {scope} for {kind}")
        if variant_of and scope != "Cluster":
            raise ValueError(f"{kind} can only be a variant of {variant_of} if cluster-scoped")

        def decorator(model_class):
            registry_instance = cls()
            key = f"{group}/{version}/{kind}"
            existing = registry_instance.get_model_by_kind(kind)
            if existing is not None and existing["model"] is not model_class:
                raise ValueError(
                    f"Kind {kind} is already registered by {existing['model'].__name__}"
                )

            # Set CRD metadata on the class
            model_class._crd_group = group
            model_class._crd_version = version
            model_class._crd_kind = kind
            model_class._crd_plural = plural or f"{kind.lower()}s"
            model_class._crd_scope = scope

            registry_instance._models[key] = {
                "model": model_class,
                "group": group,
                "version": version,
                "kind": kind,
                "plural": model_class._crd_plural,
                "scope": scope,
                "singular": kind.lower(),
                "variant_of": variant_of,
            }

            logger.debug(f"Registered CRD: {key}")
            return model_class

        return decorator

    def discover_models(self, package_paths=None):
        """Import every module of the model packages so their decorators run.

        Args:
            package_paths: List of package paths to search (e.g., ['weaver.models'])
        """
        for package_path in package_paths or ["weaver.models"]:
            try:
                package = importlib.import_module(package_path)
            except ImportError as e:
                logger.warning(f"Could not discover models in {package_path}: {e}")
                continue

            for _, module_name, _ in pkgutil.iter_modules(getattr(package, "__path__", [])):
                full_module_name = f"{package_path}.{module_name}"
                try:
                    importlib.import_module(full_module_name)
                    logger.debug(f"Discovered models in {full_module_name}")
                except ImportError as e:
                    logger.warning(f"Could not import {full_module_name}: {e}")

        logger.info(f"{len(self._models)} CRD models registered")

    def get_all_models(self):
        """Get all registered CRD models."""
        return self._models.copy()

    def get_model_by_kind(self, kind):
        """Get a CRD model by kind alone."""
        for model_info in self._models.values():
            if model_info["kind"] == kind:
                return model_info
        return None
