"""Base plugin architecture for the weaver operator."""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class PluginBase(ABC):
    """Base class for all weaver plugins.

    A plugin contributes CRD models and the kind reconcilers that handle
    them. Reverse-index registrations come from the reconcilers' declared
    reference paths.
    """

    def __init__(self):
        self._initialised = False
        self._models_registered = False

    @property
    @abstractmethod
    def name(self):
        """Unique name for this plugin."""
        pass

    @property
    @abstractmethod
    def version(self):
        """Plugin version."""
        pass

    @property
    @abstractmethod
    def description(self):
        """Human-readable description of what this plugin does."""
        pass

    @property
    @abstractmethod
    def models(self):
        """Return list of CRD models this plugin provides."""
        pass

    @property
    @abstractmethod
    def reconcilers(self):
        """Return list of KindReconciler classes this plugin provides."""
        pass

    def initialise(self):
        """Initialise the plugin. Called once during operator startup.

        Returns:
            bool: True if initialisation successful, False otherwise
        """
        if self._initialised:
            logger.warning(f"Plugin {self.name} already initialised")
            return True

        try:
            logger.info(f"Initialising plugin: {self.name} v{self.version}")

            if not self._models_registered:
                self._register_models()
                self._models_registered = True

            self._initialised = True
            logger.info(f"Plugin {self.name} initialised successfully")
            return True

        except Exception as e:
            logger.error(f"Failed to initialise plugin {self.name}: {e}")
            return False

    def _register_models(self):
        """Check this plugin's models made it into the CRD registry."""
        for model in self.models:
            if not hasattr(model, "_crd_group"):
                logger.warning(
                    f"Model {model.__name__} not properly decorated with @CRDRegistry.register"
                )
                continue

            logger.debug(f"Model {model.__name__} registered by plugin {self.name}")

    def build_reconcilers(self, catalog, config=None):
        """Instantiate this plugin's reconcilers against a kind catalog."""
        return [reconciler_class(catalog, config) for reconciler_class in self.reconcilers]

    def register_handlers(self, catalog, registry=None):
        """Register kopf reconcile handlers for every kind this plugin handles.

        A reconciler covers its namespaced kind and, where one is registered,
        the cluster-scoped variant.
        """
        from weaver.handlers.reconcile import register_reconcile_handlers

        logger.info(f"Registering {self.name} handlers...")
        for reconciler_class in self.reconcilers:
            for kind in catalog.kinds_of(reconciler_class.kind):
                register_reconcile_handlers(catalog.get(kind), registry=registry)

    def get_metadata(self):
        """Get plugin metadata."""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "models": [model.__name__ for model in self.models],
            "kinds": [reconciler.kind for reconciler in self.reconcilers],
        }
