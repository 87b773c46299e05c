import kopf
import logging
import kubernetes

from weaver import runtime
from weaver.config import OperatorConfig
from weaver.crd.generator import CRDManager
from weaver.crd.registry import CRDRegistry
from weaver.engine.kinds import KindCatalog
from weaver.handlers.dependencies import register_dependency_watches
from weaver.plugins.registry import PluginRegistry
from weaver.services.kube_accessor import KubernetesAccessor

config = OperatorConfig.from_env()

logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

plugin_registry = None


def load_kube_config():
    try:
        kubernetes.config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except kubernetes.config.ConfigException:
        try:
            kubernetes.config.load_kube_config()
            logger.info("Loaded local Kubernetes config")
        except kubernetes.config.ConfigException as e:
            logger.warning(f"Could not load Kubernetes config: {e}")


def manage_crds():
    crd_manager = CRDManager()
    if config.generate_crd_files:
        logger.info("Generating CRD files and applying to cluster")
        crd_manager.generate_all_crds(force=True)
    else:
        logger.info("Applying CRDs in memory-only mode (no YAML files)")

    if crd_manager.apply_crds_to_cluster():
        logger.info("CRDs applied to cluster successfully")
    else:
        logger.warning("No CRDs were applied to cluster")


@kopf.on.startup()
def startup_fn(settings: kopf.OperatorSettings, **kwargs):
    """Load plugins, build the engine and register every handler."""
    global plugin_registry

    logger.info("Weaver Operator is starting up...")

    load_kube_config()

    CRDRegistry().discover_models()
    if config.manage_crds:
        manage_crds()

    plugin_registry = PluginRegistry()

    discovered_count = plugin_registry.discover_plugins()
    if discovered_count == 0:
        logger.error("No plugins discovered - operator will have no functionality")
        raise RuntimeError("No plugins available")

    init_results = plugin_registry.initialise_all_plugins()
    if not any(init_results.values()):
        logger.error("No plugins initialised successfully")
        raise RuntimeError("Plugin initialisation failed")

    catalog = KindCatalog.from_registry()
    accessor = KubernetesAccessor(catalog, request_timeout=config.request_timeout)
    operator_runtime = runtime.configure(
        runtime.Runtime.from_plugins(
            config, accessor, catalog, plugin_registry.initialised_plugins()
        )
    )

    plugin_registry.register_all_handlers(catalog)
    register_dependency_watches(catalog, operator_runtime.indexer.registrations)

    settings.batching.worker_limit = config.worker_limit
    settings.posting.enabled = config.posting_enabled
    settings.watching.server_timeout = config.server_timeout

    logger.info(f"Initialised plugins: {list(init_results.keys())}")
    logger.info(f"Worker limit: {settings.batching.worker_limit}")
    logger.info(f"Requeue delay: {config.requeue_delay}s")
    logger.info("Weaver Operator startup complete")


@kopf.on.cleanup()
def cleanup_fn(**kwargs):
    """Cancel in-flight reconciliations."""
    logger.info("Weaver Operator is shutting down...")

    try:
        runtime.current().shutdown()
    except RuntimeError:
        logger.debug("Runtime was never configured")

    logger.info("Weaver Operator shutdown complete")


def main():
    namespaces = [config.watch_namespace] if config.watch_namespace else None
    try:
        kopf.run(clusterwide=namespaces is None, namespaces=namespaces)
    except KeyboardInterrupt:
        logger.info("Operator stopped by user")
    except Exception as e:
        logger.error(f"Operator failed: {e}")
        raise


if __name__ == "__main__":
    main()
