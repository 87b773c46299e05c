"""Offline reconciliation of a directory of manifests."""

import logging
import threading
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError as PydanticValidationError
from typing_extensions import Annotated

from weaver.config import OperatorConfig
from weaver.crd.base import Resource
from weaver.crd.registry import CRDRegistry
from weaver.engine.accessor import MemoryAccessor
from weaver.engine.conditions import is_ready
from weaver.engine.errors import ConflictError
from weaver.engine.kinds import KindCatalog
from weaver.plugins.registry import PluginRegistry
from weaver.runtime import Runtime

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


def load_manifests(manifest_dir: Path, catalog: KindCatalog):
    """Parse every YAML document under ``manifest_dir`` into resources.

    Documents of kinds the operator does not know are skipped. Namespaced
    objects without a namespace land in ``default``, as with kubectl.
    """
    resources = []
    for path in sorted(manifest_dir.rglob("*.y*ml")):
        with open(path, "r") as f:
            documents = list(yaml.safe_load_all(f))
        for document in documents:
            if not isinstance(document, dict) or "kind" not in document:
                continue
            kind = document["kind"]
            if kind not in catalog:
                logger.info(f"Skipping {kind} in {path.name}: not handled by the operator")
                continue
            resource = Resource.from_body(document)
            if catalog.is_namespaced(kind) and not resource.namespace:
                resource.metadata.namespace = DEFAULT_NAMESPACE
            elif not catalog.is_namespaced(kind):
                resource.metadata.namespace = None
            resources.append(resource)
    return resources


def build_offline_runtime(config: OperatorConfig, accessor: MemoryAccessor, catalog: KindCatalog):
    registry = PluginRegistry()
    registry.discover_plugins(builtin_only=True)
    registry.initialise_all_plugins()
    return Runtime.from_plugins(
        config, accessor, catalog, registry.initialised_plugins(), threading.Event()
    )


def check(
    manifest_dir: Annotated[
        Path, typer.Argument(help="Directory of YAML manifests to reconcile offline.")
    ],
    requeue_delay: Annotated[
        float, typer.Option("--requeue-delay", help="Requeue delay reported for waits.")
    ] = 15,
    max_rounds: Annotated[
        int, typer.Option("--max-rounds", help="Give up after this many rounds.")
    ] = 20,
):
    """Reconcile a directory of manifests in memory and report readiness."""
    if not manifest_dir.is_dir():
        typer.echo(f"Not a directory: {manifest_dir}")
        raise typer.Exit(2)

    CRDRegistry().discover_models()
    catalog = KindCatalog.from_registry()
    config = OperatorConfig(requeue_delay=requeue_delay, validate_packages=False)

    accessor = MemoryAccessor()
    try:
        accessor.load(load_manifests(manifest_dir, catalog))
    except (yaml.YAMLError, PydanticValidationError, ConflictError) as e:
        typer.echo(f"Failed to load manifests: {e}")
        raise typer.Exit(2)

    operator_runtime = build_offline_runtime(config, accessor, catalog)
    rounds = operator_runtime.settle(max_rounds=max_rounds)

    not_ready = 0
    for kind in operator_runtime.orchestrator.kinds:
        for resource in accessor.list(kind):
            ready = is_ready(resource.status.conditions)
            message = next(
                (c.message for c in resource.status.conditions if c.type == "Ready"), ""
            )
            typer.echo(
                f"{'Ready' if ready else 'NotReady':<9} {resource.display_name()}"
                + (f": {message}" if not ready and message else "")
            )
            not_ready += 0 if ready else 1

    typer.echo(f"Settled after {rounds} round(s), {not_ready} object(s) not ready")
    if not_ready:
        raise typer.Exit(1)
