"""Operator configuration loaded from environment variables."""

import os
from typing import Optional

from pydantic import BaseModel, Field


def _env_bool(name, default):
    return os.getenv(name, default).lower() == "true"


class OperatorConfig(BaseModel):
    """Runtime settings of the operator."""

    log_level: str = Field(default="INFO")
    requeue_delay: float = Field(
        default=15, ge=0, description="Seconds before re-checking a missing or unready dependency"
    )
    worker_limit: int = Field(default=5, gt=0)
    posting_enabled: bool = False
    server_timeout: int = 60
    request_timeout: int = 30
    manage_crds: bool = True
    generate_crd_files: bool = False
    watch_namespace: Optional[str] = None
    default_theme_name: str = "default"
    npm_registry_host: str = "registry.npmjs.org"
    validate_packages: bool = Field(
        default=True, description="Look package references up in the npm registry"
    )

    class Config:
        validate_assignment = True

    @classmethod
    def from_env(cls):
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            requeue_delay=float(os.getenv("REQUEUE_DELAY", "15")),
            worker_limit=int(os.getenv("WORKER_LIMIT", "5")),
            posting_enabled=_env_bool("POSTING_ENABLED", "false"),
            server_timeout=int(os.getenv("SERVER_TIMEOUT", "60")),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            manage_crds=_env_bool("MANAGE_CRDS", "true"),
            generate_crd_files=_env_bool("GENERATE_CRD_FILES", "false"),
            watch_namespace=os.getenv("WATCH_NAMESPACE") or None,
            default_theme_name=os.getenv("DEFAULT_THEME_NAME", "default"),
            npm_registry_host=os.getenv("NPM_REGISTRY_HOST", "registry.npmjs.org"),
            validate_packages=_env_bool("VALIDATE_PACKAGES", "true"),
        )
