"""npm registry lookups used to validate package references."""

import base64
import logging

import requests

from weaver.engine.errors import TransientAccessError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_HOST = "registry.npmjs.org"
SERVER_ADDRESS_LABEL = "weaver.dev/npm-server-address"
SERVER_INSECURE_LABEL = "weaver.dev/npm-server-insecure"


class RegistryConfiguration:
    """Where the registry lives and how to authenticate against it."""

    def __init__(self, host=None, insecure=False, token="", username="", password=""):
        self.host = host or DEFAULT_REGISTRY_HOST
        self.insecure = insecure
        self.token = token
        self.username = username
        self.password = password

    @classmethod
    def from_secret(cls, secret=None, host=None):
        """Build the configuration from an optional credentials Secret.

        The Secret is only used when it carries the server address label;
        credentials come from its ``token``, ``username`` and ``password``
        keys (base64 encoded, as stored by the API server).
        """
        labels = secret.metadata.labels if secret is not None else {}
        if not labels.get(SERVER_ADDRESS_LABEL):
            return cls(host=host)

        data = getattr(secret, "data", None) or {}

        def decode(key):
            value = data.get(key)
            return base64.b64decode(value).decode() if value else ""

        return cls(
            host=labels[SERVER_ADDRESS_LABEL],
            insecure=labels.get(SERVER_INSECURE_LABEL) == "true",
            token=decode("token"),
            username=decode("username"),
            password=decode("password"),
        )

    @property
    def address(self):
        scheme = "http" if self.insecure else "https"
        return f"{scheme}://{self.host}"

    def authorization(self):
        if self.token:
            return f"Bearer {self.token}"
        if self.username and self.password:
            credentials = base64.b64encode(f"{self.username}:{self.password}".encode())
            return f"Basic {credentials.decode()}"
        return ""


def has_es_module(package_json):
    """Whether a package version can be loaded by the browser as an ES module."""
    if package_json.get("browser"):
        return True
    if package_json.get("type") == "module":
        return True
    exports = package_json.get("exports")
    if isinstance(exports, dict) and (exports.get("browser") or exports.get("import")):
        return True
    return str(package_json.get("main", "")).endswith(".mjs")


class NpmRegistry:
    """Minimal npm registry client."""

    def __init__(self, config=None, timeout=30, session=None):
        self.config = config or RegistryConfiguration()
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_package_info(self, package_name):
        url = f"{self.config.address}/{package_name}"
        headers = {"Accept": "application/vnd.npm.formats+json"}
        authorization = self.config.authorization()
        if authorization:
            headers["Authorization"] = authorization

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientAccessError(f"Could not reach registry {self.config.host}: {e}") from e

        logger.debug(f"GET {url} -> {response.status_code}")
        if response.status_code == 404:
            raise ValidationError(f"package not found: {url}")
        if response.status_code >= 500:
            raise TransientAccessError(
                f"Registry {self.config.host} answered {response.status_code}"
            )
        if response.status_code != 200:
            raise ValidationError(f"package not found: {url} ({response.status_code})")
        return response.json()

    def validate_package(self, package_name, package_version):
        info = self.get_package_info(package_name)
        version = (info.get("versions") or {}).get(package_version)
        if version is None:
            raise ValidationError(
                f"version of package not found: {package_name}@{package_version}"
            )
        if not has_es_module(version):
            raise ValidationError(f"package does not contain an ES module: {package_name}")


def validate_package_name(package_name):
    if not package_name:
        raise ValidationError("package reference name is required")
    if not package_name.startswith("@") or "/" not in package_name:
        raise ValidationError(
            f"invalid package name, must be scoped with @scope/name: {package_name}"
        )


def validate_package_reference(
    package_reference, secret=None, registry_factory=None, default_host=None
):
    """Check a package reference's shape and its presence in the registry.

    The registry host is taken from a labelled credentials Secret, then from
    the reference itself, then ``default_host``.
    """
    validate_package_name(package_reference.name)
    config = RegistryConfiguration.from_secret(
        secret, host=package_reference.registry or default_host
    )
    registry = (registry_factory or NpmRegistry)(config)
    registry.validate_package(package_reference.name, package_reference.version)
    logger.info(f"Validated package {package_reference.name}@{package_reference.version}")
