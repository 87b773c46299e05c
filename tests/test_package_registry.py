"""Tests for npm registry validation."""

import base64
from unittest.mock import MagicMock

import pytest
import requests

from weaver.crd.base import CRDMetadata, Resource
from weaver.engine.errors import TransientAccessError, ValidationError
from weaver.models.references import PackageReference
from weaver.plugins.libraries import LibrariesPlugin
from weaver.reconcilers import libraries as libraries_module
from weaver.reconcilers.libraries import PackageValidationMixin
from weaver.runtime import Runtime
from weaver.services import package_registry as package_registry_module
from weaver.services.package_registry import (
    NpmRegistry,
    RegistryConfiguration,
    has_es_module,
    validate_package_name,
    validate_package_reference,
)


def encoded(value):
    return base64.b64encode(value.encode()).decode()


def response(status_code, payload=None):
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = payload or {}
    return mock_response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def registry(session):
    return NpmRegistry(RegistryConfiguration(host="npm.example.com"), session=session)


class TestRegistryConfiguration:
    def test_unlabelled_secret_is_ignored(self):
        secret = Resource(kind="Secret", metadata=CRDMetadata(name="npm"), data={"token": encoded("t")})
        config = RegistryConfiguration.from_secret(secret, host="npm.example.com")
        assert config.host == "npm.example.com"
        assert config.authorization() == ""

    def test_labelled_secret(self):
        secret = Resource(
            kind="Secret",
            metadata=CRDMetadata(
                name="npm",
                labels={
                    "weaver.dev/npm-server-address": "npm.internal:4873",
                    "weaver.dev/npm-server-insecure": "true",
                },
            ),
            data={"username": encoded("user"), "password": encoded("secret")},
        )
        config = RegistryConfiguration.from_secret(secret)
        assert config.address == "http://npm.internal:4873"
        assert config.authorization() == f"Basic {encoded('user:secret')}"

    def test_token_wins(self):
        config = RegistryConfiguration(host="h", token="abc", username="u", password="p")
        assert config.authorization() == "Bearer abc"


class TestNpmRegistry:
    def test_valid_package(self, registry, session):
        session.get.return_value = response(200, {"versions": {"1.0.0": {"type": "module"}}})
        registry.validate_package("@acme/shop", "1.0.0")

        url = session.get.call_args.args[0]
        assert url == "https://npm.example.com/@acme/shop"

    def test_missing_package(self, registry, session):
        session.get.return_value = response(404)
        with pytest.raises(ValidationError, match="package not found"):
            registry.validate_package("@acme/shop", "1.0.0")

    def test_missing_version(self, registry, session):
        session.get.return_value = response(200, {"versions": {"0.9.0": {"type": "module"}}})
        with pytest.raises(ValidationError, match="@acme/shop@1.0.0"):
            registry.validate_package("@acme/shop", "1.0.0")

    def test_commonjs_package(self, registry, session):
        session.get.return_value = response(200, {"versions": {"1.0.0": {"main": "index.js"}}})
        with pytest.raises(ValidationError, match="ES module"):
            registry.validate_package("@acme/shop", "1.0.0")

    def test_server_error_is_transient(self, registry, session):
        session.get.return_value = response(503)
        with pytest.raises(TransientAccessError):
            registry.get_package_info("@acme/shop")

    def test_connection_error_is_transient(self, registry, session):
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransientAccessError, match="npm.example.com"):
            registry.get_package_info("@acme/shop")


@pytest.mark.parametrize(
    "package_json, expected",
    [
        ({"browser": "dist/index.js"}, True),
        ({"exports": {"import": "./index.mjs"}}, True),
        ({"main": "index.mjs"}, True),
        ({"main": "index.js"}, False),
    ],
)
def test_has_es_module(package_json, expected):
    assert has_es_module(package_json) is expected


@pytest.mark.parametrize("name", ["", "shop", "@acme"])
def test_invalid_package_names(name):
    with pytest.raises(ValidationError):
        validate_package_name(name)


def test_validate_package_reference_uses_reference_registry():
    created = []

    def factory(config):
        created.append(config)
        registry = MagicMock()
        return registry

    reference = PackageReference(name="@acme/shop", version="1.0.0", registry="npm.acme.dev")
    validate_package_reference(reference, registry_factory=factory)

    assert created[0].host == "npm.acme.dev"


def test_validate_package_reference_falls_back_to_default_host():
    created = []

    def factory(config):
        created.append(config)
        return MagicMock()

    reference = PackageReference(name="@acme/shop", version="1.0.0")
    validate_package_reference(reference, registry_factory=factory, default_host="npm.corp.dev")

    assert created[0].host == "npm.corp.dev"


class TestLibraryPackageValidation:
    @pytest.fixture
    def checked_names(self, monkeypatch):
        checked = []

        def checking(name):
            checked.append(name)
            return validate_package_name(name)

        monkeypatch.setattr(libraries_module, "validate_package_name", checking)
        monkeypatch.setattr(package_registry_module, "validate_package_name", checking)
        return checked

    @pytest.fixture
    def library(self, create):
        return create(
            "ScriptLibrary",
            "lib",
            spec={"packageReference": {"name": "@acme/lib", "version": "1.0.0"}},
        )

    def test_configured_registry_host_is_used(
        self, config, accessor, catalog, library, checked_names, monkeypatch
    ):
        created = []

        class RecordingRegistry:
            def __init__(self, registry_config, timeout=None):
                created.append((registry_config.host, timeout))

            def validate_package(self, name, version):
                pass

        monkeypatch.setattr(PackageValidationMixin, "registry_factory", RecordingRegistry)
        config.validate_packages = True
        config.npm_registry_host = "npm.corp.dev"
        runtime = Runtime.from_plugins(config, accessor, catalog, [LibrariesPlugin()])

        assert runtime.orchestrator.run("ScriptLibrary", "default", "lib").done

        assert created == [("npm.corp.dev", config.request_timeout)]
        assert checked_names == ["@acme/lib"]

    def test_name_checked_once_without_lookup(self, runtime, library, checked_names):
        assert runtime.orchestrator.run("ScriptLibrary", "default", "lib").done
        assert checked_names == ["@acme/lib"]
