"""Tests for the driver registry."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import pytest

from filedrivers.core.storage import (
    DriverNotFoundError,
    DriverRegistrationError,
    DriverRegistry,
    URLParseError,
    create_default_registry,
)
from filedrivers.core.storage.backends import FilesystemDriver
from filedrivers.core.storage.driver import Driver, DriverState
from filedrivers.core.storage.errors import ContainerNotFoundError


@dataclass(frozen=True)
class NullConfig:
    url: str
    accept: frozenset[str] = frozenset({".txt"})


class NullDriver(Driver):
    """Driver that stores nothing; records the URL it was opened with."""

    scheme = "null"

    @classmethod
    def parse_url(cls, url):
        return NullConfig(url=url)

    def _base_path(self):
        return "/null"

    def _connect(self):
        pass

    def _disconnect(self):
        pass

    def _resolve_key(self, relative):
        return relative

    def _exists(self, key):
        return False

    def _write(self, key, stream, content_type):
        pass

    def _read(self, key):
        raise NotImplementedError

    def _delete(self, key):
        pass


class TestRegister:
    """Test driver registration."""

    def test_register_and_open(self):
        registry = DriverRegistry()
        registry.register("null", NullDriver)

        driver = registry.open("null://anything/at/all")

        assert isinstance(driver, NullDriver)
        assert driver.state is DriverState.OPEN
        assert driver.config.url == "null://anything/at/all"

    def test_register_twice_fails(self):
        registry = DriverRegistry({"null": NullDriver})

        with pytest.raises(DriverRegistrationError, match="register called twice"):
            registry.register("null", NullDriver)

    def test_register_none_fails(self):
        registry = DriverRegistry()

        with pytest.raises(DriverRegistrationError, match="is None"):
            registry.register("null", None)

        assert not registry.is_registered("null")

    def test_schemes(self):
        registry = DriverRegistry({"null": NullDriver, "fs": FilesystemDriver})

        assert registry.schemes() == ["fs", "null"]
        assert registry.is_registered("fs")
        assert not registry.is_registered("awss3")

    def test_registries_are_independent(self):
        first = DriverRegistry({"null": NullDriver})
        second = DriverRegistry()

        assert not second.is_registered("null")
        second.register("null", NullDriver)
        assert first.is_registered("null")


class TestOpen:
    """Test opening drivers by URL."""

    @pytest.fixture
    def registry(self):
        return DriverRegistry({"null": NullDriver})

    def test_open_returns_new_instances(self, registry):
        first = registry.open("null://a")
        second = registry.open("null://a")

        assert first is not second

        first.close()
        assert second.state is DriverState.OPEN

    def test_unknown_scheme(self, registry):
        with pytest.raises(DriverNotFoundError, match="unknown driver 'ftp'") as exc_info:
            registry.open("ftp://host/path")

        assert exc_info.value.parameter == "scheme"
        assert exc_info.value.value == "ftp"

    @pytest.mark.parametrize("url", ["", "no-scheme-here", "/just/a/path"])
    def test_missing_scheme(self, registry, url):
        with pytest.raises(URLParseError, match="invalid URL scheme") as exc_info:
            registry.open(url)

        assert not isinstance(exc_info.value, DriverNotFoundError)

    def test_invalid_url(self, registry):
        with pytest.raises(URLParseError, match="invalid URL"):
            registry.open("null://[::1")

    def test_driver_errors_propagate(self, tmp_path):
        registry = create_default_registry()

        with pytest.raises(URLParseError, match="unknown auto-create value"):
            registry.open(f"fs://localhost/a?root={tmp_path}&auto-create=please")

    def test_concurrent_register_and_open(self, tmp_path):
        registry = create_default_registry()
        errors = []

        def opener():
            try:
                for _ in range(20):
                    registry.open(f"fs://localhost/a?root={tmp_path}").close()
            except Exception as e:
                errors.append(e)

        def registrar(i):
            try:
                registry.register(f"null{i}", NullDriver)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=opener) for _ in range(4)]
        threads += [threading.Thread(target=registrar, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert registry.schemes() == ["awss3", "do", "fs", "null0", "null1", "null2", "null3"]


class TestDefaultRegistry:
    def test_builtin_schemes(self):
        assert create_default_registry().schemes() == ["awss3", "do", "fs"]

    def test_each_call_is_fresh(self):
        first = create_default_registry()
        first.register("null", NullDriver)

        assert not create_default_registry().is_registered("null")

    def test_open_filesystem(self, tmp_path):
        with create_default_registry().open(f"fs://localhost/assets?root={tmp_path}") as driver:
            assert isinstance(driver, FilesystemDriver)
            assert driver.path() == "/assets"


class TestNamedConnections:
    """Test opening connections by name."""

    @pytest.fixture
    def registry(self, tmp_path):
        return create_default_registry(
            configuration={
                "local": {
                    "url": "fs://localhost/assets",
                    "root": str(tmp_path / "local"),
                    "accept": [".txt"],
                },
                "readonly": {
                    "url": f"fs://localhost/ro?root={tmp_path / 'missing'}",
                    "auto-create": False,
                },
            }
        )

    def test_list_connections(self, registry):
        assert registry.list_connections() == ["local", "readonly"]

    def test_open_named(self, tmp_path, registry):
        with registry.open_named("local") as driver:
            assert driver.root == tmp_path / "local"
            assert driver.accepts(".txt")
            assert not driver.accepts(".png")

    def test_open_named_applies_overrides(self, registry):
        with pytest.raises(ContainerNotFoundError):
            registry.open_named("readonly")

    def test_unknown_name(self, registry):
        with pytest.raises(DriverNotFoundError, match="connection 'nope' not found") as exc_info:
            registry.open_named("nope")

        assert "local, readonly" in str(exc_info.value)
        assert exc_info.value.value == "nope"

    def test_loads_bundled_configuration(self):
        registry = create_default_registry()

        assert "dev" in registry.list_connections()
