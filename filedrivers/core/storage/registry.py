"""Registry mapping URL schemes to storage drivers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any
from urllib.parse import urlsplit

from filedrivers.core.storage.backends.aws_s3_backend import S3Driver
from filedrivers.core.storage.backends.do_space_backend import DOSpaceDriver
from filedrivers.core.storage.backends.filesystem_backend import FilesystemDriver
from filedrivers.core.storage.connections import connection_url
from filedrivers.core.storage.driver import Driver
from filedrivers.core.storage.errors import (
    DriverNotFoundError,
    DriverRegistrationError,
    URLParseError,
)
from filedrivers.core.utils.config import load_and_resolve_config

logger = logging.getLogger(__name__)

BUILTIN_DRIVERS: tuple[type[Driver], ...] = (FilesystemDriver, S3Driver, DOSpaceDriver)


class ReadWriteLock:
    """Lock allowing many concurrent readers or a single writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class DriverRegistry:
    """Registry resolving connection URLs to storage drivers.

    Drivers are registered by scheme, normally once while the application
    starts up; ``open`` then picks the driver from the URL scheme and returns
    a fresh, independent instance. Connections can also be opened by name
    from a configuration mapping.

    Examples:
        >>> registry = DriverRegistry()
        >>> registry.register("fs", FilesystemDriver)
        >>> driver = registry.open("fs://localhost/assets?root=/tmp/assets&accept=.txt")
        >>> driver = registry.open_named("dev")
    """

    def __init__(
        self,
        drivers: Mapping[str, type[Driver]] | None = None,
        configuration: dict[str, dict[str, Any]] | None = None,
    ):
        """Initialize the registry.

        Args:
            drivers: Initial scheme to driver class mapping
            configuration: Named connections. If None, they are loaded from
                configs/storage_drivers.py (with inheritance) on first use
        """
        self._lock = ReadWriteLock()
        self._drivers: dict[str, type[Driver]] = {}
        self._config = configuration
        for scheme, driver in (drivers or {}).items():
            self.register(scheme, driver)

    def register(self, scheme: str, driver: type[Driver] | None) -> None:
        """Register ``driver`` for URLs with ``scheme``.

        Raises:
            DriverRegistrationError: If driver is None or scheme is already registered
        """
        with self._lock.write_locked():
            if driver is None:
                raise DriverRegistrationError(f"register driver is None for scheme {scheme!r}")
            if scheme in self._drivers:
                raise DriverRegistrationError(f"register called twice for driver {scheme!r}")
            self._drivers[scheme] = driver
        logger.debug(f"Registered driver {driver.__name__} for scheme '{scheme}'")

    def is_registered(self, scheme: str) -> bool:
        with self._lock.read_locked():
            return scheme in self._drivers

    def schemes(self) -> list[str]:
        """List registered schemes."""
        with self._lock.read_locked():
            return sorted(self._drivers)

    def open(self, url: str) -> Driver:
        """Open a driver for ``url``.

        Args:
            url: Connection URL, e.g. "awss3://bucket/prefix?region=us-east-2"

        Returns:
            New driver instance in the open state

        Raises:
            URLParseError: If the URL cannot be parsed or has no scheme
            DriverNotFoundError: If no driver is registered for the scheme
        """
        try:
            scheme = urlsplit(url).scheme
        except ValueError as e:
            raise URLParseError(f"storage: invalid URL: {e}") from e
        if not scheme:
            raise URLParseError("storage: invalid URL scheme")

        with self._lock.read_locked():
            driver = self._drivers.get(scheme)
        if driver is None:
            registered = ", ".join(self.schemes()) or "none"
            raise DriverNotFoundError(
                f"storage: unknown driver {scheme!r} (registered: {registered})",
                parameter="scheme",
                value=scheme,
            )

        return driver.open(url)

    def _connections(self) -> dict[str, dict[str, Any]]:
        if self._config is None:
            self._config = load_and_resolve_config(
                "configs.storage_drivers",
                config_name="CONNECTIONS",
                default={},
            )
        return self._config

    def list_connections(self) -> list[str]:
        """List configured connection names."""
        return list(self._connections())

    def open_named(self, name: str) -> Driver:
        """Open the configured connection ``name``.

        Raises:
            DriverNotFoundError: If ``name`` is not configured
        """
        connections = self._connections()
        if name not in connections:
            available = ", ".join(connections) or "none"
            raise DriverNotFoundError(
                f"storage: connection '{name}' not found in configuration. "
                f"Available connections: {available}",
                parameter="name",
                value=name,
            )

        driver = self.open(connection_url(connections[name]))
        logger.info(f"Opened connection '{name}'")
        return driver


def create_default_registry(
    configuration: dict[str, dict[str, Any]] | None = None,
) -> DriverRegistry:
    """Create a registry with the built-in fs, awss3 and do drivers.

    Each call returns a new registry; the application keeps the one it uses.
    """
    return DriverRegistry(
        {driver.scheme: driver for driver in BUILTIN_DRIVERS},
        configuration=configuration,
    )
