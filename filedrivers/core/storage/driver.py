"""Storage driver contract.

A driver stores, retrieves and removes named files in one container of one
backing service (a local directory, an S3 bucket, a DigitalOcean Space...).
Drivers are created from a connection URL through ``Driver.open`` (usually
via ``DriverRegistry.open``), used while open, then closed:

    with registry.open("fs://localhost/assets?root=/srv/assets&accept=.png") as driver:
        url = driver.add_file(b"...", "logos/logo.png")

The policy every backend shares (accept-set admission, overwrite protection,
path cleaning, content-type inference) lives here; backends supply the calls
into their storage API.
"""

from __future__ import annotations

import logging
import posixpath
from abc import ABC, abstractmethod
from enum import Enum
from io import BytesIO
from typing import Any, BinaryIO, ClassVar

from filedrivers.core.storage.content_type import content_type_for_extension, file_extension
from filedrivers.core.storage.errors import (
    AlreadyExistsError,
    CapabilityNotSupportedError,
    DriverNotOpenError,
    InvalidExtensionError,
    InvalidPathError,
)
from filedrivers.core.storage.query import normalize_extension

logger = logging.getLogger(__name__)


class DriverState(Enum):
    """Lifecycle state of a driver instance."""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


def clean_relative_path(path: str) -> str:
    """Normalize ``path`` to a relative POSIX path that cannot climb out of its root.

    Raises:
        InvalidPathError: If nothing is left after cleaning
    """
    cleaned = posixpath.normpath("/" + path.replace("\\", "/")).lstrip("/")
    if not cleaned or cleaned == ".":
        raise InvalidPathError(path)
    return cleaned


class Driver(ABC):
    """Abstract base class for storage drivers.

    Subclasses set ``scheme``, parse their connection URL in ``parse_url``
    and implement the private storage hooks. The class itself is what gets
    registered for a scheme: ``open`` always builds a new instance.
    """

    scheme: ClassVar[str] = ""

    def __init__(self, config: Any):
        """Initialize an unopened driver.

        Args:
            config: Fully resolved configuration produced by ``parse_url``
        """
        self._config = config
        self._state = DriverState.UNOPENED

    @classmethod
    @abstractmethod
    def parse_url(cls, url: str) -> Any:
        """Parse a connection URL into this driver's configuration.

        Raises:
            URLParseError: If the URL does not match the driver's shape or a
                query parameter carries an illegal value
        """
        pass

    @classmethod
    def open(cls, url: str) -> Driver:
        """Create a driver from ``url`` and connect it.

        This is the only place connectivity is established and where the
        container is created when missing and auto-create is on.

        Raises:
            URLParseError: If the URL is invalid
            ContainerNotFoundError: If the container is missing and auto-create is off
            StorageConnectionError: If the backing service cannot be reached
        """
        config = cls.parse_url(url)
        driver = cls(config)
        driver._connect()
        driver._state = DriverState.OPEN
        logger.info(f"Opened {cls.scheme} driver at {driver.path()}")
        return driver

    @property
    def config(self) -> Any:
        """The driver's configuration."""
        return self._config

    @property
    def state(self) -> DriverState:
        return self._state

    def close(self) -> None:
        """Release held resources. Calling it again is a no-op."""
        if self._state is DriverState.CLOSED:
            return
        if self._state is DriverState.OPEN:
            self._disconnect()
            logger.info(f"Closed {self.scheme} driver")
        self._state = DriverState.CLOSED

    def __enter__(self) -> Driver:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self) -> None:
        if self._state is not DriverState.OPEN:
            raise DriverNotOpenError(f"{self.scheme} driver is {self._state.value}, not open")

    def accepts(self, ext: str) -> bool:
        """Return True if files with extension ``ext`` may be added."""
        self._require_open()
        return normalize_extension(ext) in self._config.accept

    def path(self) -> str:
        """Return the externally reachable base of stored files."""
        self._require_open()
        return self._base_path()

    def normalize_path(self, *entries: str) -> str:
        """Join ``entries`` onto ``path()``.

        Examples:
            >>> driver.normalize_path("img", "logo.png")
            '/assets/img/logo.png'
        """
        base = self.path().rstrip("/")
        joined = "/" + posixpath.normpath("/" + "/".join(entries)).lstrip("/")
        if joined == "/":
            return base or "/"
        return base + joined

    def add_file(self, data: bytes | BinaryIO, path: str) -> str:
        """Store ``data`` at ``path``.

        The extension must be accepted and nothing may exist at the resolved
        key yet. A transfer interrupted midway is not cleaned up.

        Args:
            data: Bytes or a readable binary stream
            path: Path of the file relative to the driver's prefix

        Returns:
            External path of the stored file (``normalize_path(path)``)

        Raises:
            InvalidExtensionError: If the extension is not in the accept-set
            AlreadyExistsError: If a file already exists at ``path``
            StorageIOError: If the backing service fails
        """
        self._require_open()
        relative = self._relative_path(path)
        ext = file_extension(relative)
        if not self.accepts(ext):
            raise InvalidExtensionError(ext, path)

        key = self._resolve_key(relative)
        if self._exists(key):
            raise AlreadyExistsError(str(key))

        stream = BytesIO(data) if isinstance(data, bytes | bytearray) else data
        # Admission ignores case, so the type is looked up on the same folded extension
        self._write(key, stream, content_type_for_extension(normalize_extension(ext)))
        logger.info(f"Stored file: {relative} ({self.scheme})")
        return self.normalize_path(relative)

    def get_file(self, path: str) -> BinaryIO:
        """Open the file at ``path`` for reading; the caller closes the handle.

        Raises:
            NotFoundError: If no file exists at ``path``
        """
        self._require_open()
        return self._read(self._resolve_key(self._relative_path(path)))

    def remove_file(self, path: str) -> None:
        """Remove the file at ``path``.

        Whether a missing file is an error depends on the backend.
        """
        self._require_open()
        relative = self._relative_path(path)
        self._delete(self._resolve_key(relative))
        logger.info(f"Removed file: {relative} ({self.scheme})")

    def _relative_path(self, path: str) -> str:
        return clean_relative_path(path)

    @abstractmethod
    def _base_path(self) -> str:
        pass

    @abstractmethod
    def _resolve_key(self, relative: str) -> Any:
        """Map a cleaned relative path to the backend's storage key."""
        pass

    @abstractmethod
    def _connect(self) -> None:
        pass

    @abstractmethod
    def _disconnect(self) -> None:
        pass

    @abstractmethod
    def _exists(self, key: Any) -> bool:
        pass

    @abstractmethod
    def _write(self, key: Any, stream: BinaryIO, content_type: str) -> None:
        pass

    @abstractmethod
    def _read(self, key: Any) -> BinaryIO:
        pass

    @abstractmethod
    def _delete(self, key: Any) -> None:
        pass


class DangerousDriver(ABC):
    """Irreversible container operations.

    Kept apart from ``Driver`` so callers must ask for it explicitly, see
    ``as_dangerous``.
    """

    @abstractmethod
    def empty_container(self) -> None:
        """Delete every file in the container."""
        pass

    @abstractmethod
    def _remove_container(self) -> None:
        pass

    def delete_container(self) -> None:
        """Empty the container, then delete it.

        If emptying fails the container is left in place and the error is raised.
        """
        self.empty_container()
        self._remove_container()


def as_dangerous(driver: Driver) -> DangerousDriver:
    """Return ``driver`` as a ``DangerousDriver``.

    Raises:
        CapabilityNotSupportedError: If the driver does not offer container operations
    """
    if not isinstance(driver, DangerousDriver):
        raise CapabilityNotSupportedError(
            f"{type(driver).__name__} does not support container operations"
        )
    return driver
