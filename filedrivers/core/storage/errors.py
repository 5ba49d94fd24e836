"""Exceptions raised by storage drivers and the driver registry."""

from __future__ import annotations

from collections.abc import Iterable


class StorageError(Exception):
    """Base exception for storage driver errors."""

    pass


class URLParseError(StorageError):
    """Raised when a connection URL is malformed, incomplete or carries an illegal value."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        parameter: str | None = None,
        value: str | None = None,
        missing: Iterable[str] = (),
    ):
        super().__init__(message)
        self.url = url
        self.parameter = parameter
        self.value = value
        self.missing = tuple(missing)


class DriverNotFoundError(URLParseError):
    """Raised when no driver is registered for a scheme or connection name."""

    pass


class PolicyError(StorageError):
    """Raised when a request violates a driver policy; retrying will not help."""

    pass


class InvalidExtensionError(PolicyError):
    """Raised when a file extension is not in the driver's accept-set."""

    def __init__(self, extension: str, path: str):
        super().__init__(f"invalid extension {extension or '(none)'!r} for {path}")
        self.extension = extension
        self.path = path


class AlreadyExistsError(PolicyError):
    """Raised when adding a file over an existing one."""

    def __init__(self, key: str):
        super().__init__(f"file already exists at {key}")
        self.key = key


class InvalidPathError(PolicyError):
    """Raised when a path does not name a file inside the container."""

    def __init__(self, path: str):
        super().__init__(f"invalid path: {path!r}")
        self.path = path


class StorageIOError(StorageError):
    """Raised when the backing service fails an operation."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class NotFoundError(StorageIOError):
    """Raised when a file is not found."""

    pass


class StorageConnectionError(StorageIOError):
    """Raised when connection to the backing service fails."""

    pass


class ContainerNotFoundError(StorageConnectionError):
    """Raised when a container is missing and auto-create is disabled."""

    def __init__(self, message: str, container: str):
        super().__init__(message)
        self.container = container


class DriverNotOpenError(StorageError):
    """Raised when a driver is used before open() or after close()."""

    pass


class CapabilityNotSupportedError(StorageError):
    """Raised when a driver lacks an optional capability."""

    pass


class DriverRegistrationError(RuntimeError):
    """Raised on invalid driver registration.

    This is a programming error made during initialization, so it is not a
    StorageError and the library never catches it.
    """

    pass
