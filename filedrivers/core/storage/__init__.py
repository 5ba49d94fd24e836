"""Storage drivers: put, get and remove named files on interchangeable backends."""

from filedrivers.core.storage.content_type import content_type_for_extension, resolve_content_type
from filedrivers.core.storage.driver import DangerousDriver, Driver, DriverState, as_dangerous
from filedrivers.core.storage.errors import (
    AlreadyExistsError,
    CapabilityNotSupportedError,
    ContainerNotFoundError,
    DriverNotFoundError,
    DriverNotOpenError,
    DriverRegistrationError,
    InvalidExtensionError,
    InvalidPathError,
    NotFoundError,
    PolicyError,
    StorageConnectionError,
    StorageError,
    StorageIOError,
    URLParseError,
)
from filedrivers.core.storage.registry import DriverRegistry, create_default_registry

__all__ = [
    # Driver contract
    "Driver",
    "DangerousDriver",
    "DriverState",
    "as_dangerous",
    # Registry
    "DriverRegistry",
    "create_default_registry",
    # Content types
    "content_type_for_extension",
    "resolve_content_type",
    # Errors
    "StorageError",
    "URLParseError",
    "DriverNotFoundError",
    "PolicyError",
    "InvalidExtensionError",
    "AlreadyExistsError",
    "InvalidPathError",
    "StorageIOError",
    "NotFoundError",
    "StorageConnectionError",
    "ContainerNotFoundError",
    "DriverNotOpenError",
    "CapabilityNotSupportedError",
    "DriverRegistrationError",
]
