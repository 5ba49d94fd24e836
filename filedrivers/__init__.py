"""Uniform put/get/remove access to named files across storage backends.

A connection URL selects the backend at runtime:

- fs://host/public/path?root=/dir     local filesystem
- awss3://bucket/prefix               AWS S3 (or an S3-compatible endpoint)
- do://key:secret@space/prefix        DigitalOcean Spaces

Example:
    from filedrivers import create_default_registry

    registry = create_default_registry()
    with registry.open("fs://localhost/assets?root=/srv/assets&accept=.txt") as driver:
        driver.add_file(b"hello world", "greetings/hello.txt")
"""

from filedrivers.core.storage import (
    AlreadyExistsError,
    DangerousDriver,
    Driver,
    DriverRegistry,
    InvalidExtensionError,
    NotFoundError,
    StorageError,
    URLParseError,
    as_dangerous,
    create_default_registry,
)

__all__ = [
    "Driver",
    "DangerousDriver",
    "DriverRegistry",
    "as_dangerous",
    "create_default_registry",
    "StorageError",
    "URLParseError",
    "InvalidExtensionError",
    "AlreadyExistsError",
    "NotFoundError",
]
