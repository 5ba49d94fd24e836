"""Filesystem driver.

Connection URL::

    fs://[host]/public/path?root=/var/lib/assets&accept=.png,.jpg&auto-create=off

The URL path is the externally reachable base returned by ``path()`` (for
instance the route an HTTP layer serves the files from); the host is
ignored. ``root`` is the directory files are written to, by default
``<tempdir>/assets``.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlsplit

from filedrivers.core.storage.driver import DangerousDriver, Driver, clean_relative_path
from filedrivers.core.storage.errors import (
    AlreadyExistsError,
    ContainerNotFoundError,
    NotFoundError,
    StorageConnectionError,
    StorageIOError,
    URLParseError,
)
from filedrivers.core.storage.query import (
    ensure_leading_slash,
    first_value,
    parse_accept,
    parse_query,
    parse_toggle,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FilesystemConfig:
    """Resolved configuration of a filesystem driver."""

    root: Path
    prefix: str
    accept: frozenset[str]
    auto_create: bool = True


class FilesystemDriver(Driver, DangerousDriver):
    """Driver storing files below a root directory on the local filesystem.

    ``remove_file`` on a missing file raises ``NotFoundError``. Files are
    created exclusively, so of two concurrent ``add_file`` calls for the same
    path exactly one succeeds.
    """

    scheme = "fs"

    @classmethod
    def parse_url(cls, url: str) -> FilesystemConfig:
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise URLParseError(f"fs: error parsing url: {e}", url=url) from e

        if parts.scheme != cls.scheme:
            raise URLParseError(
                'fs: error parsing url: url does not match "fs://host/path?root=dir" format',
                url=url,
            )

        query = parse_query(parts.query)
        root = first_value(query, "root")
        root_path = Path(root).expanduser() if root else Path(tempfile.gettempdir()) / "assets"

        return FilesystemConfig(
            root=root_path.absolute(),
            prefix=ensure_leading_slash(parts.path),
            accept=parse_accept(query),
            auto_create=parse_toggle(query, "auto-create", cls.scheme, url),
        )

    @property
    def root(self) -> Path:
        """Directory files are stored in."""
        return self._config.root

    def _base_path(self) -> str:
        return self._config.prefix

    def _connect(self) -> None:
        root = self._config.root
        if root.is_dir():
            logger.debug(f"Using existing directory: {root}")
            return
        if root.exists():
            raise StorageConnectionError(f"fs: root {root} is not a directory")
        if not self._config.auto_create:
            raise ContainerNotFoundError(
                f"fs: root directory {root} does not exist; auto-create is off",
                container=str(root),
            )
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageConnectionError(f"fs: failed to create root {root}: {e}") from e
        logger.info(f"Created root directory: {root}")

    def _disconnect(self) -> None:
        # No handles are held between calls.
        pass

    def _relative_path(self, path: str) -> str:
        # Accept paths returned by add_file, which carry the public prefix.
        prefix = self._config.prefix
        if prefix != "/" and (path == prefix or path.startswith(prefix + "/")):
            path = path[len(prefix) :]
        return clean_relative_path(path)

    def _resolve_key(self, relative: str) -> Path:
        return self._config.root / relative

    def _exists(self, key: Path) -> bool:
        return key.exists()

    def _write(self, key: Path, stream: BinaryIO, content_type: str) -> None:
        try:
            key.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"fs: failed to create {key.parent}: {e}", key=str(key)) from e

        try:
            with open(key, "xb") as f:
                while chunk := stream.read(CHUNK_SIZE):
                    f.write(chunk)
        except FileExistsError as e:
            raise AlreadyExistsError(str(key)) from e
        except OSError as e:
            raise StorageIOError(f"fs: failed to store {key}: {e}", key=str(key)) from e

    def _read(self, key: Path) -> BinaryIO:
        try:
            return open(key, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise NotFoundError(f"fs: file not found: {key}", key=str(key)) from e
        except OSError as e:
            raise StorageIOError(f"fs: failed to open {key}: {e}", key=str(key)) from e

    def _delete(self, key: Path) -> None:
        try:
            key.unlink()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotFoundError(f"fs: file not found: {key}", key=str(key)) from e
        except OSError as e:
            raise StorageIOError(f"fs: failed to remove {key}: {e}", key=str(key)) from e
        self._cleanup_empty_dirs(key.parent)

    def _cleanup_empty_dirs(self, path: Path) -> None:
        """Remove empty parent directories up to the root."""
        root = self._config.root
        while path != root and root in path.parents:
            try:
                path.rmdir()
            except OSError:
                # Not empty, or already gone.
                break
            path = path.parent

    def empty_container(self) -> None:
        self._require_open()
        root = self._config.root
        try:
            for child in root.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        except OSError as e:
            raise StorageIOError(f"fs: failed to empty {root}: {e}") from e
        logger.info(f"Emptied root directory: {root}")

    def _remove_container(self) -> None:
        self._require_open()
        root = self._config.root
        try:
            root.rmdir()
        except OSError as e:
            raise StorageIOError(f"fs: failed to remove {root}: {e}") from e
        logger.info(f"Deleted root directory: {root}")
