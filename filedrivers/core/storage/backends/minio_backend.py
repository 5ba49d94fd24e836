"""Shared implementation of drivers for S3-compatible object stores.

Concrete drivers (AWS S3, DigitalOcean Spaces) declare their URL shape and
client options; the bucket handling and file operations go through the
MinIO client here.
"""

from __future__ import annotations

import logging
import re
from abc import abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, BinaryIO
from urllib.parse import SplitResult, unquote, urlsplit

import urllib3
from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error

from filedrivers.core.storage.driver import DangerousDriver, Driver
from filedrivers.core.storage.errors import (
    ContainerNotFoundError,
    NotFoundError,
    StorageConnectionError,
    StorageIOError,
    URLParseError,
)
from filedrivers.core.storage.query import QueryValues, parse_query

logger = logging.getLogger(__name__)

BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")

# S3 error codes meaning the object is not there
MISSING_CODES = frozenset({"NoSuchKey", "NotFound", "ResourceNotFound"})

# Part size for streams whose length cannot be determined up front
PART_SIZE = 10 * 1024 * 1024


@dataclass(frozen=True)
class ObjectStoreConfig:
    """Resolved configuration of an object-store driver."""

    bucket: str
    prefix: str
    region: str
    file_acl: str
    accept: frozenset[str]
    auto_create: bool = True


def _redact(parts: SplitResult) -> str:
    if not parts.password:
        return parts.geturl()
    host = parts.netloc.rpartition("@")[2]
    return parts._replace(netloc=f"{parts.username}:***@{host}").geturl()


def split_connection_url(
    url: str,
    scheme: str,
    shape: str,
    container: str = "bucket",
    credentials: bool = False,
) -> tuple[dict[str, str], QueryValues]:
    """Split ``scheme://[key:secret@]container/prefix?query`` into its segments.

    Args:
        url: Connection URL
        scheme: Expected URL scheme
        shape: Human readable URL shape used in error messages
        container: Name of the container segment ("bucket", "space")
        credentials: Whether ``key:secret@`` is required

    Returns:
        Tuple of (segments, query) where segments maps segment names to values

    Raises:
        URLParseError: If the URL does not match the shape, naming the missing segments
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise URLParseError(f"{scheme}: error parsing url: {e}") from e

    redacted = _redact(parts)
    if parts.scheme != scheme:
        raise URLParseError(
            f'{scheme}: error parsing url: url does not match "{shape}" format', url=redacted
        )

    userinfo, _, host = parts.netloc.rpartition("@")
    segments: dict[str, str] = {}
    if credentials:
        key, _, secret = userinfo.partition(":")
        segments["key"] = unquote(key)
        segments["secret"] = unquote(secret)
    segments[container] = host
    segments["prefix"] = parts.path.strip("/")

    missing = [name for name, value in segments.items() if not value]
    if missing:
        raise URLParseError(
            f'{scheme}: error parsing url: failed to parse {redacted} into "{shape}": '
            f"missing {','.join(missing)}",
            url=redacted,
            missing=missing,
        )

    if not BUCKET_NAME_RE.match(host):
        raise URLParseError(
            f"{scheme}: error parsing url: invalid {container} name: {host}",
            url=redacted,
            parameter=container,
            value=host,
        )

    return segments, parse_query(parts.query)


class ObjectStoreDriver(Driver, DangerousDriver):
    """Driver for one bucket of an S3-compatible object store.

    ``add_file`` probes for the key and then uploads; two concurrent adds to
    the same path may both pass the probe, in which case the later upload
    wins. ``remove_file`` on a missing key succeeds.
    """

    def __init__(self, config: ObjectStoreConfig):
        super().__init__(config)
        self._http: urllib3.PoolManager | None = None
        self._client: Minio | None = None

    @abstractmethod
    def _client_options(self) -> dict[str, Any]:
        """Keyword arguments for the Minio client (endpoint, credentials, ...)."""
        pass

    def _bucket_location(self) -> str | None:
        return self._config.region

    def _connect(self) -> None:
        # No retries: failures surface to the caller straight away.
        self._http = urllib3.PoolManager(retries=False)
        try:
            self._client = Minio(http_client=self._http, **self._client_options())
            self._ensure_bucket()
        except BaseException:
            self._http.clear()
            raise

    def _ensure_bucket(self) -> None:
        bucket = self._config.bucket
        with self._service_errors(f"open bucket {bucket}", connecting=True):
            if self._client.bucket_exists(bucket):
                logger.info(f"Using existing bucket: {bucket}")
                return

            if not self._config.auto_create:
                raise ContainerNotFoundError(
                    f"{self.scheme}: bucket {bucket} does not exist; auto-create is off",
                    container=bucket,
                )

            self._client.make_bucket(bucket, location=self._bucket_location())
            logger.info(f"Created bucket: {bucket}")

    def _disconnect(self) -> None:
        if self._http is not None:
            self._http.clear()
        self._client = None

    @contextmanager
    def _service_errors(
        self, action: str, key: str | None = None, connecting: bool = False
    ) -> Iterator[None]:
        """Translate client exceptions into storage errors."""
        try:
            yield
        except S3Error as e:
            if key is not None and e.code in MISSING_CODES:
                raise NotFoundError(f"{self.scheme}: file not found: {key}", key=key) from e
            error_class = StorageConnectionError if connecting else StorageIOError
            raise error_class(f"{self.scheme}: failed to {action}: {e}", key=key) from e
        except urllib3.exceptions.HTTPError as e:
            raise StorageConnectionError(f"{self.scheme}: failed to {action}: {e}", key=key) from e
        except ValueError as e:
            # Raised by the credential providers when no credentials are found
            if not connecting:
                raise
            raise StorageConnectionError(f"{self.scheme}: failed to {action}: {e}") from e

    def _resolve_key(self, relative: str) -> str:
        prefix = self._config.prefix.strip("/")
        return f"{prefix}/{relative}" if prefix else relative

    def _exists(self, key: str) -> bool:
        with self._service_errors(f"check {key}"):
            try:
                self._client.stat_object(self._config.bucket, key)
                return True
            except S3Error as e:
                if e.code in MISSING_CODES:
                    return False
                raise

    def _write(self, key: str, stream: BinaryIO, content_type: str) -> None:
        length, part_size = _stream_length(stream)
        with self._service_errors(f"store {key}"):
            result = self._client.put_object(
                bucket_name=self._config.bucket,
                object_name=key,
                data=stream,
                length=length,
                content_type=content_type,
                metadata={"x-amz-acl": self._config.file_acl},
                part_size=part_size,
            )
        logger.debug(f"Uploaded {key} (etag: {result.etag})")

    def _read(self, key: str) -> BinaryIO:
        with self._service_errors(f"get {key}", key=key):
            return self._client.get_object(self._config.bucket, key)

    def _delete(self, key: str) -> None:
        with self._service_errors(f"remove {key}"):
            self._client.remove_object(self._config.bucket, key)

    def empty_container(self) -> None:
        self._require_open()
        bucket = self._config.bucket
        with self._service_errors(f"empty bucket {bucket}"):
            objects = self._client.list_objects(bucket, recursive=True)
            errors = list(
                self._client.remove_objects(
                    bucket, (DeleteObject(obj.object_name) for obj in objects)
                )
            )
        if errors:
            names = ", ".join(error.name for error in errors)
            raise StorageIOError(f"{self.scheme}: failed to empty bucket {bucket}: {names}")
        logger.info(f"Emptied bucket: {bucket}")

    def _remove_container(self) -> None:
        self._require_open()
        bucket = self._config.bucket
        with self._service_errors(f"delete bucket {bucket}"):
            self._client.remove_bucket(bucket)
        logger.info(f"Deleted bucket: {bucket}")


def _stream_length(stream: BinaryIO) -> tuple[int, int]:
    """Return (length, part_size) arguments for put_object.

    Seekable streams are measured from their current position; others are
    uploaded in parts of unknown total length.
    """
    try:
        start = stream.tell()
        stream.seek(0, 2)
        end = stream.tell()
        stream.seek(start)
    except (AttributeError, OSError):
        return -1, PART_SIZE
    return end - start, 0
