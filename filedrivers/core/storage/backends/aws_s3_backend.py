"""AWS S3 driver.

Connection URL::

    awss3://bucket/prefix?region=us-east-2&accept=.txt&acl=private&auto-create=off

Query parameters:
    region: region the bucket lives in (or is created in). Default "us-east-1"
    accept: comma-separated, repeatable list of accepted extensions, e.g.
        ``?accept=.jpeg,.svg&accept=.png``. Default .jpeg, .jpg, .png, .svg
    auto-create: any of 0, false, nil, disable, none, off keeps the bucket
        from being created when missing
    acl: canned ACL applied to uploads, see
        https://docs.aws.amazon.com/AmazonS3/latest/dev/acl-overview.html#CannedACL.
        Default "public-read"
    endpoint: host[:port] of another S3-compatible service (e.g. a local MinIO)
    secure: "off" (or another disable value) talks plain HTTP to ``endpoint``

Credentials come from the environment (AWS_ACCESS_KEY_ID /
AWS_SECRET_ACCESS_KEY, then MINIO_ACCESS_KEY / MINIO_SECRET_KEY).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from minio.credentials import ChainedProvider, EnvAWSProvider, EnvMinioProvider

from filedrivers.core.storage.backends.minio_backend import (
    ObjectStoreConfig,
    ObjectStoreDriver,
    split_connection_url,
)
from filedrivers.core.storage.query import (
    ensure_leading_slash,
    first_value,
    parse_accept,
    parse_choice,
    parse_toggle,
)

AWS_ENDPOINT = "s3.amazonaws.com"
DEFAULT_REGION = "us-east-1"
DEFAULT_ACL = "public-read"

ACCEPTABLE_ACL = frozenset(
    {
        "private",
        "public-read",
        "public-read-write",
        "aws-exec-read",
        "authenticated-read",
        "bucket-owner-read",
        "bucket-owner-full-control",
        "log-delivery-write",
    }
)


@dataclass(frozen=True)
class S3Config(ObjectStoreConfig):
    """Resolved configuration of an AWS S3 driver."""

    endpoint: str | None = None
    secure: bool = True


class S3Driver(ObjectStoreDriver):
    """Driver for an AWS S3 bucket (or any S3-compatible ``endpoint``)."""

    scheme = "awss3"

    @classmethod
    def parse_url(cls, url: str) -> S3Config:
        segments, query = split_connection_url(url, cls.scheme, "awss3://bucket/prefix")
        return S3Config(
            bucket=segments["bucket"],
            prefix=ensure_leading_slash(segments["prefix"]),
            region=first_value(query, "region") or DEFAULT_REGION,
            file_acl=parse_choice(query, "acl", ACCEPTABLE_ACL, DEFAULT_ACL, cls.scheme, url),
            accept=parse_accept(query),
            auto_create=parse_toggle(query, "auto-create", cls.scheme, url),
            endpoint=first_value(query, "endpoint") or None,
            secure=parse_toggle(query, "secure", cls.scheme, url),
        )

    def _client_options(self) -> dict[str, Any]:
        return {
            "endpoint": self._config.endpoint or AWS_ENDPOINT,
            "region": self._config.region,
            "secure": self._config.secure,
            "credentials": ChainedProvider([EnvAWSProvider(), EnvMinioProvider()]),
        }

    def _base_path(self) -> str:
        config = self._config
        if config.endpoint:
            protocol = "https" if config.secure else "http"
            return f"{protocol}://{config.endpoint}/{config.bucket}{config.prefix}"
        return f"https://{config.bucket}.s3.{config.region}.amazonaws.com{config.prefix}"
