"""DigitalOcean Spaces driver.

Connection URL::

    do://key:secret@space/prefix?region=ams3&accept=.png&acl=private

Key and secret are required in the URL; percent-encode characters such as
``/`` or ``+`` in the secret.

Query parameters:
    region: one of the Spaces regions, see
        https://docs.digitalocean.com/products/platform/availability-matrix/.
        Default "nyc3"
    accept: comma-separated, repeatable list of accepted extensions.
        Default .jpeg, .jpg, .png, .svg
    auto-create: any of 0, false, nil, disable, none, off keeps the space
        from being created when missing
    acl: "private" or "public-read". Default "public-read"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from filedrivers.core.storage.backends.minio_backend import (
    ObjectStoreConfig,
    ObjectStoreDriver,
    split_connection_url,
)
from filedrivers.core.storage.query import (
    ensure_leading_slash,
    parse_accept,
    parse_choice,
    parse_toggle,
)

DEFAULT_REGION = "nyc3"
DEFAULT_ACL = "public-read"

ACCEPTABLE_ACL = frozenset({"private", "public-read"})

ACCEPTABLE_REGIONS = frozenset(
    {
        "ams1",
        "ams2",
        "ams3",
        "blr1",
        "fra1",
        "lon1",
        "nyc1",
        "nyc2",
        "nyc3",
        "sfo1",
        "sfo2",
        "sfo3",
        "sgp1",
        "syd1",
        "tor1",
    }
)

# Spaces expects S3 clients to sign for us-east-1 whatever the datacenter.
SIGNING_REGION = "us-east-1"


@dataclass(frozen=True)
class DOSpaceConfig(ObjectStoreConfig):
    """Resolved configuration of a DigitalOcean Spaces driver."""

    access_key: str = field(default="", repr=False)
    secret_key: str = field(default="", repr=False)


class DOSpaceDriver(ObjectStoreDriver):
    """Driver for a DigitalOcean Space."""

    scheme = "do"

    @classmethod
    def parse_url(cls, url: str) -> DOSpaceConfig:
        segments, query = split_connection_url(
            url, cls.scheme, "do://key:secret@space/prefix", container="space", credentials=True
        )
        return DOSpaceConfig(
            bucket=segments["space"],
            prefix=ensure_leading_slash(segments["prefix"]),
            region=parse_choice(query, "region", ACCEPTABLE_REGIONS, DEFAULT_REGION, cls.scheme),
            file_acl=parse_choice(query, "acl", ACCEPTABLE_ACL, DEFAULT_ACL, cls.scheme),
            accept=parse_accept(query),
            auto_create=parse_toggle(query, "auto-create", cls.scheme),
            access_key=segments["key"],
            secret_key=segments["secret"],
        )

    def _client_options(self) -> dict[str, Any]:
        return {
            "endpoint": f"{self._config.region}.digitaloceanspaces.com",
            "access_key": self._config.access_key,
            "secret_key": self._config.secret_key,
            "region": SIGNING_REGION,
            "secure": True,
        }

    def _bucket_location(self) -> str | None:
        return None

    def _base_path(self) -> str:
        config = self._config
        return f"https://{config.bucket}.{config.region}.digitaloceanspaces.com{config.prefix}"
