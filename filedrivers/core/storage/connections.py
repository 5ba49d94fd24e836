"""Build connection URLs from named connection entries.

An entry is a dict with a base ``url`` and optional query overrides::

    {
        "url": "awss3://my-bucket/uploads",
        "region": "eu-west-1",
        "accept": [".png", ".jpg"],
        "acl": "private",
    }

Overrides replace any value the base URL already carries for the same
parameter. List values become repeated parameters.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit

from filedrivers.core.storage.errors import URLParseError

QUERY_KEYS = ("root", "region", "acl", "auto-create", "accept", "endpoint", "secure")


def connection_url(entry: dict[str, Any]) -> str:
    """Return the connection URL described by ``entry``.

    Raises:
        URLParseError: If the entry has no ``url``
    """
    url = entry.get("url")
    if not url:
        raise URLParseError("storage: connection entry must specify 'url'")

    overrides = {key: entry[key] for key in QUERY_KEYS if entry.get(key) not in (None, "")}
    if not overrides:
        return url

    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    query = [(k, v) for k, v in pairs if k not in overrides]
    for key, value in overrides.items():
        if isinstance(value, list | tuple | set | frozenset):
            query.extend((key, str(item)) for item in sorted(value))
        elif isinstance(value, bool):
            # True is the default for toggles; False is spelled "off".
            if not value:
                query.append((key, "off"))
        else:
            query.append((key, str(value)))

    return parts._replace(query=urlencode(query, safe="/,")).geturl()
