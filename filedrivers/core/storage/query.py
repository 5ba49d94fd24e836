"""Helpers shared by the connection URL parsers."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from urllib.parse import parse_qs

from filedrivers.core.storage.errors import URLParseError

# Values that switch a toggle parameter (auto-create, secure) off.
DISABLE_VALUES = frozenset({"0", "false", "nil", "disable", "none", "off"})

DEFAULT_ACCEPT = frozenset({".jpeg", ".jpg", ".png", ".svg"})

QueryValues = dict[str, list[str]]


def parse_query(query: str) -> QueryValues:
    """Parse a raw query string, keeping blank values."""
    return parse_qs(query, keep_blank_values=True)


def first_value(query: QueryValues, field: str) -> str:
    """Return the first value for ``field``, or ``""`` when absent."""
    values = query.get(field)
    return values[0].strip() if values else ""


def parse_comma_separated_query(
    query: QueryValues, field: str, defaults: Iterable[str] = ()
) -> frozenset[str]:
    """Collect a repeatable, comma-separated query parameter into a set.

    ``?x=a,b,&x=b&x=c`` gives ``{"a", "b", "c"}``. Empty entries are dropped.
    When ``field`` is absent altogether, ``defaults`` is returned instead.

    Examples:
        >>> sorted(parse_comma_separated_query(parse_query("t=a,b,&t=c"), "t"))
        ['a', 'b', 'c']
        >>> sorted(parse_comma_separated_query({}, "t", ["x"]))
        ['x']
    """
    if field not in query:
        return frozenset(defaults)

    entries = set()
    for value in query[field]:
        for entry in value.split(","):
            entry = entry.strip()
            if entry:
                entries.add(entry)
    return frozenset(entries)


def normalize_extension(ext: str) -> str:
    """Lowercase an extension and make sure it starts with a dot."""
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def parse_accept(query: QueryValues, defaults: Iterable[str] = DEFAULT_ACCEPT) -> frozenset[str]:
    """Build an accept-set from the ``accept`` query parameter."""
    raw = parse_comma_separated_query(query, "accept", defaults)
    return frozenset(normalize_extension(ext) for ext in raw)


def parse_toggle(query: QueryValues, field: str, scheme: str, url: str | None = None) -> bool:
    """Parse an on-by-default toggle.

    Only the values in ``DISABLE_VALUES`` are legal; they switch the toggle
    off. An absent or empty parameter leaves it on.
    """
    value = first_value(query, field).lower()
    if not value:
        return True
    if value in DISABLE_VALUES:
        return False
    raise URLParseError(
        f"{scheme}: error parsing url: unknown {field} value: {value}",
        url=url,
        parameter=field,
        value=value,
    )


def parse_choice(
    query: QueryValues,
    field: str,
    choices: Collection[str],
    default: str,
    scheme: str,
    url: str | None = None,
) -> str:
    """Parse a parameter restricted to a closed, case-insensitive value set."""
    value = first_value(query, field).lower()
    if not value:
        return default
    if value not in choices:
        raise URLParseError(
            f"{scheme}: error parsing url: unknown {field}: {value}",
            url=url,
            parameter=field,
            value=value,
        )
    return value


def ensure_leading_slash(prefix: str) -> str:
    """Normalize a prefix to ``/a/b`` form (``/`` when empty)."""
    prefix = prefix.strip("/")
    return "/" + prefix
