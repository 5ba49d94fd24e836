"""Loading named configuration mappings from Python modules.

Configuration lives in plain Python modules (see configs/storage_drivers.py)
that expose a dict of name -> entry. Entries may extend another entry with
the "__inherits__" key:

    CONNECTIONS = {
        "uploads": {"url": "awss3://my-bucket/uploads", "region": "eu-west-1"},
        "uploads.private": {"__inherits__": "uploads", "acl": "private"},
    }
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

logger = logging.getLogger(__name__)

INHERITS_KEY = "__inherits__"


class ConfigError(Exception):
    """Raised when a configuration cannot be resolved."""

    pass


def load_config_from_module(
    module_path: str,
    config_name: str = "CONNECTIONS",
    default: Any | None = None,
) -> Any:
    """Return attribute ``config_name`` of module ``module_path``.

    A module that cannot be imported or lacks the attribute yields ``default``
    with a warning; errors raised while executing the module propagate.

    Examples:
        >>> connections = load_config_from_module("configs.storage_drivers")
        >>> custom = load_config_from_module("myapp.storage", "UPLOADS")
    """
    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as e:
        logger.warning(f"Could not import module '{module_path}': {e}")
        return default

    if not hasattr(module, config_name):
        logger.warning(f"Module '{module_path}' does not have attribute '{config_name}'")
        return default

    logger.debug(f"Loaded configuration from {module_path}.{config_name}")
    return getattr(module, config_name)


def resolve_config_inheritance(config_dict: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Expand "__inherits__" references.

    Child values override parent values; chains of any depth are followed.
    The input is left untouched.

    Raises:
        ConfigError: On circular inheritance or a missing parent

    Examples:
        >>> resolved = resolve_config_inheritance({
        ...     "base": {"url": "fs://localhost/assets", "accept": ".png"},
        ...     "docs": {"__inherits__": "base", "accept": ".pdf"},
        ... })
        >>> resolved["docs"]
        {'url': 'fs://localhost/assets', 'accept': '.pdf'}
    """
    resolved: dict[str, dict[str, Any]] = {}

    def resolve(name: str, chain: tuple[str, ...]) -> dict[str, Any]:
        if name in chain:
            raise ConfigError(
                f"Circular inheritance detected: {' -> '.join(chain)} -> {name}"
            )
        if name in resolved:
            return resolved[name]

        entry = config_dict[name]
        parent = entry.get(INHERITS_KEY)
        if parent is None:
            merged = dict(entry)
        else:
            if parent not in config_dict:
                raise ConfigError(
                    f"Configuration '{name}' inherits from '{parent}', but '{parent}' not found"
                )
            merged = dict(resolve(parent, chain + (name,)))
            merged.update((k, v) for k, v in entry.items() if k != INHERITS_KEY)
            logger.debug(f"Resolved inheritance for '{name}' from '{parent}'")

        resolved[name] = merged
        return merged

    for name in config_dict:
        resolve(name, ())
    return resolved


def load_and_resolve_config(
    module_path: str,
    config_name: str = "CONNECTIONS",
    default: dict[str, dict[str, Any]] | None = None,
) -> dict[str, dict[str, Any]]:
    """Load a configuration mapping and resolve its inheritance.

    Falls back to ``default`` (or an empty dict) when the module or attribute
    is missing or is not a dict.

    Raises:
        ConfigError: If inheritance cannot be resolved
    """
    raw_config = load_config_from_module(module_path, config_name, default)

    if not isinstance(raw_config, dict):
        logger.warning(f"Invalid configuration loaded from {module_path}, using default")
        return dict(default or {})

    resolved = resolve_config_inheritance(raw_config)
    logger.info(f"Loaded and resolved {len(resolved)} configurations from {module_path}")
    return resolved
