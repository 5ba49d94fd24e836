"""Named storage connections.

This module defines the CONNECTIONS dict which maps connection names to
connection entries. An entry has a base "url" and optional query overrides
(root, region, acl, auto-create, accept, endpoint, secure). Users can
customize this file or create their own module and pass the loaded dict to
DriverRegistry.

Example usage:
    from filedrivers import create_default_registry

    registry = create_default_registry()
    with registry.open_named("dev") as driver:
        driver.add_file(b"...", "logo.png")

Environment overrides:
    FILEDRIVERS_ROOT        directory of the local "dev" and "tmp" connections
    FILEDRIVERS_S3_BUCKET   bucket of the "s3" connections
    FILEDRIVERS_S3_REGION   region of the "s3" connections
    DO_SPACES_KEY, DO_SPACES_SECRET, DO_SPACES_NAME, DO_SPACES_REGION

Configuration inheritance:
    "s3.private": {
        "__inherits__": "s3",   # everything from "s3"
        "acl": "private",       # except the ACL
    }
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from urllib.parse import quote

from filedrivers.core.utils.env import load_env_file_if_present

load_env_file_if_present()  # Load .env file if present
PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _resolve_default_root() -> Path:
    """Return the default filesystem storage root."""
    configured_path = os.environ.get("FILEDRIVERS_ROOT")
    if configured_path:
        return Path(configured_path).expanduser()

    return PROJECT_ROOT / "var" / "files"


def _do_space_url() -> str:
    key = quote(os.getenv("DO_SPACES_KEY", ""), safe="")
    secret = quote(os.getenv("DO_SPACES_SECRET", ""), safe="")
    space = os.getenv("DO_SPACES_NAME", "filedrivers-assets")
    return f"do://{key}:{secret}@{space}/assets"


DEFAULT_ROOT = _resolve_default_root()

CONNECTIONS = {
    # Local directory for development
    "dev": {
        "url": "fs://localhost/assets",
        "root": str(DEFAULT_ROOT / "dev"),
        "accept": [".jpeg", ".jpg", ".png", ".svg", ".txt"],
    },
    # Scratch space in the system temp directory
    "tmp": {
        "url": "fs://localhost/tmp",
        "root": str(Path(tempfile.gettempdir()) / "filedrivers"),
    },
    # Public assets on S3
    "s3": {
        "url": f"awss3://{os.getenv('FILEDRIVERS_S3_BUCKET', 'filedrivers-assets')}/assets",
        "region": os.getenv("FILEDRIVERS_S3_REGION", "us-east-1"),
        "auto-create": False,
    },
    # Same bucket, private uploads
    "s3.private": {
        "__inherits__": "s3",
        "url": f"awss3://{os.getenv('FILEDRIVERS_S3_BUCKET', 'filedrivers-assets')}/private",
        "acl": "private",
        "accept": [".pdf", ".txt"],
    },
    # Local MinIO server speaking the S3 protocol
    "minio-local": {
        "url": "awss3://filedrivers-dev/assets",
        "endpoint": os.getenv("MINIO_ENDPOINT", "localhost:9000"),
        "secure": False,
    },
    # DigitalOcean Space
    "do": {
        "url": _do_space_url(),
        "region": os.getenv("DO_SPACES_REGION", "nyc3"),
    },
}
