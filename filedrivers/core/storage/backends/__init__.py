"""Storage driver implementations."""

from filedrivers.core.storage.backends.aws_s3_backend import S3Config, S3Driver
from filedrivers.core.storage.backends.do_space_backend import DOSpaceConfig, DOSpaceDriver
from filedrivers.core.storage.backends.filesystem_backend import FilesystemConfig, FilesystemDriver
from filedrivers.core.storage.backends.minio_backend import ObjectStoreConfig, ObjectStoreDriver

__all__ = [
    "FilesystemConfig",
    "FilesystemDriver",
    "ObjectStoreConfig",
    "ObjectStoreDriver",
    "S3Config",
    "S3Driver",
    "DOSpaceConfig",
    "DOSpaceDriver",
]
