from __future__ import annotations

from io import BytesIO
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from minio.error import S3Error


def s3_error(code: str, resource: str = "/") -> S3Error:
    """Build an S3Error the way the MinIO client raises them."""
    return S3Error(
        code=code,
        message=f"{code} (test)",
        resource=resource,
        request_id="",
        host_id="",
        response=None,
    )


class FakeResponse(BytesIO):
    """Stand-in for the urllib3 response returned by get_object."""

    def release_conn(self):
        pass


class FakeMinio:
    """In-memory MinIO client covering the calls the object-store drivers make."""

    def __init__(self):
        self.buckets: dict[str, dict[str, dict]] = {}
        self.locations: dict[str, str | None] = {}
        self.undeletable: set[str] = set()
        self.fail_with: S3Error | None = None

    def _check_failure(self):
        if self.fail_with is not None:
            raise self.fail_with

    def bucket_exists(self, bucket_name):
        self._check_failure()
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name, location=None):
        self.buckets[bucket_name] = {}
        self.locations[bucket_name] = location

    def remove_bucket(self, bucket_name):
        if self.buckets[bucket_name]:
            raise s3_error("BucketNotEmpty", f"/{bucket_name}")
        del self.buckets[bucket_name]

    def stat_object(self, bucket_name, object_name):
        self._check_failure()
        obj = self.buckets[bucket_name].get(object_name)
        if obj is None:
            raise s3_error("NoSuchKey", f"/{bucket_name}/{object_name}")
        return SimpleNamespace(size=len(obj["data"]), content_type=obj["content_type"])

    def put_object(
        self,
        bucket_name,
        object_name,
        data,
        length,
        content_type="application/octet-stream",
        metadata=None,
        part_size=0,
    ):
        self._check_failure()
        body = data.read() if length == -1 else data.read(length)
        self.buckets[bucket_name][object_name] = {
            "data": body,
            "content_type": content_type,
            "metadata": metadata or {},
            "length": length,
            "part_size": part_size,
        }
        return SimpleNamespace(etag=f"etag-{len(body)}")

    def get_object(self, bucket_name, object_name):
        self._check_failure()
        obj = self.buckets[bucket_name].get(object_name)
        if obj is None:
            raise s3_error("NoSuchKey", f"/{bucket_name}/{object_name}")
        return FakeResponse(obj["data"])

    def remove_object(self, bucket_name, object_name):
        self._check_failure()
        self.buckets[bucket_name].pop(object_name, None)

    def list_objects(self, bucket_name, prefix=None, recursive=False):
        for name in sorted(self.buckets[bucket_name]):
            if prefix is None or name.startswith(prefix):
                yield SimpleNamespace(object_name=name)

    def remove_objects(self, bucket_name, delete_object_list):
        for delete_object in delete_object_list:
            name = getattr(delete_object, "name", None) or delete_object._name
            if name in self.undeletable:
                yield SimpleNamespace(code="AccessDenied", message="denied", name=name)
            else:
                self.buckets[bucket_name].pop(name, None)


@pytest.fixture
def fake_minio():
    """Patch the MinIO client used by the object-store drivers with an in-memory fake.

    The patched class is available as ``fake_minio.minio_class``.
    """
    client = FakeMinio()
    with patch(
        "filedrivers.core.storage.backends.minio_backend.Minio", return_value=client
    ) as minio_class:
        client.minio_class = minio_class
        yield client
