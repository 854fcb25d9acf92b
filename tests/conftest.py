"""Shared fixtures for bucketsync tests."""

import hashlib
import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import Mock

import pytest

from bucketsync.exceptions import ConnectivityError, DeletionError, TransferError
from bucketsync.output import OutputFormatter
from bucketsync.store import ObjectInfo


class InMemoryStore:
    """Object store fake keeping buckets as dicts of key -> bytes.

    Content tags are MD5 hex digests, like S3 ETags of single-part uploads.
    Keys listed in the fail_* sets make the matching call fail.
    """

    def __init__(self, page_size: int = 2):
        self.buckets: dict[str, dict[str, bytes]] = {}
        self.tag_overrides: dict[str, str] = {}
        self.page_size = page_size
        self.reachable = True
        self.fail_list = False
        self.fail_put: set[str] = set()
        self.fail_get: set[str] = set()
        self.fail_delete: set[str] = set()
        self.put_calls: list[str] = []
        self.get_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.created_buckets: list[str] = []

    def add_bucket(self, bucket: str, objects: Optional[dict[str, bytes]] = None):
        self.buckets[bucket] = dict(objects or {})
        return self.buckets[bucket]

    def _check_reachable(self, bucket: str) -> None:
        if not self.reachable:
            raise ConnectivityError(f"Failed to access bucket {bucket}: unreachable")

    def tag_of(self, key: str, data: bytes) -> str:
        return self.tag_overrides.get(key, hashlib.md5(data).hexdigest())

    def bucket_exists(self, bucket: str) -> bool:
        self._check_reachable(bucket)
        return bucket in self.buckets

    def create_bucket(self, bucket: str) -> None:
        self._check_reachable(bucket)
        self.created_buckets.append(bucket)
        self.buckets.setdefault(bucket, {})

    def list_objects(self, bucket: str):
        self._check_reachable(bucket)
        if self.fail_list:
            raise ConnectivityError(f"Failed to list objects in bucket {bucket}")
        keys = sorted(self.buckets[bucket])
        for start in range(0, len(keys), self.page_size):
            page = keys[start : start + self.page_size]
            yield [
                ObjectInfo(
                    key=key,
                    content_tag=self.tag_of(key, self.buckets[bucket][key]),
                    size=len(self.buckets[bucket][key]),
                )
                for key in page
            ]

    def get_object(self, bucket: str, key: str):
        self.get_calls.append(key)
        if key in self.fail_get or key not in self.buckets.get(bucket, {}):
            raise TransferError(f"Failed to download s3://{bucket}/{key}", key=key)
        data = self.buckets[bucket][key]
        # Two chunks, to exercise streaming writes
        yield data[: len(data) // 2]
        yield data[len(data) // 2 :]

    def put_object(self, bucket: str, key: str, body) -> str:
        self.put_calls.append(key)
        data = body.read()
        if key in self.fail_put:
            raise TransferError(f"Failed to upload s3://{bucket}/{key}", key=key)
        self.buckets[bucket][key] = data
        self.tag_overrides.pop(key, None)
        return self.tag_of(key, data)

    def delete_object(self, bucket: str, key: str) -> None:
        self.delete_calls.append(key)
        if key in self.fail_delete:
            raise DeletionError(f"Failed to delete object {key}", key=key)
        self.buckets[bucket].pop(key, None)


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Create files (relative path -> text content) under root."""
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def read_tree(root: Path) -> dict[str, str]:
    """Read every file under root into a relative path -> text mapping."""
    return {
        p.relative_to(root).as_posix(): p.read_text()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def md5_hex(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """Create an in-memory object store with an empty test bucket."""
    memory_store = InMemoryStore()
    memory_store.add_bucket("test-bucket")
    return memory_store


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True  # Suppress output during tests
    output.json_output = False
    return output
