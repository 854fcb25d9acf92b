"""Inventory builders for the local directory and the bucket."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import TraversalError
from ..store import ObjectInfo, ObjectStore
from .fingerprint import fingerprint_file

logger = logging.getLogger(__name__)

Inventory = dict[str, str]
"""Mapping from path key to fingerprint (local) or content tag (remote)."""


@dataclass
class LocalFile:
    """Represents a local file with its fingerprint."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp), informational only"""

    fingerprint: str
    """Hex digest of the file content"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path, fingerprinting its content.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance

        Raises:
            OSError: If the file cannot be stat'ed or read
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()

        return cls(
            path=file_path,
            relative_path=relative_path,
            size=stat.st_size,
            mtime=stat.st_mtime,
            fingerprint=fingerprint_file(file_path),
        )


@dataclass
class RemoteObject:
    """Represents an object in the bucket."""

    key: str
    """Object key, used directly as the path key"""

    content_tag: str
    """Content tag reported by the store, quotes stripped"""

    size: int = 0
    """Object size in bytes"""

    @property
    def relative_path(self) -> str:
        return self.key

    @classmethod
    def from_info(cls, info: ObjectInfo) -> "RemoteObject":
        return cls(key=info.key, content_tag=info.content_tag, size=info.size)


class DirectoryScanner:
    """Recursively scans a local directory into LocalFile entries.

    Directories are traversed but never recorded. Symbolic links to files are
    read through; symbolic links to directories are not followed. Any error
    aborts the scan: there is no partial result.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/sync/folder"))
    """

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Directory to scan
            base_path: Base path for calculating relative paths (defaults to directory)

        Returns:
            List of LocalFile objects, ordered by relative path

        Raises:
            TraversalError: If the root is not a directory, or any entry
                cannot be listed, stat'ed or read
        """
        if base_path is None:
            base_path = directory
            try:
                exists = directory.exists()
                is_dir = exists and directory.is_dir()
            except OSError as e:
                raise TraversalError(f"Cannot stat {directory}: {e}") from e
            if not exists:
                raise TraversalError(f"Local directory does not exist: {directory}")
            if not is_dir:
                raise TraversalError(f"Local path is not a directory: {directory}")

        files: list[LocalFile] = []

        try:
            items = sorted(directory.iterdir())
        except OSError as e:
            raise TraversalError(f"Cannot list directory {directory}: {e}") from e

        for item in items:
            try:
                is_dir_link = item.is_symlink() and item.is_dir()
                is_file = not is_dir_link and item.is_file()
                is_dir = not is_dir_link and not is_file and item.is_dir()
            except OSError as e:
                raise TraversalError(f"Cannot stat {item}: {e}") from e

            if is_dir_link:
                logger.debug(f"Not following directory symlink: {item}")
                continue

            if is_file:
                try:
                    files.append(LocalFile.from_path(item, base_path))
                except OSError as e:
                    raise TraversalError(f"Cannot read file {item}: {e}") from e
            elif is_dir:
                files.extend(self.scan_local(item, base_path))
            else:
                logger.debug(f"Skipping non-regular entry: {item}")

        return files


class RemoteScanner:
    """Lists a bucket into RemoteObject entries."""

    def __init__(self, store: ObjectStore):
        """Initialize remote scanner.

        Args:
            store: Object store to list
        """
        self.store = store

    def scan_remote(self, bucket: str) -> list[RemoteObject]:
        """List every object in the bucket, exhausting all pages.

        Keys ending with "/" are directory markers and are not recorded.

        Args:
            bucket: Bucket name

        Returns:
            List of RemoteObject

        Raises:
            ConnectivityError: If any listing page fails
        """
        remote_objects: list[RemoteObject] = []
        pages = 0

        for page in self.store.list_objects(bucket):
            pages += 1
            for info in page:
                if info.key.endswith("/"):
                    logger.debug(f"Skipping directory marker: {info.key}")
                    continue
                remote_objects.append(RemoteObject.from_info(info))

        logger.debug(
            f"Listed {len(remote_objects)} object(s) from {bucket} in {pages} page(s)"
        )
        return remote_objects


def build_local_inventory(root: Path) -> Inventory:
    """Build the inventory of a local directory tree.

    Args:
        root: Sync root

    Returns:
        Mapping from relative path key to content fingerprint

    Raises:
        TraversalError: If the walk fails anywhere
    """
    return {f.relative_path: f.fingerprint for f in DirectoryScanner().scan_local(root)}


def build_remote_inventory(store: ObjectStore, bucket: str) -> Inventory:
    """Build the inventory of a bucket.

    Args:
        store: Object store
        bucket: Bucket name

    Returns:
        Mapping from object key to content tag

    Raises:
        ConnectivityError: If the listing fails at any page
    """
    objects = RemoteScanner(store).scan_remote(bucket)
    return {obj.key: obj.content_tag for obj in objects}
