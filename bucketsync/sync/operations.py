"""Per-key transfer and delete operations for both sync directions."""

import logging
from contextlib import closing
from pathlib import Path

from ..exceptions import DeletionError, TransferError
from ..store import ObjectStore
from ..utils import key_to_local_path
from .modes import SyncDirection

logger = logging.getLogger(__name__)


class SyncOperations:
    """Unified upload/download/delete operations between a local root and a bucket."""

    def __init__(self, store: ObjectStore, bucket: str, local_root: Path):
        """Initialize sync operations.

        Args:
            store: Object store client
            bucket: Bucket name
            local_root: Local sync root
        """
        self.store = store
        self.bucket = bucket
        self.local_root = local_root

    def local_path(self, key: str) -> Path:
        """Resolve a path key to a path under the local root.

        Raises:
            TransferError: If the key does not map onto a path under the root
        """
        path = key_to_local_path(self.local_root, key)
        if path is None:
            raise TransferError(
                f"Refusing unsafe key that does not map into the local root: {key}",
                key=key,
            )
        return path

    def upload_file(self, key: str) -> str:
        """Upload the local file for a key to the bucket.

        Args:
            key: Path key

        Returns:
            Content tag the store assigned to the object

        Raises:
            TransferError: If the file cannot be read or the upload fails
        """
        path = self.local_path(key)
        try:
            with open(path, "rb") as f:
                tag = self.store.put_object(self.bucket, key, f)
        except OSError as e:
            raise TransferError(f"Failed to read {path}: {e}", key=key) from e
        logger.debug(f"Uploaded {key} (tag {tag})")
        return tag

    def download_file(self, key: str) -> Path:
        """Download an object to its local path, creating parent directories.

        Args:
            key: Object key

        Returns:
            Path where the file was written

        Raises:
            TransferError: If the object cannot be fetched or written
        """
        path = self.local_path(key)
        with closing(self.store.get_object(self.bucket, key)) as chunks:
            # Fetch the first chunk before truncating an existing local file
            first = next(chunks, b"")
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "wb") as f:
                    f.write(first)
                    for chunk in chunks:
                        f.write(chunk)
            except OSError as e:
                raise TransferError(f"Failed to write {path}: {e}", key=key) from e
        logger.debug(f"Downloaded {key} to {path}")
        return path

    def delete_remote(self, key: str) -> None:
        """Delete an object from the bucket.

        Raises:
            DeletionError: If the delete fails
        """
        self.store.delete_object(self.bucket, key)
        logger.debug(f"Deleted object {key}")

    def delete_local(self, key: str) -> None:
        """Delete a local file. A file that is already gone counts as deleted.

        Raises:
            DeletionError: If the file cannot be removed
        """
        path = key_to_local_path(self.local_root, key)
        if path is None:
            raise DeletionError(
                f"Refusing unsafe key that does not map into the local root: {key}",
                key=key,
            )
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise DeletionError(
                f"Failed to delete local file {path}: {e}", key=key
            ) from e
        logger.debug(f"Deleted local file {path}")

    def transfer(self, key: str, direction: SyncDirection) -> None:
        """Copy one key from the source side to the destination side."""
        if direction == SyncDirection.UPLOAD:
            self.upload_file(key)
        else:
            self.download_file(key)

    def delete(self, key: str, direction: SyncDirection) -> None:
        """Delete one key from the destination side."""
        if direction == SyncDirection.UPLOAD:
            self.delete_remote(key)
        else:
            self.delete_local(key)
