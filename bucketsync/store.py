"""Object store client for bucketsync.

The sync pipeline talks to the bucket through the small :class:`ObjectStore`
protocol. :class:`S3Store` implements it on top of boto3 for Amazon S3 and
S3-compatible services (LocalStack, MinIO, R2, ...).
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING, Any, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .exceptions import ConnectivityError, DeletionError, TransferError
from .utils import DEFAULT_BLOCK_SIZE, DEFAULT_PAGE_SIZE, normalize_content_tag

if TYPE_CHECKING:
    from .sync.config import SyncConfig

logger = logging.getLogger(__name__)

# Error codes S3 reports for a bucket that cannot be used
_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


@dataclass(frozen=True)
class ObjectInfo:
    """One entry of a bucket listing."""

    key: str
    """Object key"""

    content_tag: str
    """Store-reported content tag (ETag), quotes stripped"""

    size: int = 0
    """Object size in bytes"""


class ObjectStore(Protocol):
    """Operations the sync pipeline needs from a bucket."""

    def bucket_exists(self, bucket: str) -> bool: ...

    def create_bucket(self, bucket: str) -> None: ...

    def list_objects(self, bucket: str) -> Iterator[list[ObjectInfo]]: ...

    def get_object(self, bucket: str, key: str) -> Generator[bytes, None, None]: ...

    def put_object(self, bucket: str, key: str, body: IO[bytes]) -> str: ...

    def delete_object(self, bucket: str, key: str) -> None: ...


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class S3Store:
    """S3 implementation of :class:`ObjectStore` backed by a boto3 client.

    Every call is made exactly once: the client is built without botocore's
    automatic retries, and failures are mapped onto bucketsync exceptions.
    """

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        client: Any = None,
    ):
        """Initialize the S3 store.

        Args:
            region: AWS region (uses config if not provided)
            endpoint_url: Optional endpoint override for S3-compatible stores;
                enables path-style addressing
            access_key_id: Optional access key (uses config / boto3 chain)
            secret_access_key: Optional secret key
            page_size: Objects requested per listing page
            client: Pre-built boto3 S3 client (mainly for tests)
        """
        self.region = region or config.region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id or config.access_key_id
        self.secret_access_key = secret_access_key or config.secret_access_key
        self.page_size = page_size
        self._client = client

    @classmethod
    def from_sync_config(cls, sync_config: "SyncConfig") -> "S3Store":
        """Create a store for the endpoint and region of a sync run."""
        return cls(region=sync_config.region, endpoint_url=sync_config.endpoint_url)

    def _get_client(self) -> Any:
        """Get or create the boto3 client."""
        if self._client is None:
            boto_config = BotoConfig(
                region_name=self.region,
                retries={"max_attempts": 1, "mode": "standard"},
                s3={"addressing_style": "path"} if self.endpoint_url else None,
            )
            kwargs: dict[str, Any] = {"config": boto_config}
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            if self.access_key_id and self.secret_access_key:
                kwargs["aws_access_key_id"] = self.access_key_id
                kwargs["aws_secret_access_key"] = self.secret_access_key
            elif self.endpoint_url and not config.has_credentials():
                # LocalStack accepts any static credentials
                kwargs["aws_access_key_id"] = "test"
                kwargs["aws_secret_access_key"] = "test"
            logger.debug(
                "Creating S3 client (region=%s, endpoint=%s)",
                self.region,
                self.endpoint_url,
            )
            try:
                self._client = boto3.client("s3", **kwargs)
            except BotoCoreError as e:
                raise ConnectivityError(f"Failed to create S3 client: {e}") from e
        return self._client

    def bucket_exists(self, bucket: str) -> bool:
        """Check whether a bucket exists and is accessible.

        Returns:
            True if the bucket is reachable, False if the store reports
            that it does not exist

        Raises:
            ConnectivityError: If the store cannot be reached or denies access
        """
        try:
            self._get_client().head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            if _error_code(e) in _MISSING_BUCKET_CODES:
                return False
            raise ConnectivityError(f"Failed to access bucket {bucket}: {e}") from e
        except BotoCoreError as e:
            raise ConnectivityError(f"Failed to access bucket {bucket}: {e}") from e

    def create_bucket(self, bucket: str) -> None:
        """Create a bucket in the configured region.

        Raises:
            ConnectivityError: If the bucket cannot be created
        """
        params: dict[str, Any] = {"Bucket": bucket}
        # us-east-1 rejects an explicit location constraint
        if self.region and self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {
                "LocationConstraint": self.region
            }
        try:
            self._get_client().create_bucket(**params)
            logger.debug("Created bucket %s", bucket)
        except (ClientError, BotoCoreError) as e:
            raise ConnectivityError(f"Failed to create bucket {bucket}: {e}") from e

    def list_objects(self, bucket: str) -> Iterator[list[ObjectInfo]]:
        """List every object in a bucket, one page at a time.

        Args:
            bucket: Bucket name

        Yields:
            One list of ObjectInfo per listing page, until all pages
            are exhausted

        Raises:
            ConnectivityError: If any page request fails
        """
        paginator = self._get_client().get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=bucket, PaginationConfig={"PageSize": self.page_size}
        )
        page_num = 0
        try:
            for page in pages:
                page_num += 1
                contents = page.get("Contents", [])
                logger.debug(
                    "Listing page %d of %s: %d object(s)",
                    page_num,
                    bucket,
                    len(contents),
                )
                yield [
                    ObjectInfo(
                        key=obj["Key"],
                        content_tag=normalize_content_tag(obj.get("ETag")),
                        size=obj.get("Size", 0),
                    )
                    for obj in contents
                ]
        except (ClientError, BotoCoreError) as e:
            raise ConnectivityError(
                f"Failed to list objects in bucket {bucket}: {e}"
            ) from e

    def get_object(self, bucket: str, key: str) -> Generator[bytes, None, None]:
        """Stream the bytes of an object.

        Yields:
            Chunks of the object body

        Raises:
            TransferError: If the object cannot be retrieved
        """
        try:
            response = self._get_client().get_object(Bucket=bucket, Key=key)
            body = response["Body"]
            try:
                yield from body.iter_chunks(chunk_size=DEFAULT_BLOCK_SIZE)
            finally:
                body.close()
        except (ClientError, BotoCoreError) as e:
            raise TransferError(
                f"Failed to download s3://{bucket}/{key}: {e}", key=key
            ) from e

    def put_object(self, bucket: str, key: str, body: IO[bytes]) -> str:
        """Store an object in a single-part upload.

        Returns:
            The content tag the store assigned to the new object

        Raises:
            TransferError: If the upload fails
        """
        try:
            response = self._get_client().put_object(Bucket=bucket, Key=key, Body=body)
        except (ClientError, BotoCoreError) as e:
            raise TransferError(
                f"Failed to upload s3://{bucket}/{key}: {e}", key=key
            ) from e
        return normalize_content_tag(response.get("ETag"))

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object.

        Raises:
            DeletionError: If the store rejects the delete
        """
        try:
            self._get_client().delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise DeletionError(
                f"Failed to delete object {key}: {e}", key=key
            ) from e
