"""Explicit per-run sync configuration."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from ..config import config
from ..exceptions import BucketSyncConfigError
from ..utils import DEFAULT_REGION
from .modes import SyncDirection
from .reconciler import ErrorPolicy


@dataclass
class SyncConfig:
    """Everything one sync run needs, built once and passed to the engine.

    Examples:
        >>> cfg = SyncConfig(local="./site", bucket="my-bucket", direction="push")
        >>> cfg.direction
        <SyncDirection.UPLOAD: 'upload'>
    """

    local: Path
    """Local sync root"""

    bucket: str
    """Bucket name"""

    direction: SyncDirection
    """Which side is the source"""

    delete_extra: bool = False
    """Delete destination entries that are absent from the source"""

    endpoint_url: Optional[str] = None
    """Object store endpoint override"""

    region: str = DEFAULT_REGION
    """Store region"""

    dry_run: bool = False
    """Only compute and report the plan"""

    max_workers: int = 1
    """Parallel workers for transfers and deletions"""

    error_policy: ErrorPolicy = ErrorPolicy.ABORT
    """Continuation policy after a per-key failure"""

    create_bucket: bool = False
    """Create the bucket if it does not exist (upload only)"""

    def __post_init__(self) -> None:
        """Normalize and validate fields."""
        if isinstance(self.local, str):
            self.local = Path(self.local)

        if isinstance(self.direction, str) and not isinstance(
            self.direction, SyncDirection
        ):
            try:
                self.direction = SyncDirection.from_string(self.direction)
            except ValueError as e:
                raise BucketSyncConfigError(str(e)) from e

        if isinstance(self.error_policy, str) and not isinstance(
            self.error_policy, ErrorPolicy
        ):
            try:
                self.error_policy = ErrorPolicy(self.error_policy.lower())
            except ValueError as e:
                raise BucketSyncConfigError(
                    f"Invalid error policy: {self.error_policy}"
                ) from e

        self.bucket = (self.bucket or "").strip()
        if not self.bucket:
            raise BucketSyncConfigError("Bucket name cannot be empty")
        if not str(self.local):
            raise BucketSyncConfigError("Local path cannot be empty")
        if self.max_workers < 1:
            raise BucketSyncConfigError("max_workers must be at least 1")
        if not self.region:
            self.region = DEFAULT_REGION

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncConfig":
        """Create a sync config from a dictionary (e.g. a JSON job file).

        Omitted keys get the same defaults as the push/pull commands: region
        and endpoint come from the environment, and a missing bucket is
        created on upload.

        Args:
            data: Dictionary with camelCase keys: local, bucket, direction,
                deleteExtra, endpointUrl, region, dryRun, maxWorkers,
                errorPolicy, createBucket

        Returns:
            SyncConfig

        Raises:
            BucketSyncConfigError: If required fields are missing or invalid
        """
        required_fields = ["local", "bucket", "direction"]
        missing_fields = [f for f in required_fields if f not in data]
        if missing_fields:
            raise BucketSyncConfigError(
                f"Missing required fields: {', '.join(missing_fields)}"
            )

        try:
            max_workers = int(data.get("maxWorkers", 1))
        except (TypeError, ValueError) as e:
            raise BucketSyncConfigError(
                f"Invalid maxWorkers: {data.get('maxWorkers')!r}"
            ) from e

        return cls(
            local=Path(data["local"]),
            bucket=data["bucket"],
            direction=data["direction"],
            delete_extra=bool(data.get("deleteExtra", False)),
            endpoint_url=data.get("endpointUrl") or config.endpoint_url,
            region=data.get("region") or config.region,
            dry_run=bool(data.get("dryRun", False)),
            max_workers=max_workers,
            error_policy=data.get("errorPolicy", ErrorPolicy.ABORT.value),
            create_bucket=bool(data.get("createBucket", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert sync config to a dictionary."""
        return {
            "local": str(self.local),
            "bucket": self.bucket,
            "direction": self.direction.value,
            "deleteExtra": self.delete_extra,
            "endpointUrl": self.endpoint_url,
            "region": self.region,
            "dryRun": self.dry_run,
            "maxWorkers": self.max_workers,
            "errorPolicy": self.error_policy.value,
            "createBucket": self.create_bucket,
        }

    def __str__(self) -> str:
        arrow = "->" if self.direction == SyncDirection.UPLOAD else "<-"
        return f"{self.local} {arrow} s3://{self.bucket}"


def load_sync_config_from_json(path: Union[str, Path]) -> SyncConfig:
    """Load a sync job from a JSON file.

    Args:
        path: Path to a JSON file holding one SyncConfig dictionary

    Returns:
        SyncConfig

    Raises:
        BucketSyncConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise BucketSyncConfigError(f"Cannot read job file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise BucketSyncConfigError(f"Invalid JSON in job file {path}: {e}") from e

    if not isinstance(data, dict):
        raise BucketSyncConfigError(f"Job file {path} must contain a JSON object")

    return SyncConfig.from_dict(data)
