"""Environment-backed defaults for bucketsync.

Values read here are only defaults for the CLI. A sync run itself is driven
by an explicit :class:`bucketsync.sync.config.SyncConfig`.
"""

import os
from typing import Optional

from .utils import DEFAULT_REGION


class Config:
    """Read-only view of the environment settings bucketsync understands."""

    def __init__(self, environ: Optional[dict[str, str]] = None):
        """Initialize configuration.

        Args:
            environ: Mapping to read from (defaults to os.environ)
        """
        self._environ = os.environ if environ is None else environ

    def _get(self, *names: str) -> Optional[str]:
        for name in names:
            value = self._environ.get(name)
            if value:
                return value
        return None

    @property
    def endpoint_url(self) -> Optional[str]:
        """Object store endpoint override (e.g. LocalStack, MinIO)."""
        return self._get("BUCKETSYNC_ENDPOINT_URL")

    @property
    def region(self) -> str:
        """Store region, falling back to the AWS variables and us-east-1."""
        return (
            self._get("BUCKETSYNC_REGION", "AWS_REGION", "AWS_DEFAULT_REGION")
            or DEFAULT_REGION
        )

    @property
    def access_key_id(self) -> Optional[str]:
        return self._get("AWS_ACCESS_KEY_ID")

    @property
    def secret_access_key(self) -> Optional[str]:
        return self._get("AWS_SECRET_ACCESS_KEY")

    @property
    def profile(self) -> Optional[str]:
        return self._get("AWS_PROFILE")

    def has_credentials(self) -> bool:
        """Check if explicit credentials or a profile are configured."""
        return bool(
            (self.access_key_id and self.secret_access_key) or self.profile
        )


config = Config()
