"""Utility functions for bucketsync."""

from pathlib import Path
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Read/write block size for fingerprinting and streaming transfers (1 MB)
DEFAULT_BLOCK_SIZE: int = 1024 * 1024

# Objects per listing request (the S3 maximum)
DEFAULT_PAGE_SIZE: int = 1000

# Region used when neither the caller nor the environment names one
DEFAULT_REGION: str = "us-east-1"


# =============================================================================
# Content tag helpers
# =============================================================================


def normalize_content_tag(tag: Optional[str]) -> str:
    """Strip the wrapping quote characters an object store puts around tags.

    Args:
        tag: Raw content tag (ETag) as reported by the store

    Returns:
        Tag without surrounding quotes, or "" if no tag was reported

    Examples:
        >>> normalize_content_tag('"9dd4e461268c8034f5c8564e155c67a6"')
        '9dd4e461268c8034f5c8564e155c67a6'
        >>> normalize_content_tag(None)
        ''
    """
    if not tag:
        return ""
    return tag.strip().strip('"')


# =============================================================================
# Path helpers
# =============================================================================


def key_to_local_path(root: Path, key: str) -> Optional[Path]:
    """Map a forward-slash path key onto a path under a local root.

    Args:
        root: Local sync root
        key: Relative path key

    Returns:
        The local path, or None if the key does not map back onto itself
        (absolute keys, or keys with empty, "." or ".." segments)

    Examples:
        >>> key_to_local_path(Path("/data"), "sub/y.json")
        PosixPath('/data/sub/y.json')
        >>> key_to_local_path(Path("/data"), "../etc/passwd") is None
        True
        >>> key_to_local_path(Path("/data"), "docs//a.txt") is None
        True
    """
    segments = key.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        return None
    return root.joinpath(*segments)

