"""Sync directions."""

from enum import Enum


class SyncDirection(str, Enum):
    """Which side of a sync is the source of truth.

    The source side is copied onto the destination side; the destination
    never flows back.
    """

    UPLOAD = "upload"
    """Local directory is the source, the bucket is the destination"""

    DOWNLOAD = "download"
    """Bucket is the source, the local directory is the destination"""

    @classmethod
    def from_string(cls, value: str) -> "SyncDirection":
        """Parse a direction from its name or a CLI alias.

        Args:
            value: "upload"/"push" or "download"/"pull" (case-insensitive)

        Returns:
            SyncDirection

        Raises:
            ValueError: If the value names no direction
        """
        normalized = value.strip().lower()
        aliases = {
            "upload": cls.UPLOAD,
            "push": cls.UPLOAD,
            "download": cls.DOWNLOAD,
            "pull": cls.DOWNLOAD,
        }
        if normalized not in aliases:
            valid = ", ".join(sorted(aliases))
            raise ValueError(f"Invalid sync direction: {value}. Valid values: {valid}")
        return aliases[normalized]

    @property
    def source_is_local(self) -> bool:
        """Whether the local directory is the source side."""
        return self == SyncDirection.UPLOAD

    @property
    def transfer_verb(self) -> str:
        return "Uploaded" if self == SyncDirection.UPLOAD else "Downloaded"
