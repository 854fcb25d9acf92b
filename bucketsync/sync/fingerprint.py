"""Content fingerprints.

Fingerprints are hex-encoded MD5 digests of a file's full content, the same
value S3 reports as the ETag of an object stored with a single-part upload.
Multipart uploads get a different ETag format, so such objects always compare
as changed; they are re-transferred rather than special-cased.
"""

import hashlib
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO, Union

from ..utils import DEFAULT_BLOCK_SIZE


def compute_fingerprint(
    data: Union[bytes, BinaryIO, Iterable[bytes]],
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> str:
    """Compute the fingerprint of a byte stream.

    Args:
        data: Raw bytes, a binary file object, or an iterable of byte chunks.
            Streams are consumed to the end.
        block_size: Read size used for file objects

    Returns:
        Hex-encoded digest

    Examples:
        >>> compute_fingerprint(b"x")
        '9dd4e461268c8034f5c8564e155c67a6'
        >>> compute_fingerprint([b"", b"x"]) == compute_fingerprint(b"x")
        True
    """
    digest = hashlib.md5(usedforsecurity=False)
    if isinstance(data, (bytes, bytearray, memoryview)):
        digest.update(data)
    elif hasattr(data, "read"):
        for chunk in iter(lambda: data.read(block_size), b""):
            digest.update(chunk)
    else:
        for chunk in data:
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint_file(path: Path, block_size: int = DEFAULT_BLOCK_SIZE) -> str:
    """Compute the fingerprint of a file's full content.

    Raises:
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        return compute_fingerprint(f, block_size=block_size)
