"""
Utility functions for rbsync.

Usage:
    from rbsync.utils import chunked, ensure_directory
"""

from pathlib import Path
from typing import Iterator, Sequence, TypeVar


T = TypeVar("T")


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Returns:
        The same path (for chaining).

    Raises:
        OSError: If directory cannot be created (permissions, etc.)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """
    Split a sequence into consecutive lists of at most `size` items.

    Order is preserved and every item appears in exactly one chunk; only
    the last chunk may be shorter.

    Raises:
        ValueError: If size is not positive.

    Example:
        list(chunked([1, 2, 3, 4, 5], 2))  # [[1, 2], [3, 4], [5]]
    """
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
