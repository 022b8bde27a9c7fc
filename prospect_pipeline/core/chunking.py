from __future__ import annotations

from typing import Iterator, Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield contiguous slices of ``items`` holding at most ``size`` entries.

    Order is preserved and every item appears in exactly one chunk.  An empty
    input yields nothing at all rather than a single empty chunk.
    """

    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
