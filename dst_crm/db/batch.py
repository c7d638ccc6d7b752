from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterable[Sequence[T]]:
    """Split items into consecutive chunks; each chunk is committed as one transaction by callers."""
    for start in range(0, len(items), size):
        yield items[start:start + size]
