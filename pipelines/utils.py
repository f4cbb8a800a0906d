"""Small helpers shared across the pipeline."""

import math
from typing import Any, Iterator, List, Sequence, TypeVar

T = TypeVar('T')

ELLIPSIS = '…'


def clamp_int(value: Any, minimum: int, maximum: int, fallback: int) -> int:
    """Coerce ``value`` to an int within [minimum, maximum].

    Non-numeric or non-finite values yield ``fallback``; fractions truncate.
    """
    if isinstance(value, bool) or value is None:
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return max(minimum, min(maximum, int(number)))


def safe_slice(text: Any, limit: int = 1500) -> str:
    """Truncate ``text`` to ``limit`` characters, appending an ellipsis if cut."""
    if not isinstance(text, str):
        return ''
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def batched(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    if size <= 0:
        raise ValueError("Batch size must be positive")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
