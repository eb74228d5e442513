from __future__ import annotations

from collections.abc import Callable

from .mocks import ANY, FakeDynamoDBClient, MemoryDynamoDBClient


def fixed_clock(start: int = 1_700_000_000_000, step: int = 0) -> Callable[[], int]:
    if step < 0:
        raise ValueError("step must be >= 0")

    current = start - step

    def now() -> int:
        nonlocal current
        current += step
        return current

    return now


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "MemoryDynamoDBClient",
    "fixed_clock",
]
