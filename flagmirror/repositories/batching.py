# flagmirror/repositories/batching.py
"""Helpers to split bulk writes into backend-sized batches."""


from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, TypeVar

T = TypeVar("T")


def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive lists of at most ``size`` items.

    Raises:
        ValueError: If ``size`` is not a positive integer.
    """
    if size < 1:
        raise ValueError("Batch size must be at least 1.")

    batch: List[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def submit_in_batches(
    items: Iterable[T],
    size: int,
    submit: Callable[[List[T]], None],
) -> int:
    """Call ``submit`` once per batch of at most ``size`` items.

    Batches are submitted in order and the first failure propagates;
    batches submitted before it stay committed.

    Returns:
        int: Total number of items submitted.
    """
    count = 0
    for batch in chunked(items, size):
        submit(batch)
        count += len(batch)
    return count
