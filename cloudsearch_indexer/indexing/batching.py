"""Batch helpers for grouping staged mutations into document batches."""

from __future__ import annotations

from typing import Iterable, List, Sequence, TypeVar

from .models import BaseIndexItem, DocumentBatch, DocumentOperation, IndexItem

DEFAULT_INDEX_BATCH_SIZE = 10

T = TypeVar("T")


def group(mutations: Iterable[T], batch_size: int) -> List[List[T]]:
    """
    Split mutations into consecutive batches of ``batch_size``.

    A new batch starts every ``batch_size`` items, so the last batch may be
    partial. No items means no batches.
    """
    if isinstance(batch_size, bool) or not isinstance(batch_size, int):
        raise ValueError(f"batch_size must be an int, got {batch_size!r}")
    if batch_size <= 0:
        raise ValueError(f"batch_size must be greater than 0, got {batch_size}")

    batches: List[List[T]] = []
    current: List[T] = []
    for i, mutation in enumerate(mutations):
        if i % batch_size == 0:
            current = []
            batches.append(current)
        current.append(mutation)
    return batches


def to_add_batches(
    items: Sequence[IndexItem], batch_size: int
) -> List[DocumentBatch]:
    """Group items into batches of ``add`` operations (used for updates too)."""
    return [
        DocumentBatch([DocumentOperation.add(item) for item in chunk])
        for chunk in group(items, batch_size)
    ]


def to_delete_batches(
    items: Sequence[BaseIndexItem], batch_size: int
) -> List[DocumentBatch]:
    """Group items into batches of ``delete`` operations carrying only the id."""
    return [
        DocumentBatch([DocumentOperation.delete(item) for item in chunk])
        for chunk in group(items, batch_size)
    ]


__all__ = [
    "DEFAULT_INDEX_BATCH_SIZE",
    "group",
    "to_add_batches",
    "to_delete_batches",
]
