"""
In-memory staging registries for pending index mutations.

Three registries keyed by unique id hold the staged adds, updates and
removals; a fourth (binary adds) exists for parity with the host interface
but is never populated. Conflict policy is resolved per key:

- adds: first write wins, later adds of the same id are ignored
- updates, removals: last write wins

The registries are not kept disjoint. The same id can sit in all three and
each entry is dispatched independently at commit time.

All mutation and snapshotting goes through a single lock so staging calls
can come from many producer threads.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Dict, FrozenSet, Iterable, List, Optional

from ..observability.logging import get_logger
from ..observability.metrics import mutations_staged_total
from .models import BaseIndexItem, IndexItem, MutationKind

logger = get_logger(__name__)


class PublicationFilter:
    """Active-publication check. An empty set accepts every publication."""

    def __init__(self, active_publication_ids: Optional[Iterable[str]] = None):
        self._active: FrozenSet[str] = frozenset(active_publication_ids or ())

    @property
    def active_publication_ids(self) -> FrozenSet[str]:
        return self._active

    def accepts(self, publication_id: Optional[str]) -> bool:
        return not self._active or publication_id in self._active


class StagingRegistry:
    """Holds pending mutations until the next commit."""

    def __init__(self, publication_filter: Optional[PublicationFilter] = None):
        self.publication_filter = publication_filter or PublicationFilter()
        self._lock = threading.Lock()
        self._registries: Dict[MutationKind, "OrderedDict[str, BaseIndexItem]"] = {
            kind: OrderedDict() for kind in MutationKind
        }

    def stage_add(self, item: IndexItem) -> bool:
        """Stage an add. Returns True when the registry changed."""
        if not self._accept(item, MutationKind.ADD):
            return False
        self._warn_if_empty(item)

        with self._lock:
            adds = self._registries[MutationKind.ADD]
            if item.unique_id in adds:
                staged = False
            else:
                adds[item.unique_id] = item
                staged = True

        if not staged:
            logger.debug(
                "staged_add_duplicate_ignored",
                unique_id=item.unique_id,
                publication_id=item.publication_id,
            )
            mutations_staged_total.labels(kind="add", outcome="duplicate").inc()
            return False

        mutations_staged_total.labels(kind="add", outcome="staged").inc()
        return True

    def stage_update(self, item: IndexItem) -> bool:
        """Stage an update, replacing any earlier update of the same id."""
        if not self._accept(item, MutationKind.UPDATE):
            return False
        self._warn_if_empty(item)
        self._put(MutationKind.UPDATE, item)
        return True

    def stage_remove(self, item: BaseIndexItem) -> bool:
        """Stage a removal, replacing any earlier removal of the same id."""
        if not self._accept(item, MutationKind.REMOVE):
            return False
        self._put(MutationKind.REMOVE, item)
        return True

    def snapshot(self, kind: MutationKind) -> List[BaseIndexItem]:
        """Copy of one registry's current contents in insertion order."""
        with self._lock:
            return list(self._registries[kind].values())

    def get(self, kind: MutationKind, unique_id: str) -> Optional[BaseIndexItem]:
        with self._lock:
            return self._registries[kind].get(unique_id)

    def size(self, kind: MutationKind) -> int:
        with self._lock:
            return len(self._registries[kind])

    def sizes(self) -> Dict[str, int]:
        with self._lock:
            return {kind.value: len(entries) for kind, entries in self._registries.items()}

    def is_empty(self) -> bool:
        with self._lock:
            return not any(self._registries.values())

    def clear(self) -> None:
        """Empty every registry, the binary one included."""
        with self._lock:
            for entries in self._registries.values():
                entries.clear()

    def _put(self, kind: MutationKind, item: BaseIndexItem) -> None:
        with self._lock:
            self._registries[kind][item.unique_id] = item
        mutations_staged_total.labels(kind=kind.value, outcome="staged").inc()

    def _accept(self, item: BaseIndexItem, kind: MutationKind) -> bool:
        """Publication filter and empty-id check shared by all staging calls."""
        logger.debug(
            "stage_called",
            kind=kind.value,
            publication_id=item.publication_id,
        )
        if not self.publication_filter.accepts(item.publication_id):
            logger.debug(
                "stage_skipped_inactive_publication",
                kind=kind.value,
                publication_id=item.publication_id,
            )
            mutations_staged_total.labels(kind=kind.value, outcome="filtered").inc()
            return False
        if not item.has_id:
            logger.error(
                "stage_failed_empty_unique_id",
                kind=kind.value,
                publication_id=item.publication_id,
            )
            mutations_staged_total.labels(kind=kind.value, outcome="empty_id").inc()
            return False
        return True

    @staticmethod
    def _warn_if_empty(item: IndexItem) -> None:
        if item.field_count == 0:
            logger.warning(
                "staged_item_has_no_fields",
                unique_id=item.unique_id,
                item=repr(item),
            )


__all__ = ["PublicationFilter", "StagingRegistry"]
