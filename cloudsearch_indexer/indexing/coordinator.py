"""
Commit orchestration: drains the staging registries into document batches
and hands them to the dispatch client.

Order within one commit is fixed: adds, then removals, then updates. Updates
reuse the add path because the index treats ``add`` as an upsert. The first
failure aborts the remaining phases; it is translated to IndexingFailure and
re-raised after the registries are cleared.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

from ..observability.logging import get_logger, new_correlation_id, set_correlation_id
from ..observability.metrics import (
    batches_dispatched_total,
    commit_duration_seconds,
    commit_failures_total,
    documents_dispatched_total,
)
from .batching import to_add_batches, to_delete_batches
from .errors import translate_error
from .models import DispatchRequest, DocumentBatch, MutationKind
from .registry import PublicationFilter, StagingRegistry

if TYPE_CHECKING:
    from ..clients.dispatch import DispatchClient

logger = get_logger(__name__)


class CommitState(str, Enum):
    IDLE = "idle"
    COMMITTING = "committing"


@dataclass
class PhaseResult:
    """Batches and documents dispatched for one mutation kind."""

    kind: MutationKind
    batches: int = 0
    documents: int = 0
    statuses: List[str] = field(default_factory=list)


@dataclass
class CommitResult:
    publication_id: Optional[str]
    skipped: bool = False
    phases: Dict[MutationKind, PhaseResult] = field(default_factory=dict)

    @property
    def documents(self) -> int:
        return sum(phase.documents for phase in self.phases.values())

    @property
    def batches(self) -> int:
        return sum(phase.batches for phase in self.phases.values())


class CommitCoordinator:
    """
    Runs commits for one staging registry.

    Commits on the same coordinator are serialized; concurrent callers block
    until the running commit has finished and its clear has happened.
    """

    def __init__(
        self,
        registry: StagingRegistry,
        client: "DispatchClient",
        request_factory: Callable[[], DispatchRequest],
        batch_size: int,
        publication_filter: Optional[PublicationFilter] = None,
        clear_on_failure: bool = True,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be greater than 0, got {batch_size}")
        self.registry = registry
        self.client = client
        self.request_factory = request_factory
        self.batch_size = batch_size
        self.publication_filter = publication_filter or registry.publication_filter
        self.clear_on_failure = clear_on_failure
        self.state = CommitState.IDLE
        self._commit_lock = threading.Lock()

    def commit(self, publication_id: Optional[str]) -> CommitResult:
        if not self.publication_filter.accepts(publication_id):
            logger.debug(
                "commit_skipped_inactive_publication", publication_id=publication_id
            )
            commit_duration_seconds.labels(status="skipped").observe(0)
            return CommitResult(publication_id=publication_id, skipped=True)

        with self._commit_lock:
            return self._run(publication_id)

    def _run(self, publication_id: Optional[str]) -> CommitResult:
        new_correlation_id()
        self.state = CommitState.COMMITTING
        result = CommitResult(publication_id=publication_id)
        start = time.perf_counter()
        failed = False

        logger.info(
            "commit_started",
            publication_id=publication_id,
            staged=self.registry.sizes(),
        )
        try:
            result.phases[MutationKind.ADD] = self._dispatch_adds(MutationKind.ADD)
            result.phases[MutationKind.REMOVE] = self._dispatch_removals()
            result.phases[MutationKind.UPDATE] = self._dispatch_adds(MutationKind.UPDATE)
            logger.info(
                "commit_completed",
                publication_id=publication_id,
                batches=result.batches,
                documents=result.documents,
                duration_seconds=round(time.perf_counter() - start, 3),
            )
        except Exception as exc:
            failed = True
            failure = translate_error(exc)
            if failure is None:
                logger.exception(
                    "commit_failed_unexpected_error",
                    publication_id=publication_id,
                    error=str(exc),
                )
                raise
            logger.exception(
                "commit_failed",
                publication_id=publication_id,
                kind=failure.kind.value,
                error=failure.message,
            )
            commit_failures_total.labels(kind=failure.kind.value).inc()
            if failure is exc:
                raise
            raise failure from exc
        finally:
            elapsed = time.perf_counter() - start
            commit_duration_seconds.labels(
                status="error" if failed else "success"
            ).observe(elapsed)
            if failed and not self.clear_on_failure:
                logger.warning(
                    "commit_registers_retained",
                    publication_id=publication_id,
                    staged=self.registry.sizes(),
                )
            else:
                logger.info("commit_clearing_registers", publication_id=publication_id)
                self.registry.clear()
            self.state = CommitState.IDLE
            set_correlation_id(None)

        return result

    def _dispatch_adds(self, kind: MutationKind) -> PhaseResult:
        """Adds and updates share this path: ``add`` operations via submit."""
        items = self.registry.snapshot(kind)
        phase = PhaseResult(kind=kind)
        if not items:
            return phase

        logger.info(
            "commit_adding_documents",
            kind=kind.value,
            documents=len(items),
            batch_size=self.batch_size,
        )
        for item in items:
            logger.info("adding_document", kind=kind.value, unique_id=item.unique_id)
        batches = to_add_batches(items, self.batch_size)
        self._dispatch(batches, phase, operation="submit")
        return phase

    def _dispatch_removals(self) -> PhaseResult:
        items = self.registry.snapshot(MutationKind.REMOVE)
        phase = PhaseResult(kind=MutationKind.REMOVE)
        if not items:
            return phase

        logger.info(
            "commit_removing_documents",
            documents=len(items),
            batch_size=self.batch_size,
        )
        batches = to_delete_batches(items, self.batch_size)
        self._dispatch(batches, phase, operation="remove")
        return phase

    def _dispatch(
        self, batches: Sequence[DocumentBatch], phase: PhaseResult, operation: str
    ) -> None:
        logger.info(
            "commit_dispatching_batches",
            kind=phase.kind.value,
            batches=len(batches),
        )
        send = self.client.submit if operation == "submit" else self.client.remove
        for batch_index, batch in enumerate(batches, start=1):
            if len(batch) == 0:
                continue
            try:
                status = send(batch, self.request_factory())
            except Exception:
                batches_dispatched_total.labels(operation=operation, status="error").inc()
                raise
            batches_dispatched_total.labels(operation=operation, status="success").inc()
            documents_dispatched_total.labels(operation=operation).inc(len(batch))
            phase.batches += 1
            phase.documents += len(batch)
            phase.statuses.append(status)
            logger.info(
                "commit_batch_dispatched",
                kind=phase.kind.value,
                operation=operation,
                batch_index=batch_index,
                documents=len(batch),
                status=status,
            )


__all__ = ["CommitCoordinator", "CommitResult", "CommitState", "PhaseResult"]
