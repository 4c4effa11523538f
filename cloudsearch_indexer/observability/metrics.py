# Prometheus metrics for the staging indexer

from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram, Info, generate_latest

from .logging import get_logger

if TYPE_CHECKING:
    from ..shared.config import Settings

logger = get_logger(__name__)

# ===== Staging metrics =====
mutations_staged_total = Counter(
    "indexer_mutations_staged_total",
    "Total staging calls by mutation kind and outcome",
    ["kind", "outcome"],  # outcome: staged, duplicate, filtered, empty_id
)

# ===== Dispatch metrics =====
batches_dispatched_total = Counter(
    "indexer_batches_dispatched_total",
    "Total document batches handed to the dispatch client",
    ["operation", "status"],  # operation: submit, remove
)

documents_dispatched_total = Counter(
    "indexer_documents_dispatched_total",
    "Total document operations dispatched",
    ["operation"],
)

# ===== Commit metrics =====
commit_duration_seconds = Histogram(
    "indexer_commit_duration_seconds",
    "Commit duration in seconds",
    ["status"],  # status: success, error, skipped
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

commit_failures_total = Counter(
    "indexer_commit_failures_total",
    "Total failed commits by translated error kind",
    ["kind"],
)

service_info = Info("indexer_service", "Staging indexer service information")


def setup_metrics(settings: "Settings") -> None:
    """
    Setup Prometheus metrics collection.

    Args:
        settings: Application settings
    """
    service_info.info(
        {
            "version": "0.1.0",
            "environment": settings.env,
        }
    )
    logger.info("prometheus_metrics_enabled", environment=settings.env)


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus exposition format.

    Returns:
        Metrics as bytes
    """
    return generate_latest()
