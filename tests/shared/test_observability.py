from cloudsearch_indexer.observability import (
    get_correlation_id,
    get_logger,
    get_metrics,
    new_correlation_id,
    set_correlation_id,
    setup_logging,
)
from cloudsearch_indexer.observability.logging import add_correlation_id
from cloudsearch_indexer.observability.metrics import setup_metrics
from cloudsearch_indexer.shared.config import Settings


def test_correlation_id_is_added_to_events():
    corr_id = new_correlation_id()

    event = add_correlation_id(None, "info", {"event": "commit_started"})

    assert event["correlation_id"] == corr_id
    set_correlation_id(None)


def test_no_correlation_id_outside_a_commit():
    set_correlation_id(None)

    event = add_correlation_id(None, "info", {"event": "stage_called"})

    assert "correlation_id" not in event


def test_get_correlation_id_creates_one():
    set_correlation_id(None)

    first = get_correlation_id()

    assert first
    assert get_correlation_id() == first
    set_correlation_id(None)


def test_setup_logging_and_metrics():
    setup_logging("DEBUG")
    setup_metrics(Settings())

    get_logger(__name__).info("logging_configured", component="tests")

    assert b"indexer_commit_duration_seconds" in get_metrics()
