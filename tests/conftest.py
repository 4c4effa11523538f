# Test fixtures for the staging indexer (no network, no AWS)

import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cloudsearch_indexer.indexing.models import (  # noqa: E402
    DispatchRequest,
    DocumentBatch,
    IndexItem,
)

ENDPOINT = "doc-content-test-abc123.eu-west-1.cloudsearch.amazonaws.com"


class RecordingDispatchClient:
    """
    In-memory dispatch client.

    Records every call as ``(operation, ids, wire_payload, request)`` and can
    be told to raise on the n-th call of one operation.
    """

    def __init__(
        self,
        fail_operation: Optional[str] = None,
        fail_at: int = 0,
        error: Optional[BaseException] = None,
    ):
        self.calls: List[tuple] = []
        self.fail_operation = fail_operation
        self.fail_at = fail_at
        self.error = error
        self.close_calls = 0

    def submit(self, batch: DocumentBatch, request: DispatchRequest) -> str:
        return self._record("submit", batch, request)

    def remove(self, batch: DocumentBatch, request: DispatchRequest) -> str:
        return self._record("remove", batch, request)

    def close(self) -> None:
        self.close_calls += 1

    @property
    def operations(self) -> List[tuple]:
        return [(op, ids) for op, ids, _, _ in self.calls]

    def _record(self, operation: str, batch: DocumentBatch, request) -> str:
        seen = sum(1 for op, *_ in self.calls if op == operation)
        if self.error is not None and operation == self.fail_operation:
            if seen == self.fail_at:
                raise self.error
        self.calls.append((operation, batch.ids, batch.to_wire(), request))
        return "success"


@pytest.fixture
def recording_client():
    return RecordingDispatchClient()


@pytest.fixture
def make_client():
    """Factory for clients that fail on a chosen call"""
    return RecordingDispatchClient


@pytest.fixture
def make_item():
    def _make(unique_id="doc-1", publication_id="5", **fields):
        return IndexItem(
            unique_id=unique_id,
            publication_id=publication_id,
            fields=fields or {"title": ["Title of " + str(unique_id)]},
        )

    return _make


@pytest.fixture
def indexer_options():
    return {
        "documentEndpoint": ENDPOINT,
        "authentication": "implicit",
        "indexBatchSize": "2",
    }
