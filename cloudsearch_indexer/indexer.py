"""
Host-facing search index implementation backed by AWS CloudSearch.

The content pipeline calls the staging methods any number of times and then
``commit(publication_id)``; staged mutations are dispatched in batches of
``index_batch_size`` and the registries are cleared.

Callers must not run two commits on one instance at the same time. The
coordinator serializes them, so a second caller simply waits.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from .clients.dispatch import CloudSearchDispatchClient, DispatchClient
from .indexing.coordinator import CommitCoordinator, CommitResult
from .indexing.errors import ConfigurationError
from .indexing.models import BaseIndexItem, BinaryItem, IndexItem
from .indexing.registry import PublicationFilter, StagingRegistry
from .observability.logging import get_logger
from .shared.config import IndexerConfig, build_indexer_config

logger = get_logger(__name__)


class CloudSearchIndexer:
    """Buffers index mutations and flushes them to CloudSearch on commit."""

    def __init__(
        self,
        client: Optional[DispatchClient] = None,
        options: Optional[Union[IndexerConfig, Mapping[str, Any]]] = None,
    ):
        self._client = client
        self._config: Optional[IndexerConfig] = None
        # lives as long as the indexer; commits only empty it
        self._registry = StagingRegistry()
        self._coordinator: Optional[CommitCoordinator] = None
        if options is not None:
            self.configure(options)

    @property
    def config(self) -> IndexerConfig:
        if self._config is None:
            raise ConfigurationError("Indexer has not been configured")
        return self._config

    @property
    def registry(self) -> StagingRegistry:
        return self._registry

    @property
    def client(self) -> Optional[DispatchClient]:
        return self._client

    def configure(self, options: Union[IndexerConfig, Mapping[str, Any]]) -> None:
        """
        Apply host configuration.

        Args:
            options: Mapping with the indexer options (camelCase host keys or
                snake_case), optionally nested under an ``indexer`` node

        Raises:
            ConfigurationError: If the options are malformed
        """
        logger.debug("configure_called", options_type=type(options).__name__)
        config = build_indexer_config(options)

        if self._client is None:
            self._client = CloudSearchDispatchClient(
                timeout=config.request_timeout_seconds
            )

        publication_filter = PublicationFilter(config.active_publication_ids)
        self._config = config
        self._registry.publication_filter = publication_filter
        self._coordinator = CommitCoordinator(
            registry=self._registry,
            client=self._client,
            request_factory=config.dispatch_request,
            batch_size=config.index_batch_size,
            publication_filter=publication_filter,
            clear_on_failure=config.clear_on_failure,
        )

    def add_item_to_index(self, item: IndexItem) -> None:
        self.registry.stage_add(item)

    def remove_item_from_index(self, item: BaseIndexItem) -> None:
        self.registry.stage_remove(item)

    def update_item_in_index(self, item: IndexItem) -> None:
        self.registry.stage_update(item)

    def add_binary_to_index(self, item: BinaryItem) -> None:
        # binary indexing is not supported by this indexer
        logger.debug("add_binary_ignored", unique_id=item.unique_id)

    def remove_binary_from_index(self, item: BaseIndexItem) -> None:
        logger.debug("remove_binary_ignored", unique_id=item.unique_id)

    def commit(self, publication_id: Optional[str]) -> CommitResult:
        """
        Dispatch everything staged: adds, then removals, then updates.

        Items staged while a commit is running are cleared with it when they
        land after that commit took its snapshot.

        Raises:
            IndexingFailure: If any batch dispatch fails
        """
        if self._coordinator is None:
            raise ConfigurationError("Indexer has not been configured")
        return self._coordinator.commit(publication_id)

    def destroy(self) -> None:
        """Release the dispatch client. Safe to call more than once."""
        if self._client is not None:
            self._client.close()
        logger.info("indexer_destroyed")


__all__ = ["CloudSearchIndexer"]
