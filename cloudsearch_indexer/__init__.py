# Staging indexer for AWS CloudSearch
from .indexer import CloudSearchIndexer
from .indexing import (
    BaseIndexItem,
    BinaryItem,
    CommitResult,
    ConfigurationError,
    ErrorKind,
    IndexingFailure,
    IndexItem,
)

__version__ = "0.1.0"

__all__ = [
    "CloudSearchIndexer",
    "BaseIndexItem",
    "BinaryItem",
    "CommitResult",
    "ConfigurationError",
    "ErrorKind",
    "IndexingFailure",
    "IndexItem",
]
