# Staging and commit engine
from .batching import DEFAULT_INDEX_BATCH_SIZE, group, to_add_batches, to_delete_batches
from .coordinator import CommitCoordinator, CommitResult, CommitState, PhaseResult
from .errors import (
    ClientError,
    ConfigurationError,
    DispatchError,
    ErrorKind,
    IndexingFailure,
    ParseError,
    ServiceError,
    TransportError,
    translate_error,
)
from .models import (
    AuthenticationMode,
    BaseIndexItem,
    BinaryItem,
    DispatchRequest,
    DocumentBatch,
    DocumentOperation,
    IndexItem,
    MutationKind,
    OperationType,
)
from .registry import PublicationFilter, StagingRegistry

__all__ = [
    "DEFAULT_INDEX_BATCH_SIZE",
    "group",
    "to_add_batches",
    "to_delete_batches",
    "CommitCoordinator",
    "CommitResult",
    "CommitState",
    "PhaseResult",
    "ErrorKind",
    "ConfigurationError",
    "DispatchError",
    "TransportError",
    "ParseError",
    "ServiceError",
    "ClientError",
    "IndexingFailure",
    "translate_error",
    "AuthenticationMode",
    "BaseIndexItem",
    "BinaryItem",
    "DispatchRequest",
    "DocumentBatch",
    "DocumentOperation",
    "IndexItem",
    "MutationKind",
    "OperationType",
    "PublicationFilter",
    "StagingRegistry",
]
