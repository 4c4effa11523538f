"""
Data model for staged mutations and the document batches sent to the index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..shared.models import IndexerBaseModel


class MutationKind(str, Enum):
    """Registry a staged mutation lives in."""

    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    BINARY_ADD = "binary_add"  # structural only, never populated


class AuthenticationMode(str, Enum):
    """How the dispatch client obtains AWS credentials."""

    IMPLICIT = "implicit"  # default credential chain
    EXPLICIT = "explicit"  # keys from the host configuration


class OperationType(str, Enum):
    ADD = "add"
    DELETE = "delete"


class BaseIndexItem(IndexerBaseModel):
    """Identity of an indexed item: the only data a removal carries."""

    model_config = ConfigDict(frozen=True)

    unique_id: Optional[str] = None
    publication_id: Optional[str] = None

    @property
    def has_id(self) -> bool:
        return bool(self.unique_id)


class IndexItem(BaseIndexItem):
    """An item to add or update, with its multi-valued search fields."""

    fields: Dict[str, List[Any]] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def _wrap_scalar_values(cls, value):
        if value is None:
            return {}
        return {
            name: list(values) if isinstance(values, (list, tuple)) else [values]
            for name, values in dict(value).items()
        }

    @property
    def field_count(self) -> int:
        return len(self.fields)

    def wire_fields(self) -> Dict[str, Any]:
        """Single-valued fields become scalars; all others stay lists."""
        out: Dict[str, Any] = {}
        for name, values in self.fields.items():
            out[name] = values[0] if len(values) == 1 else list(values)
        return out


class BinaryItem(BaseIndexItem):
    """Binary payload. Accepted by the binary no-ops only."""

    content: bytes = b""
    content_type: Optional[str] = None


@dataclass(frozen=True)
class DocumentOperation:
    """One entry of a CloudSearch document batch."""

    type: OperationType
    id: str
    fields: Optional[Dict[str, Any]] = None

    @classmethod
    def add(cls, item: IndexItem) -> "DocumentOperation":
        return cls(OperationType.ADD, item.unique_id, item.wire_fields())

    @classmethod
    def delete(cls, item: BaseIndexItem) -> "DocumentOperation":
        return cls(OperationType.DELETE, item.unique_id)

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type.value, "id": self.id}
        if self.type is OperationType.ADD:
            payload["fields"] = dict(self.fields or {})
        return payload


@dataclass
class DocumentBatch:
    """Ordered group of document operations submitted in one call."""

    operations: List[DocumentOperation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self):
        return iter(self.operations)

    @property
    def ids(self) -> List[str]:
        return [op.id for op in self.operations]

    def to_wire(self) -> List[Dict[str, Any]]:
        return [op.to_wire() for op in self.operations]


@dataclass(frozen=True)
class DispatchRequest:
    """Endpoint and credentials for one dispatch call."""

    endpoint: str
    authentication: AuthenticationMode = AuthenticationMode.IMPLICIT
    access_key_id: Optional[str] = field(default=None, repr=False)
    secret_access_key: Optional[str] = field(default=None, repr=False)
    region: Optional[str] = None

    @property
    def has_explicit_credentials(self) -> bool:
        return (
            self.authentication is AuthenticationMode.EXPLICIT
            and bool(self.access_key_id)
            and bool(self.secret_access_key)
        )


__all__ = [
    "MutationKind",
    "AuthenticationMode",
    "OperationType",
    "BaseIndexItem",
    "IndexItem",
    "BinaryItem",
    "DocumentOperation",
    "DocumentBatch",
    "DispatchRequest",
]
