"""
Error taxonomy for the staging indexer.

Dispatch clients raise one of the ``DispatchError`` subclasses (or let a
library exception escape). At the commit boundary every such failure is
translated exactly once into an ``IndexingFailure`` carrying the kind, the
message and the original exception.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Optional

import httpx
from botocore.exceptions import BotoCoreError
from pydantic import ValidationError


class ErrorKind(str, Enum):
    """Classification of a commit-time failure."""

    TRANSPORT = "transport"
    PARSE = "parse"
    SERVICE = "service"
    CLIENT = "client"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ErrorKind.TRANSPORT: "TransportError",
    ErrorKind.PARSE: "ParseError",
    ErrorKind.SERVICE: "ServiceError",
    ErrorKind.CLIENT: "ClientError",
}


class ConfigurationError(ValueError):
    """Raised when the host configuration is malformed."""


class DispatchError(RuntimeError):
    """Base class for failures raised by a dispatch client."""

    kind: ErrorKind = ErrorKind.CLIENT


class TransportError(DispatchError):
    """Network or IO failure while talking to the search index."""

    kind = ErrorKind.TRANSPORT


class ParseError(DispatchError):
    """Request or response body could not be encoded/decoded."""

    kind = ErrorKind.PARSE


class ServiceError(DispatchError):
    """The remote index rejected the batch."""

    kind = ErrorKind.SERVICE

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ClientError(DispatchError):
    """Client misuse or internal client failure (e.g. no credentials)."""

    kind = ErrorKind.CLIENT


class IndexingFailure(Exception):
    """Unified error surfaced by ``commit``."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.message = message
        self.cause = cause
        super().__init__(f"{kind.label}: {message}")


def classify_error(exc: BaseException) -> Optional[ErrorKind]:
    """Return the kind for a translatable exception, or None."""
    if isinstance(exc, DispatchError):
        return exc.kind
    if isinstance(exc, httpx.HTTPStatusError):
        return ErrorKind.SERVICE
    # DecodingError is a RequestError, so it must be matched before transport
    if isinstance(exc, (json.JSONDecodeError, ValidationError, httpx.DecodingError)):
        return ErrorKind.PARSE
    if isinstance(exc, (httpx.RequestError, OSError)):
        return ErrorKind.TRANSPORT
    if isinstance(exc, BotoCoreError):
        return ErrorKind.CLIENT
    return None


def translate_error(exc: BaseException) -> Optional[IndexingFailure]:
    """
    Wrap a low-level failure into an IndexingFailure.

    Returns None for exceptions outside the dispatch taxonomy; those are
    programming errors and propagate unchanged.
    """
    if isinstance(exc, IndexingFailure):
        return exc
    kind = classify_error(exc)
    if kind is None:
        return None
    message = str(exc) or exc.__class__.__name__
    return IndexingFailure(kind, message, cause=exc)


__all__ = [
    "ErrorKind",
    "ConfigurationError",
    "DispatchError",
    "TransportError",
    "ParseError",
    "ServiceError",
    "ClientError",
    "IndexingFailure",
    "classify_error",
    "translate_error",
]
