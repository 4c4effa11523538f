from __future__ import annotations

import json
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit

import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from botocore.session import get_session

from ..indexing.errors import ClientError, ParseError, ServiceError, TransportError
from ..indexing.models import DispatchRequest, DocumentBatch
from ..observability.logging import get_logger

logger = get_logger(__name__)

BATCH_PATH = "/2013-01-01/documents/batch"
SIGNING_SERVICE = "cloudsearch"
DEFAULT_REGION = "us-east-1"

CredentialResolver = Callable[[DispatchRequest], Optional[Credentials]]


@runtime_checkable
class DispatchClient(Protocol):
    """Blocking submit/remove operations against the remote search index."""

    def submit(self, batch: DocumentBatch, request: DispatchRequest) -> str:
        """Send a batch of add operations. Returns the service status."""
        ...

    def remove(self, batch: DocumentBatch, request: DispatchRequest) -> str:
        """Send a batch of delete operations. Returns the service status."""
        ...

    def close(self) -> None:
        ...


def default_credentials(request: DispatchRequest) -> Optional[Credentials]:
    """Explicit keys when configured, otherwise the AWS default chain."""
    if request.has_explicit_credentials:
        return Credentials(request.access_key_id, request.secret_access_key)
    return get_session().get_credentials()


def normalize_endpoint(endpoint: str) -> str:
    endpoint = endpoint.strip().rstrip("/")
    if "://" not in endpoint:
        endpoint = f"https://{endpoint}"
    return endpoint


def region_from_endpoint(endpoint: str) -> str:
    """doc-<domain>-<id>.<region>.cloudsearch.amazonaws.com -> <region>"""
    host = urlsplit(normalize_endpoint(endpoint)).hostname or ""
    parts = host.split(".")
    if SIGNING_SERVICE in parts:
        idx = parts.index(SIGNING_SERVICE)
        if idx > 0:
            return parts[idx - 1]
    return DEFAULT_REGION


class CloudSearchDispatchClient:
    """
    Posts document batches to a CloudSearch document endpoint.

    Each call is a single attempt: failures are raised as TransportError,
    ParseError, ServiceError or ClientError and never retried here.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
        credential_resolver: Optional[CredentialResolver] = None,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._resolve_credentials = credential_resolver or self._cached_credentials
        # default chain credentials, resolved on first implicit dispatch
        self._chain_credentials: Optional[Credentials] = None
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._client.close()
        self._closed = True
        logger.info("dispatch_client_closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "CloudSearchDispatchClient":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close()

    def submit(self, batch: DocumentBatch, request: DispatchRequest) -> str:
        return self._post_batch(batch, request, operation="submit")

    def remove(self, batch: DocumentBatch, request: DispatchRequest) -> str:
        return self._post_batch(batch, request, operation="remove")

    def _cached_credentials(self, request: DispatchRequest) -> Optional[Credentials]:
        """
        Resolve the AWS default chain once per client.

        Refreshable credentials from the chain are kept as they are;
        SigV4Auth renews them before they expire.
        """
        if request.has_explicit_credentials:
            return default_credentials(request)
        if self._chain_credentials is None:
            self._chain_credentials = default_credentials(request)
            logger.debug(
                "dispatch_credentials_resolved",
                found=self._chain_credentials is not None,
            )
        return self._chain_credentials

    def _signed_headers(
        self, url: str, body: bytes, request: DispatchRequest
    ) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        credentials = self._resolve_credentials(request)
        if credentials is None:
            raise ClientError(
                "Unable to locate AWS credentials for the CloudSearch endpoint"
            )
        region = request.region or region_from_endpoint(request.endpoint)
        aws_request = AWSRequest(method="POST", url=url, data=body, headers=headers)
        SigV4Auth(credentials, SIGNING_SERVICE, region).add_auth(aws_request)
        return dict(aws_request.headers.items())

    def _post_batch(
        self, batch: DocumentBatch, request: DispatchRequest, operation: str
    ) -> str:
        if self._closed:
            raise ClientError("Dispatch client has been closed")

        try:
            body = json.dumps(batch.to_wire()).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise ParseError(f"Document batch is not JSON serializable: {exc}") from exc

        url = f"{normalize_endpoint(request.endpoint)}{BATCH_PATH}"
        try:
            url = str(httpx.URL(url))
            headers = self._signed_headers(url, body, request)
        except (httpx.InvalidURL, ValueError) as exc:
            raise ClientError(
                f"Cannot build a request for endpoint {request.endpoint!r}: {exc}"
            ) from exc

        logger.debug(
            "dispatch_batch_sending",
            operation=operation,
            url=url,
            documents=len(batch),
        )
        try:
            response = self._client.post(url, content=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request to {url} timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise ServiceError(
                f"HTTP {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ParseError(
                f"Malformed response from {url}: {response.text[:200]!r}"
            ) from exc
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected response shape from {url}: {data!r}")

        status = str(data.get("status", "unknown"))
        if status == "error":
            raise ServiceError(_first_error(data) or "batch rejected")

        for warning in data.get("warnings") or []:
            logger.warning(
                "dispatch_batch_warning",
                operation=operation,
                message=_message_of(warning),
            )

        return f"{status} (adds={data.get('adds', 0)}, deletes={data.get('deletes', 0)})"


def _message_of(entry: Any) -> str:
    if isinstance(entry, dict):
        return str(entry.get("message", entry))
    return str(entry)


def _first_error(data: Dict[str, Any]) -> Optional[str]:
    errors = data.get("errors") or []
    if errors:
        return _message_of(errors[0])
    if data.get("message"):
        return str(data["message"])
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "<empty body>"
    if isinstance(data, dict):
        return _first_error(data) or response.text
    return response.text


__all__ = [
    "DispatchClient",
    "CloudSearchDispatchClient",
    "default_credentials",
    "normalize_endpoint",
    "region_from_endpoint",
]
