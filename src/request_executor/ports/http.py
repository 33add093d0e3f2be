"""HTTP communication abstractions for the executor.

Separates the HTTP transport layer from the executor contract (validation,
interception, cancellation). Allows easy mocking and swapping of HTTP
implementations in tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import IO, TYPE_CHECKING, Any, Protocol, Union

if TYPE_CHECKING:
    from request_executor.ports.interceptor import IRequestInterceptor
    from request_executor.ports.validators import ValidationRule


@dataclass(frozen=True)
class BodyPart:
    """One field of a multipart body."""

    body: bytes | IO[bytes] | AsyncIterable[bytes]
    content_length: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)


MultipartSupplier = Callable[[], Iterable[BodyPart]]


@dataclass(frozen=True)
class Body:
    """Plain request body."""

    data: bytes


@dataclass(frozen=True)
class Multipart:
    """Multipart request body, produced lazily at send time."""

    supplier: MultipartSupplier


Payload = Union[Body, Multipart, None]


@dataclass(frozen=True)
class RequestDescriptor:
    """Logical description of an outgoing request.

    Immutable once submitted. Interceptors return adapted copies via
    ``with_headers`` instead of mutating the original.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: Payload = None

    def with_headers(self, headers: Mapping[str, str]) -> RequestDescriptor:
        """Return a copy with ``headers`` merged over the current ones."""
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)

    def with_payload(self, payload: Payload) -> RequestDescriptor:
        return replace(self, payload=payload)


@dataclass(frozen=True)
class ResponseMetadata:
    """HTTP response metadata (everything but the body)."""

    status_code: int
    headers: Mapping[str, str]
    url: str

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


# (body, metadata, error); exactly one of error / success holds logically
CompletionHandler = Callable[
    [bytes | None, ResponseMetadata | None, Exception | None], None
]


class ITransportRequest(Protocol):
    """Handle to a single request issued by a transport.

    The request does not start until ``response`` registers the completion
    callback, so rules attached with ``validate`` always precede sending.
    """

    def validate(self, rule: ValidationRule) -> ITransportRequest:
        """Attach a response-acceptance rule. Returns self for chaining."""
        ...

    def response(self, callback: CompletionHandler) -> ITransportRequest:
        """Register the completion callback and start the request."""
        ...

    def cancel(self) -> None:
        """Abort the in-flight transfer. No-op once completed."""
        ...


class ITransport(Protocol):
    """Abstraction for the HTTP engine.

    Single Responsibility: put requests on the wire and report outcomes.
    Does NOT handle:
    - Rule registration order
    - Snapshotting executor state
    - Cancelable composition
    """

    def send(
        self,
        request: RequestDescriptor,
        interceptor: IRequestInterceptor | None = None,
    ) -> ITransportRequest:
        """Issue a request with a plain (or empty) body."""
        ...

    def send_multipart(
        self,
        request: RequestDescriptor,
        parts: MultipartSupplier,
        interceptor: IRequestInterceptor | None = None,
    ) -> ITransportRequest:
        """Issue a streaming multipart/form-data upload."""
        ...


class IApiKeyProvider(Protocol):
    """Abstraction for API key management.

    Single Responsibility: Provide headers with valid API keys.
    Handles key rotation transparently.
    """

    async def get_headers(self) -> dict[str, str]:
        """Get HTTP headers with a valid API key.

        Raises:
            KeyRotationError: If no valid keys are available
        """
        ...

    async def rotate_key_on_failure(self, failed_key: str | None = None) -> None:
        """Signal key rotation after detection of key failure.

        Args:
            failed_key: The key that failed (optional)
        """
        ...


def describe(request: RequestDescriptor) -> dict[str, Any]:
    """Log-friendly summary of a request (no headers, they may hold secrets)."""
    if isinstance(request.payload, Multipart):
        kind = "multipart"
    elif isinstance(request.payload, Body):
        kind = "body"
    else:
        kind = "empty"
    return {"method": request.method, "url": request.url, "payload": kind}
