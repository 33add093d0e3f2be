"""
Request Executor Exception Hierarchy

Every failure mode of a request is reported through the completion callback's
error slot as one of these types, enabling proper error classification
downstream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from request_executor.ports.http import RequestDescriptor, ResponseMetadata


class RequestExecutorError(Exception):
    """Base exception for all request executor errors."""

    def __init__(self, message: str, request: RequestDescriptor | None = None):
        super().__init__(message)
        self.request = request


class TransportError(RequestExecutorError):
    """Connectivity, DNS, TLS or timeout failure. No response was received."""

    pass


class ValidationRejectedError(RequestExecutorError):
    """A response was received but failed an acceptance rule.

    The rejected body and metadata are kept so callers can inspect error
    payloads.
    """

    def __init__(
        self,
        message: str,
        rule: str,
        metadata: ResponseMetadata,
        body: bytes | None = None,
        error_code: str | None = None,
        request: RequestDescriptor | None = None,
    ):
        super().__init__(message, request=request)
        self.rule = rule
        self.reason = message
        self.metadata = metadata
        self.body = body
        self.error_code = error_code

    @property
    def status_code(self) -> int:
        return self.metadata.status_code


class RequestCancelledError(RequestExecutorError):
    """The operation was aborted by the caller before natural completion."""

    pass


class InterceptorError(RequestExecutorError):
    """Request adaptation or retry decision failed (e.g. credential refresh)."""

    pass


class KeyRotationError(RequestExecutorError):
    """No usable API key is left to rotate to."""

    pass
