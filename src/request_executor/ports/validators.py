"""Validation abstractions.

A rule looks at a completed response and decides whether it is acceptable.
Rules never raise for a rejection; they return a ``ValidationResult``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from request_executor.ports.http import RequestDescriptor, ResponseMetadata


@dataclass
class ValidationResult:
    """Result of response validation."""

    is_valid: bool
    error_message: str | None = None
    error_code: str | None = None

    @classmethod
    def accept(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def reject(cls, message: str, code: str | None = None) -> ValidationResult:
        return cls(is_valid=False, error_message=message, error_code=code)


class ValidationRule(Protocol):
    """Predicate deciding whether a completed response is acceptable."""

    def __call__(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata,
        body: bytes | None,
    ) -> ValidationResult:
        """Validate a response.

        Args:
            request: The request as it was sent (after adaptation)
            metadata: Status code, headers and final URL
            body: Raw response body, if any

        Returns:
            ValidationResult with is_valid flag and optional error details
        """
        ...
