"""Built-in validation rules.

Each factory returns a plain callable matching ``ValidationRule``; the
function name becomes the rule name reported in rejections.
"""

from __future__ import annotations

from collections.abc import Container, Iterable

from request_executor.ports.http import RequestDescriptor, ResponseMetadata
from request_executor.ports.validators import ValidationResult, ValidationRule

UNACCEPTABLE_STATUS_CODE = "unacceptable_status_code"
UNACCEPTABLE_CONTENT_TYPE = "unacceptable_content_type"


def status_code_rule(codes: Container[int]) -> ValidationRule:
    """
    Reject responses whose status code is not in ``codes``.

    Args:
        codes: Accepted status codes, typically ``range(200, 300)``

    Returns:
        Validation rule named ``status_code``
    """

    def status_code(
        request: RequestDescriptor,
        metadata: ResponseMetadata,
        body: bytes | None,
    ) -> ValidationResult:
        if metadata.status_code in codes:
            return ValidationResult.accept()
        return ValidationResult.reject(
            f"Response status code {metadata.status_code} was unacceptable",
            UNACCEPTABLE_STATUS_CODE,
        )

    return status_code


def content_type_rule(accepted: Iterable[str]) -> ValidationRule:
    """
    Reject responses whose Content-Type does not match one of ``accepted``.

    Wildcards follow MIME rules: ``*/*`` matches anything, ``application/*``
    matches any application subtype. A response without a body (or without
    a Content-Type) is accepted.
    """
    patterns = [_split_mime(value) for value in accepted]

    def content_type(
        request: RequestDescriptor,
        metadata: ResponseMetadata,
        body: bytes | None,
    ) -> ValidationResult:
        if not body:
            return ValidationResult.accept()

        header = metadata.header("Content-Type")
        if header is None:
            return ValidationResult.accept()

        main, sub = _split_mime(header)
        for want_main, want_sub in patterns:
            if want_main in ("*", main) and want_sub in ("*", sub):
                return ValidationResult.accept()

        return ValidationResult.reject(
            f"Response content type {header!r} was unacceptable",
            UNACCEPTABLE_CONTENT_TYPE,
        )

    return content_type


def rule_name(rule: ValidationRule) -> str:
    """Human-readable identifier for a rule (used in rejection errors)."""
    return getattr(rule, "__name__", None) or type(rule).__name__


def _split_mime(value: str) -> tuple[str, str]:
    mime = value.split(";", 1)[0].strip().lower()
    main, _, sub = mime.partition("/")
    return main or "*", sub or "*"
