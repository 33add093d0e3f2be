"""Chain of Responsibility for response validation.

Rules are tried in registration order; the first rejection wins and the
remaining rules are skipped, so the reported reason is deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable

from request_executor.exceptions import ValidationRejectedError
from request_executor.infrastructure.observability import get_transport_logger
from request_executor.ports.http import RequestDescriptor, ResponseMetadata
from request_executor.ports.validators import ValidationRule
from request_executor.validation.rules import rule_name

logger = get_transport_logger("validation-chain")


class ValidationChain:
    """Ordered, append-only sequence of validation rules."""

    def __init__(self, rules: Iterable[ValidationRule] = ()):
        """Initialize chain.

        Args:
            rules: Initial rules, applied in iteration order
        """
        self._rules: list[ValidationRule] = list(rules)

    def register(self, rule: ValidationRule) -> None:
        """Append a rule after every rule already registered."""
        self._rules.append(rule)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        return tuple(self._rules)

    def run(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata,
        body: bytes | None,
    ) -> ValidationRejectedError | None:
        """Apply rules in order.

        Args:
            request: The request as sent
            metadata: Response metadata
            body: Response body

        Returns:
            The first rejection as an error, or None if every rule accepted.
            A rule that raises counts as a rejection with error code
            ``rule_failed`` and the exception as ``__cause__``.
        """
        for rule in self._rules:
            try:
                result = rule(request, metadata, body)
            except Exception as e:
                name = rule_name(rule)
                logger.exception("validation_rule_failed", rule=name, url=metadata.url)
                error = ValidationRejectedError(
                    f"Rule {name} raised {e!r}",
                    rule=name,
                    metadata=metadata,
                    body=body,
                    error_code="rule_failed",
                    request=request,
                )
                error.__cause__ = e
                return error
            if result.is_valid:
                continue

            name = rule_name(rule)
            logger.warning(
                "validation_rejected",
                rule=name,
                status_code=metadata.status_code,
                error_code=result.error_code,
                url=metadata.url,
            )
            return ValidationRejectedError(
                result.error_message or f"Response rejected by {name}",
                rule=name,
                metadata=metadata,
                body=body,
                error_code=result.error_code,
                request=request,
            )

        return None
