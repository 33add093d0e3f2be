"""
Retry Policy

Interceptor that distinguishes retryable failures (network errors, rate
limits, server errors) from permanent ones, and computes exponential backoff
delays. The transport consults it after each failed attempt.
"""

from request_executor.config.value_objects import RetryConfig
from request_executor.exceptions import TransportError, ValidationRejectedError
from request_executor.infrastructure.observability import get_interceptor_logger
from request_executor.ports.http import RequestDescriptor, ResponseMetadata
from request_executor.ports.interceptor import RetryDecision

logger = get_interceptor_logger("retry-policy")

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS", "TRACE"})


class RetryPolicy:
    """Determines retry behavior for different error types."""

    def __init__(
        self,
        config: RetryConfig | None = None,
        methods: frozenset[str] = IDEMPOTENT_METHODS,
    ):
        self.config = config or RetryConfig()
        self.methods = methods

    async def adapt(self, request: RequestDescriptor) -> RequestDescriptor:
        return request

    async def retry(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata | None,
        error: Exception,
        attempt: int,
    ) -> RetryDecision:
        if attempt >= self.config.max_attempts:
            return RetryDecision.no_retry()
        if request.method.upper() not in self.methods:
            return RetryDecision.no_retry()

        if isinstance(error, TransportError):
            return RetryDecision.retry_after(self.get_retry_delay(attempt))

        if isinstance(error, ValidationRejectedError) and self.should_retry(
            error.status_code
        ):
            retry_after = None
            if metadata is not None:
                retry_after = metadata.header("Retry-After")
            delay = self.get_retry_delay(attempt, error.status_code, retry_after)
            return RetryDecision.retry_after(delay)

        return RetryDecision.no_retry()

    def should_retry(self, status_code: int) -> bool:
        """
        Determine if a rejected status code should be retried.

        Args:
            status_code: HTTP status code

        Returns:
            True if error is retryable, False otherwise
        """
        return status_code in self.config.retryable_status_codes

    def get_retry_delay(
        self,
        attempt: int,
        status_code: int | None = None,
        retry_after: str | None = None,
    ) -> float:
        """
        Calculate retry delay with exponential backoff.

        Args:
            attempt: Attempts made so far (1-indexed)
            status_code: HTTP status code, None for network errors
            retry_after: Retry-After header value if present

        Returns:
            Number of seconds to wait before retrying
        """
        # Honor Retry-After header for rate limits
        if status_code == 429 and retry_after:
            try:
                return min(float(retry_after), self.config.max_delay)
            except ValueError:
                pass

        delay = self.config.base_delay * (
            self.config.backoff_multiplier ** (attempt - 1)
        )
        return min(delay, self.config.max_delay)
