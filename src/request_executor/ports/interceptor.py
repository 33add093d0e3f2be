"""Request interception abstractions.

An interceptor adapts outgoing requests (auth headers, signing) and may ask
the transport to retry a failed attempt. Retry policy lives here, never in
the executor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from request_executor.ports.http import RequestDescriptor, ResponseMetadata


@dataclass(frozen=True)
class RetryDecision:
    """Whether to retry a failed attempt, and after how long."""

    should_retry: bool
    delay: float = 0.0

    @classmethod
    def no_retry(cls) -> RetryDecision:
        return cls(should_retry=False)

    @classmethod
    def retry_after(cls, delay: float = 0.0) -> RetryDecision:
        return cls(should_retry=True, delay=delay)


class IRequestInterceptor(Protocol):
    """Abstraction for request adaptation and retry decisions."""

    async def adapt(self, request: RequestDescriptor) -> RequestDescriptor:
        """Return the request to send (typically with extra headers).

        Raises:
            Any exception; the transport reports it as InterceptorError
        """
        ...

    async def retry(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata | None,
        error: Exception,
        attempt: int,
    ) -> RetryDecision:
        """Decide whether a failed attempt should be retried.

        Args:
            request: The adapted request that failed
            metadata: Response metadata, None on network-level failure
            error: The failure (TransportError or ValidationRejectedError)
            attempt: Number of attempts made so far (1-indexed)
        """
        ...
