import asyncio
from collections import deque

from request_executor.exceptions import KeyRotationError, ValidationRejectedError
from request_executor.infrastructure.observability import get_interceptor_logger
from request_executor.ports.http import (
    IApiKeyProvider,
    RequestDescriptor,
    ResponseMetadata,
)
from request_executor.ports.interceptor import RetryDecision

logger = get_interceptor_logger("api-key")


class KeyRotator:
    """
    Round-robin API-key provider.
    Hands out keys in ring order and evicts a key once the server rejects it,
    as long as at least one other key remains.
    Usage:
        rotator = KeyRotator(["key1", "key2"], header="Authorization", scheme="Bearer")
        headers = await rotator.get_headers()
    """

    def __init__(
        self,
        keys: list[str],
        header: str = "Authorization",
        scheme: str | None = "Bearer",
    ):
        if not keys:
            raise KeyRotationError("No API keys provided")
        self.header = header
        self.scheme = scheme
        self._keys: deque[str] = deque(keys)
        self._lock = asyncio.Lock()

    @property
    def keys(self) -> list[str]:
        return list(self._keys)

    # ---------- public ----------

    async def get_headers(self) -> dict[str, str]:
        """Return headers with the next key in the ring."""
        async with self._lock:
            key = self._keys[0]
            self._keys.rotate(-1)
        return {self.header: self._format(key)}

    async def rotate_key_on_failure(self, failed_key: str | None = None) -> None:
        """Evict ``failed_key`` (a bare key or a full header value).

        Raises:
            KeyRotationError: If ``failed_key`` is the last remaining key
        """
        if failed_key is None:
            return
        key = self._strip(failed_key)
        async with self._lock:
            if key not in self._keys:
                return  # already evicted by a concurrent request
            if len(self._keys) == 1:
                raise KeyRotationError("Last API key was rejected")
            self._keys.remove(key)
        logger.warning("api_key_evicted", remaining=len(self._keys))

    # ---------- internal ----------

    def _format(self, key: str) -> str:
        return f"{self.scheme} {key}" if self.scheme else key

    def _strip(self, value: str) -> str:
        prefix = f"{self.scheme} " if self.scheme else ""
        if prefix and value.startswith(prefix):
            return value[len(prefix):]
        return value


class ApiKeyInterceptor:
    """Injects API-key headers and rotates the key on auth failures.

    A response with a status in ``retry_statuses`` evicts the key that was
    used and retries, at most ``max_rotations`` times per request.
    """

    def __init__(
        self,
        provider: IApiKeyProvider,
        header: str = "Authorization",
        retry_statuses: tuple[int, ...] = (401,),
        max_rotations: int = 1,
    ):
        self.provider = provider
        self.header = header
        self.retry_statuses = retry_statuses
        self.max_rotations = max_rotations

    async def adapt(self, request: RequestDescriptor) -> RequestDescriptor:
        headers = await self.provider.get_headers()
        return request.with_headers(headers)

    async def retry(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata | None,
        error: Exception,
        attempt: int,
    ) -> RetryDecision:
        if not isinstance(error, ValidationRejectedError):
            return RetryDecision.no_retry()
        if error.status_code not in self.retry_statuses or attempt > self.max_rotations:
            return RetryDecision.no_retry()

        await self.provider.rotate_key_on_failure(request.headers.get(self.header))
        logger.info("api_key_rotated", status_code=error.status_code, attempt=attempt)
        return RetryDecision.retry_after(0.0)
