"""Interceptor composition and a static-headers adapter."""

from collections.abc import Mapping

from request_executor.ports.http import RequestDescriptor, ResponseMetadata
from request_executor.ports.interceptor import IRequestInterceptor, RetryDecision


class HeadersInterceptor:
    """Adds a fixed set of headers to every request. Never retries."""

    def __init__(self, headers: Mapping[str, str]):
        self.headers = dict(headers)

    async def adapt(self, request: RequestDescriptor) -> RequestDescriptor:
        return request.with_headers(self.headers)

    async def retry(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata | None,
        error: Exception,
        attempt: int,
    ) -> RetryDecision:
        return RetryDecision.no_retry()


class CompositeInterceptor:
    """Chains interceptors.

    Adapters run in registration order, each one seeing the previous one's
    output. For retries, the first interceptor asking for a retry wins.
    """

    def __init__(self, *interceptors: IRequestInterceptor):
        self._interceptors: list[IRequestInterceptor] = list(interceptors)

    def register(self, interceptor: IRequestInterceptor) -> None:
        self._interceptors.append(interceptor)

    async def adapt(self, request: RequestDescriptor) -> RequestDescriptor:
        for interceptor in self._interceptors:
            request = await interceptor.adapt(request)
        return request

    async def retry(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata | None,
        error: Exception,
        attempt: int,
    ) -> RetryDecision:
        for interceptor in self._interceptors:
            decision = await interceptor.retry(request, metadata, error, attempt)
            if decision.should_retry:
                return decision
        return RetryDecision.no_retry()
