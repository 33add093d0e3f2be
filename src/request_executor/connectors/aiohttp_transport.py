"""Concrete HTTP transport for async requests.

Wraps aiohttp behind the ITransport abstraction. Each request runs as one
task on the transport's event loop; the completion callback runs on that
loop.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from concurrent.futures import Future
from enum import Enum
from typing import Any

import aiohttp

from request_executor.config.value_objects import HttpClientConfig
from request_executor.connectors.multipart import (
    PartLengthError,
    assemble_multipart,
    collect_parts,
    is_replayable,
)
from request_executor.exceptions import (
    InterceptorError,
    RequestCancelledError,
    RequestExecutorError,
    TransportError,
)
from request_executor.infrastructure.observability import (
    get_transport_logger,
    request_context,
)
from request_executor.ports.http import (
    Body,
    BodyPart,
    CompletionHandler,
    MultipartSupplier,
    RequestDescriptor,
    ResponseMetadata,
    describe,
)
from request_executor.ports.interceptor import IRequestInterceptor, RetryDecision
from request_executor.ports.validators import ValidationRule
from request_executor.validation.chain import ValidationChain

logger = get_transport_logger("aiohttp")


class RequestState(Enum):
    """Lifecycle of a single transport request."""

    CREATED = "created"
    SENT = "sent"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.FAILED, RequestState.CANCELED)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AiohttpRequest:
    """Handle to one request issued through ``AiohttpTransport``.

    Nothing is sent until ``response()`` registers the completion callback.
    The callback fires exactly once, and never synchronously from
    ``response()``.
    """

    def __init__(
        self,
        transport: AiohttpTransport,
        request: RequestDescriptor,
        interceptor: IRequestInterceptor | None = None,
        parts: MultipartSupplier | None = None,
    ):
        self._transport = transport
        self._request = request
        self._interceptor = interceptor
        self._parts_supplier = parts
        self._chain = ValidationChain()
        self._lock = threading.Lock()
        self._state = RequestState.CREATED
        self._cancel_requested = False
        self._callback: CompletionHandler | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._future: asyncio.Future | Future | None = None
        self.attempts = 0
        self.request_id = uuid.uuid4().hex[:12]

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def request(self) -> RequestDescriptor:
        return self._request

    def validate(self, rule: ValidationRule) -> AiohttpRequest:
        with self._lock:
            if self._state is not RequestState.CREATED:
                raise RuntimeError("Validation rules must be attached before the request starts")
            self._chain.register(rule)
        return self

    def response(self, callback: CompletionHandler) -> AiohttpRequest:
        """Register ``callback`` and schedule the request on the event loop.

        Without an event loop the callback receives a ``TransportError`` from
        a helper thread.

        Raises:
            RuntimeError: If called twice
        """
        with self._lock:
            if self._callback is not None:
                raise RuntimeError("response() may only be registered once")
            self._callback = callback

        try:
            loop = self._transport.resolve_loop()
        except RuntimeError as e:
            error = TransportError(
                f"No event loop to run the request: {e}", request=self._request
            )
            error.__cause__ = e
            logger.error(
                "request_without_event_loop",
                request_id=self.request_id,
                **describe(self._request),
            )
            threading.Thread(
                target=self._finish, args=(None, None, error), daemon=True
            ).start()
            return self

        with self._lock:
            self._loop = loop
            canceled = self._cancel_requested
            if not canceled:
                self._state = RequestState.SENT

        if canceled:
            loop.call_soon_threadsafe(
                self._finish, None, None, self._cancelled_error()
            )
            return self

        logger.debug("request_sent", request_id=self.request_id, **describe(self._request))
        if _running_loop() is loop:
            future: asyncio.Future | Future = loop.create_task(self._run())
        else:
            future = asyncio.run_coroutine_threadsafe(self._run(), loop)
        future.add_done_callback(self._on_done)

        with self._lock:
            self._future = future
            cancel_now = self._cancel_requested
        if cancel_now:
            self._cancel_future(future, loop)
        return self

    def cancel(self) -> None:
        """Abort the request. No-op once it has completed."""
        with self._lock:
            if self._state.is_terminal or self._cancel_requested:
                return
            self._cancel_requested = True
            future, loop = self._future, self._loop

        logger.info(
            "request_cancel_requested", request_id=self.request_id, **describe(self._request)
        )
        if future is not None and loop is not None:
            self._cancel_future(future, loop)

    @staticmethod
    def _cancel_future(
        future: asyncio.Future | Future, loop: asyncio.AbstractEventLoop
    ) -> None:
        if _running_loop() is loop:
            future.cancel()
        else:
            loop.call_soon_threadsafe(future.cancel)

    def _on_done(self, future: asyncio.Future | Future) -> None:
        # a task cancelled before its first step never enters _run
        if future.cancelled():
            self._finish(None, None, self._cancelled_error())

    def _cancelled_error(self) -> RequestCancelledError:
        return RequestCancelledError("Request was cancelled", request=self._request)

    async def _run(self) -> None:
        with request_context(request_id=self.request_id):
            try:
                body, metadata, error = await self._perform()
            except asyncio.CancelledError:
                self._finish(None, None, self._cancelled_error())
                if not self._cancel_requested:
                    raise
                return
            except Exception as e:
                logger.exception("request_crashed", **describe(self._request))
                crash = RequestExecutorError(
                    f"Request failed unexpectedly: {e!r}", request=self._request
                )
                crash.__cause__ = e
                self._finish(None, None, crash)
                return
            self._finish(body, metadata, error)

    async def _perform(
        self,
    ) -> tuple[bytes | None, ResponseMetadata | None, Exception | None]:
        parts: list[BodyPart] | None = None

        while True:
            if self._cancel_requested:
                raise asyncio.CancelledError()
            self.attempts += 1

            try:
                request = await self._adapt(self._request)
            except InterceptorError as e:
                return None, None, e

            if self._parts_supplier is not None and parts is None:
                try:
                    parts = collect_parts(self._parts_supplier)
                except Exception as e:
                    build_error = TransportError(
                        f"Failed to build multipart body: {e}", request=request
                    )
                    build_error.__cause__ = e
                    return None, None, build_error

            try:
                data = self._build_data(request, parts)
            except (PartLengthError, TypeError) as e:
                body_error = TransportError(f"Invalid request body: {e}", request=request)
                body_error.__cause__ = e
                logger.warning("request_body_invalid", error=str(e), **describe(request))
                return None, None, body_error

            body: bytes | None = None
            metadata: ResponseMetadata | None = None
            error: RequestExecutorError | None
            try:
                metadata, body = await self._send(request, data)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                error = TransportError(
                    f"{request.method} {request.url} failed: {e!r}", request=request
                )
                error.__cause__ = e
                logger.warning(
                    "request_transport_error",
                    error=repr(e),
                    attempt=self.attempts,
                    **describe(request),
                )
            else:
                error = self._chain.run(request, metadata, body)

            if error is None:
                return body, metadata, None

            # a sent stream cannot be read again
            if (
                self._interceptor is not None
                and parts is not None
                and not is_replayable(parts)
            ):
                logger.info(
                    "retry_skipped",
                    reason="stream_consumed",
                    attempt=self.attempts,
                    **describe(request),
                )
                return body, metadata, error

            try:
                decision = await self._should_retry(request, metadata, error)
            except InterceptorError as e:
                return body, metadata, e

            if not decision.should_retry:
                return body, metadata, error

            logger.info(
                "retry_scheduled",
                attempt=self.attempts,
                delay=decision.delay,
                reason=type(error).__name__,
                **describe(request),
            )
            if decision.delay > 0:
                await asyncio.sleep(decision.delay)

    async def _adapt(self, request: RequestDescriptor) -> RequestDescriptor:
        if self._interceptor is None:
            return request
        try:
            return await self._interceptor.adapt(request)
        except Exception as e:
            logger.warning("request_adaptation_failed", error=repr(e), **describe(request))
            raise InterceptorError(f"Request adaptation failed: {e}", request=request) from e

    async def _should_retry(
        self,
        request: RequestDescriptor,
        metadata: ResponseMetadata | None,
        error: Exception,
    ) -> RetryDecision:
        if self._interceptor is None:
            return RetryDecision.no_retry()
        try:
            return await self._interceptor.retry(request, metadata, error, self.attempts)
        except Exception as e:
            raise InterceptorError(f"Retry decision failed: {e}", request=request) from e

    @staticmethod
    def _build_data(request: RequestDescriptor, parts: list[BodyPart] | None) -> Any:
        if parts is not None:
            return assemble_multipart(parts)
        if isinstance(request.payload, Body):
            return request.payload.data
        return None

    async def _send(
        self, request: RequestDescriptor, data: Any
    ) -> tuple[ResponseMetadata, bytes]:
        session = await self._transport.get_session()

        kwargs: dict[str, Any] = {}
        if not self._transport.config.verify_ssl:
            kwargs["ssl"] = False

        async with session.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            data=data,
            **kwargs,
        ) as resp:
            body = await resp.read()
            metadata = ResponseMetadata(
                status_code=resp.status,
                headers=dict(resp.headers),
                url=str(resp.url),
            )
        return metadata, body

    def _finish(
        self,
        body: bytes | None,
        metadata: ResponseMetadata | None,
        error: Exception | None,
    ) -> None:
        with self._lock:
            if self._state.is_terminal:
                return
            if self._cancel_requested and not isinstance(error, RequestCancelledError):
                # cancellation won the race: no partial success
                body, metadata, error = None, None, self._cancelled_error()
            if isinstance(error, RequestCancelledError):
                self._state = RequestState.CANCELED
            elif error is not None:
                self._state = RequestState.FAILED
            else:
                self._state = RequestState.COMPLETED
            callback = self._callback

        logger.debug(
            "request_completed",
            state=self._state.value,
            status_code=metadata.status_code if metadata else None,
            error=type(error).__name__ if error else None,
            attempts=self.attempts,
            **describe(self._request),
        )
        if callback is None:
            return
        try:
            callback(body, metadata, error)
        except Exception:
            logger.exception("callback_failed", **describe(self._request))


class AiohttpTransport:
    """HTTP transport implementation using aiohttp."""

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """Initialize transport.

        Args:
            config: HTTP client configuration
            session: Externally owned session (not closed by ``close()``)
            loop: Loop to run requests on; defaults to the loop running when
                a request starts
        """
        self.config = config or HttpClientConfig()
        self._session = session
        self._owns_session = session is None
        self._loop = loop

    def resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        loop = _running_loop()
        if loop is None:
            raise RuntimeError(
                "AiohttpTransport needs a running event loop or an explicit loop"
            )
        return loop

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(
                total=self.config.timeout, connect=self.config.connect_timeout
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    def send(
        self,
        request: RequestDescriptor,
        interceptor: IRequestInterceptor | None = None,
    ) -> AiohttpRequest:
        return AiohttpRequest(self, request, interceptor)

    def send_multipart(
        self,
        request: RequestDescriptor,
        parts: MultipartSupplier,
        interceptor: IRequestInterceptor | None = None,
    ) -> AiohttpRequest:
        return AiohttpRequest(self, request, interceptor, parts=parts)

    async def close(self) -> None:
        """Close the HTTP session if this transport created it."""
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> AiohttpTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
