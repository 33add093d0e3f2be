"""Executor facade.

Issues requests through an ``ITransport`` with the configured interceptor,
status-code range and validation rules attached, and hands back a cancelable
immediately. Every outcome, including failures, reaches the caller through
the completion callback.
"""

from __future__ import annotations

import asyncio
import threading

from request_executor.cancelables import AnonymousCancelable, SerialCancelable
from request_executor.config.value_objects import ExecutorConfig
from request_executor.infrastructure.observability import get_executor_logger
from request_executor.ports.cancelable import ICancelable
from request_executor.ports.http import (
    CompletionHandler,
    ITransport,
    ITransportRequest,
    Multipart,
    MultipartSupplier,
    RequestDescriptor,
    ResponseMetadata,
    describe,
)
from request_executor.ports.validators import ValidationRule
from request_executor.validation.rules import status_code_rule

logger = get_executor_logger()


class Executor:
    """Dispatches requests to a transport and returns cancelables.

    Single Responsibility: decide plain vs multipart dispatch and attach the
    validation rules in order.
    Does NOT handle:
    - Wire-level HTTP (transport)
    - Retry (interceptor)
    - Request adaptation (interceptor)
    """

    def __init__(self, transport: ITransport, config: ExecutorConfig | None = None):
        """Initialize Executor.

        Args:
            transport: HTTP engine (e.g., AiohttpTransport)
            config: Interceptor, accepted status codes and initial rules
        """
        config = config or ExecutorConfig()
        self.transport = transport
        self.interceptor = config.interceptor
        self.status_codes = config.status_codes
        self._validations: list[ValidationRule] = list(config.validations)
        self._lock = threading.Lock()

    @property
    def validations(self) -> tuple[ValidationRule, ...]:
        """Snapshot of the registered rules, in registration order."""
        with self._lock:
            return tuple(self._validations)

    def add_validation(self, rule: ValidationRule) -> None:
        """Append ``rule``; applies to requests executed from now on."""
        with self._lock:
            self._validations.append(rule)

    def execute(
        self,
        request: RequestDescriptor,
        multipart: MultipartSupplier | None,
        on_complete: CompletionHandler,
    ) -> ICancelable:
        """
        Issue ``request`` and return a handle that can cancel it.

        Args:
            request: What to send. A ``Multipart`` payload selects the upload path.
            multipart: Lazy multipart parts; when given, replaces the payload
            on_complete: Called exactly once with (body, metadata, error)

        Returns:
            Cancelable; canceling after completion is a no-op
        """
        if multipart is not None:
            request = request.with_payload(Multipart(multipart))

        rules = self.validations
        cancelable = SerialCancelable()

        handle = self._dispatch(request)
        if self.status_codes is not None:
            handle.validate(status_code_rule(self.status_codes))
        for rule in rules:
            handle.validate(rule)

        cancelable.cancelable = AnonymousCancelable(handle.cancel)
        handle.response(on_complete)

        logger.debug("request_dispatched", rules=len(rules), **describe(request))
        return cancelable

    async def execute_async(
        self,
        request: RequestDescriptor,
        multipart: MultipartSupplier | None = None,
    ) -> tuple[bytes | None, ResponseMetadata]:
        """
        Awaitable wrapper around ``execute``.

        Cancelling the awaiting task cancels the request.

        Returns:
            (body, metadata) on success

        Raises:
            RequestExecutorError: The error delivered to the completion callback
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def on_complete(body, metadata, error) -> None:
            loop.call_soon_threadsafe(_resolve, future, body, metadata, error)

        cancelable = self.execute(request, multipart, on_complete)
        try:
            return await future
        except asyncio.CancelledError:
            cancelable.cancel()
            raise

    def _dispatch(self, request: RequestDescriptor) -> ITransportRequest:
        if isinstance(request.payload, Multipart):
            return self.transport.send_multipart(
                request, request.payload.supplier, self.interceptor
            )
        return self.transport.send(request, self.interceptor)


def _resolve(
    future: asyncio.Future,
    body: bytes | None,
    metadata: ResponseMetadata | None,
    error: Exception | None,
) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result((body, metadata))
