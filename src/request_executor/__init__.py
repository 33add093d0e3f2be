"""
Request executor: issues HTTP requests through a pluggable transport and
hands back cancelable handles.

Modules:
- executor: The facade (plain vs multipart dispatch, rule snapshots)
- cancelables: Anonymous and serial cancelables
- validation: Built-in rules and the ordered rule chain
- connectors: aiohttp transport and multipart assembly
- interceptors: Header injection, API-key rotation, retry policy
- config / infrastructure: Settings, value objects, structured logging
"""

from request_executor.cancelables import AnonymousCancelable, SerialCancelable
from request_executor.config.value_objects import ExecutorConfig
from request_executor.exceptions import (
    InterceptorError,
    RequestCancelledError,
    RequestExecutorError,
    TransportError,
    ValidationRejectedError,
)
from request_executor.executor import Executor
from request_executor.ports.http import (
    Body,
    BodyPart,
    Multipart,
    RequestDescriptor,
    ResponseMetadata,
)

__all__ = [
    "Executor",
    "ExecutorConfig",
    "AnonymousCancelable",
    "SerialCancelable",
    "RequestDescriptor",
    "ResponseMetadata",
    "Body",
    "BodyPart",
    "Multipart",
    "RequestExecutorError",
    "TransportError",
    "ValidationRejectedError",
    "RequestCancelledError",
    "InterceptorError",
]
