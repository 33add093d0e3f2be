"""Ports: the narrow interfaces between the executor and its collaborators."""

from .cancelable import ICancelable  # noqa: F401
from .http import (  # noqa: F401
    Body,
    BodyPart,
    CompletionHandler,
    IApiKeyProvider,
    ITransport,
    ITransportRequest,
    Multipart,
    MultipartSupplier,
    Payload,
    RequestDescriptor,
    ResponseMetadata,
)
from .interceptor import IRequestInterceptor, RetryDecision  # noqa: F401
from .validators import ValidationResult, ValidationRule  # noqa: F401

__all__ = [
    "ICancelable",
    "Body",
    "BodyPart",
    "CompletionHandler",
    "IApiKeyProvider",
    "ITransport",
    "ITransportRequest",
    "Multipart",
    "MultipartSupplier",
    "Payload",
    "RequestDescriptor",
    "ResponseMetadata",
    "IRequestInterceptor",
    "RetryDecision",
    "ValidationResult",
    "ValidationRule",
]
