"""Request interceptors: header injection, API-key rotation, retry policy."""

from .api_key import ApiKeyInterceptor, KeyRotator
from .composite import CompositeInterceptor, HeadersInterceptor
from .retry_policy import IDEMPOTENT_METHODS, RetryPolicy

__all__ = [
    "ApiKeyInterceptor",
    "KeyRotator",
    "CompositeInterceptor",
    "HeadersInterceptor",
    "RetryPolicy",
    "IDEMPOTENT_METHODS",
]
