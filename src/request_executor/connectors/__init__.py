"""Concrete transports (aiohttp) and multipart body assembly."""

from .aiohttp_transport import AiohttpRequest, AiohttpTransport, RequestState
from .multipart import assemble_multipart, collect_parts

__all__ = [
    "AiohttpRequest",
    "AiohttpTransport",
    "RequestState",
    "assemble_multipart",
    "collect_parts",
]
