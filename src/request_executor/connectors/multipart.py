"""Multipart body assembly.

Turns the ordered BodyParts produced by a ``MultipartSupplier`` into an
``aiohttp.MultipartWriter``. Part order is preserved; some servers give
field order meaning.

A declared ``content_length`` must match the body exactly. Bytes and seekable
streams are checked when the payload is built; other streams are counted
while they are written, and a mismatch aborts the upload.
"""

from __future__ import annotations

import asyncio
import io
from collections.abc import AsyncIterable
from typing import Any

import aiohttp
from aiohttp import payload as aiohttp_payload

from request_executor.ports.http import BodyPart, MultipartSupplier

REPLAYABLE_BODY_TYPES = (bytes, bytearray, memoryview)


class PartLengthError(ValueError):
    """A part's body does not match its declared length.

    ``actual`` is None when the body was found to be longer than declared
    without being read to the end.
    """

    def __init__(self, declared: int, actual: int | None):
        self.declared = declared
        self.actual = actual
        found = "more" if actual is None else str(actual)
        super().__init__(f"Part declared {declared} bytes but provided {found}")


class _GuardedWriter:
    """Counts bytes written through it and refuses to exceed ``limit``."""

    def __init__(self, writer: Any, limit: int):
        self._writer = writer
        self._limit = limit
        self.written = 0

    async def write(self, chunk: bytes) -> None:
        if self.written + len(chunk) > self._limit:
            raise PartLengthError(self._limit, None)
        self.written += len(chunk)
        await self._writer.write(chunk)


class _DeclaredLength:
    """Reports the caller-declared length as the payload size.

    The writer sums part sizes into the request Content-Length.
    """

    _declared_size: int | None = None

    @property
    def size(self) -> int | None:
        if self._declared_size is not None:
            return self._declared_size
        return super().size  # type: ignore[misc]

    async def _has_more(self) -> bool:
        return False

    async def write_with_length(self, writer: Any, content_length: int | None) -> None:
        if self._declared_size is None:
            await super().write_with_length(writer, content_length)  # type: ignore[misc]
            return
        guarded = _GuardedWriter(writer, self._declared_size)
        await super().write_with_length(guarded, content_length)  # type: ignore[misc]
        if guarded.written != self._declared_size:
            raise PartLengthError(self._declared_size, guarded.written)
        if await self._has_more():
            raise PartLengthError(self._declared_size, None)


class SizedIOPayload(_DeclaredLength, aiohttp_payload.IOBasePayload):
    def __init__(self, value: Any, size: int | None, *args: Any, **kwargs: Any):
        super().__init__(value, *args, **kwargs)
        self._declared_size = size

    async def _has_more(self) -> bool:
        # aiohttp stops reading at the declared size
        loop = asyncio.get_running_loop()
        return bool(await loop.run_in_executor(None, self._value.read, 1))


class SizedAsyncIterablePayload(_DeclaredLength, aiohttp_payload.AsyncIterablePayload):
    def __init__(self, value: Any, size: int | None, *args: Any, **kwargs: Any):
        super().__init__(value, *args, **kwargs)
        self._declared_size = size


def collect_parts(supplier: MultipartSupplier) -> list[BodyPart]:
    """Invoke ``supplier`` once and materialize its parts in order."""
    return list(supplier())


def is_replayable(parts: list[BodyPart]) -> bool:
    """True when every body can be sent again (streams are consumed by a send)."""
    return all(isinstance(part.body, REPLAYABLE_BODY_TYPES) for part in parts)


def _remaining_length(stream: io.IOBase) -> int | None:
    if not stream.seekable():
        return None
    position = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(position)
    return end - position


def _check_length(declared: int | None, actual: int | None) -> None:
    if declared is not None and actual is not None and declared != actual:
        raise PartLengthError(declared, actual)


def build_payload(part: BodyPart) -> aiohttp_payload.Payload:
    """Wrap one BodyPart's body in the matching aiohttp payload.

    Raises:
        PartLengthError: Declared length differs from a bytes or seekable body
        TypeError: Unsupported body type
    """
    # form-data parts may not carry Content-Length; the declared length
    # travels as the payload size instead
    headers = {
        key: value
        for key, value in part.headers.items()
        if key.lower() != "content-length"
    }
    body = part.body

    if isinstance(body, REPLAYABLE_BODY_TYPES):
        data = bytes(body)
        _check_length(part.content_length, len(data))
        return aiohttp_payload.BytesPayload(data, headers=headers)
    if isinstance(body, io.IOBase):
        _check_length(part.content_length, _remaining_length(body))
        return SizedIOPayload(body, part.content_length, headers=headers)
    if isinstance(body, AsyncIterable):
        return SizedAsyncIterablePayload(body, part.content_length, headers=headers)

    raise TypeError(f"Unsupported multipart body type: {type(body).__name__}")


def assemble_multipart(
    parts: list[BodyPart],
    boundary: str | None = None,
) -> aiohttp.MultipartWriter:
    """
    Append every part to a multipart/form-data writer, in order.

    Args:
        parts: Parts as returned by ``collect_parts``
        boundary: Explicit boundary (random when None)

    Returns:
        Writer ready to be passed as ``data=`` to ``ClientSession.request``
    """
    writer = aiohttp.MultipartWriter("form-data", boundary=boundary)
    for part in parts:
        writer.append_payload(build_payload(part))
    return writer
