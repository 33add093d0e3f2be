"""
Shared fixtures: an in-memory transport for executor unit tests and an
aiohttp test server for end-to-end tests.
"""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from request_executor.config.value_objects import HttpClientConfig
from request_executor.connectors.aiohttp_transport import AiohttpTransport
from request_executor.ports.http import ResponseMetadata
from request_executor.validation.chain import ValidationChain


# ============================================
# Completion recorder
# ============================================
class Completion:
    """Completion callback that records every call and can be awaited."""

    def __init__(self):
        self.calls = []
        self._waiter = None

    def __call__(self, body, metadata, error):
        outcome = (body, metadata, error)
        self.calls.append(outcome)
        if self._waiter is not None and not self._waiter.done():
            self._waiter.get_loop().call_soon_threadsafe(
                _set_if_pending, self._waiter, outcome
            )

    async def wait(self, timeout: float = 5.0):
        if self.calls:
            return self.calls[0]
        self._waiter = asyncio.get_running_loop().create_future()
        return await asyncio.wait_for(self._waiter, timeout)


def _set_if_pending(future, outcome):
    if not future.done():
        future.set_result(outcome)


@pytest.fixture
def completion():
    return Completion()


@pytest.fixture
def completion_factory():
    return Completion


# ============================================
# In-memory transport
# ============================================
class FakeTransportRequest:
    """Records what the executor attached; completes on demand."""

    def __init__(self, kind, request, interceptor, parts=None):
        self.kind = kind
        self.request = request
        self.interceptor = interceptor
        self.parts = parts
        self.rules = []
        self.callback = None
        self.cancel_calls = 0

    def validate(self, rule):
        self.rules.append(rule)
        return self

    def response(self, callback):
        self.callback = callback
        return self

    def cancel(self):
        self.cancel_calls += 1

    def complete(self, status_code=200, body=b"", headers=None):
        """Run attached rules like a real transport and fire the callback."""
        metadata = ResponseMetadata(
            status_code=status_code, headers=headers or {}, url=self.request.url
        )
        error = ValidationChain(self.rules).run(self.request, metadata, body)
        self.callback(body, metadata, error)


class FakeTransport:
    def __init__(self):
        self.requests = []

    def send(self, request, interceptor=None):
        handle = FakeTransportRequest("send", request, interceptor)
        self.requests.append(handle)
        return handle

    def send_multipart(self, request, parts, interceptor=None):
        handle = FakeTransportRequest("multipart", request, interceptor, parts)
        self.requests.append(handle)
        return handle

    @property
    def last(self):
        return self.requests[-1]


@pytest.fixture
def fake_transport():
    return FakeTransport()


# ============================================
# aiohttp test server
# ============================================
class ServerState:
    """Mutable state shared between the test app's handlers and a test."""

    def __init__(self):
        self.hits = {}
        self.slow_started = asyncio.Event()
        self.release = asyncio.Event()
        self.flaky_failures = 2
        self.valid_token = "Bearer good"
        self.uploads = []

    def hit(self, path):
        self.hits[path] = self.hits.get(path, 0) + 1
        return self.hits[path]


def build_app(state: ServerState) -> web.Application:
    async def ok(request):
        state.hit("/ok")
        return web.Response(body=b"ok", content_type="text/plain")

    async def missing(request):
        state.hit("/missing")
        return web.Response(status=404, body=b"not found", content_type="text/plain")

    async def slow(request):
        state.hit("/slow")
        state.slow_started.set()
        await state.release.wait()
        return web.Response(body=b"late")

    async def headers(request):
        state.hit("/headers")
        return web.json_response(dict(request.headers))

    async def flaky(request):
        count = state.hit("/flaky")
        if count <= state.flaky_failures:
            return web.Response(status=503, headers={"Retry-After": "0"})
        return web.Response(body=b"recovered")

    async def auth(request):
        state.hit("/auth")
        if request.headers.get("Authorization") != state.valid_token:
            return web.Response(status=401, body=b"bad key")
        return web.Response(body=b"welcome")

    async def upload(request):
        state.hit("/upload")
        reader = await request.multipart()
        fields = []
        while True:
            part = await reader.next()
            if part is None:
                break
            data = await part.read()
            fields.append([part.name, data.decode()])
        return web.json_response(fields)

    async def slow_upload(request):
        state.hit("/slow-upload")
        state.slow_started.set()
        await state.release.wait()
        return web.Response(body=b"late")

    async def echo(request):
        state.hit("/echo")
        return web.Response(body=await request.read())

    async def flaky_upload(request):
        count = state.hit("/flaky-upload")
        reader = await request.multipart()
        received = []
        while True:
            part = await reader.next()
            if part is None:
                break
            received.append(bytes(await part.read()))
        state.uploads.append(received)
        if count <= state.flaky_failures:
            return web.Response(status=503, headers={"Retry-After": "0"})
        return web.Response(body=b"stored")

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/missing", missing)
    app.router.add_get("/slow", slow)
    app.router.add_get("/headers", headers)
    app.router.add_get("/flaky", flaky)
    app.router.add_get("/auth", auth)
    app.router.add_post("/upload", upload)
    app.router.add_post("/slow-upload", slow_upload)
    app.router.add_post("/echo", echo)
    app.router.add_put("/flaky-upload", flaky_upload)
    return app


@pytest_asyncio.fixture
async def server_state():
    return ServerState()


@pytest_asyncio.fixture
async def http_server(server_state):
    async with TestServer(build_app(server_state)) as server:
        try:
            yield server
        finally:
            server_state.release.set()


@pytest_asyncio.fixture
async def transport():
    transport = AiohttpTransport(HttpClientConfig(timeout=5.0, connect_timeout=2.0))
    try:
        yield transport
    finally:
        await transport.close()


@pytest.fixture
def url_for(http_server):
    def make(path: str) -> str:
        return str(http_server.make_url(path))

    return make
