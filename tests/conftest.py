"""Shared test fixtures and transport doubles for krakenspot tests.

Responses are served through httpx.MockTransport with a real async byte
stream, so tests can observe whether the client read, closed or left
open a response body.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import parse_qsl

import httpx
import pytest

from krakenspot.exchange.kraken_auth import KrakenRESTAuthorizer
from krakenspot.exchange.kraken_rest import KrakenRESTClient

# Key material from Kraken's published signing example.
API_SECRET = "kQH5HW/8p1uGOVjbgWA7FunAmGO8lsSUXNsu3eow76sz84Q18fWxnyRzBHCd3pd5nE9qa99HAZtuZuj6F1huXg=="
API_KEY = "test-api-key"


# ---------------------------------------------------------------------------
# Transport doubles
# ---------------------------------------------------------------------------


class ChunkStream(httpx.AsyncByteStream):
    """Async body stream that is only consumed when someone reads it."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = list(chunks)
        self.closed = False

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


def make_response(
    body: bytes = b"",
    status_code: int = 200,
    content_type: Optional[str] = "application/json",
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    all_headers = dict(headers or {})
    if content_type is not None:
        all_headers["Content-Type"] = content_type
    return httpx.Response(status_code, headers=all_headers, stream=ChunkStream([body]))


def json_response(payload: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    return make_response(json.dumps(payload).encode("utf-8"), status_code=status_code, headers=headers)


def form_of(request: httpx.Request) -> Dict[str, str]:
    return dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True))


class RecordingTransport:
    """MockTransport that remembers every request it was asked to send."""

    def __init__(self, handler: Callable[[httpx.Request], Any]) -> None:
        self.handler = handler
        self.calls: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request):
        self.calls.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.calls[-1]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def authorizer() -> KrakenRESTAuthorizer:
    return KrakenRESTAuthorizer(API_KEY, API_SECRET)


@pytest.fixture
def make_client(authorizer):
    """Factory: make_client(handler, **kwargs) -> (client, recorder)."""

    def _make(handler: Callable[[httpx.Request], Any], with_auth: bool = True, **kwargs: Any):
        recorder = RecordingTransport(handler)
        http_client = httpx.AsyncClient(transport=recorder.transport)
        client = KrakenRESTClient(
            authorizer if with_auth else None,
            http_client=http_client,
            **kwargs,
        )
        return client, recorder

    return _make


@pytest.fixture
def ok_payload() -> Dict[str, Any]:
    return {"error": [], "result": {"unixtime": 1688669448, "rfc1123": "Thu, 06 Jul 23 18:50:48 +0000"}}
