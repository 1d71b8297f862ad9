"""Request building and execution pipeline tests.

Covers the status gate, content-type branching, body closure, cancellation,
and the separation between client errors and exchange-reported errors.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from krakenspot.exchange.exceptions import (
    ConfigurationError,
    ContentTypeParseError,
    ContextExpiredError,
    JSONDecodeError,
    MalformedRequestError,
    TransportError,
    UnexpectedContentTypeError,
    UnexpectedStatusError,
)
from krakenspot.exchange.kraken_auth import API_SIGN_HEADER
from krakenspot.exchange.kraken_rest import encode_form, parse_media_type
from krakenspot.exchange.models.common import KrakenResponse, SecurityOptions
from krakenspot.exchange.models.market import GetServerTimeResponse
from krakenspot.exchange.request_context import RequestContext
from tests.conftest import ChunkStream, json_response, make_response


async def _assert_body_closed(response: httpx.Response) -> None:
    assert response.is_closed
    with pytest.raises(httpx.StreamError):
        async for _ in response.aiter_raw():
            pass


# ---- Request building ----

class TestBuildRequest:

    def test_public_request_has_query_and_user_agent(self, make_client):
        client, _ = make_client(lambda r: json_response({}), user_agent="tests-agent")
        request = client.build_request("/public/OHLC", "GET", query={"pair": "XBTUSD", "interval": 60})

        assert request.method == "GET"
        assert request.url.path == "/0/public/OHLC"
        assert request.url.query == b"interval=60&pair=XBTUSD"
        assert request.headers["User-Agent"] == "tests-agent"
        assert "API-Sign" not in request.headers

    def test_private_request_is_signed_with_nonce_first(self, make_client):
        client, _ = make_client(lambda r: json_response({}))
        request = client.build_request(
            "/private/Balance", "POST",
            content_type="application/x-www-form-urlencoded",
            body={"asset": "ZUSD"},
            nonce=42,
        )

        assert request.content == b"asset=ZUSD&nonce=42"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.headers["API-Key"]
        assert request.headers[API_SIGN_HEADER]

    def test_default_user_agent_is_always_set(self, make_client):
        client, _ = make_client(lambda r: json_response({}))
        request = client.build_request("/public/Time")
        assert request.headers["User-Agent"] == "krakenspot-python"

    @pytest.mark.parametrize("method", ["", "GE T", "POST\n", "BAD(METHOD)"])
    def test_malformed_method_is_rejected(self, make_client, method):
        client, recorder = make_client(lambda r: json_response({}))
        with pytest.raises(MalformedRequestError):
            client.build_request("/public/Time", method)
        assert recorder.calls == []

    def test_body_without_content_type_is_rejected(self, make_client):
        client, _ = make_client(lambda r: json_response({}))
        with pytest.raises(MalformedRequestError):
            client.build_request("/public/Time", "POST", body=b"a=b")

    def test_invalid_base_url_is_rejected(self, make_client):
        client, _ = make_client(lambda r: json_response({}), base_url="http://localhost:notaport")
        with pytest.raises(MalformedRequestError):
            client.build_request("/public/Time")

    def test_private_call_without_authorizer_fails(self, make_client):
        client, recorder = make_client(lambda r: json_response({}), with_auth=False)
        with pytest.raises(ConfigurationError):
            client.build_request("/private/Balance", "POST", nonce=1)
        assert recorder.calls == []

    def test_empty_second_factor_is_not_sent(self, make_client):
        client, _ = make_client(lambda r: json_response({}))
        request = client.build_request(
            "/private/Balance", "POST", nonce=7,
            security_options=SecurityOptions(),
        )
        assert request.content == b"nonce=7"

    def test_otp_is_added_with_security_options(self, make_client):
        client, _ = make_client(lambda r: json_response({}))
        request = client.build_request(
            "/private/Balance", "POST", nonce=7,
            security_options=SecurityOptions(second_factor="123456"),
        )
        assert request.content == b"nonce=7&otp=123456"


def test_encode_form_sorts_keys_like_the_signing_reference():
    body = encode_form([
        ("volume", "1.25"), ("type", "buy"), ("pair", "XBTUSD"),
        ("ordertype", "limit"), ("price", "37500"), ("nonce", "1616492376594"),
    ])
    assert body == "nonce=1616492376594&ordertype=limit&pair=XBTUSD&price=37500&type=buy&volume=1.25"


def test_encode_form_formats_values():
    assert encode_form({"trades": True, "txid": ["A", "B"], "skip": None}) == "trades=true&txid=A%2CB"


@pytest.mark.parametrize("value,expected", [
    ("application/json", "application/json"),
    ("Application/JSON; charset=utf-8", "application/json"),
    ('application/zip; name="report.zip"', "application/zip"),
    ("text/plain;", "text/plain"),
])
def test_parse_media_type(value, expected):
    assert parse_media_type(value)[0] == expected


@pytest.mark.parametrize("value", ["", "json", "application/", "application/json; charset", "/json"])
def test_parse_media_type_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_media_type(value)


# ---- Execution ----

@pytest.mark.asyncio
async def test_success_envelope_is_decoded_and_body_closed(make_client, ok_payload):
    client, _ = make_client(lambda r: json_response(ok_payload, headers={"x-trace-id": "abc"}))

    result = await client.get_server_time()

    assert isinstance(result, GetServerTimeResponse)
    assert not result.has_errors
    assert result.result.unixtime == 1688669448
    assert result.http_response.headers["x-trace-id"] == "abc"
    await _assert_body_closed(result.http_response)


@pytest.mark.asyncio
async def test_exchange_errors_are_data_not_exceptions(make_client):
    payload = {"error": ["EGeneral:Invalid arguments"], "result": None}
    client, _ = make_client(lambda r: json_response(payload))

    result = await client.get_server_time()

    assert result.error == ["EGeneral:Invalid arguments"]
    assert result.has_errors
    assert result.result is None


@pytest.mark.asyncio
async def test_unknown_fields_are_kept(make_client):
    payload = {"error": [], "result": {"unixtime": 1, "rfc1123": "x", "extra_field": 5}}
    client, _ = make_client(lambda r: json_response(payload))

    result = await client.get_server_time()

    assert result.result.model_extra["extra_field"] == 5


@pytest.mark.parametrize("status_code", [201, 204, 400, 403, 404, 429, 500, 502, 503])
@pytest.mark.asyncio
async def test_non_200_status_always_fails_with_response_attached(make_client, ok_payload, status_code):
    client, _ = make_client(lambda r: json_response(ok_payload, status_code=status_code, headers={"x-trace-id": "t1"}))

    with pytest.raises(UnexpectedStatusError) as exc_info:
        await client.get_server_time()

    err = exc_info.value
    assert err.status_code == status_code
    assert err.response is not None
    assert err.headers["x-trace-id"] == "t1"
    assert err.operation == "get_server_time"
    assert err.response.is_closed


@pytest.mark.asyncio
async def test_empty_content_type_fails_to_parse(make_client):
    client, _ = make_client(lambda r: make_response(b"{}", content_type=""))

    with pytest.raises(ContentTypeParseError) as exc_info:
        await client.get_server_time()

    await _assert_body_closed(exc_info.value.response)


@pytest.mark.asyncio
async def test_missing_content_type_fails_to_parse(make_client):
    client, _ = make_client(lambda r: make_response(b"{}", content_type=None))

    with pytest.raises(ContentTypeParseError):
        await client.get_server_time()


@pytest.mark.asyncio
async def test_text_plain_is_an_unexpected_content_type(make_client):
    client, _ = make_client(lambda r: make_response(b"hello", content_type="text/plain"))

    with pytest.raises(UnexpectedContentTypeError) as exc_info:
        await client.get_server_time()

    assert "text/plain" in str(exc_info.value)
    assert exc_info.value.content_type == "text/plain"
    await _assert_body_closed(exc_info.value.response)


@pytest.mark.asyncio
async def test_malformed_json_is_a_syntax_error(make_client):
    client, _ = make_client(lambda r: make_response(b'{"error": [', content_type="application/json"))

    with pytest.raises(JSONDecodeError) as exc_info:
        await client.get_server_time()

    assert exc_info.value.kind == JSONDecodeError.SYNTAX
    await _assert_body_closed(exc_info.value.response)


@pytest.mark.asyncio
async def test_wrong_shape_is_a_type_error(make_client):
    payload = {"error": [], "result": {"unixtime": "not-a-number", "rfc1123": 3}}
    client, _ = make_client(lambda r: json_response(payload))

    with pytest.raises(JSONDecodeError) as exc_info:
        await client.get_server_time()

    assert exc_info.value.kind == JSONDecodeError.TYPE
    await _assert_body_closed(exc_info.value.response)


@pytest.mark.parametrize("content_type", ["application/octet-stream", "application/zip"])
@pytest.mark.asyncio
async def test_binary_body_is_left_open_and_readable(make_client, content_type):
    archive = b"PK\x03\x04" + bytes(range(256)) * 8
    client, _ = make_client(lambda r: make_response(archive, content_type=content_type))
    request = client.build_request("/private/RetrieveExport", "POST", body={"id": "TCJA"}, nonce=1)

    response = await client.execute(request, KrakenResponse)

    assert isinstance(response, httpx.Response)
    assert not response.is_closed
    assert await response.aread() == archive
    await response.aclose()


@pytest.mark.parametrize("content_type", ["application/octet-stream", "application/zip"])
@pytest.mark.asyncio
async def test_binary_body_on_json_endpoint_is_rejected_and_closed(make_client, content_type):
    client, _ = make_client(lambda r: make_response(b"PK\x03\x04", content_type=content_type))

    with pytest.raises(UnexpectedContentTypeError) as exc_info:
        await client.get_server_time()

    err = exc_info.value
    assert err.content_type == content_type
    assert err.operation == "get_server_time"
    await _assert_body_closed(err.response)


@pytest.mark.asyncio
async def test_retrieve_data_export_streams_report(make_client):
    chunks = [b"PK\x03\x04", b"rest-of-archive"]
    client, _ = make_client(
        lambda r: httpx.Response(
            200, headers={"Content-Type": "application/zip"},
            stream=ChunkStream(chunks),
        )
    )

    export = await client.retrieve_data_export("TCJA", nonce=5)
    received = b""
    async for chunk in export.report:
        received += chunk
    await export.aclose()

    assert received == b"".join(chunks)
    assert not export.has_errors


@pytest.mark.asyncio
async def test_retrieve_data_export_surfaces_envelope_errors(make_client):
    client, _ = make_client(lambda r: json_response({"error": ["EExport:Unknown export"]}))

    export = await client.retrieve_data_export("missing", nonce=5)

    assert export.error == ["EExport:Unknown export"]
    assert export.http_response.is_closed


@pytest.mark.asyncio
async def test_cancelled_context_never_reaches_transport(make_client, ok_payload):
    client, recorder = make_client(lambda r: json_response(ok_payload))
    ctx = RequestContext()
    ctx.cancel()

    with pytest.raises(ContextExpiredError):
        await client.get_server_time(ctx=ctx)

    assert recorder.calls == []


@pytest.mark.asyncio
async def test_expired_deadline_never_reaches_transport(make_client, ok_payload):
    client, recorder = make_client(lambda r: json_response(ok_payload))
    ctx = RequestContext.with_timeout(0)

    with pytest.raises(ContextExpiredError):
        await client.get_server_time(ctx=ctx)

    assert recorder.calls == []


@pytest.mark.asyncio
async def test_cancel_while_waiting_for_response(make_client, ok_payload):
    async def slow(request):
        await asyncio.sleep(5)
        return json_response(ok_payload)

    client, recorder = make_client(slow)
    ctx = RequestContext()
    asyncio.get_running_loop().call_later(0.05, ctx.cancel)

    with pytest.raises(ContextExpiredError):
        await asyncio.wait_for(client.get_server_time(ctx=ctx), timeout=2)

    assert len(recorder.calls) == 1


@pytest.mark.asyncio
async def test_deadline_while_waiting_for_response(make_client, ok_payload):
    async def slow(request):
        await asyncio.sleep(5)
        return json_response(ok_payload)

    client, _ = make_client(slow)

    with pytest.raises(ContextExpiredError):
        await asyncio.wait_for(client.get_server_time(ctx=RequestContext.with_timeout(0.05)), timeout=2)


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped(make_client):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = make_client(refuse)

    with pytest.raises(TransportError) as exc_info:
        await client.get_server_time()

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
    assert exc_info.value.operation == "get_server_time"
