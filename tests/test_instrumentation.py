"""Tracing decorators record spans without changing results or errors."""

from __future__ import annotations

import pytest

from krakenspot.core.config import ClientConfig
from krakenspot.exchange.exceptions import UnexpectedStatusError
from krakenspot.exchange.instrumentation import (
    STATUS_ERROR,
    STATUS_OK,
    InstrumentedAuthorizer,
    InstrumentedKrakenRESTClient,
    Tracer,
    client_from_config,
)
from krakenspot.exchange.kraken_rest import KrakenRESTClient
from tests.conftest import API_SECRET, json_response


@pytest.fixture
def spans():
    return []


@pytest.fixture
def traced(make_client, spans):
    def _make(handler, **kwargs):
        client, recorder = make_client(handler, **kwargs)
        tracer = Tracer(listeners=[spans.append])
        return InstrumentedKrakenRESTClient.wrap(client, tracer), recorder

    return _make


@pytest.mark.asyncio
async def test_successful_call_records_ok_span(traced, spans, ok_payload):
    client, _ = traced(lambda r: json_response(ok_payload, headers={"x-trace-id": "trace-1"}))

    result = await client.get_server_time()

    assert result.result.unixtime == 1688669448
    assert len(spans) == 1
    span = spans[0]
    assert span.name == "krakenspot.rest.get_server_time"
    assert span.status == STATUS_OK
    assert span.attributes["http.status_code"] == 200
    assert span.attributes["kraken.trace_id"] == "trace-1"
    assert span.duration_ms is not None


@pytest.mark.asyncio
async def test_exchange_errors_mark_span_as_error(traced, spans):
    client, _ = traced(lambda r: json_response({"error": ["EAPI:Rate limit exceeded"]}))

    result = await client.get_account_balance(nonce=1)

    assert result.error == ["EAPI:Rate limit exceeded"]
    call_span = spans[-1]
    assert call_span.name == "krakenspot.rest.get_account_balance"
    assert call_span.status == STATUS_ERROR
    assert call_span.attributes["kraken.errors"] == ["EAPI:Rate limit exceeded"]


@pytest.mark.asyncio
async def test_exceptions_pass_through_and_are_recorded(traced, spans, ok_payload):
    client, _ = traced(lambda r: json_response(ok_payload, status_code=503))

    with pytest.raises(UnexpectedStatusError) as exc_info:
        await client.get_server_time()

    assert exc_info.value.status_code == 503
    span = spans[-1]
    assert span.status == STATUS_ERROR
    assert span.attributes["http.status_code"] == 503
    assert span.events[0]["name"] == "exception"
    assert span.events[0]["exception_type"] == "UnexpectedStatusError"


@pytest.mark.asyncio
async def test_private_call_also_traces_authorize(traced, spans):
    client, _ = traced(lambda r: json_response({"error": [], "result": {"ZUSD": "1"}}))

    await client.get_account_balance(nonce=5)

    names = [s.name for s in spans]
    assert names == ["krakenspot.rest.authorize", "krakenspot.rest.get_account_balance"]
    authorize_span, call_span = spans
    assert authorize_span.parent_id == call_span.span_id
    assert authorize_span.attributes["path"] == "/0/private/Balance"
    assert call_span.attributes["nonce_provided"] is True


@pytest.mark.asyncio
async def test_call_arguments_are_recorded_without_secrets(traced, spans):
    client, _ = traced(lambda r: json_response({"error": [], "result": {"count": 2}}))

    await client.cancel_order_batch(["A", "B"], nonce=1)

    attrs = spans[-1].attributes
    assert attrs["order_ids"] == "A,B"
    assert attrs["operation"] == "cancel_order_batch"
    assert API_SECRET not in repr(attrs)


@pytest.mark.asyncio
async def test_results_are_returned_unchanged(make_client, ok_payload):
    plain, _ = make_client(lambda r: json_response(ok_payload))
    wrapped = InstrumentedKrakenRESTClient.wrap(plain, Tracer())

    result = await wrapped.get_server_time()

    assert type(result).__name__ == "GetServerTimeResponse"
    assert wrapped.inner is plain
    assert wrapped.base_url == plain.base_url


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_the_call(make_client, ok_payload):
    def broken(span):
        raise RuntimeError("listener down")

    client, _ = make_client(lambda r: json_response(ok_payload))
    wrapped = InstrumentedKrakenRESTClient.wrap(client, Tracer(listeners=[broken]))

    result = await wrapped.get_server_time()

    assert not result.has_errors


def test_wrap_does_not_double_instrument_authorizer(make_client):
    client, _ = make_client(lambda r: json_response({}))
    InstrumentedKrakenRESTClient.wrap(client)
    first = client.authorizer
    InstrumentedKrakenRESTClient.wrap(client)

    assert isinstance(first, InstrumentedAuthorizer)
    assert client.authorizer is first


def test_client_from_config_respects_tracing_flag():
    creds = {"api_key": "key", "api_secret": API_SECRET}

    plain = client_from_config(ClientConfig(credentials=creds))
    traced = client_from_config(ClientConfig(credentials=creds, tracing={"enabled": True}))

    assert isinstance(plain, KrakenRESTClient)
    assert isinstance(traced, InstrumentedKrakenRESTClient)
    assert isinstance(traced.inner.authorizer, InstrumentedAuthorizer)


def test_client_from_config_applies_logging_section(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "krakenspot.exchange.instrumentation.setup_logging",
        lambda **kwargs: calls.append(kwargs),
    )
    cfg = ClientConfig(logging={"log_level": "DEBUG", "json_output": True})

    client_from_config(cfg, configure_logging=True)
    client_from_config(cfg)

    assert calls == [{"log_level": "DEBUG", "log_dir": None, "json_output": True}]


def test_client_from_config_defaults_to_global_config(monkeypatch):
    cfg = ClientConfig(rest={"user_agent": "global-agent"}, tracing={"enabled": True})
    monkeypatch.setattr("krakenspot.exchange.instrumentation.get_config", lambda: cfg)

    client = client_from_config()

    assert isinstance(client, InstrumentedKrakenRESTClient)
    assert client.inner.user_agent == "global-agent"
