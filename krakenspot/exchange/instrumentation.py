"""
Instrumentation - Tracing decorators for the REST client and authorizer.

The wrappers expose the same methods as the objects they wrap and forward
every call unchanged. Around each call they open a span, bind its id in the
structlog context (so every log line emitted during the call carries it),
and record the outcome:

- HTTP status code and the ``x-trace-id`` response header when present
- error status when an exception propagated
- error status when the exchange answered with a non-empty ``error`` list
- duration

Finished spans are logged and handed to any registered span listeners.
"""

from __future__ import annotations

import inspect
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import httpx
import structlog

from krakenspot.core.config import ClientConfig, get_config
from krakenspot.core.logger import get_logger, setup_logging
from krakenspot.exchange.endpoints import ENDPOINTS
from krakenspot.exchange.kraken_auth import KrakenRESTAuthorizer
from krakenspot.exchange.kraken_rest import KrakenRESTClient

SPAN_PREFIX = "krakenspot.rest"
TRACE_ID_HEADER = "x-trace-id"

STATUS_UNSET = "unset"
STATUS_OK = "ok"
STATUS_ERROR = "error"

# Call arguments worth recording on a span. Credentials and the otp are
# never recorded; only the presence of a nonce is.
_TRACED_ARGS = (
    "pair", "pairs", "asset", "assets", "aclass", "info", "interval", "since",
    "count", "txid", "txids", "ids", "id", "report", "type", "method",
    "strategy_id", "order_ids", "timeout", "validate",
)


# ---------------------------------------------------------------------------
# Spans
# ---------------------------------------------------------------------------

@dataclass
class Span:
    name: str
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    parent_id: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    status: str = STATUS_UNSET
    status_message: str = ""
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    _start_perf: float = field(default_factory=time.perf_counter, repr=False)
    _duration_ms: Optional[float] = field(default=None, repr=False)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def add_event(self, name: str, **attributes: Any) -> None:
        self.events.append({"name": name, "timestamp": time.time(), **attributes})

    def record_exception(self, exc: BaseException) -> None:
        self.add_event(
            "exception",
            exception_type=type(exc).__name__,
            exception_message=str(exc),
        )

    def set_status(self, status: str, message: str = "") -> None:
        self.status = status
        self.status_message = message

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = time.time()
            self._duration_ms = (time.perf_counter() - self._start_perf) * 1000

    @property
    def duration_ms(self) -> Optional[float]:
        return self._duration_ms


SpanListener = Callable[[Span], None]


class Tracer:
    """Creates spans, logs them when they finish and notifies listeners."""

    def __init__(
        self,
        logger_name: str = "krakenspot.tracing",
        listeners: Optional[List[SpanListener]] = None,
    ):
        self.logger = get_logger(logger_name)
        self.listeners: List[SpanListener] = list(listeners or [])

    def add_listener(self, listener: SpanListener) -> None:
        self.listeners.append(listener)

    @contextmanager
    def start_span(self, name: str, **attributes: Any) -> Iterator[Span]:
        parent_id = structlog.contextvars.get_contextvars().get("span_id")
        span = Span(name=name, parent_id=parent_id, attributes=dict(attributes))
        with structlog.contextvars.bound_contextvars(span_id=span.span_id):
            try:
                yield span
            except BaseException as e:
                span.record_exception(e)
                span.set_status(STATUS_ERROR, str(e))
                raise
            finally:
                span.end()
                self._export(span)

    def _export(self, span: Span) -> None:
        level = "warning" if span.status == STATUS_ERROR else "debug"
        getattr(self.logger, level)(
            "span finished",
            span=span.name,
            span_id=span.span_id,
            parent_id=span.parent_id,
            status=span.status,
            status_message=span.status_message,
            duration_ms=round(span.duration_ms or 0.0, 2),
            attributes=span.attributes,
        )
        for listener in self.listeners:
            try:
                listener(span)
            except Exception as e:
                self.logger.warning("Span listener failed", error=str(e), span=span.name)


def _record_http_response(span: Span, response: Optional[httpx.Response]) -> None:
    if response is None:
        return
    span.set_attribute("http.status_code", response.status_code)
    trace_id = response.headers.get(TRACE_ID_HEADER)
    if trace_id:
        span.set_attribute("kraken.trace_id", trace_id)


def _traced_attributes(bound: Dict[str, Any]) -> Dict[str, Any]:
    attrs: Dict[str, Any] = {}
    for name in _TRACED_ARGS:
        value = bound.get(name)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        attrs[name] = value
    attrs["nonce_provided"] = bound.get("nonce") is not None
    attrs["second_factor"] = bound.get("security_options") is not None
    return attrs


# ---------------------------------------------------------------------------
# Decorators
# ---------------------------------------------------------------------------

class InstrumentedAuthorizer:
    """Traces ``authorize`` calls of a wrapped KrakenRESTAuthorizer."""

    def __init__(self, authorizer: KrakenRESTAuthorizer, tracer: Optional[Tracer] = None):
        self._inner = authorizer
        self.tracer = tracer or Tracer()

    def authorize(self, request: httpx.Request, nonce: int, path: str, body: Union[bytes, str]) -> httpx.Request:
        with self.tracer.start_span(f"{SPAN_PREFIX}.authorize", path=path, method=request.method):
            return self._inner.authorize(request, nonce, path, body)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)


class InstrumentedKrakenRESTClient:
    """
    Tracing decorator around KrakenRESTClient.

    Endpoint methods are wrapped with a span named
    ``krakenspot.rest.<operation>``; everything else is forwarded as is.
    Results and exceptions pass through untouched.
    """

    def __init__(self, client: KrakenRESTClient, tracer: Optional[Tracer] = None):
        self._inner = client
        self.tracer = tracer or Tracer()

    @classmethod
    def wrap(
        cls,
        client: KrakenRESTClient,
        tracer: Optional[Tracer] = None,
        instrument_authorizer: bool = True,
    ) -> InstrumentedKrakenRESTClient:
        """Instrument ``client`` and, optionally, its authorizer too."""
        tracer = tracer or Tracer()
        if instrument_authorizer and client.authorizer is not None:
            if not isinstance(client.authorizer, InstrumentedAuthorizer):
                client.authorizer = InstrumentedAuthorizer(client.authorizer, tracer)
        return cls(client, tracer)

    @property
    def inner(self) -> KrakenRESTClient:
        return self._inner

    async def __aenter__(self) -> InstrumentedKrakenRESTClient:
        await self._inner.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._inner.close()

    def __getattr__(self, name: str) -> Any:
        target = getattr(self._inner, name)
        if name not in ENDPOINTS:
            return target
        return self._traced(name, target)

    def _traced(self, name: str, method: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(method)
        tracer = self.tracer

        async def traced(*args: Any, **kwargs: Any) -> Any:
            try:
                bound = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                bound = dict(kwargs)
            with tracer.start_span(f"{SPAN_PREFIX}.{name}", operation=name) as span:
                for key, value in _traced_attributes(bound).items():
                    span.set_attribute(key, value)
                try:
                    result = await method(*args, **kwargs)
                except Exception as e:
                    _record_http_response(span, getattr(e, "response", None))
                    raise
                _record_http_response(span, getattr(result, "http_response", None))
                errors = getattr(result, "error", None)
                if errors:
                    span.set_attribute("kraken.errors", list(errors))
                    span.set_status(STATUS_ERROR, "; ".join(errors))
                else:
                    span.set_status(STATUS_OK)
                return result

        traced.__name__ = name
        traced.__doc__ = method.__doc__
        return traced


def client_from_config(
    config: Optional[ClientConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    listeners: Optional[List[SpanListener]] = None,
    configure_logging: bool = False,
) -> Union[KrakenRESTClient, InstrumentedKrakenRESTClient]:
    """
    Build a client from config, instrumented when tracing is enabled.

    Falls back to the global configuration when ``config`` is None. With
    ``configure_logging`` the process-wide structlog setup is applied from
    ``config.logging`` first, so it should only be used at application startup.
    """
    config = config or get_config()
    if configure_logging:
        setup_logging(
            log_level=config.logging.log_level,
            log_dir=config.logging.log_dir,
            json_output=config.logging.json_output,
        )
    client = KrakenRESTClient.from_config(config, http_client=http_client)
    if not config.tracing.enabled:
        return client
    tracer = Tracer(logger_name=config.tracing.logger_name, listeners=listeners)
    return InstrumentedKrakenRESTClient.wrap(client, tracer)
