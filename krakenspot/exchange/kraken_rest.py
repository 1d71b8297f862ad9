"""
Kraken REST Client - Async client for the Kraken spot REST API.

Every operation goes through the same pipeline:

    endpoint method -> build_request (+ authorizer for private calls)
                    -> execute (send, status gate, content-type branch)
                    -> decoded envelope, or a live binary stream

Transport and protocol failures raise typed KrakenError subclasses.
Errors reported by the exchange stay in the envelope's ``error`` list.
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from krakenspot.core.config import (
    DEFAULT_API_VERSION,
    DEFAULT_REST_URL,
    DEFAULT_USER_AGENT,
    ClientConfig,
)
from krakenspot.core.logger import get_logger, log_performance
from krakenspot.exchange.endpoints import ENDPOINTS, FORM_CONTENT_TYPE, Endpoint
from krakenspot.exchange.exceptions import (
    ConfigurationError,
    ContentTypeParseError,
    ContextExpiredError,
    JSONDecodeError,
    KrakenError,
    MalformedRequestError,
    TransportError,
    UnexpectedContentTypeError,
    UnexpectedStatusError,
)
from krakenspot.exchange.kraken_auth import KrakenRESTAuthorizer
from krakenspot.exchange.models.account import (
    DeleteExportReportResponse,
    GetAccountBalanceResponse,
    GetClosedOrdersResponse,
    GetExportReportStatusResponse,
    GetExtendedBalanceResponse,
    GetLedgersInfoResponse,
    GetOpenOrdersResponse,
    GetOpenPositionsResponse,
    GetTradeBalanceResponse,
    GetTradesHistoryResponse,
    GetTradeVolumeResponse,
    QueryLedgersResponse,
    QueryOrdersInfoResponse,
    QueryTradesInfoResponse,
    RequestExportReportResponse,
    RetrieveDataExportResponse,
)
from krakenspot.exchange.models.common import KrakenResponse, SecurityOptions
from krakenspot.exchange.models.earn import (
    AllocateEarnFundsResponse,
    DeallocateEarnFundsResponse,
    GetAllocationStatusResponse,
    GetDeallocationStatusResponse,
    ListEarnAllocationsResponse,
    ListEarnStrategiesResponse,
)
from krakenspot.exchange.models.funding import (
    GetDepositAddressesResponse,
    GetDepositMethodsResponse,
    GetStatusOfRecentDepositsResponse,
    GetStatusOfRecentWithdrawalsResponse,
    GetWithdrawalAddressesResponse,
    GetWithdrawalInformationResponse,
    GetWithdrawalMethodsResponse,
    RequestWalletTransferResponse,
    RequestWithdrawalCancellationResponse,
    WithdrawFundsResponse,
)
from krakenspot.exchange.models.market import (
    GetAssetInfoResponse,
    GetOHLCDataResponse,
    GetOrderBookResponse,
    GetRecentSpreadsResponse,
    GetRecentTradesResponse,
    GetServerTimeResponse,
    GetSystemStatusResponse,
    GetTickerInformationResponse,
    GetTradableAssetPairsResponse,
)
from krakenspot.exchange.models.trading import (
    AddOrderBatchResponse,
    AddOrderResponse,
    CancelAllOrdersAfterXResponse,
    CancelAllOrdersResponse,
    CancelOrderBatchResponse,
    CancelOrderResponse,
    EditOrderResponse,
    OrderData,
)
from krakenspot.exchange.models.websocket import GetWebsocketTokenResponse
from krakenspot.exchange.nonce import HFNonceGenerator, NonceGenerator
from krakenspot.exchange.request_context import RequestContext

logger = get_logger("kraken_rest")

FormItems = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]

BINARY_CONTENT_TYPES = frozenset({"application/octet-stream", "application/zip"})
JSON_CONTENT_TYPE = "application/json"

# RFC 7230 token, used for both HTTP methods and media type parts.
_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_METHOD_RE = re.compile(_TOKEN)
_MEDIA_TYPE_RE = re.compile(rf"^\s*({_TOKEN})/({_TOKEN})\s*(.*)$")
_MEDIA_PARAM_RE = re.compile(rf'^;\s*({_TOKEN})=({_TOKEN}|"(?:[^"\\]|\\.)*")\s*')


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------

def format_value(value: Any) -> str:
    """Render one parameter the way the API expects it on the wire."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value.utcoffset().total_seconds() == 0:
            return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return value.isoformat(timespec="seconds")
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(format_value(v) for v in value)
    return str(value)


def _items(params: Optional[FormItems]) -> List[Tuple[str, str]]:
    if not params:
        return []
    pairs = params.items() if isinstance(params, Mapping) else params
    return [(k, format_value(v)) for k, v in pairs if v is not None]


def encode_form(params: Optional[FormItems]) -> str:
    """URL-encode parameters with keys sorted; repeated keys keep their order."""
    return urlencode(sorted(_items(params), key=lambda kv: kv[0]))


def parse_media_type(value: str) -> Tuple[str, Dict[str, str]]:
    """Split a Content-Type value into a lowercase media type and its params.

    Raises ValueError when the value is not a valid media type.
    """
    match = _MEDIA_TYPE_RE.match(value or "")
    if not match:
        raise ValueError(f"invalid media type {value!r}")
    media_type = f"{match.group(1)}/{match.group(2)}".lower()
    rest = match.group(3).strip()
    params: Dict[str, str] = {}
    while rest:
        if rest == ";":
            break
        pm = _MEDIA_PARAM_RE.match(rest)
        if not pm:
            raise ValueError(f"invalid media type parameter in {value!r}")
        raw = pm.group(2)
        if raw.startswith('"'):
            raw = re.sub(r"\\(.)", r"\1", raw[1:-1])
        params[pm.group(1).lower()] = raw
        rest = rest[pm.end():]
    return media_type, params


def _params(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop unset values (None, empty strings, empty sequences)."""
    out = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, (str, list, tuple)) and len(value) == 0:
            continue
        out[key] = value
    return out


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class KrakenRESTClient:
    """
    Async Kraken spot REST client.

    ``authorizer`` may be None when only public endpoints are used; calling
    a private endpoint without one raises ConfigurationError. Retries are
    left to the underlying httpx transport.
    """

    def __init__(
        self,
        authorizer: Optional[KrakenRESTAuthorizer] = None,
        *,
        base_url: str = DEFAULT_REST_URL,
        api_version: str = DEFAULT_API_VERSION,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = 20.0,
        max_retries: int = 3,
        nonce_generator: Optional[NonceGenerator] = None,
        security_options: Optional[SecurityOptions] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.authorizer = authorizer
        self.base_url = (base_url or DEFAULT_REST_URL).rstrip("/")
        self.api_version = (api_version or "").strip("/")
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.timeout_seconds = float(timeout_seconds)
        self.max_retries = int(max_retries)
        self.nonce_generator = nonce_generator or HFNonceGenerator()
        self.security_options = security_options
        self._client: httpx.AsyncClient | None = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> KrakenRESTClient:
        """Create a client from a validated ClientConfig."""
        creds = config.credentials
        authorizer = None
        if creds.enabled:
            authorizer = KrakenRESTAuthorizer(creds.api_key, creds.api_secret)
        secopts = SecurityOptions(second_factor=creds.otp) if creds.otp else None
        return cls(
            authorizer,
            base_url=config.rest.base_url,
            api_version=config.rest.api_version,
            user_agent=config.rest.user_agent,
            timeout_seconds=config.rest.timeout_seconds,
            max_retries=config.rest.max_retries,
            security_options=secopts,
            http_client=http_client,
        )

    async def initialize(self) -> None:
        if self._client is None:
            transport = httpx.AsyncHTTPTransport(retries=self.max_retries)
            self._client = httpx.AsyncClient(
                transport=transport,
                timeout=self.timeout_seconds,
            )
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> KrakenRESTClient:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def build_request(
        self,
        path: str,
        method: str = "GET",
        *,
        content_type: str = "",
        query: Optional[FormItems] = None,
        body: Union[bytes, str, FormItems, None] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> httpx.Request:
        """
        Assemble a request for ``path`` (relative to the API version).

        When ``nonce`` is given the call is private: the nonce and the
        optional ``otp`` are added to the form body, which is then signed.
        No network I/O happens here.
        """
        if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
            raise MalformedRequestError(f"invalid HTTP method {method!r}")
        if not path.startswith("/"):
            raise MalformedRequestError(f"path must start with '/': {path!r}")

        private = nonce is not None
        if private:
            if self.authorizer is None:
                raise ConfigurationError(f"private endpoint {path} requires an authorizer")
            if isinstance(body, (bytes, str)):
                raise MalformedRequestError("private requests take form items, not an encoded body")
            form = [("nonce", str(nonce))]
            if security_options is not None and security_options.second_factor:
                form.append(("otp", security_options.second_factor))
            form.extend(_items(body))
            content = encode_form(form).encode("utf-8")
            content_type = content_type or FORM_CONTENT_TYPE
        elif body is None:
            content = b""
        elif isinstance(body, bytes):
            content = body
        elif isinstance(body, str):
            content = body.encode("utf-8")
        else:
            content = encode_form(body).encode("utf-8")

        if content and not content_type:
            raise MalformedRequestError("a request body requires a content type")

        url = self.base_url
        if self.api_version:
            url += "/" + self.api_version
        url += path
        encoded_query = encode_form(query)
        if encoded_query:
            url += "?" + encoded_query

        headers = {"User-Agent": self.user_agent}
        if content_type:
            headers["Content-Type"] = content_type

        try:
            request = httpx.Request(
                method.upper(),
                url,
                headers=headers,
                content=content or None,
                extensions={"timeout": self._timeout_for(ctx).as_dict()},
            )
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise MalformedRequestError(f"cannot build request for {url}: {e}") from e

        if private:
            self.authorizer.authorize(request, nonce, request.url.path, content)

        logger.debug(
            "Kraken request built",
            method=request.method, path=request.url.path, private=private,
        )
        return request

    def _timeout_for(self, ctx: Optional[RequestContext]) -> httpx.Timeout:
        timeout = self.timeout_seconds
        if ctx is not None:
            remaining = ctx.remaining()
            if remaining is not None:
                timeout = max(0.001, min(timeout, remaining))
        return httpx.Timeout(timeout)

    # ------------------------------------------------------------------
    # Request execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        request: httpx.Request,
        receiver: Optional[Type[KrakenResponse]] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Union[KrakenResponse, httpx.Response]:
        """
        Send ``request`` and decode the answer.

        Returns the decoded ``receiver`` envelope for JSON bodies (body
        closed), or the raw response with its body still open for
        octet-stream / zip bodies. The caller owns and must close that stream.
        """
        ctx = ctx or RequestContext.background()
        if ctx.expired:
            raise ContextExpiredError("request context expired before sending")

        if self._client is None:
            await self.initialize()

        response = await self._send(request, ctx)

        if response.status_code != 200:
            try:
                await response.aread()
            except httpx.HTTPError as e:
                logger.debug("Could not read error body", error=str(e))
            finally:
                await response.aclose()
            logger.warning(
                "Kraken unexpected status",
                status=response.status_code, path=request.url.path,
            )
            raise UnexpectedStatusError(
                f"unexpected status code {response.status_code} from {request.url.path}",
                status_code=response.status_code,
                response=response,
            )

        raw_content_type = response.headers.get("content-type", "")
        try:
            media_type, _ = parse_media_type(raw_content_type)
        except ValueError as e:
            await response.aclose()
            raise ContentTypeParseError(
                f"could not parse Content-Type {raw_content_type!r}: {e}",
                response=response,
            ) from e

        if media_type in BINARY_CONTENT_TYPES:
            logger.debug("Kraken binary response", content_type=media_type)
            return response

        if media_type != JSON_CONTENT_TYPE:
            await response.aclose()
            raise UnexpectedContentTypeError(
                f"response Content-Type is {media_type} but only application/json, "
                f"application/octet-stream or application/zip are expected",
                content_type=media_type,
                response=response,
            )

        try:
            return await self._decode_json(response, receiver or KrakenResponse)
        finally:
            await response.aclose()

    async def _send(self, request: httpx.Request, ctx: RequestContext) -> httpx.Response:
        """Send through the transport, racing the context's cancel and deadline."""
        send = asyncio.ensure_future(self._client.send(request, stream=True))
        cancelled = asyncio.ensure_future(ctx.wait_cancelled())
        try:
            done, _ = await asyncio.wait(
                {send, cancelled},
                timeout=ctx.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            send.cancel()
            raise
        finally:
            cancelled.cancel()

        if send not in done:
            send.cancel()
            try:
                late = await send
            except (asyncio.CancelledError, httpx.HTTPError):
                pass
            else:
                await late.aclose()
            raise ContextExpiredError("request context expired while waiting for a response")

        try:
            return send.result()
        except httpx.TimeoutException as e:
            if ctx.expired:
                raise ContextExpiredError(f"request deadline exceeded: {e}") from e
            raise TransportError(f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"failed to send request: {e}") from e

    async def _decode_json(
        self,
        response: httpx.Response,
        receiver: Type[KrakenResponse],
    ) -> KrakenResponse:
        try:
            raw = await response.aread()
        except httpx.HTTPError as e:
            raise TransportError(f"failed to read response body: {e}", response=response) from e
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise JSONDecodeError(
                f"malformed JSON in response: {e}",
                kind=JSONDecodeError.SYNTAX, response=response,
            ) from e
        try:
            envelope = receiver.model_validate(payload)
        except ValidationError as e:
            raise JSONDecodeError(
                f"JSON response does not match {receiver.__name__}: {e}",
                kind=JSONDecodeError.TYPE, response=response,
            ) from e
        envelope.attach_http_response(response)
        return envelope

    # ------------------------------------------------------------------
    # Generic call helper
    # ------------------------------------------------------------------

    async def _call(
        self,
        endpoint: Endpoint,
        params: Optional[FormItems] = None,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Any:
        ctx = ctx or RequestContext.background()
        with log_performance(logger, "Kraken call", endpoint=endpoint.name):
            try:
                if endpoint.private:
                    if nonce is None:
                        nonce = self.nonce_generator.generate_nonce()
                    request = self.build_request(
                        endpoint.path,
                        endpoint.method,
                        content_type=endpoint.content_type,
                        body=params,
                        nonce=nonce,
                        security_options=security_options or self.security_options,
                        ctx=ctx,
                    )
                else:
                    request = self.build_request(endpoint.path, endpoint.method, query=params, ctx=ctx)
                result = await self.execute(request, endpoint.response_model, ctx=ctx)
                if not endpoint.binary and isinstance(result, httpx.Response):
                    await result.aclose()
                    media_type = result.headers.get("content-type", "")
                    raise UnexpectedContentTypeError(
                        f"{endpoint.name} expects application/json but got {media_type}",
                        content_type=parse_media_type(media_type)[0],
                        response=result,
                    )
            except KrakenError as e:
                e.operation = e.operation or endpoint.name
                raise

        if endpoint.binary:
            if isinstance(result, KrakenResponse):
                return RetrieveDataExportResponse(result.http_response, error=result.error)
            return RetrieveDataExportResponse(result)

        if result.has_errors:
            logger.info("Kraken API returned errors", operation=endpoint.name, errors=result.error)
        return result

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def get_server_time(self, *, ctx: Optional[RequestContext] = None) -> GetServerTimeResponse:
        return await self._call(ENDPOINTS["get_server_time"], ctx=ctx)

    async def get_system_status(self, *, ctx: Optional[RequestContext] = None) -> GetSystemStatusResponse:
        return await self._call(ENDPOINTS["get_system_status"], ctx=ctx)

    async def get_asset_info(
        self,
        *,
        assets: Optional[Sequence[str]] = None,
        aclass: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetAssetInfoResponse:
        params = _params({"asset": assets, "aclass": aclass})
        return await self._call(ENDPOINTS["get_asset_info"], params, ctx=ctx)

    async def get_tradable_asset_pairs(
        self,
        *,
        pairs: Optional[Sequence[str]] = None,
        info: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetTradableAssetPairsResponse:
        """``info`` is one of info, leverage, fees, margin."""
        params = _params({"pair": pairs, "info": info})
        return await self._call(ENDPOINTS["get_tradable_asset_pairs"], params, ctx=ctx)

    async def get_ticker_information(
        self,
        *,
        pairs: Optional[Sequence[str]] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetTickerInformationResponse:
        params = _params({"pair": pairs})
        return await self._call(ENDPOINTS["get_ticker_information"], params, ctx=ctx)

    async def get_ohlc_data(
        self,
        pair: str,
        *,
        interval: Optional[int] = None,
        since: Optional[int] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetOHLCDataResponse:
        """``interval`` is in minutes (1, 5, 15, 30, 60, 240, 1440, 10080, 21600)."""
        params = _params({"pair": pair, "interval": interval, "since": since})
        return await self._call(ENDPOINTS["get_ohlc_data"], params, ctx=ctx)

    async def get_order_book(
        self,
        pair: str,
        *,
        count: Optional[int] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetOrderBookResponse:
        params = _params({"pair": pair, "count": count})
        return await self._call(ENDPOINTS["get_order_book"], params, ctx=ctx)

    async def get_recent_trades(
        self,
        pair: str,
        *,
        since: Optional[int] = None,
        count: Optional[int] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetRecentTradesResponse:
        params = _params({"pair": pair, "since": since, "count": count})
        return await self._call(ENDPOINTS["get_recent_trades"], params, ctx=ctx)

    async def get_recent_spreads(
        self,
        pair: str,
        *,
        since: Optional[int] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetRecentSpreadsResponse:
        params = _params({"pair": pair, "since": since})
        return await self._call(ENDPOINTS["get_recent_spreads"], params, ctx=ctx)

    # ------------------------------------------------------------------
    # Account data
    # ------------------------------------------------------------------

    async def get_account_balance(
        self,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetAccountBalanceResponse:
        return await self._call(
            ENDPOINTS["get_account_balance"],
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_extended_balance(
        self,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetExtendedBalanceResponse:
        return await self._call(
            ENDPOINTS["get_extended_balance"],
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_trade_balance(
        self,
        *,
        asset: Optional[str] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetTradeBalanceResponse:
        return await self._call(
            ENDPOINTS["get_trade_balance"], _params({"asset": asset}),
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_open_orders(
        self,
        *,
        trades: Optional[bool] = None,
        userref: Optional[int] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetOpenOrdersResponse:
        params = _params({"trades": trades, "userref": userref})
        return await self._call(
            ENDPOINTS["get_open_orders"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_closed_orders(
        self,
        *,
        trades: Optional[bool] = None,
        userref: Optional[int] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        ofs: Optional[int] = None,
        closetime: Optional[str] = None,
        consolidate_taker: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetClosedOrdersResponse:
        """``start``/``end`` are UNIX timestamps or order transaction ids."""
        params = _params({
            "trades": trades,
            "userref": userref,
            "start": start,
            "end": end,
            "ofs": ofs,
            "closetime": closetime,
            "consolidate_taker": consolidate_taker,
        })
        return await self._call(
            ENDPOINTS["get_closed_orders"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def query_orders_info(
        self,
        txids: Sequence[str],
        *,
        trades: Optional[bool] = None,
        userref: Optional[int] = None,
        consolidate_taker: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> QueryOrdersInfoResponse:
        params = _params({
            "txid": list(txids),
            "trades": trades,
            "userref": userref,
            "consolidate_taker": consolidate_taker,
        })
        return await self._call(
            ENDPOINTS["query_orders_info"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_trades_history(
        self,
        *,
        type: Optional[str] = None,
        trades: Optional[bool] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        ofs: Optional[int] = None,
        consolidate_taker: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetTradesHistoryResponse:
        params = _params({
            "type": type,
            "trades": trades,
            "start": start,
            "end": end,
            "ofs": ofs,
            "consolidate_taker": consolidate_taker,
        })
        return await self._call(
            ENDPOINTS["get_trades_history"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def query_trades_info(
        self,
        txids: Sequence[str],
        *,
        trades: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> QueryTradesInfoResponse:
        params = _params({"txid": list(txids), "trades": trades})
        return await self._call(
            ENDPOINTS["query_trades_info"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_open_positions(
        self,
        *,
        txids: Optional[Sequence[str]] = None,
        docalcs: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetOpenPositionsResponse:
        params = _params({"txid": txids, "docalcs": docalcs})
        return await self._call(
            ENDPOINTS["get_open_positions"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_ledgers_info(
        self,
        *,
        assets: Optional[Sequence[str]] = None,
        aclass: Optional[str] = None,
        type: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        ofs: Optional[int] = None,
        without_count: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetLedgersInfoResponse:
        params = _params({
            "asset": assets,
            "aclass": aclass,
            "type": type,
            "start": start,
            "end": end,
            "ofs": ofs,
            "without_count": without_count,
        })
        return await self._call(
            ENDPOINTS["get_ledgers_info"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def query_ledgers(
        self,
        ids: Sequence[str],
        *,
        trades: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> QueryLedgersResponse:
        params = _params({"id": list(ids), "trades": trades})
        return await self._call(
            ENDPOINTS["query_ledgers"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_trade_volume(
        self,
        *,
        pairs: Optional[Sequence[str]] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetTradeVolumeResponse:
        return await self._call(
            ENDPOINTS["get_trade_volume"], _params({"pair": pairs}),
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def request_export_report(
        self,
        report: str,
        description: str,
        *,
        format: Optional[str] = None,
        fields: Optional[Sequence[str]] = None,
        starttm: Optional[int] = None,
        endtm: Optional[int] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> RequestExportReportResponse:
        """``report`` is trades or ledgers; ``format`` is CSV or TSV."""
        params = _params({
            "report": report,
            "description": description,
            "format": format,
            "fields": fields,
            "starttm": starttm,
            "endtm": endtm,
        })
        return await self._call(
            ENDPOINTS["request_export_report"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_export_report_status(
        self,
        report: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetExportReportStatusResponse:
        return await self._call(
            ENDPOINTS["get_export_report_status"], {"report": report},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def retrieve_data_export(
        self,
        id: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> RetrieveDataExportResponse:
        """
        Download a processed export as a zip archive.

        The returned object holds the live response body; read it through
        ``report`` or ``read()`` and close it with ``aclose()``.
        """
        return await self._call(
            ENDPOINTS["retrieve_data_export"], {"id": id},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def delete_export_report(
        self,
        id: str,
        type: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> DeleteExportReportResponse:
        """``type`` is delete (processed report) or cancel (queued report)."""
        return await self._call(
            ENDPOINTS["delete_export_report"], {"id": id, "type": type},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def add_order(
        self,
        pair: str,
        order: OrderData,
        *,
        deadline: Optional[datetime] = None,
        validate: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> AddOrderResponse:
        params: List[Tuple[str, Any]] = [("pair", pair)]
        params.extend(order.form_fields())
        params.extend(_params({"deadline": deadline, "validate": validate}).items())
        return await self._call(
            ENDPOINTS["add_order"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def add_order_batch(
        self,
        pair: str,
        orders: Iterable[OrderData],
        *,
        deadline: Optional[datetime] = None,
        validate: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> AddOrderBatchResponse:
        """Place 2 to 15 orders on one pair; fields are sent as ``orders[i][field]``."""
        params: List[Tuple[str, Any]] = [("pair", pair)]
        for index, order in enumerate(orders):
            params.extend(order.form_fields(prefix=f"orders[{index}]"))
        params.extend(_params({"deadline": deadline, "validate": validate}).items())
        return await self._call(
            ENDPOINTS["add_order_batch"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def edit_order(
        self,
        txid: str,
        pair: str,
        *,
        userref: Optional[str] = None,
        volume: Optional[str] = None,
        displayvol: Optional[str] = None,
        price: Optional[str] = None,
        price2: Optional[str] = None,
        oflags: Optional[Sequence[str]] = None,
        deadline: Optional[datetime] = None,
        cancel_response: Optional[bool] = None,
        validate: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> EditOrderResponse:
        params = _params({
            "txid": txid,
            "pair": pair,
            "userref": userref,
            "volume": volume,
            "displayvol": displayvol,
            "price": price,
            "price2": price2,
            "oflags": oflags,
            "deadline": deadline,
            "cancel_response": cancel_response,
            "validate": validate,
        })
        return await self._call(
            ENDPOINTS["edit_order"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def cancel_order(
        self,
        txid: Union[str, int],
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> CancelOrderResponse:
        """``txid`` is an order transaction id or a user reference."""
        return await self._call(
            ENDPOINTS["cancel_order"], {"txid": txid},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def cancel_all_orders(
        self,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> CancelAllOrdersResponse:
        return await self._call(
            ENDPOINTS["cancel_all_orders"],
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def cancel_all_orders_after_x(
        self,
        timeout: int,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> CancelAllOrdersAfterXResponse:
        """Dead man's switch: cancel everything after ``timeout`` seconds, 0 disarms."""
        return await self._call(
            ENDPOINTS["cancel_all_orders_after_x"], {"timeout": int(timeout)},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def cancel_order_batch(
        self,
        order_ids: Sequence[str],
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> CancelOrderBatchResponse:
        return await self._call(
            ENDPOINTS["cancel_order_batch"], {"orders": list(order_ids)},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    async def get_deposit_methods(
        self,
        asset: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetDepositMethodsResponse:
        return await self._call(
            ENDPOINTS["get_deposit_methods"], {"asset": asset},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_deposit_addresses(
        self,
        asset: str,
        method: str,
        *,
        new: Optional[bool] = None,
        amount: Optional[str] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetDepositAddressesResponse:
        params = _params({"asset": asset, "method": method, "new": new, "amount": amount})
        return await self._call(
            ENDPOINTS["get_deposit_addresses"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_status_of_recent_deposits(
        self,
        *,
        asset: Optional[str] = None,
        method: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        cursor: Union[bool, str] = True,
        limit: Optional[int] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetStatusOfRecentDepositsResponse:
        """Paginated: pass the previous ``next_cursor`` as ``cursor`` to continue."""
        params = _params({
            "asset": asset,
            "method": method,
            "start": start,
            "end": end,
            "cursor": cursor,
            "limit": limit,
        })
        return await self._call(
            ENDPOINTS["get_status_of_recent_deposits"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_withdrawal_methods(
        self,
        *,
        asset: Optional[str] = None,
        network: Optional[str] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetWithdrawalMethodsResponse:
        return await self._call(
            ENDPOINTS["get_withdrawal_methods"], _params({"asset": asset, "network": network}),
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_withdrawal_addresses(
        self,
        *,
        asset: Optional[str] = None,
        method: Optional[str] = None,
        key: Optional[str] = None,
        verified: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetWithdrawalAddressesResponse:
        params = _params({"asset": asset, "method": method, "key": key, "verified": verified})
        return await self._call(
            ENDPOINTS["get_withdrawal_addresses"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_withdrawal_information(
        self,
        asset: str,
        key: str,
        amount: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetWithdrawalInformationResponse:
        return await self._call(
            ENDPOINTS["get_withdrawal_information"],
            {"asset": asset, "key": key, "amount": amount},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def withdraw_funds(
        self,
        asset: str,
        key: str,
        amount: str,
        *,
        address: Optional[str] = None,
        max_fee: Optional[str] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> WithdrawFundsResponse:
        params = _params({
            "asset": asset,
            "key": key,
            "amount": amount,
            "address": address,
            "max_fee": max_fee,
        })
        return await self._call(
            ENDPOINTS["withdraw_funds"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_status_of_recent_withdrawals(
        self,
        *,
        asset: Optional[str] = None,
        method: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetStatusOfRecentWithdrawalsResponse:
        # Pagination stays off so the result is always a plain list.
        params = _params({
            "asset": asset,
            "method": method,
            "start": start,
            "end": end,
            "cursor": False,
        })
        return await self._call(
            ENDPOINTS["get_status_of_recent_withdrawals"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def request_withdrawal_cancellation(
        self,
        asset: str,
        refid: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> RequestWithdrawalCancellationResponse:
        return await self._call(
            ENDPOINTS["request_withdrawal_cancellation"], {"asset": asset, "refid": refid},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def request_wallet_transfer(
        self,
        asset: str,
        from_wallet: str,
        to_wallet: str,
        amount: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> RequestWalletTransferResponse:
        """Move funds between wallets, e.g. "Spot Wallet" to "Futures Wallet"."""
        params = {"asset": asset, "from": from_wallet, "to": to_wallet, "amount": amount}
        return await self._call(
            ENDPOINTS["request_wallet_transfer"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    # ------------------------------------------------------------------
    # Earn
    # ------------------------------------------------------------------

    async def allocate_earn_funds(
        self,
        strategy_id: str,
        amount: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> AllocateEarnFundsResponse:
        return await self._call(
            ENDPOINTS["allocate_earn_funds"], {"strategy_id": strategy_id, "amount": amount},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def deallocate_earn_funds(
        self,
        strategy_id: str,
        amount: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> DeallocateEarnFundsResponse:
        return await self._call(
            ENDPOINTS["deallocate_earn_funds"], {"strategy_id": strategy_id, "amount": amount},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_allocation_status(
        self,
        strategy_id: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetAllocationStatusResponse:
        return await self._call(
            ENDPOINTS["get_allocation_status"], {"strategy_id": strategy_id},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def get_deallocation_status(
        self,
        strategy_id: str,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetDeallocationStatusResponse:
        return await self._call(
            ENDPOINTS["get_deallocation_status"], {"strategy_id": strategy_id},
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def list_earn_strategies(
        self,
        *,
        ascending: Optional[bool] = None,
        asset: Optional[str] = None,
        cursor: Union[bool, str] = True,
        limit: Optional[int] = None,
        lock_types: Optional[Sequence[str]] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> ListEarnStrategiesResponse:
        params: List[Tuple[str, Any]] = list(_params({
            "ascending": ascending,
            "asset": asset,
            "cursor": cursor,
            "limit": limit,
        }).items())
        for index, lock_type in enumerate(lock_types or ()):
            params.append((f"lock_type[{index}]", lock_type))
        return await self._call(
            ENDPOINTS["list_earn_strategies"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    async def list_earn_allocations(
        self,
        *,
        ascending: Optional[bool] = None,
        converted_asset: Optional[str] = None,
        hide_zero_allocations: Optional[bool] = None,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> ListEarnAllocationsResponse:
        params = _params({
            "ascending": ascending,
            "converted_asset": converted_asset,
            "hide_zero_allocations": hide_zero_allocations,
        })
        return await self._call(
            ENDPOINTS["list_earn_allocations"], params,
            nonce=nonce, security_options=security_options, ctx=ctx,
        )

    # ------------------------------------------------------------------
    # Websocket
    # ------------------------------------------------------------------

    async def get_websocket_token(
        self,
        *,
        nonce: Optional[int] = None,
        security_options: Optional[SecurityOptions] = None,
        ctx: Optional[RequestContext] = None,
    ) -> GetWebsocketTokenResponse:
        """Token for authenticated websocket feeds, valid 15 minutes until first use."""
        return await self._call(
            ENDPOINTS["get_websocket_token"],
            nonce=nonce, security_options=security_options, ctx=ctx,
        )
