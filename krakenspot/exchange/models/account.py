"""Account data payloads (private endpoints)."""

from __future__ import annotations

from typing import AsyncIterator, Dict, List, Optional

import httpx

from krakenspot.exchange.models.common import KrakenModel, KrakenNumber, KrakenResponse


class ExtendedBalance(KrakenModel):
    balance: KrakenNumber
    credit: Optional[KrakenNumber] = None
    credit_used: Optional[KrakenNumber] = None
    hold_trade: Optional[KrakenNumber] = None


class TradeBalance(KrakenModel):
    eb: Optional[KrakenNumber] = None  # equivalent balance
    tb: Optional[KrakenNumber] = None  # trade balance
    m: Optional[KrakenNumber] = None   # margin used by open positions
    uv: Optional[KrakenNumber] = None  # unexecuted value of open orders
    n: Optional[KrakenNumber] = None   # unrealized net P/L
    c: Optional[KrakenNumber] = None   # cost basis
    v: Optional[KrakenNumber] = None   # floating valuation
    e: Optional[KrakenNumber] = None   # equity
    mf: Optional[KrakenNumber] = None  # free margin
    ml: Optional[KrakenNumber] = None  # margin level


class OrderDescription(KrakenModel):
    pair: Optional[str] = None
    type: Optional[str] = None
    ordertype: Optional[str] = None
    price: Optional[KrakenNumber] = None
    price2: Optional[KrakenNumber] = None
    leverage: Optional[str] = None
    order: Optional[str] = None
    close: Optional[str] = None


class OrderInfo(KrakenModel):
    refid: Optional[str] = None
    userref: Optional[int] = None
    cl_ord_id: Optional[str] = None
    status: Optional[str] = None
    opentm: Optional[float] = None
    starttm: Optional[float] = None
    expiretm: Optional[float] = None
    closetm: Optional[float] = None
    descr: Optional[OrderDescription] = None
    vol: Optional[KrakenNumber] = None
    vol_exec: Optional[KrakenNumber] = None
    cost: Optional[KrakenNumber] = None
    fee: Optional[KrakenNumber] = None
    price: Optional[KrakenNumber] = None
    stopprice: Optional[KrakenNumber] = None
    limitprice: Optional[KrakenNumber] = None
    trigger: Optional[str] = None
    margin: Optional[bool] = None
    misc: Optional[str] = None
    oflags: Optional[str] = None
    reason: Optional[str] = None
    trades: Optional[List[str]] = None


class OpenOrdersResult(KrakenModel):
    open: Dict[str, OrderInfo] = {}


class ClosedOrdersResult(KrakenModel):
    closed: Dict[str, OrderInfo] = {}
    count: int = 0


class TradeInfo(KrakenModel):
    ordertxid: Optional[str] = None
    postxid: Optional[str] = None
    pair: Optional[str] = None
    time: Optional[float] = None
    type: Optional[str] = None
    ordertype: Optional[str] = None
    price: Optional[KrakenNumber] = None
    cost: Optional[KrakenNumber] = None
    fee: Optional[KrakenNumber] = None
    vol: Optional[KrakenNumber] = None
    margin: Optional[KrakenNumber] = None
    leverage: Optional[KrakenNumber] = None
    misc: Optional[str] = None
    ledgers: Optional[List[str]] = None
    trade_id: Optional[int] = None
    maker: Optional[bool] = None
    posstatus: Optional[str] = None
    cprice: Optional[KrakenNumber] = None
    ccost: Optional[KrakenNumber] = None
    cfee: Optional[KrakenNumber] = None
    cvol: Optional[KrakenNumber] = None
    cmargin: Optional[KrakenNumber] = None
    net: Optional[KrakenNumber] = None
    trades: Optional[List[str]] = None


class TradesHistoryResult(KrakenModel):
    trades: Dict[str, TradeInfo] = {}
    count: int = 0


class OpenPosition(KrakenModel):
    ordertxid: Optional[str] = None
    posstatus: Optional[str] = None
    pair: Optional[str] = None
    time: Optional[float] = None
    type: Optional[str] = None
    ordertype: Optional[str] = None
    cost: Optional[KrakenNumber] = None
    fee: Optional[KrakenNumber] = None
    vol: Optional[KrakenNumber] = None
    vol_closed: Optional[KrakenNumber] = None
    margin: Optional[KrakenNumber] = None
    value: Optional[KrakenNumber] = None
    net: Optional[KrakenNumber] = None
    terms: Optional[str] = None
    rollovertm: Optional[KrakenNumber] = None
    misc: Optional[str] = None
    oflags: Optional[str] = None


class LedgerEntry(KrakenModel):
    refid: Optional[str] = None
    time: Optional[float] = None
    type: Optional[str] = None
    subtype: Optional[str] = None
    aclass: Optional[str] = None
    asset: Optional[str] = None
    amount: Optional[KrakenNumber] = None
    fee: Optional[KrakenNumber] = None
    balance: Optional[KrakenNumber] = None


class LedgersInfoResult(KrakenModel):
    ledger: Dict[str, LedgerEntry] = {}
    count: Optional[int] = None


class FeeTierInfo(KrakenModel):
    fee: Optional[KrakenNumber] = None
    min_fee: Optional[KrakenNumber] = None
    max_fee: Optional[KrakenNumber] = None
    next_fee: Optional[KrakenNumber] = None
    tier_volume: Optional[KrakenNumber] = None
    next_volume: Optional[KrakenNumber] = None


class TradeVolume(KrakenModel):
    currency: str = ""
    volume: Optional[KrakenNumber] = None
    fees: Optional[Dict[str, FeeTierInfo]] = None
    fees_maker: Optional[Dict[str, FeeTierInfo]] = None


class RequestExportReportResult(KrakenModel):
    id: str


class ExportReportStatus(KrakenModel):
    id: str
    descr: Optional[str] = None
    format: Optional[str] = None
    report: Optional[str] = None
    subtype: Optional[str] = None
    status: Optional[str] = None
    flags: Optional[str] = None
    fields: Optional[str] = None
    createdtm: Optional[KrakenNumber] = None
    expiretm: Optional[KrakenNumber] = None
    starttm: Optional[KrakenNumber] = None
    completedtm: Optional[KrakenNumber] = None
    datastarttm: Optional[KrakenNumber] = None
    dataendtm: Optional[KrakenNumber] = None
    aclass: Optional[str] = None
    asset: Optional[str] = None


class DeleteExportReportResult(KrakenModel):
    delete: Optional[bool] = None
    cancel: Optional[bool] = None


class GetAccountBalanceResponse(KrakenResponse[Dict[str, KrakenNumber]]):
    pass


class GetExtendedBalanceResponse(KrakenResponse[Dict[str, ExtendedBalance]]):
    pass


class GetTradeBalanceResponse(KrakenResponse[TradeBalance]):
    pass


class GetOpenOrdersResponse(KrakenResponse[OpenOrdersResult]):
    pass


class GetClosedOrdersResponse(KrakenResponse[ClosedOrdersResult]):
    pass


class QueryOrdersInfoResponse(KrakenResponse[Dict[str, OrderInfo]]):
    pass


class GetTradesHistoryResponse(KrakenResponse[TradesHistoryResult]):
    pass


class QueryTradesInfoResponse(KrakenResponse[Dict[str, TradeInfo]]):
    pass


class GetOpenPositionsResponse(KrakenResponse[Dict[str, OpenPosition]]):
    pass


class GetLedgersInfoResponse(KrakenResponse[LedgersInfoResult]):
    pass


class QueryLedgersResponse(KrakenResponse[Dict[str, LedgerEntry]]):
    pass


class GetTradeVolumeResponse(KrakenResponse[TradeVolume]):
    pass


class RequestExportReportResponse(KrakenResponse[RequestExportReportResult]):
    pass


class GetExportReportStatusResponse(KrakenResponse[List[ExportReportStatus]]):
    pass


class DeleteExportReportResponse(KrakenResponse[DeleteExportReportResult]):
    pass


class RetrieveDataExportResponse:
    """Binary export download.

    ``report`` streams the archive straight off the live HTTP response. The
    body is left open for the caller, who must close it with ``aclose()``
    (or by using the object as an async context manager).

    When the exchange rejects the request it answers with a JSON envelope
    instead; ``error`` then holds its messages and the body is already closed.
    """

    def __init__(self, http_response: httpx.Response, error: Optional[List[str]] = None):
        self.http_response = http_response
        self.error: List[str] = list(error or [])

    @property
    def has_errors(self) -> bool:
        return bool(self.error)

    @property
    def content_type(self) -> str:
        return self.http_response.headers.get("content-type", "")

    @property
    def report(self) -> AsyncIterator[bytes]:
        return self.http_response.aiter_bytes()

    async def read(self) -> bytes:
        """Read the whole archive into memory and close the body."""
        try:
            return await self.http_response.aread()
        finally:
            await self.http_response.aclose()

    async def aclose(self) -> None:
        await self.http_response.aclose()

    async def __aenter__(self) -> RetrieveDataExportResponse:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
