"""Market data payloads (public endpoints)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from krakenspot.exchange.models.common import KrakenModel, KrakenNumber, KrakenResponse


class ServerTime(KrakenModel):
    unixtime: int
    rfc1123: str


class SystemStatus(KrakenModel):
    # online | maintenance | cancel_only | post_only
    status: str
    timestamp: str


class AssetInfo(KrakenModel):
    aclass: str = ""
    altname: str = ""
    decimals: int = 0
    display_decimals: int = 0
    collateral_value: Optional[KrakenNumber] = None
    status: Optional[str] = None


class AssetPair(KrakenModel):
    """Tradable pair. Fields depend on the ``info`` level requested."""

    altname: Optional[str] = None
    wsname: Optional[str] = None
    aclass_base: Optional[str] = None
    base: Optional[str] = None
    aclass_quote: Optional[str] = None
    quote: Optional[str] = None
    pair_decimals: Optional[int] = None
    cost_decimals: Optional[int] = None
    lot_decimals: Optional[int] = None
    lot_multiplier: Optional[int] = None
    leverage_buy: Optional[List[int]] = None
    leverage_sell: Optional[List[int]] = None
    fees: Optional[List[List[KrakenNumber]]] = None
    fees_maker: Optional[List[List[KrakenNumber]]] = None
    fee_volume_currency: Optional[str] = None
    margin_call: Optional[int] = None
    margin_stop: Optional[int] = None
    ordermin: Optional[KrakenNumber] = None
    costmin: Optional[KrakenNumber] = None
    tick_size: Optional[KrakenNumber] = None
    status: Optional[str] = None


class TickerInfo(KrakenModel):
    """Ticker for one pair.

    a/b: [price, whole lot volume, lot volume]
    c: [price, lot volume]
    v/p/t/l/h: [today, last 24 hours]
    o: today's opening price
    """

    a: List[KrakenNumber] = []
    b: List[KrakenNumber] = []
    c: List[KrakenNumber] = []
    v: List[KrakenNumber] = []
    p: List[KrakenNumber] = []
    t: List[int] = []
    l: List[KrakenNumber] = []  # noqa: E741
    h: List[KrakenNumber] = []
    o: Optional[KrakenNumber] = None

    @property
    def ask(self) -> Optional[str]:
        return self.a[0] if self.a else None

    @property
    def bid(self) -> Optional[str]:
        return self.b[0] if self.b else None

    @property
    def last(self) -> Optional[str]:
        return self.c[0] if self.c else None


class OHLCTick(KrakenModel):
    time: int
    open: KrakenNumber
    high: KrakenNumber
    low: KrakenNumber
    close: KrakenNumber
    vwap: KrakenNumber
    volume: KrakenNumber
    count: int


class _PairKeyedResult(KrakenModel):
    """Result keyed by pair name plus a ``last`` cursor.

    The pair entries land in ``model_extra`` since their keys are dynamic.
    """

    last: Optional[Any] = None

    def pairs(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def _single(self, pair: Optional[str]) -> List[Any]:
        data = self.pairs()
        if pair is not None:
            return data.get(pair, [])
        if len(data) == 1:
            return next(iter(data.values()))
        return []


class OHLCDataResult(_PairKeyedResult):
    def ticks(self, pair: Optional[str] = None) -> List[OHLCTick]:
        """Decode rows into OHLCTick. ``pair`` may be omitted for one-pair results."""
        out = []
        for row in self._single(pair):
            t, o, h, lo, c, vwap, vol, count = row
            out.append(OHLCTick(
                time=t, open=o, high=h, low=lo, close=c,
                vwap=vwap, volume=vol, count=count,
            ))
        return out


class OrderBookLevel(KrakenModel):
    price: KrakenNumber
    volume: KrakenNumber
    timestamp: int


class OrderBook(KrakenModel):
    asks: List[Tuple[KrakenNumber, KrakenNumber, int]] = []
    bids: List[Tuple[KrakenNumber, KrakenNumber, int]] = []

    def ask_levels(self) -> List[OrderBookLevel]:
        return [OrderBookLevel(price=p, volume=v, timestamp=ts) for p, v, ts in self.asks]

    def bid_levels(self) -> List[OrderBookLevel]:
        return [OrderBookLevel(price=p, volume=v, timestamp=ts) for p, v, ts in self.bids]


class RecentTradesResult(_PairKeyedResult):
    """Rows: [price, volume, time, side, order type, misc, trade id]."""

    def trades(self, pair: Optional[str] = None) -> List[List[Any]]:
        return list(self._single(pair))


class RecentSpreadsResult(_PairKeyedResult):
    """Rows: [time, bid, ask]."""

    def spreads(self, pair: Optional[str] = None) -> List[List[Any]]:
        return list(self._single(pair))


class GetServerTimeResponse(KrakenResponse[ServerTime]):
    pass


class GetSystemStatusResponse(KrakenResponse[SystemStatus]):
    pass


class GetAssetInfoResponse(KrakenResponse[Dict[str, AssetInfo]]):
    pass


class GetTradableAssetPairsResponse(KrakenResponse[Dict[str, AssetPair]]):
    pass


class GetTickerInformationResponse(KrakenResponse[Dict[str, TickerInfo]]):
    pass


class GetOHLCDataResponse(KrakenResponse[OHLCDataResult]):
    pass


class GetOrderBookResponse(KrakenResponse[Dict[str, OrderBook]]):
    pass


class GetRecentTradesResponse(KrakenResponse[RecentTradesResult]):
    pass


class GetRecentSpreadsResponse(KrakenResponse[RecentSpreadsResult]):
    pass
