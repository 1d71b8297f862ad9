"""Trading payloads and order parameter types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from krakenspot.exchange.models.common import KrakenModel, KrakenNumber, KrakenResponse


# ---------------------------------------------------------------------------
# Request parameters
# ---------------------------------------------------------------------------

@dataclass
class CloseOrder:
    """Conditional close leg attached to an order (``close[...]`` fields)."""

    ordertype: str
    price: str
    price2: str = ""


@dataclass
class OrderData:
    """Order fields shared by AddOrder and each AddOrderBatch entry.

    Prices and volumes are strings so no float rounding ever reaches the
    wire. Empty strings and None mean "not sent".
    """

    ordertype: str
    type: str
    volume: str
    userref: Optional[int] = None
    displayvol: str = ""
    price: str = ""
    price2: str = ""
    trigger: str = ""
    leverage: str = ""
    reduce_only: bool = False
    stptype: str = ""
    oflags: str = ""
    timeinforce: str = ""
    starttm: str = ""
    expiretm: str = ""
    close: Optional[CloseOrder] = None

    def form_fields(self, prefix: str = "") -> List[tuple]:
        """Return (key, value) pairs, keys wrapped as ``prefix[key]`` when set."""
        def key(name: str) -> str:
            return f"{prefix}[{name}]" if prefix else name

        items = []
        if self.userref is not None:
            items.append((key("userref"), str(self.userref)))
        items.append((key("ordertype"), self.ordertype))
        items.append((key("type"), self.type))
        items.append((key("volume"), self.volume))
        optional = (
            ("displayvol", self.displayvol),
            ("price", self.price),
            ("price2", self.price2),
            ("trigger", self.trigger),
            ("leverage", self.leverage),
            ("stptype", self.stptype),
            ("oflags", self.oflags),
            ("timeinforce", self.timeinforce),
            ("starttm", self.starttm),
            ("expiretm", self.expiretm),
        )
        for name, value in optional:
            if value:
                items.append((key(name), value))
        if self.reduce_only:
            items.append((key("reduce_only"), "true"))
        if self.close is not None:
            close_key = f"{prefix}[close]" if prefix else "close"
            items.append((f"{close_key}[ordertype]", self.close.ordertype))
            items.append((f"{close_key}[price]", self.close.price))
            if self.close.price2:
                items.append((f"{close_key}[price2]", self.close.price2))
        return items


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class AddOrderDescription(KrakenModel):
    order: str = ""
    close: Optional[str] = None


class AddOrderResult(KrakenModel):
    descr: Optional[AddOrderDescription] = None
    txid: List[str] = []


class AddOrderBatchEntry(KrakenModel):
    txid: Optional[str] = None
    descr: Optional[AddOrderDescription] = None
    close: Optional[str] = None
    error: Optional[str] = None


class AddOrderBatchResult(KrakenModel):
    orders: List[AddOrderBatchEntry] = []


class EditOrderResult(KrakenModel):
    descr: Optional[AddOrderDescription] = None
    txid: Optional[str] = None
    newuserref: Optional[KrakenNumber] = None
    olduserref: Optional[KrakenNumber] = None
    orders_cancelled: Optional[int] = None
    originaltxid: Optional[str] = None
    status: Optional[str] = None
    volume: Optional[KrakenNumber] = None
    price: Optional[KrakenNumber] = None
    price2: Optional[KrakenNumber] = None
    error_message: Optional[str] = None


class CancelOrderResult(KrakenModel):
    count: int = 0
    pending: Optional[bool] = None


class CancelAllOrdersResult(KrakenModel):
    count: int = 0


class CancelAllOrdersAfterXResult(KrakenModel):
    currentTime: str = ""
    triggerTime: str = ""


class CancelOrderBatchResult(KrakenModel):
    count: int = 0


class AddOrderResponse(KrakenResponse[AddOrderResult]):
    pass


class AddOrderBatchResponse(KrakenResponse[AddOrderBatchResult]):
    pass


class EditOrderResponse(KrakenResponse[EditOrderResult]):
    pass


class CancelOrderResponse(KrakenResponse[CancelOrderResult]):
    pass


class CancelAllOrdersResponse(KrakenResponse[CancelAllOrdersResult]):
    pass


class CancelAllOrdersAfterXResponse(KrakenResponse[CancelAllOrdersAfterXResult]):
    pass


class CancelOrderBatchResponse(KrakenResponse[CancelOrderBatchResult]):
    pass
