"""Earn (staking) payloads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from krakenspot.exchange.models.common import KrakenModel, KrakenNumber, KrakenResponse


class PendingStatus(KrakenModel):
    pending: bool = False


class EarnRange(KrakenModel):
    low: Optional[KrakenNumber] = None
    high: Optional[KrakenNumber] = None


class EarnFee(KrakenModel):
    fee: Optional[KrakenNumber] = None


class EarnStrategy(KrakenModel):
    id: str
    asset: Optional[str] = None
    # {"type": "flex" | "bonded" | "timed" | "instant", ...}
    lock_type: Dict[str, Any] = {}
    apr_estimate: Optional[EarnRange] = None
    user_min_allocation: Optional[KrakenNumber] = None
    user_cap: Optional[KrakenNumber] = None
    allocation_fee: Optional[KrakenNumber] = None
    deallocation_fee: Optional[KrakenNumber] = None
    auto_compound: Dict[str, Any] = {}
    yield_source: Dict[str, Any] = {}
    can_allocate: Optional[bool] = None
    can_deallocate: Optional[bool] = None
    allocation_restriction_info: List[str] = []


class ListEarnStrategiesResult(KrakenModel):
    items: List[EarnStrategy] = []
    next_cursor: Optional[str] = None


class EarnAmount(KrakenModel):
    native: Optional[KrakenNumber] = None
    converted: Optional[KrakenNumber] = None


class EarnAllocation(KrakenModel):
    strategy_id: str
    native_asset: Optional[str] = None
    # {"total": {...}, "bonding": {...}, "unbonding": {...}, ...}
    amount_allocated: Dict[str, Any] = {}
    total_rewarded: Optional[EarnAmount] = None
    payout: Optional[Dict[str, Any]] = None


class ListEarnAllocationsResult(KrakenModel):
    converted_asset: Optional[str] = None
    total_allocated: Optional[KrakenNumber] = None
    total_rewarded: Optional[KrakenNumber] = None
    next_cursor: Optional[str] = None
    items: List[EarnAllocation] = []


class AllocateEarnFundsResponse(KrakenResponse[bool]):
    pass


class DeallocateEarnFundsResponse(KrakenResponse[bool]):
    pass


class GetAllocationStatusResponse(KrakenResponse[PendingStatus]):
    pass


class GetDeallocationStatusResponse(KrakenResponse[PendingStatus]):
    pass


class ListEarnStrategiesResponse(KrakenResponse[ListEarnStrategiesResult]):
    pass


class ListEarnAllocationsResponse(KrakenResponse[ListEarnAllocationsResult]):
    pass
