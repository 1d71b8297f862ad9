"""Funding payloads: deposits, withdrawals and wallet transfers."""

from __future__ import annotations

from typing import Any, List, Optional

from krakenspot.exchange.models.common import KrakenModel, KrakenNumber, KrakenResponse


class DepositMethod(KrakenModel):
    method: str
    # Either false (no limit) or the maximum net amount as a string.
    limit: Any = None
    fee: Optional[KrakenNumber] = None
    address_setup_fee: Optional[KrakenNumber] = None
    gen_address: Optional[bool] = None
    minimum: Optional[KrakenNumber] = None


class DepositAddress(KrakenModel):
    address: str
    expiretm: Optional[KrakenNumber] = None
    new: Optional[bool] = None
    memo: Optional[str] = None
    tag: Optional[str] = None


class TransactionDetails(KrakenModel):
    """A deposit or withdrawal as reported by the status endpoints."""

    method: Optional[str] = None
    network: Optional[str] = None
    aclass: Optional[str] = None
    asset: Optional[str] = None
    refid: Optional[str] = None
    txid: Optional[str] = None
    info: Optional[str] = None
    amount: Optional[KrakenNumber] = None
    fee: Optional[KrakenNumber] = None
    time: Optional[int] = None
    status: Optional[str] = None
    status_prop: Optional[str] = None
    key: Optional[str] = None
    originators: Optional[List[str]] = None


class DepositStatusResult(KrakenModel):
    deposit: List[TransactionDetails] = []
    next_cursor: Optional[str] = None


class WithdrawalMethod(KrakenModel):
    asset: Optional[str] = None
    method: Optional[str] = None
    network: Optional[str] = None
    minimum: Optional[KrakenNumber] = None


class WithdrawalAddress(KrakenModel):
    address: str
    asset: Optional[str] = None
    method: Optional[str] = None
    key: Optional[str] = None
    verified: Optional[bool] = None
    memo: Optional[str] = None
    tag: Optional[str] = None


class WithdrawalInformation(KrakenModel):
    method: Optional[str] = None
    limit: Optional[KrakenNumber] = None
    amount: Optional[KrakenNumber] = None
    fee: Optional[KrakenNumber] = None


class ReferenceResult(KrakenModel):
    refid: str


class GetDepositMethodsResponse(KrakenResponse[List[DepositMethod]]):
    pass


class GetDepositAddressesResponse(KrakenResponse[List[DepositAddress]]):
    pass


class GetStatusOfRecentDepositsResponse(KrakenResponse[DepositStatusResult]):
    pass


class GetWithdrawalMethodsResponse(KrakenResponse[List[WithdrawalMethod]]):
    pass


class GetWithdrawalAddressesResponse(KrakenResponse[List[WithdrawalAddress]]):
    pass


class GetWithdrawalInformationResponse(KrakenResponse[WithdrawalInformation]):
    pass


class WithdrawFundsResponse(KrakenResponse[ReferenceResult]):
    pass


class GetStatusOfRecentWithdrawalsResponse(KrakenResponse[List[TransactionDetails]]):
    pass


class RequestWithdrawalCancellationResponse(KrakenResponse[bool]):
    pass


class RequestWalletTransferResponse(KrakenResponse[ReferenceResult]):
    pass
