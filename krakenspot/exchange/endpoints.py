"""
Kraken REST endpoint table.

Each operation is described once: its name, path (relative to the API
version segment), HTTP method, whether it is signed, and the model its
JSON payload decodes into. The client funnels every call through one
generic helper driven by this table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Type

from krakenspot.exchange.models import account, earn, funding, market, trading, websocket
from krakenspot.exchange.models.common import KrakenResponse

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class Endpoint:
    name: str
    path: str
    method: str = "GET"
    private: bool = False
    response_model: Type[KrakenResponse] = KrakenResponse
    # True when a successful answer is a binary archive, not JSON.
    binary: bool = False

    @property
    def content_type(self) -> str:
        return FORM_CONTENT_TYPE if self.method == "POST" else ""


def _public(name: str, path: str, model: Type[KrakenResponse]) -> Endpoint:
    return Endpoint(name=name, path=path, method="GET", private=False, response_model=model)


def _private(
    name: str,
    path: str,
    model: Type[KrakenResponse],
    binary: bool = False,
) -> Endpoint:
    return Endpoint(
        name=name, path=path, method="POST", private=True,
        response_model=model, binary=binary,
    )


_TABLE = (
    # Market data
    _public("get_server_time", "/public/Time", market.GetServerTimeResponse),
    _public("get_system_status", "/public/SystemStatus", market.GetSystemStatusResponse),
    _public("get_asset_info", "/public/Assets", market.GetAssetInfoResponse),
    _public("get_tradable_asset_pairs", "/public/AssetPairs", market.GetTradableAssetPairsResponse),
    _public("get_ticker_information", "/public/Ticker", market.GetTickerInformationResponse),
    _public("get_ohlc_data", "/public/OHLC", market.GetOHLCDataResponse),
    _public("get_order_book", "/public/Depth", market.GetOrderBookResponse),
    _public("get_recent_trades", "/public/Trades", market.GetRecentTradesResponse),
    _public("get_recent_spreads", "/public/Spread", market.GetRecentSpreadsResponse),
    # Account data
    _private("get_account_balance", "/private/Balance", account.GetAccountBalanceResponse),
    _private("get_extended_balance", "/private/BalanceEx", account.GetExtendedBalanceResponse),
    _private("get_trade_balance", "/private/TradeBalance", account.GetTradeBalanceResponse),
    _private("get_open_orders", "/private/OpenOrders", account.GetOpenOrdersResponse),
    _private("get_closed_orders", "/private/ClosedOrders", account.GetClosedOrdersResponse),
    _private("query_orders_info", "/private/QueryOrders", account.QueryOrdersInfoResponse),
    _private("get_trades_history", "/private/TradesHistory", account.GetTradesHistoryResponse),
    _private("query_trades_info", "/private/QueryTrades", account.QueryTradesInfoResponse),
    _private("get_open_positions", "/private/OpenPositions", account.GetOpenPositionsResponse),
    _private("get_ledgers_info", "/private/Ledgers", account.GetLedgersInfoResponse),
    _private("query_ledgers", "/private/QueryLedgers", account.QueryLedgersResponse),
    _private("get_trade_volume", "/private/TradeVolume", account.GetTradeVolumeResponse),
    _private("request_export_report", "/private/AddExport", account.RequestExportReportResponse),
    _private("get_export_report_status", "/private/ExportStatus", account.GetExportReportStatusResponse),
    _private("retrieve_data_export", "/private/RetrieveExport", KrakenResponse, binary=True),
    _private("delete_export_report", "/private/RemoveExport", account.DeleteExportReportResponse),
    # Trading
    _private("add_order", "/private/AddOrder", trading.AddOrderResponse),
    _private("add_order_batch", "/private/AddOrderBatch", trading.AddOrderBatchResponse),
    _private("edit_order", "/private/EditOrder", trading.EditOrderResponse),
    _private("cancel_order", "/private/CancelOrder", trading.CancelOrderResponse),
    _private("cancel_all_orders", "/private/CancelAll", trading.CancelAllOrdersResponse),
    _private("cancel_all_orders_after_x", "/private/CancelAllOrdersAfter", trading.CancelAllOrdersAfterXResponse),
    _private("cancel_order_batch", "/private/CancelOrderBatch", trading.CancelOrderBatchResponse),
    # Funding
    _private("get_deposit_methods", "/private/DepositMethods", funding.GetDepositMethodsResponse),
    _private("get_deposit_addresses", "/private/DepositAddresses", funding.GetDepositAddressesResponse),
    _private("get_status_of_recent_deposits", "/private/DepositStatus", funding.GetStatusOfRecentDepositsResponse),
    _private("get_withdrawal_methods", "/private/WithdrawMethods", funding.GetWithdrawalMethodsResponse),
    _private("get_withdrawal_addresses", "/private/WithdrawAddresses", funding.GetWithdrawalAddressesResponse),
    _private("get_withdrawal_information", "/private/WithdrawInfo", funding.GetWithdrawalInformationResponse),
    _private("withdraw_funds", "/private/Withdraw", funding.WithdrawFundsResponse),
    _private("get_status_of_recent_withdrawals", "/private/WithdrawStatus", funding.GetStatusOfRecentWithdrawalsResponse),
    _private("request_withdrawal_cancellation", "/private/WithdrawCancel", funding.RequestWithdrawalCancellationResponse),
    _private("request_wallet_transfer", "/private/WalletTransfer", funding.RequestWalletTransferResponse),
    # Earn
    _private("allocate_earn_funds", "/private/Earn/Allocate", earn.AllocateEarnFundsResponse),
    _private("deallocate_earn_funds", "/private/Earn/Deallocate", earn.DeallocateEarnFundsResponse),
    _private("get_allocation_status", "/private/Earn/AllocateStatus", earn.GetAllocationStatusResponse),
    _private("get_deallocation_status", "/private/Earn/DeallocateStatus", earn.GetDeallocationStatusResponse),
    _private("list_earn_strategies", "/private/Earn/Strategies", earn.ListEarnStrategiesResponse),
    _private("list_earn_allocations", "/private/Earn/Allocations", earn.ListEarnAllocationsResponse),
    # Websocket
    _private("get_websocket_token", "/private/GetWebSocketsToken", websocket.GetWebsocketTokenResponse),
)

ENDPOINTS: Dict[str, Endpoint] = {e.name: e for e in _TABLE}


def get_endpoint(name: str) -> Optional[Endpoint]:
    return ENDPOINTS.get(name)
