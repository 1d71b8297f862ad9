"""Websocket token payload."""

from __future__ import annotations

from krakenspot.exchange.models.common import KrakenModel, KrakenResponse


class WebsocketToken(KrakenModel):
    token: str
    # Seconds the token stays valid if no websocket connection is opened with it.
    expires: int


class GetWebsocketTokenResponse(KrakenResponse[WebsocketToken]):
    pass
