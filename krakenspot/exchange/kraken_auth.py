"""
Kraken REST Authorizer - HMAC-SHA512 request signing.

API-Sign = base64(HMAC-SHA512(base64decode(secret), path + SHA256(nonce + body)))

The secret is validated once at construction; signing itself never fails
because of bad key material.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from typing import Union
from urllib.parse import parse_qs

import httpx

from krakenspot.exchange.exceptions import ConfigurationError, MalformedRequestError

API_KEY_HEADER = "API-Key"
API_SIGN_HEADER = "API-Sign"


class KrakenRESTAuthorizer:
    """Signs private requests with an API key and its base64 secret."""

    def __init__(self, api_key: str, api_secret: str):
        self.api_key = (api_key or "").strip()
        if not self.api_key:
            raise ConfigurationError("API key is empty")
        try:
            self._secret = base64.b64decode((api_secret or "").strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"API secret is not valid base64: {e}") from e
        if not self._secret:
            raise ConfigurationError("API secret is empty")

    def sign(self, path: str, nonce: int, body: Union[bytes, str]) -> str:
        """Return the base64 API-Sign value for one request."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        sha = hashlib.sha256(str(nonce).encode("utf-8") + body).digest()
        mac = hmac.new(self._secret, path.encode("utf-8") + sha, hashlib.sha512)
        return base64.b64encode(mac.digest()).decode("ascii")

    def authorize(
        self,
        request: httpx.Request,
        nonce: int,
        path: str,
        body: Union[bytes, str],
    ) -> httpx.Request:
        """Attach API-Key and API-Sign headers to ``request`` and return it.

        ``body`` must be the exact form body sent on the wire, with the
        nonce already embedded in it.
        """
        raw = body.encode("utf-8") if isinstance(body, str) else body
        embedded = parse_qs(raw.decode("utf-8")).get("nonce", [])
        if embedded != [str(nonce)]:
            raise MalformedRequestError(
                f"form body nonce {embedded!r} does not match signing nonce {nonce}"
            )
        request.headers[API_KEY_HEADER] = self.api_key
        request.headers[API_SIGN_HEADER] = self.sign(path, nonce, raw)
        return request

    def __repr__(self) -> str:
        return f"KrakenRESTAuthorizer(api_key={self.api_key[:4]}****)"
