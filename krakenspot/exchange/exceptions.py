"""Typed exception hierarchy for Kraken REST operations.

Enables callers to distinguish transient vs permanent failures
and apply appropriate retry strategies.

Errors reported by the exchange itself inside a well-formed response
(the envelope's ``error`` list) are NOT raised; they stay on the decoded
response so callers can tell "request failed" from "exchange rejected it".
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


class KrakenError(Exception):
    """Base class for all client errors."""

    def __init__(
        self,
        message: str = "",
        *,
        response: Optional[httpx.Response] = None,
        operation: str = "",
    ):
        super().__init__(message)
        self.response = response
        self.operation = operation


class TransientKrakenError(KrakenError):
    """Temporary failure that may succeed on retry (network, timeout, cancelled)."""


class ContextExpiredError(TransientKrakenError):
    """Deadline passed or the call was cancelled, before or during the send."""


class TransportError(TransientKrakenError):
    """The HTTP transport failed to produce a response."""


class PermanentKrakenError(KrakenError):
    """Non-recoverable failure for this call."""


class ConfigurationError(PermanentKrakenError):
    """Bad key material or client setup; raised at construction time."""


class MalformedRequestError(PermanentKrakenError):
    """The method, URL or parameters cannot form a valid request."""


class UnexpectedStatusError(PermanentKrakenError):
    """The server answered with anything other than 200."""

    def __init__(self, message: str = "", *, status_code: int = 0, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code

    @property
    def headers(self) -> httpx.Headers:
        if self.response is None:
            return httpx.Headers()
        return self.response.headers


class ContentTypeParseError(PermanentKrakenError):
    """The Content-Type header is missing or not a valid media type."""


class UnexpectedContentTypeError(PermanentKrakenError):
    """The response carries a media type the client does not decode."""

    def __init__(self, message: str = "", *, content_type: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.content_type = content_type


class JSONDecodeError(PermanentKrakenError):
    """The JSON body could not be decoded into the response model.

    ``kind`` is ``"syntax"`` for malformed JSON and ``"type"`` when the
    payload is valid JSON of the wrong shape.
    """

    SYNTAX = "syntax"
    TYPE = "type"

    def __init__(self, message: str = "", *, kind: str = SYNTAX, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.kind = kind
