"""
Common response types - the generic Kraken envelope and shared helpers.

Every JSON payload returned by the REST API has the shape
``{"error": [...], "result": ...}``. A non-empty ``error`` list is the
exchange rejecting the operation; it is reported here as data and never
raised by the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Generic, List, Optional, TypeVar

import httpx
from pydantic import BaseModel, BeforeValidator, ConfigDict, PrivateAttr, field_validator


def _number_as_str(v: Any) -> Any:
    # Kraken sends most decimals as strings; keep them verbatim and
    # normalise the few places where bare JSON numbers show up.
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    return v


KrakenNumber = Annotated[str, BeforeValidator(_number_as_str)]

ResultT = TypeVar("ResultT")


class KrakenModel(BaseModel):
    """Base for every payload model. Unknown fields are kept, not dropped."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class KrakenResponse(KrakenModel, Generic[ResultT]):
    """Generic ``{error, result}`` envelope."""

    error: List[str] = []
    result: Optional[ResultT] = None

    _http_response: Optional[httpx.Response] = PrivateAttr(default=None)

    @field_validator("error", mode="before")
    @classmethod
    def _null_error(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def has_errors(self) -> bool:
        return bool(self.error)

    @property
    def http_response(self) -> Optional[httpx.Response]:
        """Raw HTTP response the envelope was decoded from (body closed)."""
        return self._http_response

    def attach_http_response(self, response: httpx.Response) -> None:
        self._http_response = response


@dataclass(frozen=True)
class SecurityOptions:
    """Per-call security options for private endpoints.

    ``second_factor`` is the password or authenticator code configured as
    2FA on the API key. It is sent as the ``otp`` form field.
    """

    second_factor: str = ""
