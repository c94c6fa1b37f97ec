"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from market_gateway.prices.models import Candle


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str


# -- Chart --


class FormattedChartResponse(BaseModel):
    """Response for GET /data/yahoo/chart/formatted."""

    interval: str
    data: list[Candle]


# -- Balances --


class RegisterRequest(BaseModel):
    """Request body for POST /data/register."""

    uid: str | None = None


class RegisterResponse(BaseModel):
    message: str
    balance: float


class BalanceUpdateRequest(BaseModel):
    """Request body for PUT /data/balance/{userId}.

    ``amount`` must be a JSON number; strings and booleans are rejected.
    Non-finite values are rejected by the ledger.
    """

    amount: float | None = Field(default=None, strict=True)


class BalanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    balance: float


# -- Health --


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str = "ok"
    version: str
    cached_symbols: int
