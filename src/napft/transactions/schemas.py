"""Request/response schemas for transaction endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from napft.db.models import MAX_BIGINT, TX_HASH_LENGTH
from napft.schemas import CamelModel

Currency = Literal["ETH", "USDC", "SKALE", "SKL", "POL", "MATIC"]
TransactionType = Literal["mint", "buy", "sell", "transfer", "list", "unlist"]


class TransactionResponse(CamelModel):
    id: int
    type: str
    nft_id: int
    token_id: int
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    price: float
    currency: str
    tx_hash: str | None = None
    timestamp: datetime


class CreateTransactionRequest(CamelModel):
    """Generic transition request. ``from`` is the acting party for list/unlist/transfer
    and the expected seller for buy/sell."""

    type: TransactionType
    token_id: int = Field(ge=0, le=MAX_BIGINT)
    from_address: str = Field(alias="from", min_length=1)
    to_address: str = Field(alias="to", min_length=1)
    price: float | None = Field(default=None, ge=0)
    currency: Currency | None = None
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)
