"""Request/response schemas for NFT endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from napft.db.models import MAX_BIGINT, TX_HASH_LENGTH
from napft.schemas import CamelModel
from napft.transactions.schemas import Currency, TransactionResponse

Category = Literal["Art", "Collectible", "Photography", "Music", "Video", "Other"]
Rarity = Literal["Common", "Uncommon", "Rare", "Epic", "Legendary"]
TokenStandard = Literal["ERC-721", "ERC-1155"]


class NFTAttributeSchema(CamelModel):
    trait_type: str = Field(alias="trait_type", min_length=1)
    value: Any


class NFTResponse(CamelModel):
    id: int
    token_id: int
    title: str
    description: str | None = None
    ipfs_hash: str
    image: str
    metadata_uri: str = Field(alias="metadataURI")
    owner: str
    creator: str
    price: float
    currency: str
    is_listed: bool
    royalty_fee: float
    category: str
    rarity: str
    token_standard: str
    utility_percent: float
    collection_id: int | None = None
    attributes: list[NFTAttributeSchema] = []
    created_at: datetime
    updated_at: datetime


class NFTDetailResponse(NFTResponse):
    transaction_history: list[TransactionResponse] = []


class NFTTransitionResponse(CamelModel):
    """An NFT together with the log entry of the transition just applied."""

    nft: NFTResponse
    transaction: TransactionResponse


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class MintRequest(CamelModel):
    token_id: int = Field(ge=0, le=MAX_BIGINT)
    title: str = Field(min_length=1, max_length=256)
    description: str | None = None
    ipfs_hash: str = Field(min_length=1, max_length=256)
    creator: str = Field(min_length=1)
    owner: str | None = None
    price: float = Field(default=0.0, ge=0)
    currency: Currency | None = None
    royalty_fee: float = Field(default=0.0, ge=0, le=100)
    is_listed: bool = False
    category: Category = "Art"
    rarity: Rarity = "Common"
    token_standard: TokenStandard = "ERC-721"
    utility_percent: float = Field(default=0.0, ge=0, le=100)
    collection_id: int | None = None
    attributes: list[NFTAttributeSchema] = []
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)


class UpdateNFTRequest(CamelModel):
    """Owner edit. ``is_listed``/``price`` changes become list/unlist transitions."""

    address: str = Field(min_length=1)
    title: str | None = Field(default=None, min_length=1, max_length=256)
    description: str | None = None
    category: Category | None = None
    is_listed: bool | None = None
    price: float | None = Field(default=None, ge=0)
    currency: Currency | None = None
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)


class BuyRequest(CamelModel):
    token_id: int = Field(ge=0, le=MAX_BIGINT)
    buyer: str = Field(min_length=1)
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)


class ListRequest(CamelModel):
    address: str = Field(min_length=1)
    price: float = Field(ge=0)
    currency: Currency | None = None
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)


class UnlistRequest(CamelModel):
    address: str = Field(min_length=1)
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)


class TransferRequest(CamelModel):
    address: str = Field(min_length=1)
    to: str = Field(min_length=1)
    tx_hash: str | None = Field(default=None, max_length=TX_HASH_LENGTH)
