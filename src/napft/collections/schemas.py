"""Request/response schemas for collection endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, model_validator

from napft.db.models import MAX_BIGINT
from napft.nfts.schemas import Category, NFTResponse
from napft.schemas import CamelModel


class CollectionResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    image: str | None = None
    banner_image: str | None = None
    creator: str
    category: str
    floor_price: float
    total_volume: float = 0.0
    royalty_fee: float
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class CollectionDetailResponse(CollectionResponse):
    nfts: list[NFTResponse] = []


class CreateCollectionRequest(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    image: str | None = None
    banner_image: str | None = None
    creator: str = Field(min_length=1)
    category: Category = "Art"
    royalty_fee: float = Field(default=0.0, ge=0, le=100)


class UpdateCollectionRequest(CamelModel):
    """Creator edit. ``address`` must be the collection creator."""

    address: str = Field(min_length=1)
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    image: str | None = None
    banner_image: str | None = None
    category: Category | None = None
    royalty_fee: float | None = Field(default=None, ge=0, le=100)


class AddNFTRequest(CamelModel):
    collection_id: int = Field(ge=0, le=MAX_BIGINT)
    nft_id: int | None = Field(default=None, ge=0, le=MAX_BIGINT)
    token_id: int | None = Field(default=None, ge=0, le=MAX_BIGINT)
    address: str = Field(min_length=1)
    move: bool = False

    @model_validator(mode="after")
    def _one_nft_reference(self) -> AddNFTRequest:
        if (self.nft_id is None) == (self.token_id is None):
            msg = "Provide exactly one of nftId or tokenId"
            raise ValueError(msg)
        return self


class AddNFTResponse(CamelModel):
    collection: CollectionResponse
    nft: NFTResponse
