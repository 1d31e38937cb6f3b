"""Collection router: all /api/collections/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from napft.collections import service
from napft.collections.schemas import (
    AddNFTRequest,
    AddNFTResponse,
    CollectionDetailResponse,
    CollectionResponse,
    CreateCollectionRequest,
    UpdateCollectionRequest,
)
from napft.database import get_session
from napft.db.models import MAX_BIGINT, Collection
from napft.nfts.schemas import NFTResponse
from napft.query.envelope import ApiResponse
from napft.query.filters import CollectionQuery, CollectionSort
from napft.query.pagination import PageParams, page_params
from napft.transitions.aggregates import collection_volumes

router = APIRouter(prefix="/api/collections", tags=["Collections"])


def collection_query(
    category: str | None = None,
    creator: str | None = None,
    search: str | None = None,
    sort: CollectionSort = "newest",
) -> CollectionQuery:
    return CollectionQuery(category=category, creator=creator, search=search, sort=sort)


def _collection_response(collection: Collection, volume: float) -> CollectionResponse:
    return CollectionResponse(
        id=collection.id,
        name=collection.name,
        description=collection.description,
        image=collection.image,
        banner_image=collection.banner_image,
        creator=collection.creator,
        category=collection.category,
        floor_price=collection.floor_price,
        total_volume=volume,
        royalty_fee=collection.royalty_fee,
        is_verified=collection.is_verified,
        created_at=collection.created_at,
        updated_at=collection.updated_at,
    )


@router.get("", response_model=ApiResponse[list[CollectionResponse]])
async def get_all_collections(
    query: CollectionQuery = Depends(collection_query),  # noqa: B008
    params: PageParams = Depends(page_params),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[CollectionResponse]]:
    collections, pagination, volumes = await service.list_collections(db, query, params)
    return ApiResponse(
        data=[_collection_response(c, volumes[c.id]) for c in collections],
        pagination=pagination,
    )


@router.get("/creator/{address}", response_model=ApiResponse[list[CollectionResponse]])
async def get_collections_by_creator(
    address: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[CollectionResponse]]:
    collections, volumes = await service.get_by_creator(db, address)
    return ApiResponse(data=[_collection_response(c, volumes[c.id]) for c in collections])


@router.post("/add-nft", response_model=ApiResponse[AddNFTResponse])
async def add_nft_to_collection(
    body: AddNFTRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[AddNFTResponse]:
    collection, nft = await service.add_nft(db, body)
    volumes = await collection_volumes(db, [collection.id])
    return ApiResponse(
        data=AddNFTResponse(
            collection=_collection_response(collection, volumes[collection.id]),
            nft=NFTResponse.model_validate(nft),
        ),
        message="NFT added to collection",
    )


@router.get("/{collection_id}", response_model=ApiResponse[CollectionDetailResponse])
async def get_collection(
    collection_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[CollectionDetailResponse]:
    """Collection with its member NFTs and volume summed from the log."""
    collection = await service.get_collection(db, collection_id)
    members = await service.get_members(db, collection_id)
    volumes = await collection_volumes(db, [collection_id])
    base = _collection_response(collection, volumes[collection_id])
    return ApiResponse(
        data=CollectionDetailResponse(
            **base.model_dump(),
            nfts=[NFTResponse.model_validate(n) for n in members],
        )
    )


@router.post("", status_code=201, response_model=ApiResponse[CollectionResponse])
async def create_collection(
    body: CreateCollectionRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[CollectionResponse]:
    collection = await service.create_collection(db, body)
    return ApiResponse(data=_collection_response(collection, 0.0), message="Collection created")


@router.put("/{collection_id}", response_model=ApiResponse[CollectionResponse])
async def update_collection(
    body: UpdateCollectionRequest,
    collection_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[CollectionResponse]:
    collection = await service.update_collection(db, collection_id, body)
    volumes = await collection_volumes(db, [collection.id])
    return ApiResponse(data=_collection_response(collection, volumes[collection.id]), message="Collection updated")
