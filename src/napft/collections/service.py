"""Collection business logic: CRUD, membership and read-time volume."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from napft.addresses import normalize_address, same_address
from napft.db.models import NFT, Collection
from napft.errors import InvalidState, NotFound, Unauthorized
from napft.query.filters import CollectionQuery, build_collection_query
from napft.query.pagination import PageParams, paginate
from napft.transitions.aggregates import collection_volumes, recompute_floor_price
from napft.users.service import get_or_create_user

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from napft.collections.schemas import AddNFTRequest, CreateCollectionRequest, UpdateCollectionRequest
    from napft.query.envelope import Pagination

logger = structlog.get_logger()


async def list_collections(
    db: AsyncSession, query: CollectionQuery, params: PageParams
) -> tuple[list[Collection], Pagination, dict[int, float]]:
    """One page of collections plus their sale volumes."""
    collections, pagination = await paginate(db, build_collection_query(query), params)
    volumes = await collection_volumes(db, [c.id for c in collections])
    return collections, pagination, volumes


async def get_by_creator(db: AsyncSession, address: str) -> tuple[list[Collection], dict[int, float]]:
    result = await db.execute(
        select(Collection)
        .where(Collection.creator == normalize_address(address))
        .order_by(Collection.created_at.desc(), Collection.id.desc())
    )
    collections = list(result.scalars().all())
    return collections, await collection_volumes(db, [c.id for c in collections])


async def get_collection(db: AsyncSession, collection_id: int) -> Collection:
    collection = await db.get(Collection, collection_id)
    if collection is None:
        msg = "Collection not found"
        raise NotFound(msg)
    return collection


async def get_members(db: AsyncSession, collection_id: int) -> list[NFT]:
    result = await db.execute(select(NFT).where(NFT.collection_id == collection_id).order_by(NFT.id))
    return list(result.scalars().all())


async def create_collection(db: AsyncSession, body: CreateCollectionRequest) -> Collection:
    await get_or_create_user(db, body.creator)
    now = datetime.now(timezone.utc)
    collection = Collection(
        name=body.name,
        description=body.description,
        image=body.image,
        banner_image=body.banner_image,
        creator=body.creator,
        category=body.category,
        royalty_fee=body.royalty_fee,
        floor_price=0.0,
        is_verified=False,
        created_at=now,
        updated_at=now,
    )
    db.add(collection)
    await db.commit()
    logger.info("collection_created", collection_id=collection.id, creator=collection.creator)
    return collection


async def update_collection(db: AsyncSession, collection_id: int, body: UpdateCollectionRequest) -> Collection:
    """
    Update descriptive fields of a collection.

    Raises:
        NotFound: Collection does not exist.
        Unauthorized: Caller is not the creator.
    """
    collection = await get_collection(db, collection_id)
    if not same_address(body.address, collection.creator):
        msg = "Not authorized to update this collection"
        raise Unauthorized(msg)

    changes = body.model_dump(exclude={"address"}, exclude_unset=True)
    for field, value in changes.items():
        if value is not None or field in ("description", "image", "banner_image"):
            setattr(collection, field, value)

    await db.commit()
    logger.info("collection_updated", collection_id=collection.id, fields=sorted(changes))
    return collection


async def add_nft(db: AsyncSession, body: AddNFTRequest) -> tuple[Collection, NFT]:
    """
    Put an NFT into a collection and recompute the affected floor prices.

    Raises:
        NotFound: Collection or NFT does not exist.
        Unauthorized: Caller is neither the NFT's owner nor its creator.
        InvalidState: Already a member, or a member of another collection
            without ``move``.
    """
    collection = await get_collection(db, body.collection_id)

    query = select(NFT).with_for_update().execution_options(populate_existing=True)
    if body.nft_id is not None:
        query = query.where(NFT.id == body.nft_id)
    else:
        query = query.where(NFT.token_id == body.token_id)
    nft = (await db.execute(query)).scalar_one_or_none()
    if nft is None:
        msg = "NFT not found"
        raise NotFound(msg)

    if not (same_address(body.address, nft.owner) or same_address(body.address, nft.creator)):
        msg = "Not authorized to add this NFT to collection"
        raise Unauthorized(msg)
    if nft.collection_id == collection.id:
        msg = "NFT is already in this collection"
        raise InvalidState(msg)
    if nft.collection_id is not None and not body.move:
        msg = "NFT belongs to another collection; set move to reassign it"
        raise InvalidState(msg)

    previous = nft.collection_id
    try:
        nft.collection_id = collection.id
        nft.updated_at = datetime.now(timezone.utc)
        await db.flush()
        await recompute_floor_price(db, previous)
        await recompute_floor_price(db, collection.id)
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        msg = "NFT was modified by a concurrent operation"
        raise InvalidState(msg) from e

    logger.info(
        "collection_nft_added",
        collection_id=collection.id,
        token_id=nft.token_id,
        previous_collection_id=previous,
    )
    return collection, nft
