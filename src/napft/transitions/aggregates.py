"""Derived aggregates kept consistent by the transition engine.

- Collection floor price: minimum price among listed members, 0 when none,
  recomputed under a row lock on the collection.
- Owned/created NFT sets: association rows, written as sets (idempotent).
- Seller volume: incremented per sale on a row-locked user.
- Collection volume: summed from the transaction log at read time.

All functions run inside the caller's unit of work and never commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, insert, select

from napft.db.models import NFT, Collection, Transaction, User, user_created_nfts, user_owned_nfts
from napft.query.filters import SALE_TYPES

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def recompute_floor_price(db: AsyncSession, collection_id: int | None) -> float | None:
    """Recompute and store a collection's floor price. Returns the new floor.

    The collection row is locked before the minimum is read, so concurrent
    transitions on different members of one collection apply their floor
    updates one after another, each seeing the previous listing.
    """
    if collection_id is None:
        return None

    collection = await db.get(Collection, collection_id, with_for_update=True, populate_existing=True)
    if collection is None:
        return None

    floor = await db.scalar(
        select(func.min(NFT.price)).where(
            NFT.collection_id == collection_id,
            NFT.is_listed == True,  # noqa: E712
        )
    )
    collection.floor_price = float(floor) if floor is not None else 0.0
    await db.flush()
    logger.debug("floor_price_recomputed", collection_id=collection_id, floor_price=collection.floor_price)
    return collection.floor_price


async def set_owner(db: AsyncSession, nft_id: int, user_id: int) -> None:
    """Make ``user_id`` the only holder of ``nft_id`` in the owned sets."""
    await db.execute(delete(user_owned_nfts).where(user_owned_nfts.c.nft_id == nft_id))
    await db.execute(insert(user_owned_nfts).values(user_id=user_id, nft_id=nft_id))


async def add_created(db: AsyncSession, user_id: int, nft_id: int) -> None:
    existing = await db.scalar(
        select(user_created_nfts.c.nft_id).where(
            user_created_nfts.c.user_id == user_id,
            user_created_nfts.c.nft_id == nft_id,
        )
    )
    if existing is None:
        await db.execute(insert(user_created_nfts).values(user_id=user_id, nft_id=nft_id))


def credit_seller(seller: User, amount: float) -> None:
    """Add sale proceeds to a seller's running volume.

    The seller row must have been loaded FOR UPDATE in this transaction.
    """
    seller.total_volume = (seller.total_volume or 0.0) + amount


async def collection_volumes(db: AsyncSession, collection_ids: list[int]) -> dict[int, float]:
    """Sum buy/sell prices of member NFTs per collection, from the log."""
    if not collection_ids:
        return {}
    result = await db.execute(
        select(NFT.collection_id, func.coalesce(func.sum(Transaction.price), 0.0))
        .join(Transaction, Transaction.nft_id == NFT.id)
        .where(NFT.collection_id.in_(collection_ids), Transaction.type.in_(SALE_TYPES))
        .group_by(NFT.collection_id)
    )
    volumes = {cid: 0.0 for cid in collection_ids}
    for cid, total in result.all():
        volumes[cid] = float(total)
    return volumes
