"""Filter and sort builders for the read-only listing endpoints.

Each builder turns a plain dataclass of recognized parameters into a
``Select`` with a deterministic ORDER BY. Nothing here mutates state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from sqlalchemy import Select, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from napft.addresses import normalize_address
from napft.db.models import NFT, Collection, Transaction

NFTSort = Literal["newest", "oldest", "priceAsc", "priceDesc"]
CollectionSort = Literal["newest", "oldest", "floorAsc", "floorDesc", "volumeDesc"]

SALE_TYPES = ("buy", "sell")


def _contains(column: Any, text: str) -> ColumnElement[bool]:  # noqa: ANN401
    """Case-insensitive substring match with LIKE wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


# ---------------------------------------------------------------------------
# NFTs
# ---------------------------------------------------------------------------


@dataclass
class NFTQuery:
    category: str | None = None
    creator: str | None = None
    owner: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    search: str | None = None
    is_listed: bool | None = None
    token_standard: str | None = None
    rarity: str | None = None
    collection_id: int | None = None
    sort: NFTSort = "newest"


_NFT_ORDER = {
    "newest": (NFT.created_at.desc(), NFT.id.desc()),
    "oldest": (NFT.created_at.asc(), NFT.id.asc()),
    "priceAsc": (NFT.price.asc(), NFT.id.asc()),
    "priceDesc": (NFT.price.desc(), NFT.id.desc()),
}


def build_nft_query(q: NFTQuery) -> Select[Any]:
    query = select(NFT)

    if q.category:
        query = query.where(NFT.category == q.category)
    if q.creator:
        query = query.where(NFT.creator == normalize_address(q.creator))
    if q.owner:
        query = query.where(NFT.owner == normalize_address(q.owner))
    if q.min_price is not None:
        query = query.where(NFT.price >= q.min_price)
    if q.max_price is not None:
        query = query.where(NFT.price <= q.max_price)
    if q.search:
        query = query.where(or_(_contains(NFT.title, q.search), _contains(NFT.description, q.search)))
    if q.is_listed is not None:
        query = query.where(NFT.is_listed == q.is_listed)
    if q.token_standard:
        query = query.where(NFT.token_standard == q.token_standard)
    if q.rarity:
        query = query.where(NFT.rarity == q.rarity)
    if q.collection_id is not None:
        query = query.where(NFT.collection_id == q.collection_id)

    return query.order_by(*_NFT_ORDER.get(q.sort, _NFT_ORDER["newest"]))


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


@dataclass
class CollectionQuery:
    category: str | None = None
    creator: str | None = None
    search: str | None = None
    sort: CollectionSort = "newest"


def collection_volume_subquery() -> Any:  # noqa: ANN401
    """Per-collection sale volume summed from the transaction log."""
    return (
        select(
            NFT.collection_id.label("collection_id"),
            func.coalesce(func.sum(Transaction.price), 0.0).label("volume"),
        )
        .join(Transaction, Transaction.nft_id == NFT.id)
        .where(Transaction.type.in_(SALE_TYPES), NFT.collection_id.is_not(None))
        .group_by(NFT.collection_id)
        .subquery()
    )


def build_collection_query(q: CollectionQuery) -> Select[Any]:
    query = select(Collection)

    if q.category:
        query = query.where(Collection.category == q.category)
    if q.creator:
        query = query.where(Collection.creator == normalize_address(q.creator))
    if q.search:
        query = query.where(_contains(Collection.name, q.search))

    if q.sort == "volumeDesc":
        volume = collection_volume_subquery()
        return query.outerjoin(volume, volume.c.collection_id == Collection.id).order_by(
            func.coalesce(volume.c.volume, 0.0).desc(), Collection.id.desc()
        )
    if q.sort == "oldest":
        return query.order_by(Collection.created_at.asc(), Collection.id.asc())
    if q.sort == "floorAsc":
        return query.order_by(Collection.floor_price.asc(), Collection.id.asc())
    if q.sort == "floorDesc":
        return query.order_by(Collection.floor_price.desc(), Collection.id.desc())
    return query.order_by(Collection.created_at.desc(), Collection.id.desc())


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass
class TransactionQuery:
    type: str | None = None
    from_address: str | None = None
    to_address: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def build_transaction_query(q: TransactionQuery) -> Select[Any]:
    query = select(Transaction)

    if q.type:
        query = query.where(Transaction.type == q.type)
    if q.from_address:
        query = query.where(Transaction.from_address == normalize_address(q.from_address))
    if q.to_address:
        query = query.where(Transaction.to_address == normalize_address(q.to_address))
    if q.start_date is not None:
        query = query.where(Transaction.timestamp >= q.start_date)
    if q.end_date is not None:
        query = query.where(Transaction.timestamp <= q.end_date)

    return query.order_by(Transaction.timestamp.desc(), Transaction.id.desc())
