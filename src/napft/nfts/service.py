"""NFT business logic: reads plus thin adapters over the transition engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from napft.addresses import normalize_address, same_address
from napft.db.models import NFT, Transaction
from napft.errors import InvalidState, NotFound, Unauthorized, ValidationError
from napft.query.filters import NFTQuery, build_nft_query
from napft.query.pagination import PageParams, paginate
from napft.transitions import MintDetails, TransitionEngine, TransitionKind, TransitionParams

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from napft.config import Settings
    from napft.nfts.schemas import MintRequest, UpdateNFTRequest
    from napft.query.envelope import Pagination

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_nfts(db: AsyncSession, query: NFTQuery, params: PageParams) -> tuple[list[NFT], Pagination]:
    return await paginate(db, build_nft_query(query), params)


async def get_trending(db: AsyncSession, limit: int, window_days: int) -> list[NFT]:
    """Listed NFTs with the most recent activity, topped up with the newest listed ones."""
    since = datetime.now(timezone.utc) - timedelta(days=window_days)
    activity = (
        select(Transaction.nft_id, func.max(Transaction.timestamp).label("last_activity"))
        .where(Transaction.timestamp >= since)
        .group_by(Transaction.nft_id)
        .subquery()
    )
    result = await db.execute(
        select(NFT)
        .join(activity, activity.c.nft_id == NFT.id)
        .where(NFT.is_listed == True)  # noqa: E712
        .order_by(activity.c.last_activity.desc(), NFT.id.desc())
        .limit(limit)
    )
    trending = list(result.scalars().all())

    if len(trending) < limit:
        seen = [nft.id for nft in trending]
        query = select(NFT).where(NFT.is_listed == True)  # noqa: E712
        if seen:
            query = query.where(NFT.id.not_in(seen))
        extra = await db.execute(
            query.order_by(NFT.created_at.desc(), NFT.id.desc()).limit(limit - len(trending))
        )
        trending.extend(extra.scalars().all())

    return trending


async def get_history(db: AsyncSession, nft_id: int) -> list[Transaction]:
    """Transaction log of one NFT, newest first."""
    result = await db.execute(
        select(Transaction)
        .where(Transaction.nft_id == nft_id)
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
    )
    return list(result.scalars().all())


async def get_by_token(db: AsyncSession, token_id: int) -> NFT:
    nft = await db.scalar(select(NFT).where(NFT.token_id == token_id))
    if nft is None:
        msg = "NFT not found"
        raise NotFound(msg)
    return nft


async def get_by_id(db: AsyncSession, nft_id: int) -> NFT:
    nft = await db.get(NFT, nft_id)
    if nft is None:
        msg = "NFT not found"
        raise NotFound(msg)
    return nft


async def get_by_owner(db: AsyncSession, address: str) -> list[NFT]:
    result = await db.execute(
        select(NFT).where(NFT.owner == normalize_address(address)).order_by(NFT.created_at.desc(), NFT.id.desc())
    )
    return list(result.scalars().all())


async def get_by_creator(db: AsyncSession, address: str) -> list[NFT]:
    result = await db.execute(
        select(NFT).where(NFT.creator == normalize_address(address)).order_by(NFT.created_at.desc(), NFT.id.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def mint_nft(db: AsyncSession, body: MintRequest, settings: Settings) -> tuple[NFT, Transaction]:
    """Mint a new NFT owned by its creator.

    Raises:
        ValidationError: ``owner`` given and different from ``creator``.
        InvalidState: Token ID already minted.
        NotFound: ``collection_id`` does not exist.
    """
    if body.owner is not None and not same_address(body.owner, body.creator):
        msg = "A newly minted NFT is owned by its creator"
        raise ValidationError(msg)

    details = MintDetails(
        creator=body.creator,
        title=body.title,
        ipfs_hash=body.ipfs_hash,
        description=body.description,
        price=body.price,
        currency=body.currency,
        royalty_fee=body.royalty_fee,
        is_listed=body.is_listed,
        category=body.category,
        rarity=body.rarity,
        token_standard=body.token_standard,
        utility_percent=body.utility_percent,
        collection_id=body.collection_id,
        attributes=[attr.model_dump() for attr in body.attributes],
    )
    engine = TransitionEngine(db, settings)
    nft, tx = await engine.apply_transition(
        TransitionKind.MINT, body.token_id, TransitionParams(mint=details, tx_hash=body.tx_hash)
    )
    logger.info("nft_minted", token_id=nft.token_id, creator=nft.creator, collection_id=nft.collection_id)
    return nft, tx


async def update_nft(db: AsyncSession, token_id: int, body: UpdateNFTRequest, settings: Settings) -> NFT:
    """Owner edit of metadata; listing changes are applied as transitions in the same unit."""
    nft = await get_by_token(db, token_id)
    if not same_address(body.address, nft.owner):
        msg = "Not authorized to update this NFT"
        raise Unauthorized(msg)

    transition = _listing_change(nft, body)

    changes: dict[str, Any] = body.model_dump(include={"title", "description", "category"}, exclude_unset=True)
    changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
    for field, value in changes.items():
        setattr(nft, field, value)
    if changes:
        nft.updated_at = datetime.now(timezone.utc)

    if transition is not None:
        kind, params = transition
        nft, _tx = await TransitionEngine(db, settings).apply_transition(kind, token_id, params)
        return nft

    try:
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        msg = "NFT was modified by a concurrent operation"
        raise InvalidState(msg) from e
    logger.info("nft_updated", token_id=token_id, fields=sorted(changes))
    return nft


def _listing_change(nft: NFT, body: UpdateNFTRequest) -> tuple[TransitionKind, TransitionParams] | None:
    """Translate ``isListed``/``price``/``currency`` edits into at most one transition."""
    if body.is_listed is False:
        if body.price is not None or body.currency is not None:
            msg = "Cannot change the price or currency while unlisting"
            raise ValidationError(msg)
        if not nft.is_listed:
            return None
        return TransitionKind.UNLIST, TransitionParams(caller=body.address, tx_hash=body.tx_hash)

    if body.is_listed is None and body.price is None and body.currency is None:
        return None
    if body.is_listed is None and not nft.is_listed:
        msg = "Price and currency can only be changed on a listed NFT; list it instead"
        raise ValidationError(msg)

    price = body.price if body.price is not None else nft.price
    currency = body.currency or nft.currency
    if nft.is_listed and price == nft.price and currency == nft.currency:
        return None
    return TransitionKind.LIST, TransitionParams(
        caller=body.address, price=price, currency=body.currency, tx_hash=body.tx_hash
    )


async def buy_nft(
    db: AsyncSession, token_id: int, buyer: str, tx_hash: str | None, settings: Settings
) -> tuple[NFT, Transaction]:
    engine = TransitionEngine(db, settings)
    return await engine.apply_transition(TransitionKind.BUY, token_id, TransitionParams(buyer=buyer, tx_hash=tx_hash))


async def list_nft(
    db: AsyncSession,
    token_id: int,
    address: str,
    price: float,
    currency: str | None,
    tx_hash: str | None,
    settings: Settings,
) -> tuple[NFT, Transaction]:
    params = TransitionParams(caller=address, price=price, currency=currency, tx_hash=tx_hash)
    return await TransitionEngine(db, settings).apply_transition(TransitionKind.LIST, token_id, params)


async def unlist_nft(
    db: AsyncSession, token_id: int, address: str, tx_hash: str | None, settings: Settings
) -> tuple[NFT, Transaction]:
    params = TransitionParams(caller=address, tx_hash=tx_hash)
    return await TransitionEngine(db, settings).apply_transition(TransitionKind.UNLIST, token_id, params)


async def transfer_nft(
    db: AsyncSession, token_id: int, address: str, to: str, tx_hash: str | None, settings: Settings
) -> tuple[NFT, Transaction]:
    params = TransitionParams(caller=address, to=to, tx_hash=tx_hash)
    return await TransitionEngine(db, settings).apply_transition(TransitionKind.TRANSFER, token_id, params)
