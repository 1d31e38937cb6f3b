"""Transaction log reads and the generic transition entry point."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from napft.addresses import normalize_address
from napft.db.models import NFT, Transaction
from napft.errors import NotFound, ValidationError
from napft.query.filters import TransactionQuery, build_transaction_query
from napft.query.pagination import PageParams, paginate
from napft.transitions import TransitionEngine, TransitionKind, TransitionParams

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from napft.config import Settings
    from napft.query.envelope import Pagination
    from napft.transactions.schemas import CreateTransactionRequest

RECENT_TYPES = ("buy", "sell", "mint")


async def list_transactions(
    db: AsyncSession, query: TransactionQuery, params: PageParams
) -> tuple[list[Transaction], Pagination]:
    return await paginate(db, build_transaction_query(query), params)


async def get_recent(db: AsyncSession, limit: int) -> list[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.type.in_(RECENT_TYPES))
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_by_user(db: AsyncSession, address: str) -> list[Transaction]:
    """Every entry where the address is on either side."""
    address = normalize_address(address)
    result = await db.execute(
        select(Transaction)
        .where(or_(Transaction.from_address == address, Transaction.to_address == address))
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
    )
    return list(result.scalars().all())


async def get_by_nft(db: AsyncSession, nft_id: int) -> list[Transaction]:
    if await db.get(NFT, nft_id) is None:
        msg = "NFT not found"
        raise NotFound(msg)
    result = await db.execute(
        select(Transaction)
        .where(Transaction.nft_id == nft_id)
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
    )
    return list(result.scalars().all())


def to_transition(body: CreateTransactionRequest) -> tuple[TransitionKind, TransitionParams]:
    """Map a generic transaction request onto an engine transition.

    - buy/sell: ``to`` is the buyer; ``from`` and ``price``, when given,
      must match the current owner and listing price.
    - list/unlist/transfer: ``from`` is the acting owner.
    - mint is not accepted here; minting goes through ``POST /api/nfts``.
    """
    kind = TransitionKind(body.type)
    if kind is TransitionKind.MINT:
        msg = "Mint transactions cannot be created directly; use POST /api/nfts"
        raise ValidationError(msg)

    if kind in (TransitionKind.BUY, TransitionKind.SELL):
        return kind, TransitionParams(
            buyer=body.to_address,
            expected_seller=body.from_address,
            expected_price=body.price,
            tx_hash=body.tx_hash,
        )
    if kind is TransitionKind.LIST:
        return kind, TransitionParams(
            caller=body.from_address,
            price=body.price,
            currency=body.currency,
            tx_hash=body.tx_hash,
        )
    if kind is TransitionKind.UNLIST:
        return kind, TransitionParams(caller=body.from_address, tx_hash=body.tx_hash)
    return kind, TransitionParams(caller=body.from_address, to=body.to_address, tx_hash=body.tx_hash)


async def create_transaction(db: AsyncSession, body: CreateTransactionRequest, settings: Settings) -> Transaction:
    kind, params = to_transition(body)
    _nft, tx = await TransitionEngine(db, settings).apply_transition(kind, body.token_id, params)
    return tx
