"""Ownership Transition Engine.

Every state change on an NFT (mint, list, unlist, buy/sell, transfer) goes
through ``TransitionEngine.apply_transition``. One call is one unit of work:

1. validate the request (``ValidationError``, nothing touched yet);
2. load the NFT row ``FOR UPDATE`` with fresh state;
3. check preconditions (``NotFound``, ``Unauthorized``, ``InvalidState``);
4. UPDATE the NFT as a compare-and-swap on its ``version`` column;
5. INSERT the transaction log entry;
6. update owner sets, seller volume and the collection floor;
7. commit, or roll back everything on any failure.

Concurrent transitions on the same NFT are serialized by the row lock on
PostgreSQL and by the version check everywhere: the loser either sees the
winner's state and fails its precondition, or loses the CAS. Both surface
as ``InvalidState``.
"""

from __future__ import annotations

import secrets
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from napft.addresses import normalize_address, same_address
from napft.config import Settings, get_settings
from napft.db.models import (
    CURRENCIES,
    MAX_BIGINT,
    NFT,
    TX_HASH_LENGTH,
    Collection,
    NFTAttribute,
    Transaction,
    User,
)
from napft.errors import (
    InternalError,
    InvalidState,
    MarketplaceError,
    NotFound,
    Unauthorized,
    ValidationError,
)
from napft.transitions import aggregates
from napft.transitions.types import MintDetails, TransitionKind, TransitionParams

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TransitionResult = tuple[NFT, Transaction]
Handler = Callable[[TransitionKind, int, TransitionParams], Awaitable[TransitionResult]]


def generate_tx_hash() -> str:
    """Placeholder hash for off-chain bookkeeping entries without one."""
    return "0x" + secrets.token_hex(32)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransitionEngine:
    """Applies transitions to NFTs on one ``AsyncSession``.

    The engine owns the commit: callers may stage related edits on the same
    session (e.g. metadata changes) and they are committed or rolled back
    together with the transition.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self._handlers: dict[TransitionKind, Handler] = {
            TransitionKind.MINT: self._mint,
            TransitionKind.LIST: self._list,
            TransitionKind.UNLIST: self._unlist,
            TransitionKind.BUY: self._buy,
            TransitionKind.SELL: self._buy,
            TransitionKind.TRANSFER: self._transfer,
        }

    async def apply_transition(
        self,
        kind: TransitionKind | str,
        token_id: int,
        params: TransitionParams,
    ) -> TransitionResult:
        """Apply one transition atomically and return the NFT and its new log entry.

        Raises:
            ValidationError: Malformed request.
            NotFound: NFT (or referenced collection) does not exist.
            Unauthorized: Caller is not the required party.
            InvalidState: A precondition failed or a concurrent change won.
            InternalError: The store failed; nothing was persisted.
        """
        try:
            kind = TransitionKind(kind)
        except ValueError as e:
            msg = f"Unknown transition type: {kind}"
            raise ValidationError(msg) from e

        log = logger.bind(kind=kind.value, token_id=token_id)

        try:
            self._validate(kind, token_id, params)
            nft, tx = await self._handlers[kind](kind, token_id, params)
            await self.db.commit()
        except MarketplaceError as e:
            await self.db.rollback()
            log.info("transition_rejected", error=e.error_code, reason=e.message)
            raise
        except StaleDataError as e:
            await self.db.rollback()
            log.info("transition_conflict")
            msg = "NFT was modified by a concurrent operation"
            raise InvalidState(msg) from e
        except IntegrityError as e:
            await self.db.rollback()
            if kind is TransitionKind.MINT:
                msg = f"NFT with token ID {token_id} already exists"
                raise InvalidState(msg) from e
            log.error("transition_failed", exc_info=e)
            msg = "Failed to persist transition"
            raise InternalError(msg) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error("transition_failed", exc_info=e)
            msg = "Failed to persist transition"
            raise InternalError(msg) from e

        log.info(
            "transition_applied",
            tx_id=tx.id,
            from_address=tx.from_address,
            to_address=tx.to_address,
            price=tx.price,
        )
        return nft, tx

    # ------------------------------------------------------------------
    # Validation (before any store access)
    # ------------------------------------------------------------------

    def _validate(self, kind: TransitionKind, token_id: int, params: TransitionParams) -> None:
        if not isinstance(token_id, int) or isinstance(token_id, bool) or token_id < 0:
            msg = "Token ID must be a non-negative integer"
            raise ValidationError(msg)
        if token_id > MAX_BIGINT:
            msg = f"Token ID must not exceed {MAX_BIGINT}"
            raise ValidationError(msg)
        if params.tx_hash is not None and len(params.tx_hash) > TX_HASH_LENGTH:
            msg = f"Transaction hash must be at most {TX_HASH_LENGTH} characters"
            raise ValidationError(msg)
        if params.currency is not None and params.currency not in CURRENCIES:
            msg = f"Unsupported currency: {params.currency}"
            raise ValidationError(msg)

        if kind is TransitionKind.MINT:
            self._validate_mint(params.mint)
        elif kind is TransitionKind.LIST:
            if params.price is None:
                msg = "Price is required to list an NFT"
                raise ValidationError(msg)
            if params.price < 0:
                msg = "Price must be non-negative"
                raise ValidationError(msg)
        elif kind in (TransitionKind.BUY, TransitionKind.SELL):
            if not params.buyer:
                msg = "Buyer address is required"
                raise ValidationError(msg)
        elif kind is TransitionKind.TRANSFER:
            if not params.to:
                msg = "Recipient address is required"
                raise ValidationError(msg)

        owner_actions = (TransitionKind.LIST, TransitionKind.UNLIST, TransitionKind.TRANSFER)
        if kind in owner_actions and not params.trusted and not params.caller:
            msg = "Caller address is required"
            raise ValidationError(msg)

    @staticmethod
    def _validate_mint(details: MintDetails | None) -> None:
        if details is None:
            msg = "Mint details are required"
            raise ValidationError(msg)
        if not details.title or not details.title.strip():
            msg = "Title is required"
            raise ValidationError(msg)
        if not details.ipfs_hash:
            msg = "IPFS hash is required"
            raise ValidationError(msg)
        if details.price < 0:
            msg = "Price must be non-negative"
            raise ValidationError(msg)
        if details.royalty_fee < 0 or details.royalty_fee > 100:
            msg = "Royalty fee must be a fraction (0..1) or a percentage (0..100)"
            raise ValidationError(msg)
        if details.currency is not None and details.currency not in CURRENCIES:
            msg = f"Unsupported currency: {details.currency}"
            raise ValidationError(msg)
        normalize_address(details.creator)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load_nft(self, token_id: int) -> NFT:
        result = await self.db.execute(
            select(NFT)
            .where(NFT.token_id == token_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        nft = result.scalar_one_or_none()
        if nft is None:
            msg = "NFT not found"
            raise NotFound(msg)
        return nft

    async def _ensure_user(self, address: str, lock: bool = False) -> User:
        """Load a user by address, creating the record on first reference."""
        address = normalize_address(address)
        query = select(User).where(User.address == address).execution_options(populate_existing=True)
        if lock:
            query = query.with_for_update()
        user = (await self.db.execute(query)).scalar_one_or_none()
        if user is None:
            user = User(address=address, socials={}, total_volume=0.0)
            self.db.add(user)
            await self.db.flush()
            logger.info("user_created", address=address)
        return user

    def _record(
        self,
        kind: TransitionKind,
        nft: NFT,
        from_address: str,
        to_address: str,
        price: float,
        params: TransitionParams,
    ) -> Transaction:
        tx = Transaction(
            type=kind.value,
            nft_id=nft.id,
            token_id=nft.token_id,
            from_address=from_address,
            to_address=to_address,
            price=price,
            currency=nft.currency,
            tx_hash=params.tx_hash or generate_tx_hash(),
            timestamp=_utcnow(),
        )
        self.db.add(tx)
        return tx

    def _require_owner(self, nft: NFT, params: TransitionParams, action: str) -> None:
        if params.trusted:
            return
        if not same_address(params.caller, nft.owner):
            msg = f"Only the owner can {action} this NFT"
            raise Unauthorized(msg)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _mint(self, kind: TransitionKind, token_id: int, params: TransitionParams) -> TransitionResult:
        details = params.mint
        assert details is not None  # checked in _validate

        existing = await self.db.scalar(select(NFT.id).where(NFT.token_id == token_id))
        if existing is not None:
            msg = f"NFT with token ID {token_id} already exists"
            raise InvalidState(msg)

        if details.collection_id is not None:
            collection = await self.db.get(Collection, details.collection_id)
            if collection is None:
                msg = "Collection not found"
                raise NotFound(msg)

        creator = normalize_address(details.creator)
        now = _utcnow()
        nft = NFT(
            token_id=token_id,
            title=details.title.strip(),
            description=details.description,
            ipfs_hash=details.ipfs_hash,
            price=details.price,
            currency=details.currency or self.settings.default_currency,
            owner=creator,
            creator=creator,
            royalty_fee=details.royalty_fee,
            is_listed=details.is_listed,
            category=details.category,
            rarity=details.rarity,
            token_standard=details.token_standard,
            utility_percent=details.utility_percent,
            collection_id=details.collection_id,
            attributes=[
                NFTAttribute(position=i, trait_type=str(attr["trait_type"]), value=attr["value"])
                for i, attr in enumerate(details.attributes)
            ],
            created_at=now,
            updated_at=now,
        )
        self.db.add(nft)
        await self.db.flush()

        tx = self._record(kind, nft, self.settings.mint_sentinel_address, creator, 0.0, params)

        user = await self._ensure_user(creator)
        await aggregates.add_created(self.db, user.id, nft.id)
        await aggregates.set_owner(self.db, nft.id, user.id)
        await aggregates.recompute_floor_price(self.db, nft.collection_id)

        await self.db.flush()
        return nft, tx

    async def _list(self, kind: TransitionKind, token_id: int, params: TransitionParams) -> TransitionResult:
        nft = await self._load_nft(token_id)
        self._require_owner(nft, params, "list")

        price = float(params.price)  # type: ignore[arg-type]
        currency = params.currency or nft.currency
        if nft.is_listed and nft.price == price and nft.currency == currency:
            msg = "NFT is already listed at this price"
            raise InvalidState(msg)

        nft.is_listed = True
        nft.price = price
        nft.currency = currency
        nft.updated_at = _utcnow()
        await self.db.flush()

        tx = self._record(kind, nft, nft.owner, nft.owner, price, params)
        await aggregates.recompute_floor_price(self.db, nft.collection_id)
        await self.db.flush()
        return nft, tx

    async def _unlist(self, kind: TransitionKind, token_id: int, params: TransitionParams) -> TransitionResult:
        nft = await self._load_nft(token_id)
        self._require_owner(nft, params, "unlist")

        if not nft.is_listed:
            msg = "NFT is not listed"
            raise InvalidState(msg)

        nft.is_listed = False
        nft.updated_at = _utcnow()
        await self.db.flush()

        tx = self._record(kind, nft, nft.owner, nft.owner, nft.price, params)
        await aggregates.recompute_floor_price(self.db, nft.collection_id)
        await self.db.flush()
        return nft, tx

    async def _buy(self, kind: TransitionKind, token_id: int, params: TransitionParams) -> TransitionResult:
        nft = await self._load_nft(token_id)
        buyer = normalize_address(params.buyer)  # type: ignore[arg-type]

        if not nft.is_listed:
            msg = "NFT is not listed for sale"
            raise InvalidState(msg)
        if same_address(nft.owner, buyer):
            msg = "You cannot buy your own NFT"
            raise InvalidState(msg)
        if params.expected_seller is not None and not same_address(params.expected_seller, nft.owner):
            msg = "Seller is no longer the owner of this NFT"
            raise InvalidState(msg)
        if params.expected_price is not None and params.expected_price != nft.price:
            msg = "Price does not match the current listing"
            raise InvalidState(msg)

        seller = nft.owner
        price = nft.price

        nft.owner = buyer
        nft.is_listed = False
        nft.updated_at = _utcnow()
        await self.db.flush()

        tx = self._record(kind, nft, seller, buyer, price, params)

        seller_user = await self._ensure_user(seller, lock=True)
        buyer_user = await self._ensure_user(buyer)
        await aggregates.set_owner(self.db, nft.id, buyer_user.id)
        aggregates.credit_seller(seller_user, price)
        await aggregates.recompute_floor_price(self.db, nft.collection_id)

        await self.db.flush()
        return nft, tx

    async def _transfer(self, kind: TransitionKind, token_id: int, params: TransitionParams) -> TransitionResult:
        nft = await self._load_nft(token_id)
        recipient = normalize_address(params.to)  # type: ignore[arg-type]

        if not params.trusted:
            allowed = same_address(params.caller, nft.owner)
            if self.settings.transfer_policy == "owner_or_creator":
                allowed = allowed or same_address(params.caller, nft.creator)
            if not allowed:
                msg = "Not authorized to transfer this NFT"
                raise Unauthorized(msg)

        if same_address(nft.owner, recipient):
            msg = "Recipient already owns this NFT"
            raise InvalidState(msg)

        previous_owner = nft.owner
        # A listing is an offer by the current owner; it does not survive a transfer.
        nft.owner = recipient
        nft.is_listed = False
        nft.updated_at = _utcnow()
        await self.db.flush()

        tx = self._record(kind, nft, previous_owner, recipient, 0.0, params)

        await self._ensure_user(previous_owner)
        recipient_user = await self._ensure_user(recipient)
        await aggregates.set_owner(self.db, nft.id, recipient_user.id)
        await aggregates.recompute_floor_price(self.db, nft.collection_id)

        await self.db.flush()
        return nft, tx
