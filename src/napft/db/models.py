"""ORM models for the marketplace store.

Addresses are normalized to lowercase by ``@validates`` hooks, so every
address that reaches the database is already in canonical form.

Ownership and creation sets live in association tables and are written only
by ``napft.transitions``; the relationships declared on ``User`` are
read-only views over them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from napft.addresses import normalize_address
from napft.db.base import Base, BigIntPK

CURRENCIES = ("ETH", "USDC", "SKALE", "SKL", "POL", "MATIC")
CATEGORIES = ("Art", "Collectible", "Photography", "Music", "Video", "Other")
RARITIES = ("Common", "Uncommon", "Rare", "Epic", "Legendary")
TOKEN_STANDARDS = ("ERC-721", "ERC-1155")
TRANSACTION_TYPES = ("mint", "buy", "sell", "transfer", "list", "unlist")

# Upper bound of the signed 64-bit id and token columns.
MAX_BIGINT = 2**63 - 1
TX_HASH_LENGTH = 80

IPFS_PUBLIC_GATEWAY = "https://ipfs.io/ipfs/"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Association tables
# ---------------------------------------------------------------------------

user_owned_nfts = Table(
    "user_owned_nfts",
    Base.metadata,
    Column("user_id", BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("nft_id", BigIntPK, ForeignKey("nfts.id", ondelete="CASCADE"), primary_key=True),
)

user_created_nfts = Table(
    "user_created_nfts",
    Base.metadata,
    Column("user_id", BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("nft_id", BigIntPK, ForeignKey("nfts.id", ondelete="CASCADE"), primary_key=True),
)

follows = Table(
    "follows",
    Base.metadata,
    Column("follower_id", BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("following_id", BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Marketplace participant keyed by wallet address."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)
    profile_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    socials: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    total_volume: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    nfts_owned: Mapped[list[NFT]] = relationship(
        "NFT", secondary=user_owned_nfts, viewonly=True, order_by="NFT.token_id"
    )
    nfts_created: Mapped[list[NFT]] = relationship(
        "NFT", secondary=user_created_nfts, viewonly=True, order_by="NFT.token_id"
    )
    collections_created: Mapped[list[Collection]] = relationship(
        "Collection",
        primaryjoin="foreign(Collection.creator) == User.address",
        viewonly=True,
        order_by="Collection.id",
    )
    following: Mapped[list[User]] = relationship(
        "User",
        secondary=follows,
        primaryjoin=lambda: User.id == follows.c.follower_id,
        secondaryjoin=lambda: User.id == follows.c.following_id,
        viewonly=True,
        order_by=lambda: User.address,
    )
    followers: Mapped[list[User]] = relationship(
        "User",
        secondary=follows,
        primaryjoin=lambda: User.id == follows.c.following_id,
        secondaryjoin=lambda: User.id == follows.c.follower_id,
        viewonly=True,
        order_by=lambda: User.address,
    )

    @validates("address")
    def _normalize(self, _key: str, value: str) -> str:
        return normalize_address(value)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class Collection(Base):
    """Creator-owned grouping of NFTs. ``floor_price`` is derived."""

    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    banner_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(16), default="Art", nullable=False)
    floor_price: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    royalty_fee: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    nfts: Mapped[list[NFT]] = relationship("NFT", viewonly=True, order_by="NFT.id")

    @validates("creator")
    def _normalize(self, _key: str, value: str) -> str:
        return normalize_address(value)


# ---------------------------------------------------------------------------
# NFTs
# ---------------------------------------------------------------------------


class NFTAttribute(Base):
    """One trait/value pair; ``position`` keeps the minted order."""

    __tablename__ = "nft_attributes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    nft_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("nfts.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    trait_type: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)


class NFT(Base):
    """A minted token. Never deleted; only mutated through transitions.

    ``version`` is the optimistic-concurrency counter: every UPDATE is issued
    as ``... WHERE id = :id AND version = :seen`` and a lost race surfaces as
    ``StaleDataError``.
    """

    __tablename__ = "nfts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    token_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ipfs_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    price: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="ETH", nullable=False)
    owner: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    creator: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    royalty_fee: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_listed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    category: Mapped[str] = mapped_column(String(16), default="Art", nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), default="Common", nullable=False)
    token_standard: Mapped[str] = mapped_column(String(16), default="ERC-721", nullable=False)
    utility_percent: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    collection_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("collections.id", ondelete="SET NULL"), nullable=True, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    attributes: Mapped[list[NFTAttribute]] = relationship(
        "NFTAttribute",
        order_by="NFTAttribute.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    transaction_history: Mapped[list[Transaction]] = relationship(
        "Transaction",
        order_by="[Transaction.timestamp, Transaction.id]",
        viewonly=True,
    )

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012

    @validates("owner", "creator")
    def _normalize(self, _key: str, value: str) -> str:
        return normalize_address(value)

    @property
    def image(self) -> str:
        return f"{IPFS_PUBLIC_GATEWAY}{self.ipfs_hash}"

    @property
    def metadata_uri(self) -> str:
        return f"{IPFS_PUBLIC_GATEWAY}{self.ipfs_hash}"


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class Transaction(Base):
    """Immutable log entry, one per state-changing operation."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_nft_time", "nft_id", "timestamp"),
        Index("ix_transactions_from", "from_address"),
        Index("ix_transactions_to", "to_address"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    nft_id: Mapped[int] = mapped_column(BigIntPK, ForeignKey("nfts.id"), nullable=False)
    token_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    from_address: Mapped[str] = mapped_column(String(128), nullable=False)
    to_address: Mapped[str] = mapped_column(String(128), nullable=False)
    price: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="ETH", nullable=False)
    tx_hash: Mapped[str | None] = mapped_column(String(TX_HASH_LENGTH), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    nft: Mapped[NFT] = relationship("NFT", viewonly=True)

    @validates("from_address", "to_address")
    def _normalize(self, _key: str, value: str) -> str:
        return normalize_address(value)


# ---------------------------------------------------------------------------
# Contact form
# ---------------------------------------------------------------------------


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
