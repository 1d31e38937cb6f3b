"""Marketplace tables.

Creates users, collections, nfts, nft_attributes, transactions, the
owned/created association tables, follows and contact_submissions.

Revision ID: 001_marketplace_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_marketplace_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the marketplace schema."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("address", sa.String(128), nullable=False),
        sa.Column("username", sa.String(64), nullable=True),
        sa.Column("bio", sa.String(500), nullable=True),
        sa.Column("profile_image", sa.Text(), nullable=True),
        sa.Column("cover_image", sa.Text(), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("socials", sa.JSON(), nullable=False),
        sa.Column("total_volume", sa.Float(), server_default="0", nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("address", name="uq_users_address"),
        sa.CheckConstraint("address = lower(address)", name="ck_users_address_lower"),
    )
    op.create_index("ix_users_total_volume", "users", [sa.text("total_volume DESC")])

    # --- collections ---
    op.create_table(
        "collections",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("banner_image", sa.Text(), nullable=True),
        sa.Column("creator", sa.String(128), nullable=False),
        sa.Column("category", sa.String(16), server_default="Art", nullable=False),
        sa.Column("floor_price", sa.Float(), server_default="0", nullable=False),
        sa.Column("royalty_fee", sa.Float(), server_default="0", nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_collections_creator", "collections", ["creator"])

    # --- nfts ---
    op.create_table(
        "nfts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("token_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ipfs_hash", sa.String(256), nullable=False),
        sa.Column("price", sa.Float(), server_default="0", nullable=False),
        sa.Column("currency", sa.String(8), server_default="ETH", nullable=False),
        sa.Column("owner", sa.String(128), nullable=False),
        sa.Column("creator", sa.String(128), nullable=False),
        sa.Column("royalty_fee", sa.Float(), server_default="0", nullable=False),
        sa.Column("is_listed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("category", sa.String(16), server_default="Art", nullable=False),
        sa.Column("rarity", sa.String(16), server_default="Common", nullable=False),
        sa.Column("token_standard", sa.String(16), server_default="ERC-721", nullable=False),
        sa.Column("utility_percent", sa.Float(), server_default="0", nullable=False),
        sa.Column(
            "collection_id",
            sa.BigInteger(),
            sa.ForeignKey("collections.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("token_id", name="uq_nfts_token_id"),
        sa.CheckConstraint("price >= 0", name="ck_nfts_price_non_negative"),
        sa.CheckConstraint("currency IN ('ETH','USDC','SKALE','SKL','POL','MATIC')", name="ck_nfts_currency"),
    )
    op.create_index("ix_nfts_owner", "nfts", ["owner"])
    op.create_index("ix_nfts_creator", "nfts", ["creator"])
    op.create_index("ix_nfts_collection_id", "nfts", ["collection_id"])
    op.create_index(
        "ix_nfts_listed_price",
        "nfts",
        ["collection_id", "price"],
        postgresql_where=sa.text("is_listed"),
    )

    op.create_table(
        "nft_attributes",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("nft_id", sa.BigInteger(), sa.ForeignKey("nfts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("trait_type", sa.String(128), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
    )
    op.create_index("ix_nft_attributes_nft_id", "nft_attributes", ["nft_id", "position"])

    # --- transactions (append-only log) ---
    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("nft_id", sa.BigInteger(), sa.ForeignKey("nfts.id"), nullable=False),
        sa.Column("token_id", sa.BigInteger(), nullable=False),
        sa.Column("from_address", sa.String(128), nullable=False),
        sa.Column("to_address", sa.String(128), nullable=False),
        sa.Column("price", sa.Float(), server_default="0", nullable=False),
        sa.Column("currency", sa.String(8), server_default="ETH", nullable=False),
        sa.Column("tx_hash", sa.String(80), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "type IN ('mint','buy','sell','transfer','list','unlist')",
            name="ck_transactions_type",
        ),
    )
    op.create_index("ix_transactions_nft_time", "transactions", ["nft_id", "timestamp"])
    op.create_index("ix_transactions_from", "transactions", ["from_address"])
    op.create_index("ix_transactions_to", "transactions", ["to_address"])

    # --- association tables ---
    for name in ("user_owned_nfts", "user_created_nfts"):
        op.create_table(
            name,
            sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("nft_id", sa.BigInteger(), sa.ForeignKey("nfts.id", ondelete="CASCADE"), primary_key=True),
        )
    op.create_index("ix_user_owned_nfts_nft_id", "user_owned_nfts", ["nft_id"])

    op.create_table(
        "follows",
        sa.Column("follower_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("following_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("follower_id != following_id", name="ck_follows_no_self"),
    )
    op.create_index("ix_follows_following_id", "follows", ["following_id"])

    op.create_table(
        "contact_submissions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    """Drop the marketplace schema."""
    op.drop_table("contact_submissions")
    op.drop_table("follows")
    op.drop_table("user_created_nfts")
    op.drop_table("user_owned_nfts")
    op.drop_table("transactions")
    op.drop_table("nft_attributes")
    op.drop_table("nfts")
    op.drop_table("collections")
    op.drop_table("users")
