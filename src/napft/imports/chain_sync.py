"""Chain snapshot importer.

Reads a JSON snapshot of on-chain token state and replays it through the
transition engine as a trusted caller, so imported NFTs get the same
transaction log and owner bookkeeping as ones minted through the API.

Snapshot format: a list (or ``{"tokens": [...]}``) of objects with
``tokenId``, ``creator``, ``owner``, ``price`` (wei), ``royaltyFee``
(percent), ``paymentToken``, ``tokenURI`` and optional ``isListed``.

Usage::

    napft-import snapshot.json
    napft-import snapshot.json --database-url sqlite+aiosqlite:///./napft.db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from napft.addresses import normalize_address, same_address
from napft.config import Settings, get_settings
from napft.database import close_db, get_session_factory, init_db
from napft.db.models import CATEGORIES, MAX_BIGINT, NFT, RARITIES
from napft.errors import MarketplaceError
from napft.imports.ipfs import MetadataResolver, clean_hash
from napft.middleware.logging import setup_logging
from napft.transitions import MintDetails, TransitionEngine, TransitionKind, TransitionParams

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

WEI_PER_ETHER = Decimal(10) ** 18


def wei_to_ether(value: str | int | float) -> float:
    """Convert a wei amount to ether.

    Raises:
        ValueError: The value is not a number or is negative.
    """
    try:
        wei = Decimal(str(value).strip())
    except InvalidOperation as e:
        msg = f"Invalid wei amount: {value!r}"
        raise ValueError(msg) from e
    if wei < 0:
        msg = f"Negative wei amount: {value!r}"
        raise ValueError(msg)
    return float(wei / WEI_PER_ETHER)


def currency_for(payment_token: str | None, zero_address: str) -> str:
    """The zero address pays in native ETH; any ERC-20 token is treated as USDC."""
    if not payment_token or same_address(payment_token, zero_address):
        return "ETH"
    return "USDC"


@dataclass
class ChainTokenSnapshot:
    token_id: int
    creator: str
    owner: str
    price: str | int
    royalty_fee: float
    payment_token: str | None
    token_uri: str
    is_listed: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChainTokenSnapshot:
        """Build from a snapshot entry (camelCase keys).

        Raises:
            ValueError: A required key is missing or malformed.
        """
        try:
            token_id = int(data["tokenId"])
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Malformed snapshot entry: {data!r}"
            raise ValueError(msg) from e
        if not 0 <= token_id <= MAX_BIGINT:
            msg = f"Token ID out of range: {token_id}"
            raise ValueError(msg)

        try:
            return cls(
                token_id=token_id,
                creator=normalize_address(data["creator"]),
                owner=normalize_address(data.get("owner") or data["creator"]),
                price=data.get("price", 0),
                royalty_fee=float(data.get("royaltyFee", 0)),
                payment_token=data.get("paymentToken"),
                token_uri=str(data["tokenURI"]),
                is_listed=bool(data.get("isListed", False)),
            )
        except (KeyError, TypeError, ValueError, MarketplaceError) as e:
            msg = f"Malformed snapshot entry: {data!r}"
            raise ValueError(msg) from e


@dataclass
class SyncOutcome:
    token_id: int
    action: str  # minted | transferred | updated | unchanged | failed
    transitions: list[str] = field(default_factory=list)
    image: str | None = None
    error: str | None = None


def load_snapshot(path: Path) -> list[ChainTokenSnapshot]:
    raw = json.loads(path.read_text())
    entries = raw.get("tokens", []) if isinstance(raw, dict) else raw
    return [ChainTokenSnapshot.from_dict(entry) for entry in entries]


def _metadata_fields(token_id: int, metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Pick the NFT fields out of a metadata document, with placeholders for gaps."""
    metadata = metadata or {}
    category = metadata.get("category")
    rarity = metadata.get("rarity")
    attributes = [
        {"trait_type": str(a["trait_type"]), "value": a["value"]}
        for a in metadata.get("attributes") or []
        if isinstance(a, dict) and "trait_type" in a and "value" in a
    ]
    return {
        "title": str(metadata.get("name") or f"NFT #{token_id}"),
        "description": str(metadata.get("description") or ""),
        "category": category if category in CATEGORIES else "Art",
        "rarity": rarity if rarity in RARITIES else "Common",
        "attributes": attributes,
    }


async def _reconcile_existing(
    engine: TransitionEngine,
    nft: NFT,
    snapshot: ChainTokenSnapshot,
    settings: Settings,
    outcome: SyncOutcome,
) -> None:
    """Replay owner, listing and royalty drift of an already imported token."""
    if not same_address(nft.owner, snapshot.owner):
        await engine.apply_transition(
            TransitionKind.TRANSFER,
            snapshot.token_id,
            TransitionParams(to=snapshot.owner, trusted=True),
        )
        outcome.action = "transferred"
        outcome.transitions.append(TransitionKind.TRANSFER.value)

    # The engine reloads the row on each transition, so ``nft`` reflects the transfer.
    price = wei_to_ether(snapshot.price)
    currency = currency_for(snapshot.payment_token, settings.mint_sentinel_address)
    if snapshot.is_listed and (not nft.is_listed or nft.price != price or nft.currency != currency):
        await engine.apply_transition(
            TransitionKind.LIST,
            snapshot.token_id,
            TransitionParams(price=price, currency=currency, trusted=True),
        )
        outcome.transitions.append(TransitionKind.LIST.value)
    elif not snapshot.is_listed and nft.is_listed:
        await engine.apply_transition(
            TransitionKind.UNLIST,
            snapshot.token_id,
            TransitionParams(trusted=True),
        )
        outcome.transitions.append(TransitionKind.UNLIST.value)

    if nft.royalty_fee != snapshot.royalty_fee:
        nft.royalty_fee = snapshot.royalty_fee
        await engine.db.commit()
        changed = True
    else:
        changed = bool(outcome.transitions)

    if outcome.action == "unchanged" and changed:
        outcome.action = "updated"


async def sync_token(
    db: AsyncSession,
    snapshot: ChainTokenSnapshot,
    resolver: MetadataResolver,
    settings: Settings,
) -> SyncOutcome:
    """Bring one token's stored state in line with its chain snapshot.

    New tokens are minted to the creator, transferred to the on-chain owner
    when it differs, then listed when listed on-chain. Existing tokens get a
    transfer when the owner changed, a list or unlist when the listing
    drifted, and their royalty fee refreshed.
    """
    engine = TransitionEngine(db, settings)
    outcome = SyncOutcome(token_id=snapshot.token_id, action="unchanged")
    log = logger.bind(token_id=snapshot.token_id)

    try:
        existing = await db.scalar(select(NFT).where(NFT.token_id == snapshot.token_id))
        if existing is not None:
            await _reconcile_existing(engine, existing, snapshot, settings, outcome)
            if outcome.action != "unchanged":
                log.info("token_resynced", action=outcome.action, transitions=outcome.transitions)
            return outcome

        metadata = await resolver.fetch_metadata(snapshot.token_uri)
        if metadata is None:
            log.warning("import_metadata_placeholder")
        outcome.image = await resolver.resolve_image((metadata or {}).get("image"))

        price = wei_to_ether(snapshot.price)
        currency = currency_for(snapshot.payment_token, settings.mint_sentinel_address)
        details = MintDetails(
            creator=snapshot.creator,
            ipfs_hash=clean_hash(snapshot.token_uri),
            price=price,
            currency=currency,
            royalty_fee=snapshot.royalty_fee,
            **_metadata_fields(snapshot.token_id, metadata),
        )
        await engine.apply_transition(
            TransitionKind.MINT, snapshot.token_id, TransitionParams(mint=details, trusted=True)
        )
        outcome.action = "minted"
        outcome.transitions.append(TransitionKind.MINT.value)

        if not same_address(snapshot.owner, snapshot.creator):
            await engine.apply_transition(
                TransitionKind.TRANSFER,
                snapshot.token_id,
                TransitionParams(to=snapshot.owner, trusted=True),
            )
            outcome.transitions.append(TransitionKind.TRANSFER.value)

        if snapshot.is_listed:
            await engine.apply_transition(
                TransitionKind.LIST,
                snapshot.token_id,
                TransitionParams(price=price, currency=currency, trusted=True),
            )
            outcome.transitions.append(TransitionKind.LIST.value)
    except (MarketplaceError, ValueError) as e:
        outcome.action = "failed"
        outcome.error = str(e)
        log.warning("token_import_failed", error=str(e), applied=outcome.transitions)
        return outcome

    log.info("token_imported", action=outcome.action, transitions=outcome.transitions, image=outcome.image)
    return outcome


async def run_import(path: Path, settings: Settings) -> list[SyncOutcome]:
    snapshots = load_snapshot(path)
    logger.info("import_started", path=str(path), tokens=len(snapshots))

    await init_db(settings.database_url)
    outcomes: list[SyncOutcome] = []
    try:
        async with MetadataResolver(settings) as resolver:
            for snapshot in snapshots:
                async with get_session_factory()() as db:
                    outcomes.append(await sync_token(db, snapshot, resolver, settings))
    finally:
        await close_db()

    failed = sum(1 for o in outcomes if o.action == "failed")
    logger.info("import_finished", tokens=len(outcomes), failed=failed)
    return outcomes


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="napft-import",
        description="Import on-chain NFT state from a JSON snapshot",
    )
    parser.add_argument("snapshot", type=Path, help="Path to the snapshot JSON file")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Override NAPFT_DATABASE_URL",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    if args.database_url:
        settings = settings.model_copy(update={"database_url": args.database_url})
    setup_logging(settings)

    outcomes = asyncio.run(run_import(args.snapshot, settings))
    sys.exit(1 if any(o.action == "failed" for o in outcomes) else 0)


if __name__ == "__main__":
    main()
