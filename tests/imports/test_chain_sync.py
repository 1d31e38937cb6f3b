"""Tests for the chain snapshot importer."""

from __future__ import annotations

import json
from typing import Any

import pytest
from sqlalchemy import select

from napft.database import close_db, create_schema, get_session_factory, init_db
from napft.db.models import NFT, Transaction
from napft.imports.chain_sync import (
    ChainTokenSnapshot,
    currency_for,
    load_snapshot,
    main,
    run_import,
    sync_token,
    wei_to_ether,
)

ZERO = "0x0000000000000000000000000000000000000000"
CREATOR = "0xC0FFEE"
COLLECTOR = "0xB0B"


class FakeResolver:
    """Stands in for MetadataResolver; serves documents from a dict."""

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        self.documents = documents or {}

    async def __aenter__(self) -> FakeResolver:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        return None

    async def fetch_metadata(self, uri: str) -> dict[str, Any] | None:
        return self.documents.get(uri)

    async def resolve_image(self, image: str | None) -> str | None:
        if image and image.startswith("ipfs://"):
            return "https://ipfs.io/ipfs/" + image[len("ipfs://") :]
        return image


def _snapshot(**overrides: Any) -> ChainTokenSnapshot:
    data = {
        "tokenId": 7,
        "creator": CREATOR,
        "owner": CREATOR,
        "price": "2000000000000000000",
        "royaltyFee": 5,
        "paymentToken": ZERO,
        "tokenURI": "ipfs://QmMeta7",
    }
    data.update(overrides)
    return ChainTokenSnapshot.from_dict(data)


async def _log_types(db, token_id: int) -> list[str]:
    result = await db.execute(
        select(Transaction.type).where(Transaction.token_id == token_id).order_by(Transaction.id)
    )
    return list(result.scalars().all())


class TestConversions:
    def test_wei_to_ether(self):
        assert wei_to_ether("1500000000000000000") == 1.5
        assert wei_to_ether(0) == 0.0

    @pytest.mark.parametrize("value", ["abc", "-1"])
    def test_wei_to_ether_rejects(self, value):
        with pytest.raises(ValueError):
            wei_to_ether(value)

    def test_currency_for(self):
        assert currency_for(None, ZERO) == "ETH"
        assert currency_for("", ZERO) == "ETH"
        assert currency_for("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", ZERO) == "USDC"


class TestSnapshotParsing:
    def test_owner_defaults_to_creator(self):
        snapshot = ChainTokenSnapshot.from_dict({"tokenId": "3", "creator": "0xABC", "tokenURI": "QmX"})
        assert snapshot.token_id == 3
        assert snapshot.owner == "0xabc"
        assert snapshot.is_listed is False

    def test_missing_key(self):
        with pytest.raises(ValueError, match="Malformed snapshot entry"):
            ChainTokenSnapshot.from_dict({"creator": "0xabc"})

    @pytest.mark.parametrize("token_id", [-1, 2**63])
    def test_token_id_out_of_range(self, token_id):
        with pytest.raises(ValueError, match="out of range"):
            ChainTokenSnapshot.from_dict({"tokenId": token_id, "creator": "0xabc", "tokenURI": "QmX"})

    def test_load_snapshot_accepts_both_shapes(self, tmp_path):
        entry = {"tokenId": 1, "creator": "0xabc", "tokenURI": "QmX"}
        listed = tmp_path / "list.json"
        listed.write_text(json.dumps([entry]))
        wrapped = tmp_path / "wrapped.json"
        wrapped.write_text(json.dumps({"tokens": [entry, {**entry, "tokenId": 2}]}))

        assert [s.token_id for s in load_snapshot(listed)] == [1]
        assert [s.token_id for s in load_snapshot(wrapped)] == [1, 2]


class TestSyncToken:
    @pytest.mark.asyncio
    async def test_new_token_minted_transferred_and_listed(self, db_session, settings):
        resolver = FakeResolver(
            {
                "ipfs://QmMeta7": {
                    "name": "Sunrise",
                    "description": "Morning",
                    "image": "ipfs://QmImg7",
                    "category": "Photography",
                    "rarity": "Epic",
                    "attributes": [{"trait_type": "Sky", "value": "Orange"}, {"bogus": 1}],
                }
            }
        )
        snapshot = _snapshot(owner=COLLECTOR, isListed=True)

        outcome = await sync_token(db_session, snapshot, resolver, settings)

        assert outcome.action == "minted"
        assert outcome.transitions == ["mint", "transfer", "list"]
        assert outcome.image == "https://ipfs.io/ipfs/QmImg7"

        nft = await db_session.scalar(select(NFT).where(NFT.token_id == 7))
        assert nft.title == "Sunrise"
        assert nft.category == "Photography"
        assert nft.rarity == "Epic"
        assert nft.ipfs_hash == "QmMeta7"
        assert nft.creator == "0xc0ffee"
        assert nft.owner == "0xb0b"
        assert nft.is_listed is True
        assert nft.price == 2.0
        assert nft.currency == "ETH"
        assert [(a.trait_type, a.value) for a in nft.attributes] == [("Sky", "Orange")]
        assert await _log_types(db_session, 7) == ["mint", "transfer", "list"]

    @pytest.mark.asyncio
    async def test_unresolvable_metadata_uses_placeholders(self, db_session, settings):
        outcome = await sync_token(db_session, _snapshot(), FakeResolver(), settings)

        assert outcome.action == "minted"
        assert outcome.transitions == ["mint"]
        nft = await db_session.scalar(select(NFT).where(NFT.token_id == 7))
        assert nft.title == "NFT #7"
        assert nft.category == "Art"
        assert nft.rarity == "Common"

    @pytest.mark.asyncio
    async def test_existing_token_owner_change_is_transfer(self, db_session, settings):
        await sync_token(db_session, _snapshot(), FakeResolver(), settings)

        unchanged = await sync_token(db_session, _snapshot(owner=CREATOR.lower()), FakeResolver(), settings)
        moved = await sync_token(db_session, _snapshot(owner=COLLECTOR), FakeResolver(), settings)

        assert unchanged.action == "unchanged"
        assert moved.action == "transferred"
        assert await _log_types(db_session, 7) == ["mint", "transfer"]

    @pytest.mark.asyncio
    async def test_existing_token_listing_follows_chain(self, db_session, settings):
        await sync_token(db_session, _snapshot(), FakeResolver(), settings)
        three_eth = "3000000000000000000"

        listed = await sync_token(db_session, _snapshot(isListed=True), FakeResolver(), settings)
        repriced = await sync_token(db_session, _snapshot(isListed=True, price=three_eth), FakeResolver(), settings)
        same = await sync_token(db_session, _snapshot(isListed=True, price=three_eth), FakeResolver(), settings)
        delisted = await sync_token(db_session, _snapshot(), FakeResolver(), settings)

        assert [o.action for o in (listed, repriced, same, delisted)] == ["updated", "updated", "unchanged", "updated"]
        assert delisted.transitions == ["unlist"]
        nft = await db_session.scalar(select(NFT).where(NFT.token_id == 7))
        assert nft.is_listed is False
        assert nft.price == 3.0
        assert await _log_types(db_session, 7) == ["mint", "list", "list", "unlist"]

    @pytest.mark.asyncio
    async def test_existing_token_sold_and_relisted(self, db_session, settings):
        await sync_token(db_session, _snapshot(isListed=True), FakeResolver(), settings)

        outcome = await sync_token(db_session, _snapshot(owner=COLLECTOR, isListed=True), FakeResolver(), settings)

        assert outcome.action == "transferred"
        assert outcome.transitions == ["transfer", "list"]
        nft = await db_session.scalar(select(NFT).where(NFT.token_id == 7))
        assert nft.owner == "0xb0b"
        assert nft.is_listed is True

    @pytest.mark.asyncio
    async def test_existing_token_royalty_refreshed(self, db_session, settings):
        await sync_token(db_session, _snapshot(), FakeResolver(), settings)

        outcome = await sync_token(db_session, _snapshot(royaltyFee=7.5), FakeResolver(), settings)

        assert outcome.action == "updated"
        assert outcome.transitions == []
        nft = await db_session.scalar(select(NFT).where(NFT.token_id == 7))
        assert nft.royalty_fee == 7.5
        assert await _log_types(db_session, 7) == ["mint"]

    @pytest.mark.asyncio
    async def test_bad_price_fails_without_partial_mint(self, db_session, settings):
        outcome = await sync_token(db_session, _snapshot(price="not-a-number"), FakeResolver(), settings)

        assert outcome.action == "failed"
        assert "Invalid wei amount" in outcome.error
        assert await db_session.scalar(select(NFT).where(NFT.token_id == 7)) is None


class TestRunImport:
    @pytest.mark.asyncio
    async def test_run_import(self, settings, tmp_path, monkeypatch):
        await init_db(settings.database_url)
        await create_schema()
        await close_db()

        path = tmp_path / "snapshot.json"
        path.write_text(
            json.dumps(
                [
                    {"tokenId": 1, "creator": CREATOR, "tokenURI": "QmOne", "price": "0"},
                    {"tokenId": 2, "creator": CREATOR, "tokenURI": "QmTwo", "price": "bad"},
                ]
            )
        )
        monkeypatch.setattr("napft.imports.chain_sync.MetadataResolver", lambda _settings: FakeResolver())

        outcomes = await run_import(path, settings)

        assert [(o.token_id, o.action) for o in outcomes] == [(1, "minted"), (2, "failed")]

        await init_db(settings.database_url)
        try:
            async with get_session_factory()() as db:
                assert await db.scalar(select(NFT.token_id)) == 1
        finally:
            await close_db()


def test_main_exits_nonzero_on_failure(tmp_path, monkeypatch, settings):
    path = tmp_path / "snapshot.json"
    path.write_text("[]")
    seen: dict[str, Any] = {}

    async def fake_run_import(snapshot_path, run_settings):
        seen["path"] = snapshot_path
        seen["url"] = run_settings.database_url
        return [type("Outcome", (), {"action": "failed"})()]

    monkeypatch.setattr("napft.imports.chain_sync.run_import", fake_run_import)

    with pytest.raises(SystemExit) as exc_info:
        main([str(path), "--database-url", "sqlite+aiosqlite:///./other.db"])

    assert exc_info.value.code == 1
    assert seen == {"path": path, "url": "sqlite+aiosqlite:///./other.db"}
