"""Derived aggregate tests: floor price, owned sets, collection volume."""

from __future__ import annotations

import pytest
from sqlalchemy import event, select
from sqlalchemy.dialects import postgresql

from napft.database import get_session_factory
from napft.db.models import Collection, User, user_created_nfts, user_owned_nfts
from napft.transitions import TransitionKind
from napft.transitions.aggregates import (
    add_created,
    collection_volumes,
    credit_seller,
    recompute_floor_price,
    set_owner,
)

ALICE = "0xAAA"
BOB = "0xBBB"


async def _collection(name: str = "Genesis") -> int:
    async with get_session_factory()() as session:
        collection = Collection(name=name, creator=ALICE, category="Art")
        session.add(collection)
        await session.commit()
        return collection.id


async def _floor(collection_id: int) -> float:
    async with get_session_factory()() as session:
        return (await session.get(Collection, collection_id)).floor_price


class TestFloorPrice:
    @pytest.mark.asyncio
    async def test_floor_tracks_cheapest_listed_member(self, mint, apply):
        cid = await _collection()
        await mint(1, collection_id=cid)
        await mint(2, collection_id=cid)
        assert await _floor(cid) == 0.0

        await apply(TransitionKind.LIST, 1, caller=ALICE, price=5.0)
        assert await _floor(cid) == 5.0

        await apply(TransitionKind.LIST, 2, caller=ALICE, price=2.0)
        assert await _floor(cid) == 2.0

        await apply(TransitionKind.BUY, 2, buyer=BOB)
        assert await _floor(cid) == 5.0

        await apply(TransitionKind.UNLIST, 1, caller=ALICE)
        assert await _floor(cid) == 0.0

    @pytest.mark.asyncio
    async def test_listed_mint_sets_floor(self, mint):
        cid = await _collection()
        await mint(1, collection_id=cid, price=3.0, is_listed=True)
        assert await _floor(cid) == 3.0

    @pytest.mark.asyncio
    async def test_transfer_drops_listing_from_floor(self, mint, apply):
        cid = await _collection()
        await mint(1, collection_id=cid)
        await apply(TransitionKind.LIST, 1, caller=ALICE, price=1.0)
        await apply(TransitionKind.TRANSFER, 1, caller=ALICE, to=BOB)
        assert await _floor(cid) == 0.0

    @pytest.mark.asyncio
    async def test_recompute_locks_collection_before_reading_members(self, mint):
        cid = await _collection()
        await mint(1, collection_id=cid)
        statements: list[str] = []

        def record(state):
            if state.is_select:
                statements.append(str(state.statement.compile(dialect=postgresql.dialect())))

        async with get_session_factory()() as session:
            event.listen(session.sync_session, "do_orm_execute", record)
            assert await recompute_floor_price(session, cid) == 0.0

        locked = [i for i, sql in enumerate(statements) if "FROM collections" in sql and "FOR UPDATE" in sql]
        floor = [i for i, sql in enumerate(statements) if "min(nfts.price)" in sql]
        assert locked
        assert floor
        assert locked[0] < floor[0]


class TestCollectionVolume:
    @pytest.mark.asyncio
    async def test_volume_sums_sales_from_log(self, mint, apply):
        cid = await _collection()
        other = await _collection("Other")
        await mint(1, collection_id=cid)
        await mint(2, collection_id=cid)
        await apply(TransitionKind.LIST, 1, caller=ALICE, price=4.0)
        await apply(TransitionKind.BUY, 1, buyer=BOB)
        await apply(TransitionKind.LIST, 2, caller=ALICE, price=1.5)
        await apply("sell", 2, buyer=BOB)

        async with get_session_factory()() as session:
            volumes = await collection_volumes(session, [cid, other])
        assert volumes == {cid: 5.5, other: 0.0}

    @pytest.mark.asyncio
    async def test_empty_ids(self, db_session):
        assert await collection_volumes(db_session, []) == {}


class TestOwnedSets:
    @pytest.mark.asyncio
    async def test_set_owner_keeps_single_holder(self, mint, db_session):
        nft = await mint(1)
        bob = User(address=BOB, socials={}, total_volume=0.0)
        db_session.add(bob)
        await db_session.flush()

        await set_owner(db_session, nft.id, bob.id)
        await set_owner(db_session, nft.id, bob.id)
        await db_session.commit()

        rows = (await db_session.execute(select(user_owned_nfts).where(user_owned_nfts.c.nft_id == nft.id))).all()
        assert [r.user_id for r in rows] == [bob.id]

    @pytest.mark.asyncio
    async def test_add_created_is_idempotent(self, mint, db_session):
        nft = await mint(1)
        alice = await db_session.scalar(select(User).where(User.address == "0xaaa"))
        await add_created(db_session, alice.id, nft.id)
        await db_session.commit()
        rows = (await db_session.execute(select(user_created_nfts))).all()
        assert len(rows) == 1

    def test_credit_seller(self):
        seller = User(address=ALICE, total_volume=1.0)
        credit_seller(seller, 2.5)
        assert seller.total_volume == 3.5
