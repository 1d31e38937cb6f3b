"""Integration tests for the /api/transactions endpoints."""

import pytest
from httpx import AsyncClient

from napft.transitions import TransitionKind

ALICE = "0xAAA"
BOB = "0xBBB"
CAROL = "0xCCC"


async def _create(client: AsyncClient, **body):
    return await client.post("/api/transactions", json=body)


class TestCreateTransaction:
    @pytest.mark.asyncio
    async def test_list_then_buy(self, client: AsyncClient, mint):
        await mint(7)

        listed = await _create(client, type="list", tokenId=7, **{"from": ALICE, "to": ALICE}, price=2.5)
        assert listed.status_code == 201
        assert listed.json()["data"]["type"] == "list"

        bought = await _create(client, type="buy", tokenId=7, **{"from": ALICE, "to": BOB}, price=2.5)
        assert bought.status_code == 201
        tx = bought.json()["data"]
        assert (tx["from"], tx["to"], tx["price"]) == ("0xaaa", "0xbbb", 2.5)

        nft = (await client.get("/api/nfts/token/7")).json()["data"]
        assert nft["owner"] == "0xbbb"
        assert nft["isListed"] is False

    @pytest.mark.asyncio
    async def test_buy_with_stale_price_rejected(self, client: AsyncClient, mint, apply):
        await mint(7)
        await apply(TransitionKind.LIST, 7, caller=ALICE, price=3.0)

        response = await _create(client, type="buy", tokenId=7, **{"from": ALICE, "to": BOB}, price=1.0)
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidState"

    @pytest.mark.asyncio
    async def test_buy_with_wrong_seller_rejected(self, client: AsyncClient, mint, apply):
        await mint(7)
        await apply(TransitionKind.LIST, 7, caller=ALICE, price=3.0)

        response = await _create(client, type="sell", tokenId=7, **{"from": CAROL, "to": BOB})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_mint_not_accepted(self, client: AsyncClient):
        response = await _create(
            client, type="mint", tokenId=1, **{"from": "0x0000000000000000000000000000000000000000", "to": ALICE}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_unknown_type(self, client: AsyncClient):
        response = await _create(client, type="burn", tokenId=1, **{"from": ALICE, "to": BOB})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_transfer(self, client: AsyncClient, mint):
        await mint(3)
        response = await _create(client, type="transfer", tokenId=3, **{"from": ALICE, "to": CAROL})
        assert response.status_code == 201
        owned = (await client.get(f"/api/nfts/owner/{CAROL}")).json()["data"]
        assert [n["tokenId"] for n in owned] == [3]


class TestReadTransactions:
    @pytest.mark.asyncio
    async def test_filters(self, client: AsyncClient, mint, apply):
        await mint(1)
        await mint(2, creator=BOB)
        await apply(TransitionKind.LIST, 1, caller=ALICE, price=1.0)
        await apply(TransitionKind.BUY, 1, buyer=CAROL)

        everything = (await client.get("/api/transactions")).json()
        assert everything["pagination"]["total"] == 4
        assert [t["type"] for t in everything["data"]] == ["buy", "list", "mint", "mint"]

        buys = (await client.get("/api/transactions", params={"type": "buy"})).json()["data"]
        assert len(buys) == 1

        to_carol = (await client.get("/api/transactions", params={"to": CAROL})).json()["data"]
        assert [t["type"] for t in to_carol] == ["buy"]

        bad_type = await client.get("/api/transactions", params={"type": "burn"})
        assert bad_type.status_code == 400

    @pytest.mark.asyncio
    async def test_date_range(self, client: AsyncClient, mint):
        await mint(1)
        future = (await client.get("/api/transactions", params={"startDate": "2999-01-01T00:00:00Z"})).json()
        assert future["data"] == []
        past = (await client.get("/api/transactions", params={"startDate": "2000-01-01T00:00:00Z"})).json()
        assert len(past["data"]) == 1

    @pytest.mark.asyncio
    async def test_recent_excludes_listings(self, client: AsyncClient, mint, apply):
        await mint(1)
        await apply(TransitionKind.LIST, 1, caller=ALICE, price=1.0)
        await apply(TransitionKind.UNLIST, 1, caller=ALICE)

        recent = (await client.get("/api/transactions/recent")).json()["data"]
        assert [t["type"] for t in recent] == ["mint"]

    @pytest.mark.asyncio
    async def test_by_user_matches_either_side(self, client: AsyncClient, mint, apply):
        await mint(1)
        await apply(TransitionKind.TRANSFER, 1, caller=ALICE, to=BOB)

        bob = (await client.get("/api/transactions/user/0xbBb")).json()["data"]
        assert [t["type"] for t in bob] == ["transfer"]
        alice = (await client.get(f"/api/transactions/user/{ALICE}")).json()["data"]
        assert [t["type"] for t in alice] == ["transfer", "mint"]

    @pytest.mark.asyncio
    async def test_by_nft(self, client: AsyncClient, mint):
        nft = await mint(1)
        data = (await client.get(f"/api/transactions/nft/{nft.id}")).json()["data"]
        assert [t["tokenId"] for t in data] == [1]
        assert (await client.get("/api/transactions/nft/999")).status_code == 404
