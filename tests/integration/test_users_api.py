"""Integration tests for the /api/users endpoints."""

import pytest
from httpx import AsyncClient

from napft.transitions import TransitionKind

ALICE = "0xAAA"
BOB = "0xBBB"
CAROL = "0xCCC"


async def _follow(client: AsyncClient, follower: str, following: str):
    return await client.post("/api/users/follow", json={"followerAddress": follower, "followingAddress": following})


class TestProfile:
    @pytest.mark.asyncio
    async def test_unknown_address_gets_empty_profile(self, client: AsyncClient):
        response = await client.get("/api/users/0xNEW")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["address"] == "0xnew"
        assert data["nftsOwned"] == []
        assert data["totalVolume"] == 0.0
        assert data["followersCount"] == 0

    @pytest.mark.asyncio
    async def test_profile_lists_owned_and_created(self, client: AsyncClient, mint, apply):
        await mint(1)
        await mint(2)
        await apply(TransitionKind.TRANSFER, 2, caller=ALICE, to=BOB)

        alice = (await client.get(f"/api/users/{ALICE}")).json()["data"]
        assert [n["tokenId"] for n in alice["nftsOwned"]] == [1]
        assert [n["tokenId"] for n in alice["nftsCreated"]] == [1, 2]

        bob = (await client.get(f"/api/users/{BOB}")).json()["data"]
        assert [n["tokenId"] for n in bob["nftsOwned"]] == [2]
        assert bob["nftsCreated"] == []

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient):
        response = await client.put(
            f"/api/users/{ALICE}",
            json={
                "address": "0xaaa",
                "username": "alice",
                "bio": "collector",
                "socials": {"twitter": "@alice"},
            },
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "alice"
        assert data["socials"] == {"twitter": "@alice"}

        merged = await client.put(f"/api/users/{ALICE}", json={"address": ALICE, "socials": {"website": "a.io"}})
        assert merged.json()["data"]["socials"] == {"twitter": "@alice", "website": "a.io"}
        assert merged.json()["data"]["bio"] == "collector"

    @pytest.mark.asyncio
    async def test_update_other_profile_rejected(self, client: AsyncClient):
        response = await client.put(f"/api/users/{ALICE}", json={"address": BOB, "username": "mallory"})
        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

    @pytest.mark.asyncio
    async def test_update_invalid_email(self, client: AsyncClient):
        response = await client.put(f"/api/users/{ALICE}", json={"address": ALICE, "email": "not-an-email"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_users(self, client: AsyncClient):
        await client.get(f"/api/users/{ALICE}")
        await client.get(f"/api/users/{BOB}")
        body = (await client.get("/api/users", params={"limit": 1})).json()
        assert body["pagination"]["total"] == 2
        assert len(body["data"]) == 1


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_and_top_traders(self, client: AsyncClient, mint, apply):
        await mint(1)
        await mint(2, creator=BOB)
        await apply(TransitionKind.LIST, 1, caller=ALICE, price=4.0)
        await apply(TransitionKind.BUY, 1, buyer=CAROL)
        await apply(TransitionKind.LIST, 2, caller=BOB, price=9.0)
        await apply(TransitionKind.BUY, 2, buyer=CAROL)

        stats = (await client.get(f"/api/users/stats/{ALICE}")).json()["data"]
        assert stats == {
            "createdCount": 1,
            "ownedCount": 0,
            "totalVolume": 4.0,
            "followersCount": 0,
            "followingCount": 0,
        }

        traders = (await client.get("/api/users/top-traders")).json()["data"]
        assert [(t["address"], t["volumeTraded"]) for t in traders] == [("0xbbb", 9.0), ("0xaaa", 4.0)]

    @pytest.mark.asyncio
    async def test_stats_for_unknown_user(self, client: AsyncClient):
        stats = (await client.get("/api/users/stats/0xnobody")).json()["data"]
        assert stats["createdCount"] == 0
        assert stats["totalVolume"] == 0.0


class TestFollow:
    @pytest.mark.asyncio
    async def test_follow_and_unfollow(self, client: AsyncClient):
        response = await _follow(client, ALICE, BOB)
        assert response.status_code == 200
        assert response.json()["data"] == {
            "follower": "0xaaa",
            "following": "0xbbb",
            "followersCount": 1,
            "followingCount": 1,
        }

        status = await client.get(
            "/api/users/follow-status", params={"followerAddress": ALICE, "followingAddress": "0xbbb"}
        )
        assert status.json()["data"] == {"isFollowing": True}

        bob = (await client.get(f"/api/users/{BOB}")).json()["data"]
        assert bob["followers"] == ["0xaaa"]

        response = await client.post(
            "/api/users/unfollow", json={"followerAddress": ALICE, "followingAddress": BOB}
        )
        assert response.status_code == 200
        assert response.json()["data"]["followersCount"] == 0

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, client: AsyncClient):
        response = await _follow(client, ALICE, "0xaaa")
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidState"

    @pytest.mark.asyncio
    async def test_double_follow(self, client: AsyncClient):
        await _follow(client, ALICE, BOB)
        response = await _follow(client, ALICE, BOB)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unfollow_when_not_following(self, client: AsyncClient):
        await client.get(f"/api/users/{ALICE}")
        await client.get(f"/api/users/{BOB}")
        response = await client.post("/api/users/unfollow", json={"followerAddress": ALICE, "followingAddress": BOB})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unfollow_unknown_user(self, client: AsyncClient):
        response = await client.post("/api/users/unfollow", json={"followerAddress": ALICE, "followingAddress": BOB})
        assert response.status_code == 404
