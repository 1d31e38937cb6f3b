"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from napft.nfts.schemas import NFTResponse
from napft.schemas import CamelModel


class SocialsSchema(CamelModel):
    twitter: str | None = None
    instagram: str | None = None
    website: str | None = None


class UserResponse(CamelModel):
    id: int
    address: str
    username: str | None = None
    bio: str | None = None
    profile_image: str | None = None
    cover_image: str | None = None
    email: str | None = None
    socials: dict[str, Any] = {}
    is_verified: bool
    total_volume: float
    followers_count: int = 0
    following_count: int = 0
    created_at: datetime
    updated_at: datetime


class UserDetailResponse(UserResponse):
    nfts_owned: list[NFTResponse] = []
    nfts_created: list[NFTResponse] = []
    followers: list[str] = []
    following: list[str] = []


class UpdateUserRequest(CamelModel):
    """Profile edit. ``address`` must match the path address."""

    address: str = Field(min_length=1)
    username: str | None = Field(default=None, min_length=3, max_length=64)
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=500)
    profile_image: str | None = None
    cover_image: str | None = None
    socials: SocialsSchema | None = None


class FollowRequest(CamelModel):
    follower_address: str = Field(min_length=1)
    following_address: str = Field(min_length=1)


class FollowStatusResponse(CamelModel):
    is_following: bool


class FollowResponse(CamelModel):
    follower: str
    following: str
    followers_count: int
    following_count: int


class UserStatsResponse(CamelModel):
    created_count: int
    owned_count: int
    total_volume: float
    followers_count: int
    following_count: int


class TopTraderResponse(CamelModel):
    id: int
    address: str
    username: str | None = None
    profile_image: str | None = None
    bio: str | None = None
    verified: bool
    volume_traded: float
    followers: int
    following: int
    created_at: datetime
