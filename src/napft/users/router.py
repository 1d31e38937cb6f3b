"""User router: all /api/users/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from napft.database import get_session
from napft.db.models import User
from napft.nfts.schemas import NFTResponse
from napft.query.envelope import ApiResponse
from napft.query.pagination import PageParams, page_params
from napft.users import service
from napft.users.schemas import (
    FollowRequest,
    FollowResponse,
    FollowStatusResponse,
    TopTraderResponse,
    UpdateUserRequest,
    UserDetailResponse,
    UserResponse,
    UserStatsResponse,
)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _user_response(user: User, counts: tuple[int, int]) -> UserResponse:
    """Build a UserResponse from a User model and its follow counts."""
    return UserResponse(
        id=user.id,
        address=user.address,
        username=user.username,
        bio=user.bio,
        profile_image=user.profile_image,
        cover_image=user.cover_image,
        email=user.email,
        socials=user.socials or {},
        is_verified=user.is_verified,
        total_volume=user.total_volume,
        followers_count=counts[0],
        following_count=counts[1],
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


# ---------------------------------------------------------------------------
# Rankings and follow graph
# ---------------------------------------------------------------------------


@router.get("", response_model=ApiResponse[list[UserResponse]])
async def get_all_users(
    params: PageParams = Depends(page_params),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[UserResponse]]:
    users, pagination = await service.list_users(db, params)
    counts = await service.follow_counts(db, [u.id for u in users])
    return ApiResponse(data=[_user_response(u, counts[u.id]) for u in users], pagination=pagination)


@router.get("/top-traders", response_model=ApiResponse[list[TopTraderResponse]])
async def get_top_traders(
    limit: int = Query(6, ge=1, le=100),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[TopTraderResponse]]:
    traders = await service.get_top_traders(db, limit)
    counts = await service.follow_counts(db, [t.id for t in traders])
    return ApiResponse(
        data=[
            TopTraderResponse(
                id=t.id,
                address=t.address,
                username=t.username,
                profile_image=t.profile_image,
                bio=t.bio,
                verified=t.is_verified,
                volume_traded=t.total_volume,
                followers=counts[t.id][0],
                following=counts[t.id][1],
                created_at=t.created_at,
            )
            for t in traders
        ]
    )


@router.get("/follow-status", response_model=ApiResponse[FollowStatusResponse])
async def get_follow_status(
    follower_address: str = Query(..., alias="followerAddress", min_length=1),
    following_address: str = Query(..., alias="followingAddress", min_length=1),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[FollowStatusResponse]:
    is_following = await service.get_follow_status(db, follower_address, following_address)
    return ApiResponse(data=FollowStatusResponse(is_following=is_following))


@router.post("/follow", response_model=ApiResponse[FollowResponse])
async def follow_user(
    body: FollowRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[FollowResponse]:
    follower, following = await service.follow_user(db, body.follower_address, body.following_address)
    return ApiResponse(data=await _follow_response(db, follower, following), message="User followed")


@router.post("/unfollow", response_model=ApiResponse[FollowResponse])
async def unfollow_user(
    body: FollowRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[FollowResponse]:
    follower, following = await service.unfollow_user(db, body.follower_address, body.following_address)
    return ApiResponse(data=await _follow_response(db, follower, following), message="User unfollowed")


async def _follow_response(db: AsyncSession, follower: User, following: User) -> FollowResponse:
    counts = await service.follow_counts(db, [follower.id, following.id])
    return FollowResponse(
        follower=follower.address,
        following=following.address,
        followers_count=counts[following.id][0],
        following_count=counts[follower.id][1],
    )


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/stats/{address}", response_model=ApiResponse[UserStatsResponse])
async def get_user_stats(
    address: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[UserStatsResponse]:
    stats = await service.get_stats(db, address)
    return ApiResponse(data=UserStatsResponse(**stats))


@router.get("/{address}", response_model=ApiResponse[UserDetailResponse])
async def get_user(
    address: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[UserDetailResponse]:
    """Profile with owned and created NFTs. Unknown addresses get an empty profile."""
    user = await service.get_user_detail(db, address)
    base = _user_response(user, (len(user.followers), len(user.following)))
    return ApiResponse(
        data=UserDetailResponse(
            **base.model_dump(),
            nfts_owned=[NFTResponse.model_validate(n) for n in user.nfts_owned],
            nfts_created=[NFTResponse.model_validate(n) for n in user.nfts_created],
            followers=[u.address for u in user.followers],
            following=[u.address for u in user.following],
        )
    )


@router.put("/{address}", response_model=ApiResponse[UserResponse])
async def update_user(
    address: str,
    body: UpdateUserRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[UserResponse]:
    user = await service.update_user(db, address, body)
    counts = await service.follow_counts(db, [user.id])
    return ApiResponse(data=_user_response(user, counts[user.id]), message="Profile updated")
