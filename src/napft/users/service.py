"""User profiles, follow graph and trader rankings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from napft.addresses import normalize_address, same_address
from napft.db.models import NFT, User, follows
from napft.errors import InvalidState, NotFound, Unauthorized
from napft.query.pagination import PageParams, paginate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from napft.query.envelope import Pagination
    from napft.users.schemas import UpdateUserRequest

logger = structlog.get_logger()


async def find_user(db: AsyncSession, address: str) -> User | None:
    return await db.scalar(select(User).where(User.address == normalize_address(address)))


async def get_or_create_user(db: AsyncSession, address: str) -> User:
    """Load a user, creating (and committing) the record on first reference."""
    address = normalize_address(address)
    user = await find_user(db, address)
    if user is not None:
        return user

    user = User(address=address, socials={}, total_volume=0.0)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Created concurrently by another request
        await db.rollback()
        user = await find_user(db, address)
        if user is None:
            raise
        return user
    logger.info("user_created", address=address)
    return user


async def follow_counts(db: AsyncSession, user_ids: list[int]) -> dict[int, tuple[int, int]]:
    """Map user id to ``(followers_count, following_count)``."""
    if not user_ids:
        return {}
    counts = {uid: [0, 0] for uid in user_ids}

    followers = await db.execute(
        select(follows.c.following_id, func.count())
        .where(follows.c.following_id.in_(user_ids))
        .group_by(follows.c.following_id)
    )
    for uid, n in followers.all():
        counts[uid][0] = n

    following = await db.execute(
        select(follows.c.follower_id, func.count())
        .where(follows.c.follower_id.in_(user_ids))
        .group_by(follows.c.follower_id)
    )
    for uid, n in following.all():
        counts[uid][1] = n

    return {uid: (c[0], c[1]) for uid, c in counts.items()}


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


async def list_users(db: AsyncSession, params: PageParams) -> tuple[list[User], Pagination]:
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    return await paginate(db, query, params)


async def get_user_detail(db: AsyncSession, address: str) -> User:
    """User with owned/created NFTs and follow lists eagerly loaded."""
    user = await get_or_create_user(db, address)
    result = await db.execute(
        select(User)
        .where(User.id == user.id)
        .options(
            selectinload(User.nfts_owned),
            selectinload(User.nfts_created),
            selectinload(User.followers),
            selectinload(User.following),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def update_user(db: AsyncSession, address: str, body: UpdateUserRequest) -> User:
    """
    Update profile fields. ``socials`` is merged key by key.

    Raises:
        Unauthorized: Body address differs from the profile being edited.
    """
    if not same_address(address, body.address):
        msg = "Not authorized to update this profile"
        raise Unauthorized(msg)

    user = await get_or_create_user(db, address)

    for field in ("username", "email", "bio", "profile_image", "cover_image"):
        value = getattr(body, field)
        if value is not None:
            setattr(user, field, value)
    if body.socials is not None:
        merged: dict[str, Any] = dict(user.socials or {})
        merged.update(body.socials.model_dump(exclude_none=True))
        user.socials = merged

    await db.commit()
    logger.info("user_updated", address=user.address)
    return user


async def get_stats(db: AsyncSession, address: str) -> dict[str, Any]:
    address = normalize_address(address)
    created = await db.scalar(select(func.count()).select_from(NFT).where(NFT.creator == address))
    owned = await db.scalar(select(func.count()).select_from(NFT).where(NFT.owner == address))
    user = await find_user(db, address)

    followers_count, following_count = 0, 0
    if user is not None:
        followers_count, following_count = (await follow_counts(db, [user.id]))[user.id]

    return {
        "created_count": created or 0,
        "owned_count": owned or 0,
        "total_volume": user.total_volume if user is not None else 0.0,
        "followers_count": followers_count,
        "following_count": following_count,
    }


async def get_top_traders(db: AsyncSession, limit: int) -> list[User]:
    """Users with any sale volume, highest first."""
    result = await db.execute(
        select(User)
        .where(User.total_volume > 0)
        .order_by(User.total_volume.desc(), User.id.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Follow graph
# ---------------------------------------------------------------------------


async def _is_following(db: AsyncSession, follower_id: int, following_id: int) -> bool:
    row = await db.scalar(
        select(follows.c.follower_id).where(
            follows.c.follower_id == follower_id,
            follows.c.following_id == following_id,
        )
    )
    return row is not None


async def follow_user(db: AsyncSession, follower_address: str, following_address: str) -> tuple[User, User]:
    """
    Make ``follower`` follow ``following``. Both users are created on demand.

    Raises:
        InvalidState: Self-follow, or already following.
    """
    if same_address(follower_address, following_address):
        msg = "You cannot follow yourself"
        raise InvalidState(msg)

    follower = await get_or_create_user(db, follower_address)
    following = await get_or_create_user(db, following_address)

    if await _is_following(db, follower.id, following.id):
        msg = "Already following this user"
        raise InvalidState(msg)

    await db.execute(insert(follows).values(follower_id=follower.id, following_id=following.id))
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        msg = "Already following this user"
        raise InvalidState(msg) from e

    logger.info("user_followed", follower=follower.address, following=following.address)
    return follower, following


async def unfollow_user(db: AsyncSession, follower_address: str, following_address: str) -> tuple[User, User]:
    """
    Remove a follow edge.

    Raises:
        NotFound: Either user does not exist.
        InvalidState: Not currently following.
    """
    follower = await find_user(db, follower_address)
    following = await find_user(db, following_address)
    if follower is None or following is None:
        msg = "User not found"
        raise NotFound(msg)

    result = await db.execute(
        delete(follows).where(
            follows.c.follower_id == follower.id,
            follows.c.following_id == following.id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        msg = "Not following this user"
        raise InvalidState(msg)

    await db.commit()
    logger.info("user_unfollowed", follower=follower.address, following=following.address)
    return follower, following


async def get_follow_status(db: AsyncSession, follower_address: str, following_address: str) -> bool:
    follower = await find_user(db, follower_address)
    following = await find_user(db, following_address)
    if follower is None or following is None:
        return False
    return await _is_following(db, follower.id, following.id)
