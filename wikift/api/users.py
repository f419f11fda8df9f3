"""
User directory endpoints:
  POST   /users                                  — register a user
  GET    /users/leaderboard                      — top authors by article count
  GET    /users/by-username/{username}           — lookup by username
  GET    /users/{user_id}                        — fetch a user
  DELETE /users/{user_id}                        — delete a user
  GET    /users/{user_id}/followers|following    — follow graph lists
  GET    /users/{user_id}/counts                 — follow graph counts
  GET    /users/{follower_id}/follows/{followee_id}
  POST   /users/follow | /users/unfollow
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from wikift.core.exceptions import (
    CustomHTTPException,
    USER_NOT_FOUND,
    FOLLOW_RELATION_NOT_FOUND,
    SELF_FOLLOW_NOT_ALLOWED
)
from wikift.crud import user as directory
from wikift.db.database import get_db
from wikift.schemas.user import AffectedRows, FollowCounts, FollowRequest, UserCreate, UserPublic

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _user_not_found(detail: str) -> CustomHTTPException:
    return CustomHTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
        error_code=USER_NOT_FOUND
    )


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    return await directory.create_user(db, body)


@router.get("/leaderboard", response_model=List[UserPublic])
async def get_leaderboard(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    return await directory.find_top_by_article_count(db, limit)


@router.get("/by-username/{username}", response_model=UserPublic)
async def get_user_by_username(username: str, db: AsyncSession = Depends(get_db)):
    user = await directory.find_by_username(db, username)
    if not user:
        raise _user_not_found(f"User '{username}' not found")
    return user


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await directory.get_user(db, user_id)
    if not user:
        raise _user_not_found(f"User {user_id} not found")
    return user


@router.delete("/{user_id}", response_model=AffectedRows)
async def delete_user(user_id: int, db: AsyncSession = Depends(get_db)):
    affected = await directory.delete_user(db, user_id)
    if not affected:
        raise _user_not_found(f"User {user_id} not found")
    return AffectedRows(affected=affected, message=f"Deleted user {user_id}")


@router.get("/{user_id}/followers", response_model=List[UserPublic])
async def get_followers(user_id: int, db: AsyncSession = Depends(get_db)):
    return await directory.find_all_followers(db, user_id)


@router.get("/{user_id}/following", response_model=List[UserPublic])
async def get_following(user_id: int, db: AsyncSession = Depends(get_db)):
    return await directory.find_all_following(db, user_id)


@router.get("/{user_id}/counts", response_model=FollowCounts)
async def get_follow_counts(user_id: int, db: AsyncSession = Depends(get_db)):
    return FollowCounts(
        user_id=user_id,
        following=await directory.count_following(db, user_id),
        followers=await directory.count_followers(db, user_id)
    )


@router.get("/{follower_id}/follows/{followee_id}", response_model=UserPublic)
async def get_follow_relation(follower_id: int, followee_id: int, db: AsyncSession = Depends(get_db)):
    followee = await directory.find_follow_relation(db, follower_id, followee_id)
    if not followee:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {follower_id} does not follow user {followee_id}",
            error_code=FOLLOW_RELATION_NOT_FOUND
        )
    return followee


@router.post("/follow", response_model=AffectedRows, status_code=status.HTTP_201_CREATED)
async def follow_user(body: FollowRequest, db: AsyncSession = Depends(get_db)):
    if body.follower_id == body.followee_id:
        logger.warning(f"User {body.follower_id} attempted to follow themselves")
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot follow yourself",
            error_code=SELF_FOLLOW_NOT_ALLOWED
        )

    for user_id in (body.follower_id, body.followee_id):
        if not await directory.get_user(db, user_id):
            raise _user_not_found(f"User {user_id} not found")

    affected = await directory.follow(db, body.follower_id, body.followee_id)
    return AffectedRows(
        affected=affected,
        message=f"User {body.follower_id} now follows user {body.followee_id}"
    )


@router.post("/unfollow", response_model=AffectedRows)
async def unfollow_user(body: FollowRequest, db: AsyncSession = Depends(get_db)):
    affected = await directory.unfollow(db, body.follower_id, body.followee_id)
    if not affected:
        return AffectedRows(affected=0, message="No existing follow relationship")
    return AffectedRows(
        affected=affected,
        message=f"User {body.follower_id} unfollowed user {body.followee_id}"
    )
