"""
User directory data access:
- Lookup by username and plain CRUD passthroughs
- Follow graph queries and mutations
- Author leaderboard ranked by article count

Every function issues a single statement on the given session and never
commits; the caller owns the transaction (see wikift.db.database.session_scope).
Store errors propagate unchanged. Missing rows come back as None, [] or 0.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, insert, or_
from sqlalchemy.orm import sessionmaker
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession

from wikift.core.config import settings
from wikift.core.security import get_password_hash
from wikift.db.database import session_scope
from wikift.models.article import UserArticleRelation
from wikift.models.follow import UserFollowRelation
from wikift.models.user import User
from wikift.schemas.user import UserCreate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

async def find_by_username(db: AsyncSession, username: str) -> Optional[User]:
    """Exact, case-sensitive username match"""
    result = await db.exec(select(User).where(User.username == username))
    return result.first()


async def find_top_by_article_count(db: AsyncSession, limit: Optional[int] = None) -> List[User]:
    """
    Users ranked by number of authored articles, most prolific first.
    Equal counts are ordered by user id so the ranking is reproducible.
    """
    if limit is None:
        limit = settings.LEADERBOARD_LIMIT
    article_counts = (
        select(
            UserArticleRelation.user_id,
            func.count(UserArticleRelation.article_id).label("article_count")
        )
        .group_by(UserArticleRelation.user_id)
        .subquery()
    )
    result = await db.exec(
        select(User)
        .join(article_counts, article_counts.c.user_id == User.id)
        .order_by(article_counts.c.article_count.desc(), User.id.asc())
        .limit(limit)
    )
    return list(result.all())


# ---------------------------------------------------------------------------
# Follow graph
# ---------------------------------------------------------------------------

async def find_all_followers(db: AsyncSession, user_id: int) -> List[User]:
    """Get all users following a given user"""
    result = await db.exec(
        select(User)
        .join(UserFollowRelation, User.id == UserFollowRelation.follower_id)
        .where(UserFollowRelation.followee_id == user_id)
    )
    return list(result.all())


async def find_all_following(db: AsyncSession, user_id: int) -> List[User]:
    """Get all users that a given user is following"""
    result = await db.exec(
        select(User)
        .join(UserFollowRelation, User.id == UserFollowRelation.followee_id)
        .where(UserFollowRelation.follower_id == user_id)
    )
    return list(result.all())


async def find_follow_relation(db: AsyncSession, follower_id: int, cover_id: int) -> Optional[User]:
    """Return the followed user when follower_id follows cover_id, else None"""
    result = await db.exec(
        select(User)
        .join(UserFollowRelation, User.id == UserFollowRelation.followee_id)
        .where(
            UserFollowRelation.follower_id == follower_id,
            UserFollowRelation.followee_id == cover_id
        )
    )
    return result.first()


async def follow(db: AsyncSession, follower_id: int, cover_id: int) -> int:
    """
    Insert the edge follower_id -> cover_id.
    A second follow of the same pair violates the primary key and raises IntegrityError.
    """
    result = await db.exec(
        insert(UserFollowRelation).values(follower_id=follower_id, followee_id=cover_id)
    )
    logger.info(f"User {follower_id} followed user {cover_id}")
    return result.rowcount


async def unfollow(db: AsyncSession, follower_id: int, cover_id: int) -> int:
    """Delete the edge follower_id -> cover_id; 0 when there was none"""
    result = await db.exec(
        delete(UserFollowRelation).where(
            UserFollowRelation.follower_id == follower_id,
            UserFollowRelation.followee_id == cover_id
        )
    )
    logger.info(f"User {follower_id} unfollowed user {cover_id} ({result.rowcount} row(s))")
    return result.rowcount


async def count_following(db: AsyncSession, user_id: int) -> int:
    result = await db.exec(
        select(func.count())
        .select_from(UserFollowRelation)
        .where(UserFollowRelation.follower_id == user_id)
    )
    return result.one()


async def count_followers(db: AsyncSession, user_id: int) -> int:
    result = await db.exec(
        select(func.count())
        .select_from(UserFollowRelation)
        .where(UserFollowRelation.followee_id == user_id)
    )
    return result.one()


# ---------------------------------------------------------------------------
# CRUD passthroughs
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def list_users(db: AsyncSession, offset: int = 0, limit: int = 100) -> List[User]:
    result = await db.exec(select(User).order_by(User.id).offset(offset).limit(limit))
    return list(result.all())


async def count_users(db: AsyncSession) -> int:
    result = await db.exec(select(func.count()).select_from(User))
    return result.one()


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    """Persist a new user with a hashed password; duplicate usernames raise IntegrityError"""
    user = User(
        username=user_data.username,
        password=get_password_hash(user_data.password),
        avatar=user_data.avatar,
        alias_name=user_data.alias_name,
        signature=user_data.signature
    )
    db.add(user)
    await db.flush()  # assigns user.id
    logger.info(f"Created user {user.username} (id={user.id})")
    return user


async def delete_user(db: AsyncSession, user_id: int) -> int:
    """Remove a user together with their follow edges and authorship links"""
    await db.exec(
        delete(UserFollowRelation).where(
            or_(
                UserFollowRelation.follower_id == user_id,
                UserFollowRelation.followee_id == user_id
            )
        )
    )
    await db.exec(delete(UserArticleRelation).where(UserArticleRelation.user_id == user_id))
    result = await db.exec(delete(User).where(User.id == user_id))
    logger.info(f"Deleted user {user_id} ({result.rowcount} row(s))")
    return result.rowcount


async def record_authorship(db: AsyncSession, user_id: int, article_id: int) -> int:
    """Link an article to its author; used by the article service"""
    result = await db.exec(
        insert(UserArticleRelation).values(user_id=user_id, article_id=article_id)
    )
    return result.rowcount


class UserDirectory:
    """
    Facade over the functions above where every call is its own unit of work:
    a fresh session, one transaction, committed or rolled back before returning.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    async def _run(self, operation, *args, **kwargs):
        async with session_scope(self._session_factory) as db:
            return await operation(db, *args, **kwargs)

    async def find_by_username(self, username: str) -> Optional[User]:
        return await self._run(find_by_username, username)

    async def find_top_by_article_count(self, limit: Optional[int] = None) -> List[User]:
        return await self._run(find_top_by_article_count, limit)

    async def find_all_followers(self, user_id: int) -> List[User]:
        return await self._run(find_all_followers, user_id)

    async def find_all_following(self, user_id: int) -> List[User]:
        return await self._run(find_all_following, user_id)

    async def find_follow_relation(self, follower_id: int, cover_id: int) -> Optional[User]:
        return await self._run(find_follow_relation, follower_id, cover_id)

    async def follow(self, follower_id: int, cover_id: int) -> int:
        return await self._run(follow, follower_id, cover_id)

    async def unfollow(self, follower_id: int, cover_id: int) -> int:
        return await self._run(unfollow, follower_id, cover_id)

    async def count_following(self, user_id: int) -> int:
        return await self._run(count_following, user_id)

    async def count_followers(self, user_id: int) -> int:
        return await self._run(count_followers, user_id)

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._run(get_user, user_id)

    async def list_users(self, offset: int = 0, limit: int = 100) -> List[User]:
        return await self._run(list_users, offset, limit)

    async def count_users(self) -> int:
        return await self._run(count_users)

    async def create_user(self, user_data: UserCreate) -> User:
        return await self._run(create_user, user_data)

    async def delete_user(self, user_id: int) -> int:
        return await self._run(delete_user, user_id)

    async def record_authorship(self, user_id: int, article_id: int) -> int:
        return await self._run(record_authorship, user_id, article_id)
