from typing import Optional
from pydantic import BaseModel
from sqlmodel import Field
from wikift.models.user import UserBase


class UserCreate(UserBase):
    """Registration payload; the password is hashed before it is stored"""
    password: str = Field(..., min_length=6, max_length=128)


class UserPublic(UserBase):
    """User projection returned to consumers (no credential)"""
    id: int


class FollowRequest(BaseModel):
    follower_id: int
    followee_id: int


class FollowCounts(BaseModel):
    user_id: int
    following: int
    followers: int


class AffectedRows(BaseModel):
    affected: int
    message: Optional[str] = None
