from typing import Optional

from sqlmodel import SQLModel, Field


class UserBase(SQLModel):
    """Profile fields shared by the table model and the API schemas"""
    username: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=500)
    alias_name: Optional[str] = Field(default=None, max_length=100)
    signature: Optional[str] = Field(default=None, max_length=500)


class User(UserBase, table=True):
    """Identity record of a wikift user"""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(..., max_length=100, unique=True, index=True)
    password: str = Field(..., max_length=255, description="bcrypt hash, never the raw secret")
