"""
Models package initialization
"""

from .user import User
from .follow import UserFollowRelation
from .article import UserArticleRelation

__all__ = ["User", "UserFollowRelation", "UserArticleRelation"]
