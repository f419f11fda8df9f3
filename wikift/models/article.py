from sqlmodel import SQLModel, Field


class UserArticleRelation(SQLModel, table=True):
    """Authorship link between a user and an article; written by the article service"""
    __tablename__ = "users_article_relation"

    user_id: int = Field(
        foreign_key="users.id",
        primary_key=True,
        ondelete="CASCADE"
    )
    article_id: int = Field(primary_key=True)
