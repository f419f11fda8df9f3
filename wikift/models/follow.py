from sqlmodel import SQLModel, Field


class UserFollowRelation(SQLModel, table=True):
    """Directed follow edge: follower_id follows followee_id"""
    __tablename__ = "users_follow_relation"

    follower_id: int = Field(
        foreign_key="users.id",
        primary_key=True,
        ondelete="CASCADE"
    )
    followee_id: int = Field(
        foreign_key="users.id",
        primary_key=True,
        index=True,  # For faster follower queries
        ondelete="CASCADE"
    )
