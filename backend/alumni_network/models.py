"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
Membership edges are link tables whose composite primary key keeps a
user from appearing twice in the same member set.
"""

from typing import Optional
from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List


class TopicMember(SQLModel, table=True):
    """Membership edge between a `Topic` and a `User`."""
    topic_id: Optional[int] = Field(default=None, foreign_key='topic.id', primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key='user.id', primary_key=True)


class GroupMember(SQLModel, table=True):
    """Membership edge between a `Group` and a `User`."""
    group_id: Optional[int] = Field(default=None, foreign_key='group.id', primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key='user.id', primary_key=True)


class User(SQLModel, table=True):
    """A registered alumnus.

    Fields:
    - `id`: the subject claim issued by the identity provider
    - `username`: unique handle
    """
    id: str = Field(primary_key=True, max_length=64)
    name: Optional[str] = Field(default=None, max_length=20)
    username: str = Field(index=True, nullable=False, unique=True)
    picture: Optional[str] = Field(default=None, max_length=40)
    status: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=100)
    fun_fact: Optional[str] = Field(default=None, max_length=200)
    topics: List['Topic'] = Relationship(back_populates='users', link_model=TopicMember)
    groups: List['Group'] = Relationship(back_populates='members', link_model=GroupMember)


class Group(SQLModel, table=True):
    """A named collection of users.

    `version` is the optimistic concurrency token; every successful
    update increments it.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    is_private: bool = False
    version: int = Field(default=1, nullable=False)
    members: List[User] = Relationship(back_populates='groups', link_model=GroupMember)


class Topic(SQLModel, table=True):
    """A subject users can join and post to."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    users: List[User] = Relationship(back_populates='topics', link_model=TopicMember)


class Post(SQLModel, table=True):
    """A message addressed to a topic or to an event, never both."""
    __table_args__ = (
        CheckConstraint(
            'target_topic_id IS NULL OR target_event_id IS NULL',
            name='ck_post_single_target',
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    text: str
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
    sender_id: str = Field(foreign_key='user.id', index=True)
    target_topic_id: Optional[int] = Field(default=None, foreign_key='topic.id', index=True)
    target_event_id: Optional[int] = Field(default=None, index=True)
