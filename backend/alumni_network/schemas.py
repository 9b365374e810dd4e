"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Fields are snake_case in Python and
camelCase on the wire; read models project straight off the SQLModel
entities through `from_attributes`.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional


def _ids(value):
    """Collapse a related-entity list into the list of their ids."""
    return [getattr(item, 'id', item) for item in (value or [])]


class WireModel(BaseModel):
    """Base for every DTO: camelCase aliases, ORM attribute access."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserCreate(WireModel):
    """Payload for `POST /users`; `id` defaults to the caller's subject."""
    id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    name: Optional[str] = Field(default=None, max_length=20)
    username: str = Field(min_length=1)
    picture: Optional[str] = Field(default=None, max_length=40)
    status: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=100)
    fun_fact: Optional[str] = Field(default=None, max_length=200)


class UserUpdate(WireModel):
    """Partial update; only the fields present in the request are applied."""
    name: Optional[str] = Field(default=None, max_length=20)
    username: Optional[str] = Field(default=None, min_length=1)
    picture: Optional[str] = Field(default=None, max_length=40)
    status: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=100)
    fun_fact: Optional[str] = Field(default=None, max_length=200)

    @field_validator('username')
    @classmethod
    def reject_null_username(cls, value):
        # may be omitted, but a user always keeps a handle
        if value is None:
            raise ValueError('username cannot be null')
        return value


class UserRead(WireModel):
    id: str
    name: Optional[str] = None
    username: str
    picture: Optional[str] = None
    status: Optional[str] = None
    bio: Optional[str] = None
    fun_fact: Optional[str] = None


class GroupCreate(WireModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    is_private: bool = False


class GroupUpdate(WireModel):
    """Full replacement of a group's fields.

    `version` must be the value the client last read; a stale value is
    rejected with 409.
    """
    id: int
    name: str = Field(min_length=1)
    description: Optional[str] = None
    is_private: bool = False
    version: int = Field(ge=1)


class GroupRead(WireModel):
    id: int
    name: str
    description: Optional[str] = None
    is_private: bool
    version: int
    members: List[str] = []

    @field_validator('members', mode='before')
    @classmethod
    def collapse_members(cls, value):
        return _ids(value)


class TopicCreate(WireModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class TopicRead(WireModel):
    id: int
    name: str
    description: Optional[str] = None
    users: List[str] = []

    @field_validator('users', mode='before')
    @classmethod
    def collapse_users(cls, value):
        return _ids(value)


class MemberList(WireModel):
    """Member set of a topic or group after a join."""
    id: int
    members: List[str]

    @field_validator('members', mode='before')
    @classmethod
    def collapse_members(cls, value):
        return _ids(value)


class PostCreate(WireModel):
    """Payload for `POST /posts`.

    A post targets exactly one of a topic or an event.
    """
    text: str = Field(min_length=1)
    target_topic_id: Optional[int] = None
    target_event_id: Optional[int] = None

    @model_validator(mode='after')
    def check_single_target(self):
        if (self.target_topic_id is None) == (self.target_event_id is None):
            raise ValueError('exactly one of targetTopicId or targetEventId is required')
        return self


class PostRead(WireModel):
    id: int
    text: str
    timestamp: datetime
    sender_id: str
    target_topic_id: Optional[int] = None
    target_event_id: Optional[int] = None
