"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin: they resolve the entities a request
refers to, enforce membership and ownership rules, and persist through
repositories. Failures are raised as the domain errors in `errors.py`.
"""

import logging
from typing import List, Optional
from sqlmodel import Session
from . import models, repositories, schemas
from .errors import ForbiddenError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)


class UserService:
    """Registration, lookup and partial update of users."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def get_user(self, user_id: str) -> models.User:
        """Return the user with `user_id` or raise `NotFoundError`."""
        user = self.user_repo.get(user_id)
        if user is None:
            raise NotFoundError('user', user_id)
        return user

    def create_user(self, payload: schemas.UserCreate, caller_id: str) -> models.User:
        """Create a user; the id defaults to the caller's token subject."""
        values = payload.model_dump()
        values['id'] = payload.id or caller_id
        user = self.user_repo.create(models.User(**values))
        logger.info('user created id=%s username=%s', user.id, user.username)
        return user

    def update_user(self, user_id: str, payload: schemas.UserUpdate, caller_id: str) -> models.User:
        """Apply the fields present in `payload` to the caller's own record.

        Updating somebody else's profile raises `UnauthorizedError`.
        """
        if user_id != caller_id:
            logger.warning('rejected update of user %s by %s', user_id, caller_id)
            raise UnauthorizedError(f'user {caller_id} may not update user {user_id}')
        user = self.get_user(user_id)
        return self.user_repo.update(user, payload.model_dump(exclude_unset=True))


class GroupService:
    """Group CRUD with private-group visibility rules."""
    def __init__(self, session: Session):
        self.session = session
        self.group_repo = repositories.GroupRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def list_groups(self, viewer_id: Optional[str]) -> List[models.Group]:
        """Return the groups `viewer_id` may see (public ones when anonymous)."""
        return self.group_repo.list_visible_to(viewer_id)

    def get_group(self, group_id: int, viewer_id: Optional[str] = None) -> models.Group:
        """Return a group, hiding private groups from non-members."""
        group = self.group_repo.get(group_id)
        if group is None:
            raise NotFoundError('group', group_id)
        if group.is_private and not any(m.id == viewer_id for m in group.members):
            raise ForbiddenError(f'group {group_id} is private')
        return group

    def create_group(self, payload: schemas.GroupCreate, creator_id: Optional[str] = None) -> models.Group:
        """Create a group; a known creator becomes its first member."""
        group = models.Group(**payload.model_dump())
        if creator_id is not None:
            creator = self.user_repo.get(creator_id)
            if creator is not None:
                group.members.append(creator)
        group = self.group_repo.create(group)
        logger.info('group created id=%s private=%s', group.id, group.is_private)
        return group

    def _require_member_if_private(self, group_id: int, caller_id: Optional[str]) -> None:
        """Raise unless the group is public or `caller_id` is one of its members.

        A missing group is left for the write itself to report.
        """
        group = self.group_repo.get(group_id)
        if group is not None and group.is_private and not any(m.id == caller_id for m in group.members):
            logger.warning('rejected write to private group %s by %s', group_id, caller_id)
            raise ForbiddenError(f'group {group_id} is private')

    def update_group(self, group_id: int, payload: schemas.GroupUpdate, caller_id: Optional[str] = None) -> models.Group:
        """Replace a group's fields, guarded by the version the client read.

        Private groups can only be changed by their members.
        """
        self._require_member_if_private(group_id, caller_id)
        values = payload.model_dump(exclude={'id', 'version'})
        return self.group_repo.update(group_id, values, payload.version)

    def delete_group(self, group_id: int, caller_id: Optional[str] = None) -> None:
        self._require_member_if_private(group_id, caller_id)
        self.group_repo.delete(group_id)
        logger.info('group deleted id=%s', group_id)


class TopicService:
    """Topic lookup and creation."""
    def __init__(self, session: Session):
        self.session = session
        self.topic_repo = repositories.TopicRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def get_all_topics(self) -> List[models.Topic]:
        return self.topic_repo.list()

    def get_topic(self, topic_id: int) -> models.Topic:
        """Return the topic with `topic_id` or raise `NotFoundError`."""
        topic = self.topic_repo.get(topic_id)
        if topic is None:
            raise NotFoundError('topic', topic_id)
        return topic

    def create(self, payload: schemas.TopicCreate, creator_id: str) -> models.Topic:
        """Create a topic with its creator as the first member.

        The creator must already have a user record.
        """
        creator = self.user_repo.get(creator_id)
        if creator is None:
            raise NotFoundError('user', creator_id)
        topic = models.Topic(**payload.model_dump())
        topic.users.append(creator)
        topic = self.topic_repo.create(topic)
        logger.info('topic created id=%s by %s', topic.id, creator_id)
        return topic


class MembershipService:
    """Join semantics for topics and groups.

    Joining is idempotent: a user already in the member set is left
    there once and the current set is returned.
    """
    def __init__(self, session: Session):
        self.session = session
        self.member_repo = repositories.MembershipRepository(session)
        self.user_repo = repositories.UserRepository(session)
        self.topic_repo = repositories.TopicRepository(session)
        self.group_repo = repositories.GroupRepository(session)

    def _resolve_user(self, user_id: str) -> models.User:
        user = self.user_repo.get(user_id)
        if user is None:
            raise NotFoundError('user', user_id)
        return user

    def join_topic(self, topic_id: int, user_id: str) -> models.Topic:
        """Add `user_id` to the topic's members and return the topic."""
        topic = self.topic_repo.get(topic_id)
        if topic is None:
            raise NotFoundError('topic', topic_id)
        user = self._resolve_user(user_id)
        if self.member_repo.add_member(topic, 'users', user):
            logger.info('user %s joined topic %s', user_id, topic_id)
        return topic

    def join_group(self, group_id: int, user_id: str) -> models.Group:
        """Add `user_id` to the group's members and return the group.

        Private groups only accept users who are already members.
        """
        group = self.group_repo.get(group_id)
        if group is None:
            raise NotFoundError('group', group_id)
        user = self._resolve_user(user_id)
        already_member = any(m.id == user.id for m in group.members)
        if group.is_private and not already_member:
            raise ForbiddenError(f'group {group_id} is private')
        if self.member_repo.add_member(group, 'members', user):
            logger.info('user %s joined group %s', user_id, group_id)
        return group


class PostService:
    """Create and read posts addressed to a topic or an event."""
    def __init__(self, session: Session):
        self.session = session
        self.post_repo = repositories.PostRepository(session)
        self.topic_repo = repositories.TopicRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def create_post(self, payload: schemas.PostCreate, sender_id: str) -> models.Post:
        """Store a post from `sender_id`.

        The sender must have a user record; a topic target must exist.
        Event ids are opaque here and stored as given.
        """
        if self.user_repo.get(sender_id) is None:
            raise NotFoundError('user', sender_id)
        if payload.target_topic_id is not None and self.topic_repo.get(payload.target_topic_id) is None:
            raise NotFoundError('topic', payload.target_topic_id)
        post = models.Post(sender_id=sender_id, **payload.model_dump())
        return self.post_repo.create(post)

    def get_post(self, post_id: int) -> models.Post:
        post = self.post_repo.get(post_id)
        if post is None:
            raise NotFoundError('post', post_id)
        return post

    def list_topic_posts(self, topic_id: int) -> List[models.Post]:
        """Return posts addressed to an existing topic, newest first."""
        if self.topic_repo.get(topic_id) is None:
            raise NotFoundError('topic', topic_id)
        return self.post_repo.list_for_topic(topic_id)
