"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
groups, topics, posts). Repositories return SQLModel objects and commit
every write immediately; nothing is batched across calls.
"""

from typing import List, Optional
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select
from . import models
from .errors import ConflictError, NotFoundError


class EntityRepository:
    """Primary-key access shared by every aggregate repository.

    Subclasses set `model` to the SQLModel table class they manage.
    """
    model: type = SQLModel

    def __init__(self, session: Session):
        self.session = session

    def get(self, entity_id) -> Optional[SQLModel]:
        """Fetch an entity by primary key, or `None` if absent."""
        return self.session.get(self.model, entity_id)

    def list(self) -> List[SQLModel]:
        """Return every stored entity ordered by primary key."""
        stmt = select(self.model).order_by(self.model.id)
        return self.session.exec(stmt).all()

    def create(self, entity: SQLModel) -> SQLModel:
        """Persist a new entity and return the managed instance.

        A primary-key or unique-constraint violation rolls the session
        back and surfaces as `ConflictError`.
        """
        self.session.add(entity)
        self.save()
        self.session.refresh(entity)
        return entity

    def save(self):
        """Commit pending changes, mapping integrity violations to `ConflictError`."""
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(f'{self.model.__name__.lower()} conflicts with an existing record') from e

    def delete(self, entity_id) -> None:
        """Remove an entity by primary key, raising `NotFoundError` if absent."""
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.model.__name__.lower(), entity_id)
        self.session.delete(entity)
        self.session.commit()


class UserRepository(EntityRepository):
    """CRUD operations for `User` objects."""
    model = models.User

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def update(self, user: models.User, values: dict) -> models.User:
        """Apply `values` to `user` and persist the change."""
        user.sqlmodel_update(values)
        self.session.add(user)
        self.save()
        self.session.refresh(user)
        return user


class GroupRepository(EntityRepository):
    """CRUD operations for `Group` objects, with optimistic concurrency."""
    model = models.Group

    def list_visible_to(self, user_id: Optional[str]) -> List[models.Group]:
        """Return public groups plus the private groups `user_id` belongs to."""
        visible = models.Group.is_private.is_(False)
        if user_id is not None:
            member_of = select(models.GroupMember.group_id).where(models.GroupMember.user_id == user_id)
            visible = or_(visible, models.Group.id.in_(member_of))
        stmt = select(models.Group).where(visible).order_by(models.Group.id)
        return self.session.exec(stmt).all()

    def update(self, group_id: int, values: dict, expected_version: int) -> models.Group:
        """Overwrite a group's fields if its version still matches.

        The check and the write happen in one UPDATE statement, so of two
        writers holding the same version exactly one succeeds. Zero
        affected rows means the group is gone (`NotFoundError`) or was
        changed since the caller read it (`ConflictError`).
        """
        stmt = (
            update(models.Group)
            .where(models.Group.id == group_id, models.Group.version == expected_version)
            .values(**values, version=models.Group.version + 1)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 0:
            self.session.rollback()
            if self.get(group_id) is None:
                raise NotFoundError('group', group_id)
            raise ConflictError(f'group {group_id} was modified concurrently')
        self.session.commit()
        return self.session.get(models.Group, group_id, populate_existing=True)


class TopicRepository(EntityRepository):
    """Read and create operations for `Topic` objects."""
    model = models.Topic


class PostRepository(EntityRepository):
    """Persistence and queries for `Post` records."""
    model = models.Post

    def list_for_topic(self, topic_id: int) -> List[models.Post]:
        """Return posts addressed to `topic_id`, newest first."""
        stmt = (
            select(models.Post)
            .where(models.Post.target_topic_id == topic_id)
            .order_by(models.Post.timestamp.desc(), models.Post.id.desc())
        )
        return self.session.exec(stmt).all()


class MembershipRepository:
    """Adds membership edges to a topic or group member relation."""
    def __init__(self, session: Session):
        self.session = session

    def add_member(self, target: SQLModel, relation: str, user: models.User) -> bool:
        """Append `user` to `target.<relation>` unless already present.

        Returns True when a new edge was stored. A concurrent writer that
        inserted the same edge first trips the link table's composite
        primary key; that case is rolled back and reported as False.
        """
        members = getattr(target, relation)
        if any(m.id == user.id for m in members):
            return False
        members.append(user)
        self.session.add(target)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return False
        finally:
            self.session.refresh(target)
        return True
