"""Domain errors raised by services and repositories.

Controllers translate these into HTTP status codes; nothing below the
controller layer knows about HTTP.
"""


class DomainError(Exception):
    """Base class for expected, caller-facing failures."""


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(DomainError):
    """The write collides with stored state (stale version, duplicate key)."""


class ForbiddenError(DomainError):
    """The caller is known but may not see or touch the entity."""


class UnauthorizedError(DomainError):
    """The caller may not perform this write on behalf of another user."""
