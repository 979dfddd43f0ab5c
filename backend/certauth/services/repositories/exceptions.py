"""Errors raised by the credential store repositories.

Flows translate these into ``certauth.errors`` types before they reach a
router.
"""


class RepositoryError(Exception):
    """Base for credential store failures that carry meaning for a flow."""


class NotFoundError(RepositoryError):
    """A lookup by primary key found no row."""

    def __init__(self, entity_type: str, identifier: str):
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(f"No {entity_type} with id {identifier}")


class DuplicateError(RepositoryError):
    """An insert hit a unique index; ``field`` names the column that collided."""

    def __init__(self, entity_type: str, field: str):
        self.entity_type = entity_type
        self.field = field
        super().__init__(f"{entity_type}.{field} is already taken")
