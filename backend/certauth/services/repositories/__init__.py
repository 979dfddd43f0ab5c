"""Repository layer - data access abstraction.

Repositories handle all database queries, providing a clean interface
for services. Flows use repositories for data access rather than
directly querying SQLAlchemy models.

Dependency direction: Flows -> Repositories -> Models
"""

from .account_repository import AccountRepository
from .activity_log_repository import ActivityLogRepository
from .exceptions import DuplicateError, NotFoundError, RepositoryError
from .passkey_repository import PasskeyRepository
from .recovery_code_repository import RecoveryCodeRepository

__all__ = [
    "AccountRepository",
    "ActivityLogRepository",
    "DuplicateError",
    "NotFoundError",
    "PasskeyRepository",
    "RecoveryCodeRepository",
    "RepositoryError",
]
