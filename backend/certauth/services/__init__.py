"""Services layer - business logic and integrations.

- repositories/: Data access layer
- *_flow / *_service modules: login, 2FA, passkey and account lifecycle

Common imports for convenience:
    from certauth.services import AccountRepository, PasskeyRepository
"""

# Re-export commonly used components for convenience
from certauth.services.repositories import (
    AccountRepository,
    ActivityLogRepository,
    DuplicateError,
    NotFoundError,
    PasskeyRepository,
    RecoveryCodeRepository,
    RepositoryError,
)

__all__ = [
    # Repositories
    "AccountRepository",
    "ActivityLogRepository",
    "DuplicateError",
    "NotFoundError",
    "PasskeyRepository",
    "RecoveryCodeRepository",
    "RepositoryError",
]
