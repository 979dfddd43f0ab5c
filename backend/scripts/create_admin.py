"""Create (or promote) an administrator account, or print a break-glass hash.

Usage:
    python -m scripts.create_admin admin@university.edu [password]
    python -m scripts.create_admin --hash <password>
"""

import logging
import os
import secrets

from sqlalchemy.orm import Session as DBSession

from certauth.models import Account, AccountRole, AccountStatus
from certauth.services.auth_service import AuthService
from certauth.services.repositories import AccountRepository

logger = logging.getLogger(__name__)


def create_admin(
    db: DBSession, email: str, password: str | None = None, role: str = AccountRole.ADMIN
) -> tuple[Account, str]:
    """
    Create an ACTIVE admin account, or promote an existing one.

    Args:
        db: Database session
        email: Admin email address
        password: Optional password. If not provided, generates a secure one.
        role: admin or super_admin

    Returns:
        Tuple of (Account, password_used)
    """
    repo = AccountRepository(db)
    existing = repo.find_by_email(email)

    if existing:
        existing.role = role
        existing.status = AccountStatus.ACTIVE
        if password:
            existing.password_hash = AuthService.hash_password(password)
        db.commit()
        logger.info("Promoted existing account %s to %s", existing.email, role)
        return existing, password or "(existing - password not changed)"

    password = password or os.getenv("ADMIN_PASSWORD") or secrets.token_urlsafe(16)

    account = Account(
        email=email.strip().lower(),
        password_hash=AuthService.hash_password(password),
        full_name="Administrator",
        role=role,
        status=AccountStatus.ACTIVE,
    )
    repo.insert(account)
    db.commit()

    logger.info("Created admin account: %s (id: %s)", account.email, account.id)
    return account, password


if __name__ == "__main__":
    """Run as standalone script."""
    import sys

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    if len(sys.argv) < 2:
        logger.info(__doc__)
        sys.exit(1)

    if sys.argv[1] == "--hash":
        # For BREAK_GLASS_PASSWORD_HASH; nothing is written to the database
        logger.info(AuthService.hash_password(sys.argv[2]))
        sys.exit(0)

    from certauth.database import SessionLocal

    db = SessionLocal()
    try:
        account, password_used = create_admin(
            db, sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None
        )

        logger.info("")
        logger.info("Admin account setup complete:")
        logger.info("  Email: %s", account.email)
        logger.info("  ID: %s", account.id)
        logger.info("  Role: %s", account.role)
        if password_used != "(existing - password not changed)":
            logger.info("  Password: %s", password_used)
            logger.info("  IMPORTANT: Save this password securely!")
    finally:
        db.close()
