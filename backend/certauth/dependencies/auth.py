"""Authentication dependencies for protected routes."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from certauth.database import get_db
from certauth.errors import AuthenticationError
from certauth.models import Account
from certauth.services.repositories import AccountRepository
from certauth.services.session_service import ensure_can_log_in
from certauth.services.token_service import TokenService

security = HTTPBearer(auto_error=False)


def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Claims of a valid session token from the Authorization header.

    Temp (pending-2FA) tokens are rejected here.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required.", code="AUTH_REQUIRED")
    return TokenService.decode_session_token(credentials.credentials)


def get_current_account(
    claims: dict = Depends(get_current_claims),
    db: Session = Depends(get_db),
) -> Account:
    """
    Get the account behind the current session.

    Usage:
        @router.get("/protected")
        def protected_route(account: Account = Depends(get_current_account)):
            return {"account_id": account.id}
    """
    account = AccountRepository(db).find_by_id(claims["sub"])
    if account is None:
        raise AuthenticationError("Account not found.", code="ACCOUNT_NOT_FOUND")

    # Sessions stop working once an account leaves ACTIVE
    ensure_can_log_in(account)
    return account
