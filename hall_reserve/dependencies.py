from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from hall_reserve.database import get_db
from hall_reserve.models.user import User
from hall_reserve.utils.security import verify_access_token
from hall_reserve.utils.exceptions import UnauthorizedException

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def _resolve_user(token: str, db: Session) -> User:
    payload = verify_access_token(token)
    uid: str | None = payload.get("sub")
    if uid is None:
        raise UnauthorizedException("Invalid token payload")

    user = db.get(User, uid)
    if not user:
        raise UnauthorizedException("Account no longer exists")
    return user


# ─── Get Current User ─────────────────────────────────────────────────────────
def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate JWT Bearer token and return the current User.
    Raises 401 if token is missing, invalid, or expired.
    """
    if not credentials:
        raise UnauthorizedException("No authentication token provided")
    return _resolve_user(credentials.credentials, db)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    """Current user when a token is sent, else None. A bad token still raises 401."""
    if not credentials:
        return None
    return _resolve_user(credentials.credentials, db)

