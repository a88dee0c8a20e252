import logging
from collections.abc import Callable

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .database import get_db_session
from .errors import AuthenticationError, AuthorizationError
from .models import User, UserRole
from .security import AuthError, decode_access_token

logger = logging.getLogger(__name__)


def _parse_token(auth_header: str | None) -> str:
    if not auth_header:
        raise AuthenticationError("No token, authorization denied")
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise AuthenticationError("No token, authorization denied")
    return parts[1].strip()


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> User:
    token = _parse_token(authorization)
    try:
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
    except (AuthError, ValueError) as exc:
        raise AuthenticationError("Token is not valid") from exc

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


def require_roles(*allowed_roles: UserRole) -> Callable:
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(f"Role check failed: user {current_user.id} has role {current_user.role.value}")
            raise AuthorizationError()
        return current_user

    return dependency
