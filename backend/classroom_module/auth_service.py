import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .database import transaction
from .errors import AuthenticationError, InternalError, ValidationError
from .mail_service import MailDispatchError, send_password_reset_email
from .models import User, UserRole, utcnow
from .security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    reset_token_expiration,
    verify_password,
)
from .user_service import create_user, normalize_email

logger = logging.getLogger(__name__)

RESET_REQUEST_MESSAGE = "If a user with that email exists, a reset link has been sent"


def issue_token(user: User) -> str:
    return create_access_token(user_id=user.id, role=user.role.value)


def login_user(db: Session, *, email: str, password: str) -> tuple[User, str]:
    user = db.scalars(select(User).where(User.email == normalize_email(email))).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return user, issue_token(user)


def register_user(
    db: Session,
    *,
    email: str,
    raw_password: str,
    first_name: str,
    last_name: str,
    role: UserRole,
) -> tuple[User, str]:
    user = create_user(
        db,
        email=email,
        raw_password=raw_password,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    return user, issue_token(user)


def request_password_reset(db: Session, *, email: str) -> None:
    """Issue a reset token and mail the link.

    A token that is still valid is re-sent instead of replaced, so a second
    request does not invalidate a link the user may already have opened.
    """
    try:
        normalized = normalize_email(email)
    except ValidationError:
        return
    user = db.scalars(select(User).where(User.email == normalized)).first()
    if not user or not user.is_active:
        logger.info("Password reset requested for an unknown or inactive account")
        return

    now = utcnow()
    if not (user.reset_token and user.reset_token_expiry and user.reset_token_expiry > now):
        user.reset_token = generate_reset_token()
        user.reset_token_expiry = reset_token_expiration()
        with transaction(db):
            db.add(user)

    reset_url = f"{settings.frontend_url.rstrip('/')}/reset-password/{user.reset_token}"
    try:
        send_password_reset_email(recipient_email=user.email, reset_url=reset_url)
    except MailDispatchError as exc:
        logger.error(f"Password reset email for user {user.id} failed: {exc}")
        raise InternalError("Server error during password reset request") from exc
    logger.info(f"Password reset link issued for user {user.id}")


def reset_password(db: Session, *, token: str, new_password: str) -> User:
    user = db.scalars(select(User).where(User.reset_token == token)).first()
    if not user or not user.is_active or not user.reset_token_expiry or user.reset_token_expiry <= utcnow():
        raise ValidationError("Invalid or expired reset token")

    user.password_hash = hash_password(new_password)
    user.reset_token = None
    user.reset_token_expiry = None
    with transaction(db):
        db.add(user)
    logger.info(f"Password reset completed for user {user.id}")
    return user
