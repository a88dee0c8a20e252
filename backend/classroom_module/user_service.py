import logging
import re

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from .config import settings
from .database import transaction
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Assignment, Classroom, User, UserRole
from .security import hash_password
from .storage import remove_files

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
SEARCH_LIMIT = 20


def normalize_email(value: str) -> str:
    normalized = value.lower().strip()
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("Please provide a valid email")
    return normalized


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def find_active_user(db: Session, role: UserRole, *, user_id: int | None, email: str | None) -> User | None:
    query = select(User).where(User.role == role, User.is_active.is_(True))
    if user_id is not None:
        query = query.where(User.id == user_id)
    elif email:
        query = query.where(User.email == normalize_email(email))
    else:
        return None
    return db.scalars(query).first()


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.created_at.desc(), User.id.desc())))


def list_active_users(db: Session, role: UserRole | None = None) -> list[User]:
    query = select(User).where(User.is_active.is_(True))
    if role:
        query = query.where(User.role == role)
    return list(db.scalars(query.order_by(User.first_name, User.last_name)))


def search_users(db: Session, *, role: UserRole | None, query: str | None) -> list[User]:
    if not role and not query:
        raise ValidationError("Either role or query parameter is required")
    statement = select(User).where(User.is_active.is_(True))
    if role:
        statement = statement.where(User.role == role)
    if query:
        pattern = f"%{query.strip()}%"
        statement = statement.where(
            or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern))
        )
    statement = statement.order_by(User.first_name, User.last_name).limit(SEARCH_LIMIT)
    return list(db.scalars(statement))


def create_user(
    db: Session,
    *,
    email: str,
    raw_password: str,
    first_name: str,
    last_name: str,
    role: UserRole,
) -> User:
    email = normalize_email(email)
    if db.scalars(select(User).where(User.email == email)).first():
        raise ConflictError("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(raw_password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=role,
        is_active=True,
    )
    with transaction(db):
        db.add(user)
    db.refresh(user)
    logger.info(f"User {user.id} created with role {role.value}")
    return user


def update_user(db: Session, user_id: int, changes: dict) -> User:
    user = get_user_or_404(db, user_id)

    email = changes.get("email")
    if email is not None:
        email = normalize_email(email)
        if email != user.email:
            taken = db.scalars(select(User).where(User.email == email, User.id != user_id)).first()
            if taken:
                raise ConflictError("Email is already taken")
        user.email = email

    for field in ("first_name", "last_name", "role", "is_active"):
        if changes.get(field) is not None:
            setattr(user, field, changes[field])
    if changes.get("password"):
        user.password_hash = hash_password(changes["password"])

    with transaction(db):
        db.add(user)
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user_or_404(db, user_id)
    owns_classrooms = db.scalars(select(Classroom.id).where(Classroom.creator_id == user_id)).first()
    owns_assignments = db.scalars(select(Assignment.id).where(Assignment.creator_id == user_id)).first()
    if owns_classrooms is not None or owns_assignments is not None:
        raise ConflictError("User still owns classrooms or assignments; deactivate the account instead")

    stored_paths = [file.file_path for row in user.student_assignments for file in row.files]
    with transaction(db):
        db.delete(user)
    remove_files(stored_paths)
    logger.info(f"User {user_id} deleted")


def seed_default_admin(db: Session) -> None:
    email = settings.default_admin_email.lower().strip()
    if db.scalars(select(User).where(User.email == email)).first():
        return
    db.add(
        User(
            email=email,
            password_hash=hash_password(settings.default_admin_password),
            first_name="Admin",
            last_name="User",
            role=UserRole.ADMIN,
            is_active=True,
        )
    )
    db.commit()
    logger.info(f"Seeded default admin account {email}")
