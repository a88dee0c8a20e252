from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import get_current_user, require_roles
from ..models import User, UserRole
from ..schemas import (
    MessageResponse,
    UserCreateRequest,
    UserEnvelope,
    UserListItem,
    UserListResponse,
    UserOut,
    UserUpdateRequest,
)
from ..user_service import create_user, delete_user, get_user_or_404, list_active_users, list_users, search_users, update_user

router = APIRouter(prefix="/api/users", tags=["Users"])

admin_only = require_roles(UserRole.ADMIN)


@router.get("/search", response_model=UserListResponse)
def search(
    role: UserRole | None = Query(default=None),
    query: str | None = Query(default=None),
    db: Session = Depends(get_db_session),
    _: User = Depends(get_current_user),
):
    users = search_users(db, role=role, query=query)
    return UserListResponse(users=[UserListItem.model_validate(user) for user in users])


@router.get("/all", response_model=UserListResponse)
def all_active(
    role: UserRole | None = Query(default=None),
    db: Session = Depends(get_db_session),
    _: User = Depends(get_current_user),
):
    users = list_active_users(db, role)
    return UserListResponse(users=[UserListItem.model_validate(user) for user in users])


@router.get("/")
def list_all(db: Session = Depends(get_db_session), _: User = Depends(admin_only)):
    return {"users": [UserOut.model_validate(user) for user in list_users(db)]}


@router.post("/", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def create(payload: UserCreateRequest, db: Session = Depends(get_db_session), _: User = Depends(admin_only)):
    user = create_user(
        db,
        email=payload.email,
        raw_password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
    )
    return UserEnvelope(user=UserOut.model_validate(user))


@router.get("/{user_id}", response_model=UserEnvelope)
def retrieve(user_id: int, db: Session = Depends(get_db_session), _: User = Depends(admin_only)):
    return UserEnvelope(user=UserOut.model_validate(get_user_or_404(db, user_id)))


@router.put("/{user_id}", response_model=UserEnvelope)
def update(
    user_id: int,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db_session),
    _: User = Depends(admin_only),
):
    user = update_user(db, user_id, payload.model_dump(exclude_unset=True))
    return UserEnvelope(user=UserOut.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete(user_id: int, db: Session = Depends(get_db_session), _: User = Depends(admin_only)):
    delete_user(db, user_id)
    return MessageResponse(message="User deleted successfully")
