from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth_service import RESET_REQUEST_MESSAGE, login_user, register_user, request_password_reset, reset_password
from ..database import get_db_session
from ..middleware import get_current_user
from ..models import User
from ..schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserEnvelope,
    UserOut,
)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db_session)):
    user, token = login_user(db, email=payload.email, password=payload.password)
    return AuthResponse(user=UserOut.model_validate(user), token=token)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db_session)):
    user, token = register_user(
        db,
        email=payload.email,
        raw_password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
    )
    return AuthResponse(user=UserOut.model_validate(user), token=token)


@router.get("/me", response_model=UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(user=UserOut.model_validate(current_user))


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db_session)):
    request_password_reset(db, email=payload.email)
    return MessageResponse(message=RESET_REQUEST_MESSAGE)


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password_with_token(token: str, payload: ResetPasswordRequest, db: Session = Depends(get_db_session)):
    reset_password(db, token=token, new_password=payload.password)
    return MessageResponse(message="Password has been reset successfully")
