from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hall_reserve.database import get_db
from hall_reserve.dependencies import get_current_user
from hall_reserve.models.user import User
from hall_reserve.schemas.auth import LoginRequest, RegisterRequest
from hall_reserve.schemas.common import SuccessResponse, success_response
from hall_reserve.services.auth_service import auth_service, serialize_user

router = APIRouter(prefix="/auth")


# ─── POST /auth/register ──────────────────────────────────────────────────────
@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Create an account with a role",
    response_model=SuccessResponse,
)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create a user account.
    - Email must be unique.
    - The role chosen here is kept for every later sign-in.
    """
    user = auth_service.register(db, data)
    return success_response("Registration successful", serialize_user(user))


# ─── POST /auth/login ─────────────────────────────────────────────────────────
@router.post(
    "/login",
    summary="Login and receive an access token",
    response_model=SuccessResponse,
)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    return success_response("Login successful", auth_service.login(db, data))


# ─── GET /auth/me ─────────────────────────────────────────────────────────────
@router.get("/me", summary="Current user profile", response_model=SuccessResponse)
def me(current_user: User = Depends(get_current_user)):
    return success_response("Profile retrieved", serialize_user(current_user))
