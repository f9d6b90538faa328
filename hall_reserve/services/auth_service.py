from sqlalchemy import select
from sqlalchemy.orm import Session

from hall_reserve.models.user import User
from hall_reserve.schemas.auth import LoginRequest, RegisterRequest
from hall_reserve.utils.security import verify_password, hash_password, create_access_token
from hall_reserve.utils.audit import log_action
from hall_reserve.utils.exceptions import UnauthorizedException, DuplicateEntryException
from hall_reserve.config import settings


def serialize_user(user: User) -> dict:
    return {
        "uid":   user.uid,
        "email": user.email,
        "name":  user.name,
        "role":  user.role.value,
    }


class AuthService:

    # ─── Register ─────────────────────────────────────────────────────────────
    def register(self, db: Session, data: RegisterRequest) -> User:
        # Role is fixed here; later sign-ins reuse it
        if db.scalar(select(User).where(User.email == data.email)):
            raise DuplicateEntryException("Email already registered", field="email")

        user = User(
            email=data.email,
            name=data.name,
            password=hash_password(data.password),
            role=data.role,
        )
        db.add(user)
        db.flush()
        log_action(db, user.uid, "REGISTER", "User", user.uid,
                   f"{user.name} registered as {data.role.value}")
        db.commit()
        db.refresh(user)
        return user

    # ─── Login ────────────────────────────────────────────────────────────────
    def login(self, db: Session, data: LoginRequest) -> dict:
        user = db.scalar(select(User).where(User.email == data.email))
        if not user or not verify_password(data.password, user.password):
            raise UnauthorizedException("Invalid email or password")

        log_action(db, user.uid, "LOGIN", "User", user.uid, f"{user.name} logged in")
        db.commit()

        return {
            "accessToken": create_access_token(user.uid, user.role.value),
            "tokenType":   "Bearer",
            "expiresIn":   settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user":        serialize_user(user),
        }


auth_service = AuthService()
