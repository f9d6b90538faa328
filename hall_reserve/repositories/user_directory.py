import abc

from sqlalchemy import select
from sqlalchemy.orm import Session

from hall_reserve.models.role import RoleName
from hall_reserve.models.user import User


class UserDirectory(abc.ABC):
    """Address lookups the workflow needs from the identity store."""

    @abc.abstractmethod
    def emails_for_role(self, role: RoleName) -> list[str]: ...

    @abc.abstractmethod
    def email_of(self, uid: str) -> str | None: ...


class SqlUserDirectory(UserDirectory):

    def __init__(self, db: Session):
        self.db = db

    def emails_for_role(self, role: RoleName) -> list[str]:
        return list(self.db.scalars(select(User.email).where(User.role == role).order_by(User.email)).all())

    def email_of(self, uid: str) -> str | None:
        user = self.db.get(User, uid)
        return user.email if user else None
