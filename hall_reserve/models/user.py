import uuid
from sqlalchemy import Column, String, Enum, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hall_reserve.database import Base
from hall_reserve.models.role import RoleName


def _new_uid() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    uid       = Column(String(64), primary_key=True, default=_new_uid)
    email     = Column(String(255), unique=True, nullable=False, index=True)
    name      = Column(String(150), nullable=False)
    password  = Column(String(255), nullable=False)
    role      = Column(Enum(RoleName, values_callable=lambda e: [m.value for m in e], name="user_role"),
                       default=RoleName.STAFF, nullable=False, index=True)
    createdAt = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    approval_logs = relationship("ApprovalLog", back_populates="approver")
    audit_logs    = relationship("AuditLog", back_populates="user")

    def __repr__(self):
        return f"<User uid={self.uid} email={self.email} role={self.role}>"
