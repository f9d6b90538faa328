from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from hall_reserve.database import Base
from hall_reserve.models.booking import ApprovalStatus


class ApprovalLog(Base):
    __tablename__ = "approval_logs"

    id           = Column(Integer, primary_key=True, index=True)
    bookingId    = Column(String(64), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    stage        = Column(Integer, nullable=False)
    decision     = Column(Enum(ApprovalStatus, values_callable=lambda e: [m.value for m in e],
                               name="approval_decision"), nullable=False)
    approverId   = Column(String(64), ForeignKey("users.uid"), nullable=False)
    approverName = Column(String(150), nullable=False)
    channel      = Column(String(20), nullable=False, default="app")   # app | magic_link
    createdAt    = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    # ─── Relationships ─────────────────────────────────────────────────────────
    booking  = relationship("Booking", back_populates="approval_logs")
    approver = relationship("User", back_populates="approval_logs")

    def __repr__(self):
        return f"<ApprovalLog id={self.id} bookingId={self.bookingId} stage={self.stage} decision={self.decision}>"
