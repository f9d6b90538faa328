import enum
import uuid
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, Time, Enum, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from hall_reserve.database import Base


class ApprovalStatus(str, enum.Enum):
    PENDING  = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Duration(str, enum.Enum):
    THIRTY_MINUTES = "30 mins"
    ONE_HOUR       = "1 hour"
    TWO_HOURS      = "2 hours"
    THREE_HOURS    = "3 hours"
    HALF_DAY       = "Half Day"
    FULL_DAY       = "Full Day"


class AirConditioning(str, enum.Enum):
    REQUIRED     = "Required"
    NOT_REQUIRED = "Not Required"


def _status_column(index: bool = False):
    return Column(
        Enum(ApprovalStatus, values_callable=lambda e: [m.value for m in e], name="approval_status"),
        default=ApprovalStatus.PENDING, nullable=False, index=index,
    )


def _new_booking_id() -> str:
    return uuid.uuid4().hex


class Booking(Base):
    __tablename__ = "bookings"

    id                = Column(String(64), primary_key=True, default=_new_booking_id)

    # ─── Request attributes (written once, at creation) ───────────────────────
    hallId            = Column(String(64), ForeignKey("halls.id"), nullable=False, index=True)
    hallName          = Column(String(200), nullable=False)
    department        = Column(String(200), nullable=False)
    meetingType       = Column(String(200), nullable=False)
    requiredDate      = Column(Date, nullable=False, index=True)
    startTime         = Column(Time, nullable=False)
    duration          = Column(String(20), nullable=False)
    audioSystem       = Column(Boolean, default=False, nullable=False)
    projector         = Column(Boolean, default=False, nullable=False)
    airConditioning   = Column(String(20), default=AirConditioning.REQUIRED.value, nullable=False)
    participants      = Column(Integer, nullable=False)
    coordinatorName   = Column(String(150), nullable=False)
    bookedBy          = Column(String(150), nullable=False)
    otherRequirements = Column(Text, nullable=False, default="")
    userId            = Column(String(64), ForeignKey("users.uid"), nullable=False, index=True)
    submittedAt       = Column(TIMESTAMP(timezone=True), nullable=False)

    # ─── Workflow attributes (written only by the approval state machine) ─────
    status             = _status_column(index=True)
    stage1_status      = _status_column()
    stage1_approved_by = Column(String(150), nullable=True)
    stage2_status      = _status_column()
    stage2_approved_by = Column(String(150), nullable=True)
    stage3_status      = _status_column()
    stage3_approved_by = Column(String(150), nullable=True)

    # ─── Relationships ─────────────────────────────────────────────────────────
    hall          = relationship("Hall")
    approval_logs = relationship("ApprovalLog", back_populates="booking", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Booking id={self.id} status={self.status} hallId={self.hallId}>"
