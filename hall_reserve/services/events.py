from dataclasses import dataclass, field

from hall_reserve.models.booking import ApprovalStatus


@dataclass(frozen=True)
class StageRecipients:
    stage: int
    emails: tuple[str, ...]
    fallback: bool = False


@dataclass(frozen=True)
class BookingSubmitted:
    booking_id: str
    booked_by: str
    hall_name: str
    required_date: str
    department: str
    recipients: tuple[StageRecipients, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BookingDecided:
    booking_id: str
    stage: int
    decision: ApprovalStatus
    overall_status: ApprovalStatus
    actor_name: str
    submitter_email: str
    # Filled only when the next stage should be asked now (sequential approval)
    next_stage: StageRecipients | None = None
    booking_summary: BookingSubmitted | None = None

    @property
    def finalised(self) -> bool:
        return self.overall_status == ApprovalStatus.APPROVED
