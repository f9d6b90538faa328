"""
Booking workflow orchestration: submission, stage decisions, cancellation.

The workflow talks only to a ``BookingRepository`` and a ``UserDirectory`` and
reports what happened through ``emit``. Notification delivery hangs off
``emit`` and runs after the state change has been persisted.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable

from hall_reserve.config import settings
from hall_reserve.models.booking import ApprovalStatus
from hall_reserve.models.role import RoleName
from hall_reserve.repositories.booking_repository import BookingRepository
from hall_reserve.repositories.user_directory import UserDirectory
from hall_reserve.services import approval
from hall_reserve.services.events import BookingSubmitted, BookingDecided, StageRecipients
from hall_reserve.services.slot_conflict import (
    check_conflict, create_booking_advisory, create_booking_exclusive,
)
from hall_reserve.utils.exceptions import (
    BookingConflictException, BookingNotPendingException, BookingValidationException,
    ForbiddenException, NotFoundException, RoleMismatchException,
    SelfApprovalException, UnauthorizedException,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "department":      "Department is required",
    "meetingType":     "Meeting Type is required",
    "requiredDate":    "Date is required",
    "startTime":       "Start Time is required",
    "duration":        "Duration is required",
    "coordinatorName": "Coordinator Name is required",
    "bookedBy":        "Your Name is required",
}


def validate_booking_request(form, hall, now: datetime, max_advance_days: int) -> dict[str, str]:
    """Collect per-field errors for a booking request; empty dict means valid."""
    errors: dict[str, str] = {}
    for name, message in REQUIRED_FIELDS.items():
        value = getattr(form, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[name] = message

    today = now.date()
    if form.requiredDate is not None:
        if form.requiredDate < today:
            errors["requiredDate"] = "Cannot book in the past"
        elif form.requiredDate > today + timedelta(days=max_advance_days):
            errors["requiredDate"] = "Date is too far in the future"
        elif form.requiredDate == today and form.startTime is not None \
                and form.startTime.replace(second=0, microsecond=0) < now.time().replace(second=0, microsecond=0):
            errors["startTime"] = "Cannot select a past time"

    if form.participants is None or form.participants < 1:
        errors["participants"] = "At least one participant is required"
    elif form.participants > hall.capacity:
        errors["participants"] = f"Max capacity is {hall.capacity}"

    if not form.agreementAccepted:
        errors["agreement"] = "You must accept the agreement terms"
    return errors


def _discard(event) -> None:
    logger.debug(f"No listener for {type(event).__name__}")


class BookingWorkflow:

    def __init__(
        self,
        repo: BookingRepository,
        directory: UserDirectory,
        emit: Callable[[object], None] | None = None,
        *,
        notify_all_stages: bool | None = None,
        sequential: bool | None = None,
        enforce_slot_on_write: bool | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repo = repo
        self.directory = directory
        self.emit = emit or _discard
        self.notify_all_stages = settings.NOTIFY_ALL_STAGES_ON_SUBMIT if notify_all_stages is None else notify_all_stages
        self.sequential = settings.SEQUENTIAL_APPROVAL if sequential is None else sequential
        self.enforce_slot_on_write = (settings.ENFORCE_SLOT_ON_WRITE
                                      if enforce_slot_on_write is None else enforce_slot_on_write)
        self.clock = clock or datetime.now

    # ─── Addressing ───────────────────────────────────────────────────────────
    def fallback_email(self, stage: int) -> str:
        return {
            RoleName.ADMIN_IC:    settings.FALLBACK_ADMIN_IC_EMAIL,
            RoleName.COORDINATOR: settings.FALLBACK_COORDINATOR_EMAIL,
            RoleName.HEAD_OPS:    settings.FALLBACK_HEAD_OPS_EMAIL,
        }[approval.required_role(stage)]

    def recipients_for(self, stage: int) -> StageRecipients:
        emails = self.directory.emails_for_role(approval.required_role(stage))
        if emails:
            return StageRecipients(stage=stage, emails=tuple(emails))
        return StageRecipients(stage=stage, emails=(self.fallback_email(stage),), fallback=True)

    def submitter_email(self, booking: dict) -> str:
        try:
            email = self.directory.email_of(booking["userId"]) if booking.get("userId") else None
        except Exception:
            logger.exception(f"Submitter lookup failed for booking {booking['id']}")
            email = None
        return email or settings.DEFAULT_SUBMITTER_EMAIL

    def stages_notified_on_submit(self) -> tuple[int, ...]:
        if self.notify_all_stages and not self.sequential:
            return approval.STAGES
        return approval.STAGES[:1]

    @staticmethod
    def summary_of(booking: dict, recipients=()) -> BookingSubmitted:
        return BookingSubmitted(
            booking_id=booking["id"],
            booked_by=booking["bookedBy"],
            hall_name=booking["hallName"],
            required_date=str(booking["requiredDate"]),
            department=booking["department"],
            recipients=tuple(recipients),
        )

    # ─── Submission ───────────────────────────────────────────────────────────
    def submit_booking(self, form, hall, submitter) -> dict:
        if submitter is None:
            raise UnauthorizedException("You must be signed in to submit a booking")

        errors = validate_booking_request(form, hall, self.clock(), settings.MAX_ADVANCE_BOOKING_DAYS)
        if errors:
            raise BookingValidationException(errors)

        result = check_conflict(
            hall.id, form.requiredDate, form.startTime, form.duration,
            self.repo.list_for_slot(hall.id, form.requiredDate),
        )
        if not result.available:
            raise BookingConflictException(result.conflicting_booking, result.message)

        record = {
            "hallId":            hall.id,
            "hallName":          hall.name,
            "department":        form.department.strip(),
            "meetingType":       form.meetingType.strip(),
            "requiredDate":      form.requiredDate,
            "startTime":         form.startTime.replace(second=0, microsecond=0),
            "duration":          form.duration.value,
            "audioSystem":       form.audioSystem,
            "projector":         form.projector,
            "airConditioning":   form.airConditioning.value,
            "participants":      form.participants,
            "coordinatorName":   form.coordinatorName.strip(),
            "bookedBy":          form.bookedBy.strip(),
            "otherRequirements": form.otherRequirements or "",
            "userId":            submitter.uid,
            "submittedAt":       self.clock(),
            **approval.initial_workflow_fields(),
        }
        writer = create_booking_exclusive if self.enforce_slot_on_write else create_booking_advisory
        booking = writer(self.repo, record)
        logger.info(f"Booking {booking['id']} submitted by {submitter.uid} for "
                    f"{booking['hallName']} on {booking['requiredDate']} {booking['startTime']}")

        recipients = [self.recipients_for(stage) for stage in self.stages_notified_on_submit()]
        self.emit(self.summary_of(booking, recipients))
        return booking

    # ─── Stage decisions ──────────────────────────────────────────────────────
    def authorize(self, booking: dict, stage: int, actor) -> None:
        required = approval.required_role(stage)
        if actor.role != required:
            raise RoleMismatchException(stage, required.value)
        if booking["userId"] == actor.uid:
            raise SelfApprovalException()

    def decide_stage(self, booking_id: str, stage: int, decision: ApprovalStatus, actor) -> BookingDecided:
        booking = self.repo.get(booking_id)
        if booking is None:
            raise NotFoundException("Booking")
        self.authorize(booking, stage, actor)

        submitter_email = self.submitter_email(booking)
        updates = approval.apply_decision(booking, stage, decision, actor.name, sequential=self.sequential)
        booking = self.repo.update_fields(booking_id, updates)
        logger.info(f"Booking {booking_id} stage {stage} {ApprovalStatus(decision).value} by "
                    f"{actor.name}; overall {booking['status']}")

        next_stage = None
        summary = None
        if (self.sequential and ApprovalStatus(decision) == ApprovalStatus.APPROVED
                and stage < approval.FINAL_STAGE):
            next_stage = self.recipients_for(stage + 1)
            summary = self.summary_of(booking)

        event = BookingDecided(
            booking_id=booking_id,
            stage=stage,
            decision=ApprovalStatus(decision),
            overall_status=ApprovalStatus(booking["status"]),
            actor_name=actor.name,
            submitter_email=submitter_email,
            next_stage=next_stage,
            booking_summary=summary,
        )
        self.emit(event)
        return event

    # ─── Cancellation ─────────────────────────────────────────────────────────
    def cancel_booking(self, booking_id: str, actor) -> dict:
        booking = self.repo.get(booking_id)
        if booking is None:
            raise NotFoundException("Booking")
        if booking["userId"] != actor.uid and approval.stage_for_role(actor.role) is None:
            raise ForbiddenException("You can only cancel your own bookings")
        if approval.is_terminal(booking):
            raise BookingNotPendingException(booking["status"])
        self.repo.delete(booking_id)
        logger.info(f"Booking {booking_id} cancelled by {actor.uid}")
        return booking
