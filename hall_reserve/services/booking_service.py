from datetime import date, datetime, time
from typing import Callable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from hall_reserve.config import settings
from hall_reserve.models.approval_log import ApprovalLog
from hall_reserve.models.booking import ApprovalStatus, Duration
from hall_reserve.models.role import RoleName
from hall_reserve.models.user import User
from hall_reserve.repositories.booking_repository import SqlBookingRepository
from hall_reserve.repositories.user_directory import SqlUserDirectory
from hall_reserve.schemas.booking import BookingCreateRequest
from hall_reserve.services import approval
from hall_reserve.services.booking_workflow import BookingWorkflow
from hall_reserve.services.hall_service import hall_service
from hall_reserve.services.magic_link import ActionResolution, resolve_action
from hall_reserve.services.slot_conflict import check_conflict, format_time
from hall_reserve.utils.audit import log_action
from hall_reserve.utils.exceptions import ForbiddenException, NotFoundException

Emit = Callable[[object], None]

VIEWS = ("pending", "history", "mine")


def _iso(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_booking(doc: dict, viewer: User | None = None) -> dict:
    data = dict(doc)
    data["requiredDate"] = _iso(doc["requiredDate"])
    data["startTime"] = format_time(doc["startTime"]) if isinstance(doc["startTime"], time) else doc["startTime"]
    data["submittedAt"] = _iso(doc["submittedAt"])
    if viewer is not None:
        data["actionableStage"] = approval.actionable_stage(
            doc, viewer.role, viewer.uid, sequential=settings.SEQUENTIAL_APPROVAL,
        )
    return data


def _in_view(doc: dict, user: User, view: str) -> bool:
    if view == "mine":
        return doc["userId"] == user.uid

    stage = approval.stage_for_role(user.role)
    if stage is None:
        if doc["userId"] != user.uid:
            return False
        pending = doc["status"] == ApprovalStatus.PENDING.value
        return pending if view == "pending" else not pending

    stage_pending = approval.stage_status(doc, stage) == ApprovalStatus.PENDING.value
    if view == "pending":
        return stage_pending and not approval.is_terminal(doc)
    return not stage_pending or approval.is_terminal(doc)


class BookingService:

    def _workflow(self, repo: SqlBookingRepository, emit: Emit | None = None) -> BookingWorkflow:
        return BookingWorkflow(repo, SqlUserDirectory(repo.db), emit)

    # ─── Availability ─────────────────────────────────────────────────────────
    def check_availability(
        self, db: Session, hall_id: str, required_date: date, start_time: time, duration: Duration,
    ) -> dict:
        hall_service.get_hall(db, hall_id)
        candidates = SqlBookingRepository(db).list_for_slot(hall_id, required_date)
        result = check_conflict(hall_id, required_date, start_time, duration, candidates)
        return {
            "available": result.available,
            "conflictingBooking": serialize_booking(result.conflicting_booking) if result.conflicting_booking else None,
            "message": result.message,
        }

    # ─── Reads ────────────────────────────────────────────────────────────────
    def list_bookings(self, db: Session, current_user: User, view: str) -> list[dict]:
        docs = SqlBookingRepository(db).list_all()
        return [serialize_booking(d, current_user) for d in docs if _in_view(d, current_user, view)]

    def get_booking(self, db: Session, booking_id: str, current_user: User) -> dict:
        doc = SqlBookingRepository(db).get(booking_id)
        if not doc:
            raise NotFoundException("Booking")
        # Staff can only see own bookings
        if current_user.role == RoleName.STAFF and doc["userId"] != current_user.uid:
            raise ForbiddenException("You can only view your own bookings")
        return serialize_booking(doc, current_user)

    def get_approval_log(self, db: Session, booking_id: str) -> list[dict]:
        if not SqlBookingRepository(db).get(booking_id):
            raise NotFoundException("Booking")
        logs = db.scalars(
            select(ApprovalLog).where(ApprovalLog.bookingId == booking_id)
            .order_by(ApprovalLog.createdAt.asc(), ApprovalLog.id.asc())
        ).all()
        return [{
            "id":        l.id,
            "stage":     l.stage,
            "decision":  l.decision.value,
            "approver":  {"uid": l.approverId, "name": l.approverName},
            "channel":   l.channel,
            "createdAt": _iso(l.createdAt),
        } for l in logs]

    # ─── Writes ───────────────────────────────────────────────────────────────
    def create_booking(self, db: Session, data: BookingCreateRequest, current_user: User,
                       emit: Emit | None = None) -> dict:
        hall = hall_service.get_hall(db, data.hallId)
        repo = SqlBookingRepository(db)
        doc = self._workflow(repo, emit).submit_booking(data, hall, current_user)

        log_action(db, current_user.uid, "SUBMIT", "Booking", doc["id"],
                   f"{current_user.name} requested {doc['hallName']} on {doc['requiredDate']}")
        repo.commit()
        return serialize_booking(doc, current_user)

    def decide_stage(self, db: Session, booking_id: str, stage: int, decision: ApprovalStatus,
                     current_user: User, emit: Emit | None = None, channel: str = "app") -> dict:
        repo = SqlBookingRepository(db)
        event = self._workflow(repo, emit).decide_stage(booking_id, stage, decision, current_user)

        db.add(ApprovalLog(
            bookingId=booking_id, stage=stage, decision=event.decision,
            approverId=current_user.uid, approverName=current_user.name, channel=channel,
        ))
        log_action(db, current_user.uid, "DECIDE", "Booking", booking_id,
                   f"Stage {stage} {event.decision.value} by {current_user.name}; "
                   f"overall {event.overall_status.value}")
        repo.commit()
        return serialize_booking(repo.get(booking_id), current_user)

    def cancel_booking(self, db: Session, booking_id: str, current_user: User) -> dict:
        repo = SqlBookingRepository(db)
        doc = self._workflow(repo).cancel_booking(booking_id, current_user)
        log_action(db, current_user.uid, "CANCEL", "Booking", booking_id,
                   f"Booking for {doc['hallName']} on {doc['requiredDate']} cancelled")
        repo.commit()
        return serialize_booking(doc)

    def resolve_magic_link(self, db: Session, params: Mapping[str, str], current_user: User | None,
                           emit: Emit | None = None) -> ActionResolution:
        def decide(booking_id, stage, decision, actor):
            return self.decide_stage(db, booking_id, stage, decision, actor, emit, channel="magic_link")

        return resolve_action(params, current_user, decide, lookup=SqlBookingRepository(db).get)


booking_service = BookingService()
