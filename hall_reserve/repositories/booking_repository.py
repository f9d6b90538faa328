import abc
import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from hall_reserve.models.booking import Booking, ApprovalStatus
from hall_reserve.models.hall import Hall
from hall_reserve.utils.exceptions import NotFoundException

logger = logging.getLogger(__name__)

Snapshot = list[dict]
Subscriber = Callable[[Snapshot], None]

BOOKING_FIELDS = (
    "id", "hallId", "hallName", "department", "meetingType", "requiredDate",
    "startTime", "duration", "audioSystem", "projector", "airConditioning",
    "participants", "coordinatorName", "bookedBy", "otherRequirements",
    "userId", "submittedAt", "status",
    "stage1_status", "stage1_approved_by",
    "stage2_status", "stage2_approved_by",
    "stage3_status", "stage3_approved_by",
)


# ─── Subscriptions ────────────────────────────────────────────────────────────
class SubscriptionHub:
    """Process-wide fan-out of the full booking set after every committed write."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscribers)

    def publish(self, snapshot: Snapshot) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Booking subscriber failed; continuing with the rest")


booking_hub = SubscriptionHub()


# ─── Interface ────────────────────────────────────────────────────────────────
class BookingRepository(abc.ABC):
    """
    Booking record store used by the workflow core.

    Documents are plain dicts keyed by the booking wire field names.
    Writes are last-write-wins per field; there is no concurrency token.
    """

    @abc.abstractmethod
    def create(self, record: dict) -> dict: ...

    @abc.abstractmethod
    def get(self, booking_id: str) -> dict | None: ...

    @abc.abstractmethod
    def update_fields(self, booking_id: str, fields: dict) -> dict: ...

    @abc.abstractmethod
    def delete(self, booking_id: str) -> None: ...

    @abc.abstractmethod
    def list_all(self) -> Snapshot: ...

    @abc.abstractmethod
    def subscribe(self, callback: Subscriber) -> Callable[[], None]: ...

    def list_for_slot(self, hall_id: str, required_date: date) -> Snapshot:
        return [
            b for b in self.list_all()
            if b["hallId"] == hall_id and b["requiredDate"] == required_date
        ]

    @contextmanager
    def slot_lock(self, hall_id: str, required_date: date) -> Iterator[None]:
        yield


# ─── SQLAlchemy implementation ────────────────────────────────────────────────
def _to_document(b: Booking) -> dict:
    doc = {name: getattr(b, name) for name in BOOKING_FIELDS}
    for key in ("status", "stage1_status", "stage2_status", "stage3_status"):
        value = doc[key]
        doc[key] = value.value if isinstance(value, ApprovalStatus) else value
    return doc


class SqlBookingRepository(BookingRepository):
    """
    Writes are flushed into the caller's transaction; `commit()` ends the unit
    of work and then publishes the booking set to subscribers.
    """

    def __init__(self, db: Session, hub: SubscriptionHub = booking_hub):
        self.db = db
        self.hub = hub
        self._changed = False

    def _load(self, booking_id: str) -> Booking:
        b = self.db.get(Booking, booking_id)
        if not b:
            raise NotFoundException("Booking")
        return b

    def _written(self) -> None:
        self.db.flush()
        self._changed = True

    def commit(self) -> None:
        self.db.commit()
        changed, self._changed = self._changed, False
        if changed and self.hub.has_subscribers:
            self.hub.publish(self.list_all())

    def create(self, record: dict) -> dict:
        b = Booking(**{k: v for k, v in record.items() if k in BOOKING_FIELDS})
        self.db.add(b)
        self._written()
        return _to_document(b)

    def get(self, booking_id: str) -> dict | None:
        b = self.db.get(Booking, booking_id)
        return _to_document(b) if b else None

    def update_fields(self, booking_id: str, fields: dict) -> dict:
        b = self._load(booking_id)
        for key, value in fields.items():
            if key not in BOOKING_FIELDS or key == "id":
                raise ValueError(f"Unknown booking field: {key}")
            setattr(b, key, value)
        self._written()
        return _to_document(b)

    def delete(self, booking_id: str) -> None:
        b = self._load(booking_id)
        self.db.delete(b)
        self._written()

    def list_all(self) -> Snapshot:
        rows = self.db.scalars(select(Booking).order_by(Booking.submittedAt.desc())).all()
        return [_to_document(b) for b in rows]

    def list_for_slot(self, hall_id: str, required_date: date) -> Snapshot:
        rows = self.db.scalars(
            select(Booking)
            .where(Booking.hallId == hall_id, Booking.requiredDate == required_date)
            .order_by(Booking.submittedAt.asc())
        ).all()
        return [_to_document(b) for b in rows]

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.hub.subscribe(callback)

    @contextmanager
    def slot_lock(self, hall_id: str, required_date: date) -> Iterator[None]:
        # Row lock on the hall serialises creators for that hall (no-op on SQLite)
        self.db.execute(select(Hall.id).where(Hall.id == hall_id).with_for_update())
        yield
