"""
Slot conflict checking for hall bookings.

A booking occupies the half-open minute interval ``[start, start + duration)``
on its ``requiredDate``. Two bookings for the same hall and date conflict when
neither is Rejected and their intervals overlap; touching endpoints are fine.

The check is advisory: it runs against whatever candidate set the caller has
(a live snapshot or a fresh query) and is not atomic with the write that
follows. ``create_booking_advisory`` keeps that behaviour;
``create_booking_exclusive`` repeats the check under the repository's slot lock
so a store that supports locking can close the double-booking race.
"""
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable

from hall_reserve.models.booking import ApprovalStatus, Duration
from hall_reserve.utils.exceptions import BookingConflictException


DURATION_MINUTES: dict[str, int] = {
    Duration.THIRTY_MINUTES.value: 30,
    Duration.ONE_HOUR.value:       60,
    Duration.TWO_HOURS.value:      120,
    Duration.THREE_HOURS.value:    180,
    Duration.HALF_DAY.value:       240,
    Duration.FULL_DAY.value:       480,
}


@dataclass(frozen=True)
class ConflictResult:
    available: bool
    conflicting_booking: dict | None = None

    @property
    def message(self) -> str | None:
        if self.available:
            return None
        b = self.conflicting_booking
        return (
            f"This hall is already booked from {format_time(b['startTime'])} "
            f"for {_label(b['duration'])} on this date."
        )


def _label(duration) -> str:
    return duration.value if isinstance(duration, Duration) else str(duration)


def duration_minutes(duration) -> int:
    """Minutes for a duration label; unknown labels are zero-width."""
    return DURATION_MINUTES.get(_label(duration), 0)


def time_to_minutes(value) -> int:
    """Minute of day for a ``time`` or an ``HH:MM`` string (malformed -> 0)."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    parts = str(value).split(":")
    if len(parts) < 2:
        return 0
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        return 0


def format_time(value) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return str(value)


def slot_interval(start_time, duration) -> tuple[int, int]:
    start = time_to_minutes(start_time)
    return start, start + duration_minutes(duration)


def intervals_overlap(first: tuple[int, int], second: tuple[int, int]) -> bool:
    s1, e1 = first
    s2, e2 = second
    return s1 < e2 and s2 < e1


def _same_date(left, right) -> bool:
    if isinstance(left, date) and isinstance(right, date):
        return left == right
    return str(left) == str(right)


def _status_of(booking: dict) -> str:
    value = booking.get("status", ApprovalStatus.PENDING)
    return value.value if isinstance(value, ApprovalStatus) else value


def check_conflict(
    hall_id: str,
    required_date,
    start_time,
    duration,
    candidate_bookings: Iterable[dict],
    exclude_id: str | None = None,
) -> ConflictResult:
    """Return the first non-rejected candidate overlapping the requested slot."""
    requested = slot_interval(start_time, duration)
    for b in candidate_bookings:
        if exclude_id is not None and b.get("id") == exclude_id:
            continue
        if b.get("hallId") != hall_id:
            continue
        if not _same_date(b.get("requiredDate"), required_date):
            continue
        if _status_of(b) == ApprovalStatus.REJECTED.value:
            continue
        if intervals_overlap(requested, slot_interval(b.get("startTime"), b.get("duration"))):
            return ConflictResult(available=False, conflicting_booking=b)
    return ConflictResult(available=True)


def bookings_conflict(a: dict, b: dict) -> bool:
    """Symmetric pairwise form of ``check_conflict``."""
    if _status_of(a) == ApprovalStatus.REJECTED.value:
        return False
    result = check_conflict(a["hallId"], a["requiredDate"], a["startTime"], a["duration"], [b])
    return not result.available


# ─── Write paths ──────────────────────────────────────────────────────────────
def create_booking_advisory(repo, record: dict) -> dict:
    """Persist without re-checking; the caller's earlier check is all there is."""
    return repo.create(record)


def create_booking_exclusive(repo, record: dict) -> dict:
    """Re-check and persist while holding the repository's per-slot lock."""
    with repo.slot_lock(record["hallId"], record["requiredDate"]):
        candidates = repo.list_for_slot(record["hallId"], record["requiredDate"])
        result = check_conflict(
            record["hallId"], record["requiredDate"],
            record["startTime"], record["duration"], candidates,
        )
        if not result.available:
            raise BookingConflictException(result.conflicting_booking, result.message)
        return repo.create(record)
