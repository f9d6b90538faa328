"""SQL booking store and the live booking stream, against an in-memory SQLite database."""
import asyncio
import json
import unittest
from datetime import date, datetime, time

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hall_reserve.api.v1.bookings import stream_bookings
from hall_reserve.database import Base
from hall_reserve.repositories.booking_repository import (
    SqlBookingRepository, SubscriptionHub, booking_hub,
)
from hall_reserve.services import approval
from hall_reserve.services.hall_service import hall_service
from hall_reserve.test_support import ADMIN_IC, STAFF

OTHER_STAFF_UID = "u-other"


def booking_record(**overrides) -> dict:
    record = {
        "hallId": "1", "hallName": "Boardroom", "department": "CSE", "meetingType": "Workshop",
        "requiredDate": date(2025, 6, 1), "startTime": time(9, 0), "duration": "1 hour",
        "participants": 10, "coordinatorName": "Dr. Rao", "bookedBy": STAFF.name,
        "userId": STAFF.uid, "submittedAt": datetime(2025, 5, 20, 8, 0),
        **approval.initial_workflow_fields(),
    }
    record.update(overrides)
    return record


def memory_sessionmaker():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with Session() as db:
        hall_service.seed_defaults(db)
    return Session


class TestSqlBookingRepository(unittest.TestCase):

    def setUp(self):
        self.Session = memory_sessionmaker()
        self.db = self.Session()
        self.addCleanup(self.db.close)
        self.hub = SubscriptionHub()
        self.repo = SqlBookingRepository(self.db, self.hub)
        self.snapshots = []
        self.unsubscribe = self.repo.subscribe(self.snapshots.append)

    def test_subscribers_get_full_set_after_commit(self):
        first = self.repo.create(booking_record())
        self.assertEqual(self.snapshots, [])
        self.repo.commit()

        self.repo.create(booking_record(startTime=time(11, 0), submittedAt=datetime(2025, 5, 20, 9, 0)))
        self.repo.commit()

        self.assertEqual(len(self.snapshots), 2)
        self.assertEqual([d["id"] for d in self.snapshots[0]], [first["id"]])
        self.assertEqual(len(self.snapshots[1]), 2)
        self.assertEqual(self.snapshots[1][0]["startTime"], time(11, 0))

    def test_update_and_delete_are_published(self):
        booking = self.repo.create(booking_record())
        self.repo.commit()
        self.repo.update_fields(booking["id"], {"stage1_status": "Approved", "stage1_approved_by": ADMIN_IC.name})
        self.repo.commit()
        self.repo.delete(booking["id"])
        self.repo.commit()

        self.assertEqual(len(self.snapshots), 3)
        self.assertEqual(self.snapshots[1][0]["stage1_status"], "Approved")
        self.assertEqual(self.snapshots[2], [])

    def test_commit_without_writes_publishes_nothing(self):
        self.repo.commit()
        self.assertEqual(self.snapshots, [])

    def test_failing_subscriber_is_logged_and_skipped(self):
        def broken(snapshot):
            raise RuntimeError("listener gone")

        later = []
        self.unsubscribe()
        self.repo.subscribe(broken)
        self.repo.subscribe(later.append)

        self.repo.create(booking_record())
        with self.assertLogs("hall_reserve.repositories.booking_repository", level="ERROR"):
            self.repo.commit()
        self.assertEqual(len(later), 1)
        self.assertEqual(len(later[0]), 1)

    def test_unsubscribed_callback_is_not_called(self):
        self.unsubscribe()
        self.repo.create(booking_record())
        self.repo.commit()
        self.assertEqual(self.snapshots, [])
        self.assertFalse(self.hub.has_subscribers)

    def test_rollback_discards_uncommitted_write(self):
        booking = self.repo.create(booking_record())
        self.db.rollback()
        self.assertIsNone(self.repo.get(booking["id"]))
        with self.Session() as other:
            self.assertEqual(SqlBookingRepository(other, self.hub).list_all(), [])

    def test_unknown_field_is_refused(self):
        booking = self.repo.create(booking_record())
        with self.assertRaises(ValueError):
            self.repo.update_fields(booking["id"], {"colour": "red"})

    def test_list_for_slot_is_oldest_first(self):
        late = self.repo.create(booking_record(startTime=time(14, 0), submittedAt=datetime(2025, 5, 21)))
        early = self.repo.create(booking_record(startTime=time(9, 0), submittedAt=datetime(2025, 5, 19)))
        self.repo.create(booking_record(requiredDate=date(2025, 6, 2)))
        self.repo.commit()
        self.assertEqual([d["id"] for d in self.repo.list_for_slot("1", date(2025, 6, 1))],
                         [early["id"], late["id"]])


class ConnectedRequest:
    async def is_disconnected(self) -> bool:
        return False


def parse_event(chunk: str) -> list[dict]:
    assert chunk.startswith("data: ") and chunk.endswith("\n\n"), chunk
    return json.loads(chunk[len("data: "):])


class TestBookingStream(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.Session = memory_sessionmaker()
        with self.Session() as db:
            repo = SqlBookingRepository(db, SubscriptionHub())
            self.own = repo.create(booking_record())
            repo.create(booking_record(userId=OTHER_STAFF_UID, startTime=time(11, 0)))
            repo.commit()

    def write(self, **overrides) -> dict:
        with self.Session() as db:
            repo = SqlBookingRepository(db)
            booking = repo.create(booking_record(**overrides))
            repo.commit()
        return booking

    async def open_stream(self, user):
        db = self.Session()
        self.addCleanup(db.close)
        response = await stream_bookings(ConnectedRequest(), db, user)
        self.assertEqual(response.media_type, "text/event-stream")
        return response.body_iterator

    async def test_staff_see_only_their_own_bookings(self):
        events = await self.open_stream(STAFF)
        try:
            first = parse_event(await anext(events))
            self.assertEqual([d["id"] for d in first], [self.own["id"]])
            self.assertEqual(first[0]["startTime"], "09:00")
            self.assertIsNone(first[0]["actionableStage"])

            self.write(userId=OTHER_STAFF_UID, startTime=time(15, 0))
            added = self.write(startTime=time(13, 0), submittedAt=datetime(2025, 5, 22))
            after_other = parse_event(await asyncio.wait_for(anext(events), timeout=5))
            after_own = parse_event(await asyncio.wait_for(anext(events), timeout=5))
        finally:
            await events.aclose()

        self.assertEqual([d["id"] for d in after_other], [self.own["id"]])
        self.assertEqual([d["id"] for d in after_own], [added["id"], self.own["id"]])

    async def test_approver_sees_everything_with_actionable_stage(self):
        events = await self.open_stream(ADMIN_IC)
        try:
            first = parse_event(await anext(events))
        finally:
            await events.aclose()
        self.assertEqual(len(first), 2)
        self.assertEqual({d["actionableStage"] for d in first}, {1})

    async def test_closing_the_stream_unsubscribes(self):
        events = await self.open_stream(STAFF)
        self.assertTrue(booking_hub.has_subscribers)
        await anext(events)
        await events.aclose()
        self.assertFalse(booking_hub.has_subscribers)


if __name__ == "__main__":
    unittest.main()
