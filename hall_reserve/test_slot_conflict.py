import unittest
from datetime import date, time

from hall_reserve.services.slot_conflict import (
    check_conflict, bookings_conflict, duration_minutes, time_to_minutes,
    create_booking_advisory, create_booking_exclusive,
)
from hall_reserve.test_support import InMemoryBookingRepository, booking_doc
from hall_reserve.utils.exceptions import BookingConflictException


class TestDurations(unittest.TestCase):
    def test_known_labels(self):
        self.assertEqual(
            [duration_minutes(d) for d in ("30 mins", "1 hour", "2 hours", "3 hours", "Half Day", "Full Day")],
            [30, 60, 120, 180, 240, 480],
        )

    def test_unknown_label_is_zero_width(self):
        self.assertEqual(duration_minutes("fortnight"), 0)

    def test_time_parsing(self):
        self.assertEqual(time_to_minutes(time(9, 30)), 570)
        self.assertEqual(time_to_minutes("14:05"), 845)
        self.assertEqual(time_to_minutes("garbage"), 0)


class TestCheckConflict(unittest.TestCase):
    def setUp(self):
        self.existing = booking_doc(id="a", startTime=time(9, 0), duration="1 hour")

    def check(self, start, duration="1 hour", candidates=None, **kw):
        return check_conflict("1", date(2025, 6, 1), start, duration,
                              [self.existing] if candidates is None else candidates, **kw)

    def test_touching_boundary_is_free(self):
        self.assertTrue(self.check(time(10, 0)).available)
        self.assertTrue(self.check(time(8, 0)).available)

    def test_overlap_conflicts_and_reports_booking(self):
        result = self.check(time(9, 30))
        self.assertFalse(result.available)
        self.assertEqual(result.conflicting_booking["id"], "a")
        self.assertEqual(result.message,
                         "This hall is already booked from 09:00 for 1 hour on this date.")

    def test_contained_and_enclosing_intervals_conflict(self):
        self.assertFalse(self.check(time(9, 15), "30 mins").available)
        self.assertFalse(self.check(time(8, 0), "Half Day").available)

    def test_other_hall_or_date_never_conflicts(self):
        self.assertTrue(self.check(time(9, 0), candidates=[booking_doc(hallId="2")]).available)
        self.assertTrue(self.check(time(9, 0), candidates=[booking_doc(requiredDate=date(2025, 6, 2))]).available)

    def test_rejected_booking_is_ignored(self):
        rejected = booking_doc(id="r", status="Rejected", stage1_status="Rejected")
        self.assertTrue(self.check(time(9, 0), candidates=[rejected]).available)

    def test_approved_booking_still_blocks(self):
        approved = booking_doc(id="ok", status="Approved")
        self.assertFalse(self.check(time(9, 0), candidates=[approved]).available)

    def test_first_conflict_in_iteration_order(self):
        first = booking_doc(id="first", startTime=time(9, 0))
        second = booking_doc(id="second", startTime=time(9, 30))
        result = self.check(time(9, 45), candidates=[first, second])
        self.assertEqual(result.conflicting_booking["id"], "first")

    def test_exclude_id_skips_self(self):
        self.assertTrue(self.check(time(9, 0), exclude_id="a").available)

    def test_unknown_duration_never_conflicts(self):
        self.assertTrue(self.check(time(9, 30), "fortnight").available)

    def test_string_times_and_dates_are_accepted(self):
        legacy = booking_doc(requiredDate="2025-06-01", startTime="09:00")
        result = check_conflict("1", "2025-06-01", "09:30", "1 hour", [legacy])
        self.assertFalse(result.available)


class TestConflictSymmetry(unittest.TestCase):
    def test_verdict_is_symmetric(self):
        cases = [
            (time(9, 0), "1 hour", time(9, 30), "30 mins"),
            (time(9, 0), "1 hour", time(10, 0), "1 hour"),
            (time(8, 0), "Full Day", time(12, 0), "2 hours"),
            (time(13, 0), "30 mins", time(9, 0), "3 hours"),
        ]
        for s1, d1, s2, d2 in cases:
            a = booking_doc(id="a", startTime=s1, duration=d1)
            b = booking_doc(id="b", startTime=s2, duration=d2)
            with self.subTest(a=(s1, d1), b=(s2, d2)):
                self.assertEqual(bookings_conflict(a, b), bookings_conflict(b, a))


class TestWritePaths(unittest.TestCase):
    def setUp(self):
        self.repo = InMemoryBookingRepository()
        self.repo.create(booking_doc())

    def test_advisory_write_does_not_recheck(self):
        created = create_booking_advisory(self.repo, booking_doc(startTime=time(9, 30)))
        self.assertEqual(len(self.repo.list_all()), 2)
        self.assertNotEqual(created["id"], "b-1")

    def test_exclusive_write_refuses_overlap(self):
        with self.assertRaises(BookingConflictException):
            create_booking_exclusive(self.repo, booking_doc(startTime=time(9, 30)))
        self.assertEqual(len(self.repo.list_all()), 1)

    def test_exclusive_write_accepts_free_slot(self):
        create_booking_exclusive(self.repo, booking_doc(startTime=time(10, 0)))
        self.assertEqual(len(self.repo.list_all()), 2)


if __name__ == "__main__":
    unittest.main()
