import unittest
from datetime import date, datetime, time

from hall_reserve.config import settings
from hall_reserve.models.booking import ApprovalStatus
from hall_reserve.services.booking_workflow import BookingWorkflow, validate_booking_request
from hall_reserve.services.events import BookingDecided, BookingSubmitted
from hall_reserve.test_support import (
    ADMIN_IC, BOARDROOM, COORDINATOR, FIXED_NOW, HEAD_OPS, STAFF, Actor,
    FakeDirectory, InMemoryBookingRepository, RecordingNotifier, booking_form,
)
from hall_reserve.utils.exceptions import (
    BookingConflictException, BookingNotPendingException, BookingValidationException,
    ForbiddenException, NotFoundException, RoleMismatchException,
    SelfApprovalException, UnauthorizedException,
)

APPROVED = ApprovalStatus.APPROVED
REJECTED = ApprovalStatus.REJECTED


class WorkflowTestCase(unittest.TestCase):
    directory_users = (STAFF, ADMIN_IC, COORDINATOR, HEAD_OPS)

    def setUp(self):
        self.repo = InMemoryBookingRepository()
        self.directory = FakeDirectory(*self.directory_users)
        self.events = []
        self.workflow = self.make_workflow()

    def make_workflow(self, **options):
        options.setdefault("notify_all_stages", True)
        options.setdefault("sequential", False)
        options.setdefault("enforce_slot_on_write", False)
        return BookingWorkflow(self.repo, self.directory, self.events.append,
                               clock=lambda: FIXED_NOW, **options)

    def submit(self, **overrides) -> dict:
        return self.workflow.submit_booking(booking_form(**overrides), BOARDROOM, STAFF)


class TestValidation(unittest.TestCase):
    def errors(self, now=FIXED_NOW, **overrides):
        return validate_booking_request(booking_form(**overrides), BOARDROOM, now, 730)

    def test_valid_form(self):
        self.assertEqual(self.errors(), {})

    def test_capacity(self):
        self.assertEqual(self.errors(participants=16), {"participants": "Max capacity is 15"})
        self.assertIn("participants", self.errors(participants=0))

    def test_dates(self):
        self.assertEqual(self.errors(requiredDate=date(2025, 5, 19))["requiredDate"], "Cannot book in the past")
        self.assertIn("requiredDate", self.errors(requiredDate=date(2027, 6, 1)))

    def test_past_time_today(self):
        now = datetime(2025, 6, 1, 10, 0)
        self.assertEqual(self.errors(now=now)["startTime"], "Cannot select a past time")
        self.assertEqual(self.errors(now=now, startTime=time(10, 0)), {})

    def test_missing_fields_and_agreement(self):
        errors = self.errors(department="  ", duration=None, agreementAccepted=False)
        self.assertEqual(errors["department"], "Department is required")
        self.assertEqual(errors["duration"], "Duration is required")
        self.assertEqual(errors["agreement"], "You must accept the agreement terms")


class TestSubmission(WorkflowTestCase):
    def test_new_booking_is_pending_on_every_stage(self):
        booking = self.submit()
        stored = self.repo.get(booking["id"])
        self.assertEqual(stored["status"], "Pending")
        self.assertEqual([stored[f"stage{n}_status"] for n in (1, 2, 3)], ["Pending"] * 3)
        self.assertEqual(stored["userId"], STAFF.uid)
        self.assertEqual(stored["hallName"], "Boardroom")
        self.assertEqual(stored["submittedAt"], FIXED_NOW)

    def test_submission_event_addresses_all_stages(self):
        booking = self.submit()
        event, = self.events
        self.assertIsInstance(event, BookingSubmitted)
        self.assertEqual(event.booking_id, booking["id"])
        self.assertEqual([r.stage for r in event.recipients], [1, 2, 3])
        self.assertEqual(event.recipients[1].emails, (COORDINATOR.email,))
        self.assertFalse(any(r.fallback for r in event.recipients))

    def test_sequential_mode_addresses_first_stage_only(self):
        self.workflow = self.make_workflow(sequential=True)
        self.submit()
        self.assertEqual([r.stage for r in self.events[0].recipients], [1])

    def test_over_capacity_is_rejected_before_any_write(self):
        with self.assertRaises(BookingValidationException) as ctx:
            self.submit(participants=20)
        self.assertEqual(ctx.exception.errors, {"participants": "Max capacity is 15"})
        self.assertEqual(self.repo.writes, 0)
        self.assertEqual(self.events, [])

    def test_conflicting_slot_is_refused(self):
        first = self.submit()
        with self.assertRaises(BookingConflictException) as ctx:
            self.submit(startTime=time(9, 30))
        self.assertEqual(ctx.exception.conflicting_booking["id"], first["id"])
        self.assertEqual(len(self.repo.list_all()), 1)

    def test_adjacent_slot_is_accepted(self):
        self.submit()
        self.submit(startTime=time(10, 0))
        self.assertEqual(len(self.repo.list_all()), 2)

    def test_rejected_booking_frees_its_slot(self):
        first = self.submit()
        self.workflow.decide_stage(first["id"], 1, REJECTED, ADMIN_IC)
        self.submit()
        self.assertEqual(len(self.repo.list_all()), 2)

    def test_anonymous_submission(self):
        with self.assertRaises(UnauthorizedException):
            self.workflow.submit_booking(booking_form(), BOARDROOM, None)


class TestFallbackRecipients(WorkflowTestCase):
    directory_users = (STAFF, ADMIN_IC)

    def test_empty_roles_use_configured_fallback(self):
        self.submit()
        recipients = self.events[0].recipients
        self.assertEqual(recipients[0].emails, (ADMIN_IC.email,))
        self.assertFalse(recipients[0].fallback)
        self.assertEqual(recipients[1].emails, (settings.FALLBACK_COORDINATOR_EMAIL,))
        self.assertEqual(recipients[2].emails, (settings.FALLBACK_HEAD_OPS_EMAIL,))
        self.assertTrue(recipients[2].fallback)


class TestDecisions(WorkflowTestCase):
    def test_full_approval_chain_notifies_submitter_once(self):
        notifier = RecordingNotifier()
        booking = self.submit()
        for stage, actor in ((1, ADMIN_IC), (2, COORDINATOR), (3, HEAD_OPS)):
            self.workflow.decide_stage(booking["id"], stage, APPROVED, actor)
        for event in self.events:
            notifier.handle(event)

        stored = self.repo.get(booking["id"])
        self.assertEqual(stored["status"], "Approved")
        self.assertEqual(stored["stage3_approved_by"], HEAD_OPS.name)
        self.assertEqual(notifier.subjects().count("Booking Request Confirmed ✅"), 1)
        self.assertEqual(notifier.recipients()[-1], STAFF.email)
        # three approval requests on submission, one confirmation at the end
        self.assertEqual(len(notifier.sent), 4)

    def test_rejection_notifies_submitter_and_freezes_booking(self):
        notifier = RecordingNotifier()
        booking = self.submit()
        event = self.workflow.decide_stage(booking["id"], 2, REJECTED, COORDINATOR)
        notifier.handle(event)

        self.assertIsInstance(event, BookingDecided)
        self.assertEqual(event.overall_status, REJECTED)
        self.assertEqual(notifier.sent[0]["to"], STAFF.email)
        self.assertEqual(notifier.sent[0]["subject"], "Booking Request Rejected")
        self.assertIn("rejected at Stage 2", notifier.sent[0]["html"])

        with self.assertRaises(BookingNotPendingException):
            self.workflow.decide_stage(booking["id"], 3, APPROVED, HEAD_OPS)
        self.assertEqual(self.repo.get(booking["id"])["stage3_status"], "Pending")

    def test_intermediate_approval_sends_nothing(self):
        notifier = RecordingNotifier()
        booking = self.submit()
        notifier.handle(self.workflow.decide_stage(booking["id"], 1, APPROVED, ADMIN_IC))
        self.assertEqual(notifier.sent, [])

    def test_sequential_approval_asks_next_stage(self):
        self.workflow = self.make_workflow(sequential=True)
        notifier = RecordingNotifier()
        booking = self.submit()
        notifier.handle(self.workflow.decide_stage(booking["id"], 1, APPROVED, ADMIN_IC))
        self.assertEqual(notifier.recipients(), [COORDINATOR.email])
        self.assertEqual(notifier.subjects(), ["IHUB Booking Approval Required (Coordinator)"])

    def test_wrong_role_changes_nothing(self):
        booking = self.submit()
        with self.assertRaises(RoleMismatchException):
            self.workflow.decide_stage(booking["id"], 1, APPROVED, COORDINATOR)
        self.assertEqual(self.repo.get(booking["id"])["stage1_status"], "Pending")
        self.assertEqual(len(self.events), 1)

    def test_self_approval_is_refused(self):
        booking = self.workflow.submit_booking(booking_form(), BOARDROOM, ADMIN_IC)
        with self.assertRaises(SelfApprovalException):
            self.workflow.decide_stage(booking["id"], 1, APPROVED, ADMIN_IC)

    def test_unknown_booking(self):
        with self.assertRaises(NotFoundException):
            self.workflow.decide_stage("missing", 1, APPROVED, ADMIN_IC)

    def test_submitter_lookup_failure_uses_default_address(self):
        booking = self.submit()
        self.directory.broken = True
        with self.assertLogs("hall_reserve.services.booking_workflow", level="ERROR"):
            event = self.workflow.decide_stage(booking["id"], 1, REJECTED, ADMIN_IC)
        self.assertEqual(event.submitter_email, settings.DEFAULT_SUBMITTER_EMAIL)


class TestCancellation(WorkflowTestCase):
    def test_submitter_cancels_pending_booking(self):
        booking = self.submit()
        self.workflow.cancel_booking(booking["id"], STAFF)
        self.assertIsNone(self.repo.get(booking["id"]))

    def test_other_staff_cannot_cancel(self):
        booking = self.submit()
        stranger = Actor("u-other", "Other", STAFF.role, "other@snsgroups.com")
        with self.assertRaises(ForbiddenException):
            self.workflow.cancel_booking(booking["id"], stranger)

    def test_decided_booking_cannot_be_cancelled(self):
        booking = self.submit()
        self.workflow.decide_stage(booking["id"], 1, REJECTED, ADMIN_IC)
        with self.assertRaises(BookingNotPendingException):
            self.workflow.cancel_booking(booking["id"], STAFF)


class TestSubscriptions(WorkflowTestCase):
    def test_subscribers_see_every_write_until_unsubscribed(self):
        snapshots = []
        unsubscribe = self.repo.subscribe(snapshots.append)
        booking = self.submit()
        self.workflow.decide_stage(booking["id"], 1, APPROVED, ADMIN_IC)
        unsubscribe()
        self.submit(startTime=time(11, 0))

        self.assertEqual(len(snapshots), 2)
        self.assertEqual(snapshots[-1][0]["stage1_status"], "Approved")


if __name__ == "__main__":
    unittest.main()
