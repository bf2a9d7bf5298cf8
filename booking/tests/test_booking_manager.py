# booking/tests/test_booking_manager.py

import threading
from datetime import date, datetime
from decimal import Decimal

from django.test import SimpleTestCase
from django.utils import timezone

from booking.services.booking_manager import BookingManager
from booking.services.errors import (
    AlreadyCancelled,
    CannotCancelCompleted,
    Forbidden,
    InvalidTimeFormat,
    InvalidTransition,
    NotFound,
    OutsideOperatingHours,
    SlotAlreadyBooked,
)
from booking.services.status_machine import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    apply_transition,
    can_transition,
)

from .fakes import (
    InMemoryBookingRepository,
    UnreachableRepository,
    make_booking,
    make_service,
    make_window,
)

MONDAY = date(2030, 1, 7)
NOW = timezone.make_aware(datetime(2030, 1, 1, 8, 0))
OWNER = 7
STRANGER = 8


def fixed_clock():
    return NOW


class StatusMachineTests(SimpleTestCase):
    def test_allowed_transitions(self):
        self.assertTrue(can_transition("PENDING", "CONFIRMED"))
        self.assertTrue(can_transition("PENDING", "CANCELLED"))
        self.assertTrue(can_transition("CONFIRMED", "CANCELLED"))
        self.assertTrue(can_transition("CONFIRMED", "COMPLETED"))

    def test_forbidden_transitions(self):
        self.assertFalse(can_transition("PENDING", "COMPLETED"))
        self.assertFalse(can_transition("CONFIRMED", "PENDING"))
        self.assertFalse(can_transition("PENDING", "PENDING"))

    def test_terminal_statuses_have_no_exit(self):
        self.assertEqual(TERMINAL_STATUSES, {"CANCELLED", "COMPLETED"})
        for status in TERMINAL_STATUSES:
            for target in ALLOWED_TRANSITIONS:
                self.assertFalse(can_transition(status, target))

    def test_apply_transition(self):
        self.assertEqual(apply_transition("PENDING", "CONFIRMED"), "CONFIRMED")
        with self.assertRaises(InvalidTransition):
            apply_transition("COMPLETED", "PENDING")
        with self.assertRaises(InvalidTransition):
            apply_transition("PENDING", "ARCHIVED")


class BookingManagerTestCase(SimpleTestCase):
    def setUp(self):
        self.service = make_service(id=1, company_id=1, duration_minutes=60, price="50.00")
        self.repo = InMemoryBookingRepository(
            services=[self.service, make_service(id=2, active=False)],
            windows=[make_window(9 * 60, 12 * 60, day_of_week=1)],
        )
        self.manager = BookingManager(self.repo, clock=fixed_clock)

    def book(self, time_slot="10:00", user_id=OWNER, service_id=1, day=MONDAY, notes=""):
        return self.manager.create(user_id, service_id, day, time_slot, notes=notes)


class CreateBookingTests(BookingManagerTestCase):
    def test_creates_pending_booking_with_price_snapshot(self):
        booking = self.book(notes="first visit")
        self.assertEqual(booking.status, "PENDING")
        self.assertEqual(booking.total_price, Decimal("50.00"))
        self.assertEqual(booking.user_id, OWNER)
        self.assertEqual(booking.service_id, 1)
        self.assertEqual(booking.time_slot, "10:00")
        self.assertEqual(booking.notes, "first visit")

    def test_price_change_does_not_touch_existing_booking(self):
        booking = self.book()
        self.service.price = Decimal("80.00")
        self.assertEqual(self.repo.find_booking(booking.id).total_price, Decimal("50.00"))

    def test_invalid_time_is_rejected_before_any_lookup(self):
        manager = BookingManager(UnreachableRepository(), clock=fixed_clock)
        for value in ["9:00", "24:00", "10:61", "noon"]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidTimeFormat):
                    manager.create(OWNER, 1, MONDAY, value)

    def test_unknown_service(self):
        with self.assertRaises(NotFound):
            self.book(service_id=99)

    def test_guard_rejections_propagate(self):
        with self.assertRaises(OutsideOperatingHours):
            self.book(time_slot="08:00")
        self.assertEqual(self.repo.bookings, {})

    def test_second_booking_for_same_slot(self):
        self.book()
        with self.assertRaises(SlotAlreadyBooked):
            self.book(user_id=STRANGER)

    def test_slot_reusable_after_cancellation(self):
        first = self.book()
        self.manager.cancel(first.id, OWNER)
        second = self.book(user_id=STRANGER)
        self.assertEqual(second.status, "PENDING")

    def test_uniqueness_rule_maps_to_slot_already_booked(self):
        # Pre-check sees nothing, the store still refuses the duplicate.
        self.book()
        self.repo.find_bookings = lambda *args, **kwargs: []
        with self.assertRaises(SlotAlreadyBooked):
            self.book(user_id=STRANGER)
        active = [b for b in self.repo.bookings.values() if b.is_active]
        self.assertEqual(len(active), 1)


class BarrierRepository(InMemoryBookingRepository):
    """Holds every slot pre-check until all racing requests have made one."""

    def __init__(self, parties, **kwargs):
        super().__init__(**kwargs)
        self.barrier = threading.Barrier(parties, timeout=5)

    def find_bookings(self, service_id, date, time_slot=None, statuses=None):
        found = super().find_bookings(service_id, date, time_slot=time_slot, statuses=statuses)
        if time_slot is not None:
            self.barrier.wait()
        return found


class ConcurrentCreateTests(SimpleTestCase):
    def test_two_simultaneous_requests_for_one_slot(self):
        repo = BarrierRepository(
            2,
            services=[make_service()],
            windows=[make_window(9 * 60, 12 * 60, day_of_week=1)],
        )
        manager = BookingManager(repo, clock=fixed_clock)
        outcomes = []
        lock = threading.Lock()

        def attempt(user_id):
            try:
                result = manager.create(user_id, 1, MONDAY, "10:00")
            except SlotAlreadyBooked as exc:
                result = exc
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(uid,)) for uid in (OWNER, STRANGER)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        self.assertEqual(len(outcomes), 2)
        rejected = [o for o in outcomes if isinstance(o, SlotAlreadyBooked)]
        created = [o for o in outcomes if not isinstance(o, SlotAlreadyBooked)]
        self.assertEqual(len(rejected), 1)
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0].status, "PENDING")
        self.assertEqual(len(repo.bookings), 1)


class CancelBookingTests(BookingManagerTestCase):
    def setUp(self):
        super().setUp()
        self.booking = self.book()

    def test_owner_cancels_with_reason(self):
        cancelled = self.manager.cancel(self.booking.id, OWNER, reason="sick")
        self.assertEqual(cancelled.status, "CANCELLED")
        self.assertEqual(cancelled.cancellation_reason, "sick")
        self.assertEqual(cancelled.updated_at, NOW)

    def test_cancel_without_reason(self):
        cancelled = self.manager.cancel(self.booking.id, OWNER)
        self.assertEqual(cancelled.cancellation_reason, "")

    def test_confirmed_booking_can_be_cancelled(self):
        self.manager.update_status(self.booking.id, 1, "CONFIRMED")
        self.assertEqual(self.manager.cancel(self.booking.id, OWNER).status, "CANCELLED")

    def test_cancelling_twice(self):
        self.manager.cancel(self.booking.id, OWNER, reason="first")
        with self.assertRaises(AlreadyCancelled):
            self.manager.cancel(self.booking.id, OWNER, reason="second")
        self.assertEqual(self.repo.find_booking(self.booking.id).cancellation_reason, "first")

    def test_completed_booking_cannot_be_cancelled(self):
        self.manager.update_status(self.booking.id, 1, "CONFIRMED")
        self.manager.update_status(self.booking.id, 1, "COMPLETED")
        with self.assertRaises(CannotCancelCompleted) as ctx:
            self.manager.cancel(self.booking.id, OWNER)
        self.assertEqual(ctx.exception.code, "CANNOT_CANCEL_COMPLETED")
        self.assertEqual(self.repo.find_booking(self.booking.id).status, "COMPLETED")

    def test_only_the_booking_user_may_cancel(self):
        with self.assertRaises(Forbidden):
            self.manager.cancel(self.booking.id, STRANGER)
        self.assertEqual(self.repo.find_booking(self.booking.id).status, "PENDING")

    def test_unknown_booking(self):
        with self.assertRaises(NotFound):
            self.manager.cancel(999, OWNER)

    def test_lost_race_reports_current_state(self):
        # First read sees PENDING; by the time we write, it is already CANCELLED.
        stale = self.repo.find_booking(self.booking.id)
        self.manager.cancel(self.booking.id, OWNER)
        reads = iter([stale])
        real_find = self.repo.find_booking
        self.repo.find_booking = lambda booking_id: next(reads, None) or real_find(booking_id)
        with self.assertRaises(AlreadyCancelled):
            self.manager.cancel(self.booking.id, OWNER)

    def test_confirmed_concurrently_still_cancels(self):
        # First read sees PENDING; the company confirms before our write lands.
        stale = self.repo.find_booking(self.booking.id)
        self.manager.update_status(self.booking.id, 1, "CONFIRMED")
        reads = iter([stale])
        real_find = self.repo.find_booking
        self.repo.find_booking = lambda booking_id: next(reads, None) or real_find(booking_id)

        cancelled = self.manager.cancel(self.booking.id, OWNER, reason="changed plans")
        self.assertEqual(cancelled.status, "CANCELLED")
        self.assertEqual(cancelled.cancellation_reason, "changed plans")

    def test_gives_up_after_losing_twice(self):
        self.repo.update_booking = lambda *args, **kwargs: None
        with self.assertRaises(InvalidTransition):
            self.manager.cancel(self.booking.id, OWNER)
        self.assertEqual(self.repo.find_booking(self.booking.id).status, "PENDING")


class UpdateStatusTests(BookingManagerTestCase):
    def setUp(self):
        super().setUp()
        self.booking = self.book()

    def test_confirm_then_complete(self):
        confirmed = self.manager.update_status(self.booking.id, 1, "CONFIRMED")
        self.assertEqual(confirmed.status, "CONFIRMED")
        completed = self.manager.update_status(self.booking.id, 1, "COMPLETED")
        self.assertEqual(completed.status, "COMPLETED")

    def test_company_may_cancel(self):
        self.assertEqual(self.manager.update_status(self.booking.id, 1, "CANCELLED").status, "CANCELLED")

    def test_other_company_is_forbidden(self):
        with self.assertRaises(Forbidden):
            self.manager.update_status(self.booking.id, 2, "CONFIRMED")

    def test_illegal_transitions(self):
        with self.assertRaises(InvalidTransition):
            self.manager.update_status(self.booking.id, 1, "COMPLETED")
        self.manager.update_status(self.booking.id, 1, "CONFIRMED")
        with self.assertRaises(InvalidTransition):
            self.manager.update_status(self.booking.id, 1, "PENDING")

    def test_terminal_states_are_final(self):
        self.manager.update_status(self.booking.id, 1, "CANCELLED")
        for target in ["PENDING", "CONFIRMED", "COMPLETED"]:
            with self.subTest(target=target):
                with self.assertRaises(InvalidTransition):
                    self.manager.update_status(self.booking.id, 1, target)

    def test_unknown_booking(self):
        with self.assertRaises(NotFound):
            self.manager.update_status(999, 1, "CONFIRMED")

    def test_get_booking_checks_owner(self):
        self.assertEqual(self.manager.get_booking(self.booking.id, OWNER).id, self.booking.id)
        with self.assertRaises(Forbidden):
            self.manager.get_booking(self.booking.id, STRANGER)
