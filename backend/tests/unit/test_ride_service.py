"""Unit tests for ride operations: recurring rides are always served at their next occurrence."""
import unittest
from datetime import datetime, timezone

from grouprides.core.errors import AlreadyAttending, NotRideHost
from grouprides.services.message_service import post_ride_message
from grouprides.services.recurrence import as_utc
from grouprides.services.ride_service import cancel_ride, create_ride, join_ride, ride_to_dict, set_postponed
from tests.fixtures.db import TempDatabase
from tests.fixtures.factories import create_test_ride, create_test_user

PAST_WEEKLY_BASE = datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)


class TestRecurringRideDates(unittest.TestCase):

    def setUp(self):
        self.database = TempDatabase()
        self.db = self.database.session()
        self.host = create_test_user(self.db, name="Hana Host")
        self.rider = create_test_user(self.db, name="Riley")
        self.ride = create_test_ride(
            self.db, self.host, name="Saturday Shred", date=PAST_WEEKLY_BASE, recurrence="weekly", attendees=[self.rider]
        )

    def tearDown(self):
        self.db.close()
        self.database.close()

    def assertUpcoming(self, value):
        """Future, and still on the ride's weekday and time."""
        when = as_utc(value)
        self.assertGreater(when, datetime.now(timezone.utc))
        self.assertEqual((when.weekday(), when.hour, when.minute), (PAST_WEEKLY_BASE.weekday(), 18, 0))

    def test_create_with_past_base_serves_next_occurrence(self):
        ride = create_ride(self.db, self.host.id, date=PAST_WEEKLY_BASE, name="Weekly", recurrence="weekly")
        self.assertUpcoming(ride.date)
        self.assertUpcoming(datetime.fromisoformat(ride_to_dict(ride)["date"]))

    def test_join_response(self):
        newcomer = create_test_user(self.db, name="Nico")
        ride, event = join_ride(self.db, self.ride.id, newcomer.id)
        self.assertUpcoming(ride.date)
        self.assertEqual(event.attendee_count, 3)

    def test_postpone_snapshot(self):
        _, snapshot = set_postponed(self.db, self.ride.id, self.host.id, True)
        self.assertIsNotNone(snapshot)
        self.assertUpcoming(snapshot.date)

    def test_cancel_snapshot(self):
        snapshot = cancel_ride(self.db, self.ride.id, self.host.id)
        self.assertUpcoming(snapshot.date)

    def test_ride_message_event(self):
        _, event = post_ride_message(self.db, self.host.id, self.ride.id, "Lights required")
        self.assertUpcoming(event.ride_date)

    def test_non_recurring_past_ride_kept_as_is(self):
        ride = create_test_ride(self.db, self.host, date=PAST_WEEKLY_BASE)
        _, event = post_ride_message(self.db, self.host.id, ride.id, "Thanks all")
        self.assertEqual(as_utc(event.ride_date), PAST_WEEKLY_BASE)


class TestRideRules(unittest.TestCase):

    def setUp(self):
        self.database = TempDatabase()
        self.db = self.database.session()
        self.host = create_test_user(self.db, name="Hana Host")
        self.rider = create_test_user(self.db, name="Riley")
        self.ride = create_test_ride(self.db, self.host, attendees=[self.rider])

    def tearDown(self):
        self.db.close()
        self.database.close()

    def test_only_host_postpones_or_cancels(self):
        with self.assertRaises(NotRideHost):
            set_postponed(self.db, self.ride.id, self.rider.id, True)
        with self.assertRaises(NotRideHost):
            cancel_ride(self.db, self.ride.id, self.rider.id)

    def test_join_twice(self):
        with self.assertRaises(AlreadyAttending):
            join_ride(self.db, self.ride.id, self.rider.id)


if __name__ == "__main__":
    unittest.main()
