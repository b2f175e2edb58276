"""Unit tests for recipient resolution per notification kind."""
import unittest
from datetime import datetime, timezone

from grouprides.services.notifications.events import AttendeeSnapshot, PersonSnapshot, RideSnapshot
from grouprides.services.notifications.recipients import (
    Recipient,
    cancellation_recipients,
    dedupe_by_email,
    direct_message_recipients,
    host_join_recipient,
    local_ride_recipients,
    ride_message_recipients,
)
from tests.fixtures.db import TempDatabase
from tests.fixtures.factories import create_test_ride, create_test_user


def _snapshot(attendees, host_id=1):
    return RideSnapshot(
        id=99,
        name="Dawn Patrol",
        date=datetime(2030, 5, 4, 6, 0, tzinfo=timezone.utc),
        host=PersonSnapshot(id=host_id, name="Host", email="host@example.com"),
        attendees=attendees,
    )


class TestDedupeByEmail(unittest.TestCase):

    def test_case_insensitive_first_wins(self):
        recipients = [
            Recipient(1, "Rider@Example.com"),
            Recipient(2, "rider@example.com "),
            Recipient(3, "other@example.com"),
            Recipient(4, ""),
        ]
        self.assertEqual([r.user_id for r in dedupe_by_email(recipients)], [1, 3])


class TestCancellationRecipients(unittest.TestCase):

    def test_excludes_host_and_opted_out(self):
        ride = _snapshot([
            AttendeeSnapshot(id=1, name="Host", email="host@example.com"),
            AttendeeSnapshot(id=2, name="A", email="a@example.com"),
            AttendeeSnapshot(id=3, name="B", email="b@example.com", notify_ride_cancellations=False),
            AttendeeSnapshot(id=4, name="C", email="c@example.com", email_notifications_enabled=False),
            AttendeeSnapshot(id=5, name="D", email=None),
            AttendeeSnapshot(id=6, name="E", email="e@example.com", notify_ride_cancellations=None),
        ])
        self.assertEqual([r.user_id for r in cancellation_recipients(ride)], [2, 6])

    def test_acting_user_excluded(self):
        ride = _snapshot([
            AttendeeSnapshot(id=1, name="Host", email="host@example.com"),
            AttendeeSnapshot(id=2, name="A", email="a@example.com"),
        ])
        self.assertEqual([r.user_id for r in cancellation_recipients(ride, acting_user_id=2)], [1])

    def test_shared_email_sent_once(self):
        ride = _snapshot([
            AttendeeSnapshot(id=2, name="A", email="family@example.com"),
            AttendeeSnapshot(id=3, name="B", email="FAMILY@example.com"),
        ])
        self.assertEqual(len(cancellation_recipients(ride)), 1)


class TestDatabaseRecipients(unittest.TestCase):

    def setUp(self):
        self.database = TempDatabase()
        self.db = self.database.session()
        self.host = create_test_user(self.db, name="Host", lat=33.8, lng=-84.6)

    def tearDown(self):
        self.db.close()
        self.database.close()

    def test_local_ride_recipients_respect_flags(self):
        near = create_test_user(self.db, name="Near", lat=33.81, lng=-84.61, notification_radius_miles=None)
        create_test_user(self.db, name="Off", notify_local_rides=False)
        create_test_user(self.db, name="Global off", email_notifications_enabled=False)
        legacy = create_test_user(self.db, name="Legacy", notify_local_rides=None)
        ride = create_test_ride(self.db, self.host)

        recipients = local_ride_recipients(self.db, ride)

        self.assertEqual([r.user_id for r in recipients], [near.id, legacy.id])
        self.assertEqual(recipients[0].radius_miles, 25)
        self.assertEqual(recipients[0].point, (33.81, -84.61))
        self.assertIsNone(recipients[1].point)

    def test_ride_message_recipients_exclude_sender(self):
        a = create_test_user(self.db, name="A")
        b = create_test_user(self.db, name="B", notify_ride_messages=False)
        create_test_user(self.db, name="Not attending")
        ride = create_test_ride(self.db, self.host, attendees=[a, b])

        recipients = ride_message_recipients(self.db, ride.id, sender_id=a.id)

        self.assertEqual([r.user_id for r in recipients], [self.host.id])

    def test_direct_message_recipients(self):
        a = create_test_user(self.db, name="A")
        b = create_test_user(self.db, name="B", notify_direct_messages=False)
        recipients = direct_message_recipients(self.db, [a.id, b.id, a.id, self.host.id], sender_id=self.host.id)
        self.assertEqual([r.user_id for r in recipients], [a.id])

    def test_host_join_recipient(self):
        a = create_test_user(self.db, name="A")
        ride = create_test_ride(self.db, self.host, attendees=[a])
        self.assertEqual(host_join_recipient(self.db, ride.id, a.id).user_id, self.host.id)
        self.assertIsNone(host_join_recipient(self.db, ride.id, self.host.id))
        self.assertIsNone(host_join_recipient(self.db, 12345, a.id))

    def test_host_join_respects_host_preferences(self):
        quiet_host = create_test_user(self.db, name="Quiet", notify_ride_messages=False)
        a = create_test_user(self.db, name="A")
        ride = create_test_ride(self.db, quiet_host, attendees=[a])
        self.assertIsNone(host_join_recipient(self.db, ride.id, a.id))


if __name__ == "__main__":
    unittest.main()
