"""Unit tests for notification preference updates."""
import unittest

from grouprides.core.errors import InvalidRequest, UserNotFound
from grouprides.services.preference_service import preferences_to_dict, update_location, update_preferences
from tests.fixtures.db import TempDatabase
from tests.fixtures.factories import create_test_user


class TestUpdatePreferences(unittest.TestCase):

    def setUp(self):
        self.database = TempDatabase()
        self.db = self.database.session()
        self.user = create_test_user(self.db, name="Rider", notification_radius_miles=40)

    def tearDown(self):
        self.db.close()
        self.database.close()

    def test_global_off_disables_everything(self):
        user = update_preferences(self.db, self.user.id, email_notifications_enabled=False, notify_local_rides=True)
        self.assertEqual(
            preferences_to_dict(user),
            {
                "email_notifications_enabled": False,
                "notify_local_rides": False,
                "notify_ride_cancellations": False,
                "notify_ride_messages": False,
                "notify_direct_messages": False,
                "notification_radius_miles": None,
            },
        )

    def test_omitted_flags_default_on(self):
        user = update_preferences(self.db, self.user.id, notify_ride_messages=False, notification_radius_miles=40)
        self.assertTrue(user.notify_local_rides)
        self.assertTrue(user.notify_direct_messages)
        self.assertFalse(user.notify_ride_messages)
        self.assertEqual(user.notification_radius_miles, 40)

    def test_new_radius_applied(self):
        user = update_preferences(self.db, self.user.id, notification_radius_miles=10)
        self.assertEqual(user.notification_radius_miles, 10)

    def test_missing_radius_rejected_while_local_on(self):
        """Omitted and null radius are both rejected; the stored radius is left alone."""
        with self.assertRaises(InvalidRequest):
            update_preferences(self.db, self.user.id, notification_radius_miles=None)
        with self.assertRaises(InvalidRequest):
            update_preferences(self.db, self.user.id, notify_local_rides=True)
        self.db.refresh(self.user)
        self.assertEqual(self.user.notification_radius_miles, 40)

    def test_local_off_clears_radius(self):
        user = update_preferences(
            self.db, self.user.id, notify_local_rides=False, notification_radius_miles=None
        )
        self.assertFalse(user.notify_local_rides)
        self.assertIsNone(user.notification_radius_miles)

    def test_unknown_user(self):
        with self.assertRaises(UserNotFound):
            update_preferences(self.db, 9999)


class TestUpdateLocation(unittest.TestCase):

    def setUp(self):
        self.database = TempDatabase()
        self.db = self.database.session()
        self.user = create_test_user(self.db)

    def tearDown(self):
        self.db.close()
        self.database.close()

    def test_set_and_clear(self):
        user = update_location(self.db, self.user.id, 33.8, -84.6)
        self.assertEqual((user.lat, user.lng), (33.8, -84.6))
        user = update_location(self.db, self.user.id, None, None)
        self.assertIsNone(user.lat)

    def test_half_a_point_rejected(self):
        with self.assertRaises(InvalidRequest):
            update_location(self.db, self.user.id, 33.8, None)


if __name__ == "__main__":
    unittest.main()
