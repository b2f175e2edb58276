"""API tests: FastAPI TestClient over a temp database; background notification queues are patched out."""
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient

from grouprides.db.session import get_db
from grouprides.main import app
from grouprides.services.notifications.events import HostJoinEvent, RideMessageEvent, RideSnapshot
from tests.fixtures.db import TempDatabase
from tests.fixtures.factories import create_test_ride, create_test_trail, create_test_user

QUEUE = "grouprides.services.notifications.%s"


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.database = TempDatabase()
        self.db = self.database.session()

        def _override_get_db():
            db = self.database.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _override_get_db
        self.client = TestClient(app)
        self.host = create_test_user(self.db, name="Hana Host")
        self.rider = create_test_user(self.db, name="Riley")

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()
        self.database.close()

    def as_user(self, user):
        return {"X-User-Id": str(user.id)}


class TestRideRoutes(ApiTestCase):

    def test_create_requires_user(self):
        r = self.client.post("/api/rides", json={"date": "2030-05-04T18:00:00Z"})
        self.assertEqual(r.status_code, 401)

    @patch(QUEUE % "queue_local_ride_notifications")
    def test_create_queues_local_alerts(self, mock_queue):
        trail = create_test_trail(self.db, name="Blankets Creek", coordinates=[[-84.6, 33.8]])
        r = self.client.post(
            "/api/rides",
            json={
                "date": "2030-05-04T18:00:00Z",
                "name": "Sunset Laps",
                "recurrence": "weekly",
                "trail_ids": [trail.id],
            },
            headers=self.as_user(self.host),
        )

        self.assertEqual(r.status_code, 201)
        ride = r.json()["ride"]
        self.assertEqual(ride["recurrence"], "weekly")
        self.assertEqual(ride["trail_names"], ["Blankets Creek"])
        self.assertEqual([a["id"] for a in ride["attendees"]], [self.host.id])
        mock_queue.assert_called_once_with(ride["id"])

    @patch(QUEUE % "queue_local_ride_notifications")
    def test_create_with_unknown_trail(self, mock_queue):
        r = self.client.post(
            "/api/rides",
            json={"date": "2030-05-04T18:00:00Z", "trail_ids": [999]},
            headers=self.as_user(self.host),
        )
        self.assertEqual(r.status_code, 400)
        mock_queue.assert_not_called()

    def test_list_advances_recurring_and_hides_past(self):
        past = datetime.now(timezone.utc) - timedelta(days=10)
        weekly = create_test_ride(self.db, self.host, name="Weekly", date=past, recurrence="weekly")
        create_test_ride(self.db, self.host, name="Old", date=past)

        r = self.client.get("/api/rides")

        self.assertEqual(r.status_code, 200)
        rides = r.json()
        self.assertEqual([x["id"] for x in rides], [weekly.id])
        self.assertGreater(datetime.fromisoformat(rides[0]["date"]), datetime.now(timezone.utc))

    def test_get_missing_ride(self):
        self.assertEqual(self.client.get("/api/rides/404").status_code, 404)

    @patch(QUEUE % "queue_host_join_notification")
    def test_join_queues_host_notice(self, mock_queue):
        ride = create_test_ride(self.db, self.host)

        r = self.client.post(f"/api/rides/{ride.id}/join", headers=self.as_user(self.rider))
        self.assertEqual(r.status_code, 200)
        event = mock_queue.call_args[0][0]
        self.assertIsInstance(event, HostJoinEvent)
        self.assertEqual((event.ride_id, event.attendee_id, event.attendee_count), (ride.id, self.rider.id, 2))

        again = self.client.post(f"/api/rides/{ride.id}/join", headers=self.as_user(self.rider))
        self.assertEqual(again.status_code, 400)
        self.assertEqual(mock_queue.call_count, 1)

    @patch(QUEUE % "queue_ride_postponement_notifications")
    def test_postpone_notifies_only_on_transition(self, mock_queue):
        ride = create_test_ride(self.db, self.host, attendees=[self.rider])
        url = f"/api/rides/{ride.id}/postpone"

        self.assertEqual(self.client.put(url, json={"postponed": True}, headers=self.as_user(self.rider)).status_code, 403)
        self.assertEqual(self.client.put(url, json={"postponed": True}, headers=self.as_user(self.host)).status_code, 200)
        self.client.put(url, json={"postponed": True}, headers=self.as_user(self.host))
        r = self.client.put(url, json={"postponed": False}, headers=self.as_user(self.host))

        self.assertFalse(r.json()["ride"]["postponed"])
        self.assertEqual(mock_queue.call_count, 1)
        snapshot = mock_queue.call_args[0][0]
        self.assertIsInstance(snapshot, RideSnapshot)
        self.assertEqual(sorted(a.id for a in snapshot.attendees), sorted([self.host.id, self.rider.id]))

    @patch(QUEUE % "queue_ride_cancellation_notifications")
    def test_cancel_snapshots_attendees_before_delete(self, mock_queue):
        ride = create_test_ride(self.db, self.host, name="Night Ride", attendees=[self.rider])

        forbidden = self.client.delete(f"/api/rides/{ride.id}", headers=self.as_user(self.rider))
        self.assertEqual(forbidden.status_code, 403)
        r = self.client.delete(f"/api/rides/{ride.id}", headers=self.as_user(self.host))

        self.assertEqual(r.status_code, 200)
        snapshot = mock_queue.call_args[0][0]
        self.assertEqual(snapshot.name, "Night Ride")
        self.assertIn(self.rider.id, [a.id for a in snapshot.attendees])
        self.assertEqual(self.client.get(f"/api/rides/{ride.id}").status_code, 404)


class TestMessageRoutes(ApiTestCase):

    @patch(QUEUE % "queue_ride_message_notifications")
    def test_ride_message(self, mock_queue):
        ride = create_test_ride(self.db, self.host, name="Dawn Patrol", attendees=[self.rider])

        r = self.client.post(
            "/api/messages",
            json={"ride_id": ride.id, "content": "Meet at the lot"},
            headers=self.as_user(self.host),
        )

        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.json()["recipient_count"], 1)
        event = mock_queue.call_args[0][0]
        self.assertIsInstance(event, RideMessageEvent)
        self.assertEqual(event.snippet, "Meet at the lot")

        unread = self.client.get("/api/messages/unread-count", headers=self.as_user(self.rider))
        self.assertEqual(unread.json(), {"count": 1})

    @patch(QUEUE % "queue_direct_message_notifications")
    def test_direct_message_and_mark_read(self, mock_queue):
        r = self.client.post(
            "/api/messages",
            json={"recipient_ids": [self.rider.id], "content": "Ride Saturday?"},
            headers=self.as_user(self.host),
        )
        self.assertEqual(r.status_code, 201)
        self.assertEqual(mock_queue.call_args[0][0].recipient_ids, [self.rider.id])

        message_id = r.json()["id"]
        self.assertTrue(self.client.post(f"/api/messages/{message_id}/read", headers=self.as_user(self.rider)).json()["ok"])
        unread = self.client.get("/api/messages/unread-count", headers=self.as_user(self.rider))
        self.assertEqual(unread.json(), {"count": 0})

    def test_message_needs_target(self):
        r = self.client.post("/api/messages", json={"content": "hello"}, headers=self.as_user(self.host))
        self.assertEqual(r.status_code, 422)


class TestPreferenceRoutes(ApiTestCase):

    def test_global_off(self):
        r = self.client.patch(
            "/api/user/preferences",
            json={"email_notifications_enabled": False},
            headers=self.as_user(self.rider),
        )
        self.assertEqual(r.status_code, 200)
        prefs = r.json()["user"]
        self.assertFalse(prefs["notify_local_rides"])
        self.assertFalse(prefs["notify_direct_messages"])
        self.assertIsNone(prefs["notification_radius_miles"])

    def test_null_radius_rejected_with_local_alerts_on(self):
        r = self.client.patch(
            "/api/user/preferences",
            json={"notify_local_rides": True, "notification_radius_miles": None},
            headers=self.as_user(self.rider),
        )
        self.assertEqual(r.status_code, 400)

    def test_omitted_radius_rejected_with_local_alerts_on(self):
        r = self.client.patch(
            "/api/user/preferences",
            json={"notify_local_rides": True},
            headers=self.as_user(self.rider),
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "Please provide a radius when notifications are enabled.")

    def test_radius_out_of_range(self):
        r = self.client.patch(
            "/api/user/preferences",
            json={"notification_radius_miles": 10000},
            headers=self.as_user(self.rider),
        )
        self.assertEqual(r.status_code, 422)

    def test_location(self):
        r = self.client.put("/api/user/location", json={"lat": 33.8, "lng": -84.6}, headers=self.as_user(self.rider))
        self.assertEqual(r.json(), {"success": True, "lat": 33.8, "lng": -84.6})


class TestHealth(unittest.TestCase):

    @patch("grouprides.main.get_gateway")
    def test_health_reports_email_status(self, mock_gateway):
        mock_gateway.return_value.is_configured.return_value = False
        r = TestClient(app).get("/health")
        self.assertEqual(r.json(), {"status": "ok", "email": "disabled"})


if __name__ == "__main__":
    unittest.main()
