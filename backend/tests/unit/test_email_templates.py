"""Unit tests for email formatting helpers and escaping."""
import unittest
from datetime import datetime, timezone

from grouprides.services import email_templates
from grouprides.services.notifications.events import make_snippet


class TestFormatting(unittest.TestCase):

    def test_format_date(self):
        d = datetime(2025, 3, 22, 18, 0, tzinfo=timezone.utc)
        self.assertEqual(email_templates.format_date(d), "Saturday, March 22, 2025")
        self.assertEqual(email_templates.format_date(d, include_weekday=False), "March 22, 2025")

    def test_format_time(self):
        self.assertEqual(email_templates.format_time(datetime(2025, 3, 22, 18, 0)), "6:00 PM UTC")
        self.assertEqual(email_templates.format_time(datetime(2025, 3, 22, 0, 5)), "12:05 AM UTC")

    def test_user_text_is_escaped(self):
        html = email_templates.render_ride_message_email(
            ride_name="<script>alert(1)</script>",
            ride_url="https://mtbgroupride.com/rides/1",
            sender_name="Sam & Co",
            snippet="see you <b>there</b>",
            total_unread=2,
            ride_location="Blankets Creek",
        )
        self.assertNotIn("<script>", html)
        self.assertIn("&lt;script&gt;", html)
        self.assertIn("Sam &amp; Co", html)

    def test_make_snippet(self):
        self.assertEqual(make_snippet("  hello \n  there  "), "hello there")
        snippet = make_snippet("x" * 500, limit=10)
        self.assertEqual(len(snippet), 10)
        self.assertTrue(snippet.endswith("…"))


if __name__ == "__main__":
    unittest.main()
