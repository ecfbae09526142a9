"""
Tests for the human-activity gate and GET /check-human.
"""

from datetime import datetime, timedelta, timezone

import pytest

from wa_dashboard.services.human_gate import check_human_active

T = datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


class TestCheckHumanActive:
    """Test the gate computation against the store."""

    def test_active_one_hour_after_human_reply(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(hours=1))

        assert activity.human_active is True
        assert activity.hours_remaining == 1.0
        assert activity.last_human_response_time == T
        assert activity.message == "Human is active - AI should wait 1.0 more hours"

    def test_inactive_three_hours_after_human_reply(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(hours=3))

        assert activity.human_active is False
        assert activity.hours_remaining == 0
        assert activity.last_human_response_time is None
        assert activity.message == "No human activity detected - AI can respond"

    def test_ai_replies_ignored(self, store, add_message):
        add_message("outbound", T, is_ai_response=True)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(minutes=5))

        assert activity.human_active is False

    def test_legacy_unflagged_replies_ignored(self, store, add_message):
        add_message("outbound", T, is_ai_response=None)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(minutes=5))

        assert activity.human_active is False

    def test_inbound_messages_ignored(self, store, add_message):
        add_message("inbound", T)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(minutes=5))

        assert activity.human_active is False

    def test_latest_human_reply_wins(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)
        add_message("outbound", T + timedelta(minutes=30), is_ai_response=False)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(hours=1))

        assert activity.hours_remaining == 1.5

    def test_phone_normalized(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)

        activity = check_human_active(store, "+254 768 322 488", threshold_hours=2, now=T + timedelta(hours=1))

        assert activity.phone_number == "254768322488"
        assert activity.human_active is True

    def test_hours_remaining_never_increases(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)

        remaining = [
            check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(minutes=m)).hours_remaining
            for m in (10, 45, 90, 119, 150, 240)
        ]

        assert all(later <= earlier for earlier, later in zip(remaining, remaining[1:]))
        assert remaining[-2:] == [0, 0]

    def test_rounded_to_two_decimals(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)

        activity = check_human_active(store, "254768322488", threshold_hours=2, now=T + timedelta(minutes=20))

        assert activity.hours_remaining == 1.67

    def test_custom_threshold(self, store, add_message):
        add_message("outbound", T, is_ai_response=False)

        activity = check_human_active(store, "254768322488", threshold_hours=4, now=T + timedelta(hours=3))

        assert activity.human_active is True
        assert activity.hours_remaining == 1.0


class TestCheckHumanEndpoint:
    """Test GET /check-human."""

    def test_missing_phone(self, client):
        response = client.get("/check-human")

        assert response.status_code == 400
        assert response.json()["humanActive"] is False

    def test_active_response_shape(self, client, add_message):
        add_message("outbound", datetime.now(timezone.utc) - timedelta(minutes=30), is_ai_response=False)

        response = client.get("/check-human", params={"phone": "+254768322488"})

        assert response.status_code == 200
        data = response.json()
        assert data["phoneNumber"] == "254768322488"
        assert data["humanActive"] is True
        assert data["lastHumanResponseTime"] is not None
        assert 1.4 <= data["hoursRemaining"] <= 1.5
        assert data["message"].startswith("Human is active")

    def test_inactive_response(self, client):
        data = client.get("/check-human", params={"phone": "254700000000"}).json()

        assert data == {
            "phoneNumber": "254700000000",
            "humanActive": False,
            "lastHumanResponseTime": None,
            "hoursRemaining": 0,
            "message": "No human activity detected - AI can respond"
        }

    def test_hours_parameter(self, client, add_message):
        add_message("outbound", datetime.now(timezone.utc) - timedelta(hours=3), is_ai_response=False)

        assert client.get("/check-human", params={"phone": "254768322488"}).json()["humanActive"] is False
        assert client.get("/check-human", params={"phone": "254768322488", "hours": 4}).json()["humanActive"] is True

    @pytest.mark.parametrize("hours", ["0", "-1", "abc"])
    def test_invalid_hours(self, client, hours):
        response = client.get("/check-human", params={"phone": "254768322488", "hours": hours})

        assert response.status_code == 422

    def test_store_failure(self, client, db):
        db.fail = True

        response = client.get("/check-human", params={"phone": "254768322488"})

        assert response.status_code == 500
        assert response.json()["humanActive"] is False
