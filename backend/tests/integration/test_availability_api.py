"""
Availability endpoints through the Flask test client.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from tests.factories.entity_factories import caller_headers, future_day


@pytest.fixture
def provider_headers(seed_users):
    return caller_headers(seed_users["provider"].id, "provider")


def _create(client, headers, **body):
    payload = {
        "date": future_day().isoformat(),
        "startTime": "09:00",
        "endTime": "12:00",
    }
    payload.update(body)
    return client.post("/api/availability", json=payload, headers=headers)


@pytest.mark.api
@pytest.mark.availability
class TestCreateAvailability:
    def test_provider_creates_slot(self, client, provider_headers, seed_users):
        response = _create(client, provider_headers, maxBookings=2)

        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        slot = body["data"]
        assert slot["provider_id"] == seed_users["provider"].id
        assert slot["start_time"] == "09:00"
        assert slot["max_bookings"] == 2
        # Falls back to the provider's base price
        assert Decimal(slot["price"]["amount"]) == Decimal("50.00")

    def test_overlap_is_a_conflict(self, client, provider_headers):
        assert _create(client, provider_headers).status_code == 201

        response = _create(client, provider_headers, startTime="11:00", endTime="13:00")

        assert response.status_code == 409
        body = response.get_json()
        assert body["success"] is False
        assert body["data"]["error"] == "conflict"

    def test_adjacent_slot_is_fine(self, client, provider_headers):
        assert _create(client, provider_headers).status_code == 201
        response = _create(client, provider_headers, startTime="12:00", endTime="13:00")
        assert response.status_code == 201

    def test_seeker_cannot_publish(self, client, seed_users):
        headers = caller_headers(seed_users["seeker"].id, "seeker")
        assert _create(client, headers).status_code == 403

    def test_missing_identity(self, client, seed_users):
        assert _create(client, {}).status_code == 401

    def test_past_date_rejected(self, client, provider_headers):
        response = _create(client, provider_headers, date="2000-01-03")
        assert response.status_code == 400
        assert "past" in response.get_json()["message"]

    @pytest.mark.parametrize(
        "body",
        [
            {"date": "07/01/2030"},
            {"startTime": "9am"},
            {"startTime": "12:00", "endTime": "09:00"},
            {"maxBookings": 0},
            {"price": -5},
        ],
    )
    def test_invalid_input(self, client, provider_headers, body):
        response = _create(client, provider_headers, **body)
        assert response.status_code == 400
        assert response.get_json()["data"]["error"] == "validation_error"

    def test_body_must_be_json(self, client, provider_headers):
        response = client.post(
            "/api/availability", data="not json", headers=provider_headers
        )
        assert response.status_code == 400


@pytest.mark.api
@pytest.mark.availability
class TestBulkAvailability:
    def test_mixed_batch(self, client, provider_headers):
        day = future_day()
        first = _create(client, provider_headers, date=day.isoformat())
        assert first.status_code == 201

        response = client.post(
            "/api/availability/bulk",
            json={
                "dates": [
                    day.isoformat(),
                    (day + timedelta(days=1)).isoformat(),
                    "not-a-date",
                    "2000-01-03",
                ],
                "startTime": "10:00",
                "endTime": "11:00",
            },
            headers=provider_headers,
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert len(data["created"]) == 1
        assert data["created"][0]["date"] == (day + timedelta(days=1)).isoformat()
        assert data["errors"] == [
            f"overlaps existing availability: {day.isoformat()}",
            "invalid date: not-a-date",
            "past date: 2000-01-03",
        ]

    def test_empty_dates_rejected(self, client, provider_headers):
        response = client.post(
            "/api/availability/bulk",
            json={"dates": [], "startTime": "10:00", "endTime": "11:00"},
            headers=provider_headers,
        )
        assert response.status_code == 400


@pytest.mark.api
@pytest.mark.availability
class TestEditAvailability:
    def test_update_and_delete_own_slot(self, client, provider_headers):
        slot_id = _create(client, provider_headers).get_json()["data"]["id"]

        response = client.put(
            f"/api/availability/{slot_id}",
            json={"endTime": "10:00", "isAvailable": False},
            headers=provider_headers,
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["end_time"] == "10:00"
        assert response.get_json()["data"]["is_available"] is False

        response = client.delete(
            f"/api/availability/{slot_id}", headers=provider_headers
        )
        assert response.status_code == 200

        response = client.delete(
            f"/api/availability/{slot_id}", headers=provider_headers
        )
        assert response.status_code == 404

    def test_update_rejects_inverted_range(self, client, provider_headers):
        slot_id = _create(client, provider_headers).get_json()["data"]["id"]
        response = client.put(
            f"/api/availability/{slot_id}",
            json={"startTime": "13:00"},
            headers=provider_headers,
        )
        assert response.status_code == 400

    def test_other_provider_cannot_edit(self, client, provider_headers):
        slot_id = _create(client, provider_headers).get_json()["data"]["id"]
        response = client.put(
            f"/api/availability/{slot_id}",
            json={"maxBookings": 3},
            headers=caller_headers(999, "provider"),
        )
        assert response.status_code == 403


@pytest.mark.api
@pytest.mark.availability
class TestReadAvailability:
    def test_list_requires_provider(self, client, seed_users):
        assert client.get("/api/availability").status_code == 400

    def test_list_sorted_and_filtered(self, client, provider_headers, seed_users):
        day = future_day()
        later = day + timedelta(days=1)
        _create(client, provider_headers, date=later.isoformat())
        _create(
            client,
            provider_headers,
            date=day.isoformat(),
            startTime="14:00",
            endTime="15:00",
        )
        _create(client, provider_headers, date=day.isoformat())
        provider_id = seed_users["provider"].id

        everything = client.get(f"/api/availability?provider={provider_id}")
        one_day = client.get(
            f"/api/availability?provider={provider_id}&date={later.isoformat()}"
        )

        listed = [(s["date"], s["start_time"]) for s in everything.get_json()["data"]]
        assert listed == [
            (day.isoformat(), "09:00"),
            (day.isoformat(), "14:00"),
            (later.isoformat(), "09:00"),
        ]
        assert len(one_day.get_json()["data"]) == 1

    def test_weekly_projection(self, client, provider_headers, seed_users):
        day = future_day()
        _create(client, provider_headers, date=day.isoformat())
        provider_id = seed_users["provider"].id

        response = client.get(
            f"/api/availability/weekly?provider={provider_id}"
            f"&week_start={day.isoformat()}"
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        monday = day - timedelta(days=day.weekday())
        assert data["week_start"] == monday.isoformat()
        assert data["week_end"] == (monday + timedelta(days=6)).isoformat()
        assert len(data["schedule"]) == 7
        assert [s["start_time"] for s in data["schedule"][day.isoformat()]] == [
            "09:00"
        ]

    def test_bookable_windows_skip_booked_time(
        self, client, provider_headers, seed_users
    ):
        day = future_day()
        _create(client, provider_headers, date=day.isoformat())
        provider_id = seed_users["provider"].id
        client.post(
            "/api/consultations",
            json={
                "providerId": provider_id,
                "categoryId": 1,
                "type": "chat",
                "scheduledAt": f"{day.isoformat()}T10:00:00",
                "description": "Quick question",
            },
            headers=caller_headers(seed_users["seeker"].id, "seeker"),
        )

        response = client.get(
            f"/api/availability/windows?provider={provider_id}"
            f"&date={day.isoformat()}&duration=60"
        )

        assert response.status_code == 200
        assert response.get_json()["data"] == [
            {"start_time": "09:00", "end_time": "10:00"},
            {"start_time": "11:00", "end_time": "12:00"},
        ]
