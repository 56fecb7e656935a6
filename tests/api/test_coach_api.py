"""
Tests de los endpoints del entrenador y del check-in por QR.
"""

import json
from datetime import timedelta

from app.core.config import get_settings
from app.db.types import utcnow
from app.models.booking import BookingStatus
from app.services.qr import sign_payload

API = "/api/v1"


def _signed_qr(booking, *, user_id=None, child_id=None, minutes_ago=0):
    """Contenido de QR firmado como lo haría el servidor, con la antigüedad indicada"""
    user_id = user_id or booking.user_id
    timestamp = int((utcnow() - timedelta(minutes=minutes_ago)).timestamp() * 1000)
    return {
        "booking_id": booking.id,
        "user_id": user_id,
        "child_id": child_id,
        "timestamp": timestamp,
        "signature": sign_payload(booking.id, user_id, timestamp),
    }


class TestCoachClasses:
    def test_coach_sees_only_own_classes(self, client, coach_headers, make_class, other_coach):
        mine = make_class(hours_from_now=24)
        make_class(hours_from_now=26, coach=other_coach)

        response = client.get(f"{API}/coach/classes", headers=coach_headers)

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [mine.id]

    def test_roster(self, client, coach_headers, upcoming_class, member_user, member_package, make_booking, child):
        make_booking(upcoming_class, member_user, member_package)
        make_booking(upcoming_class, member_user, member_package, child=child)

        response = client.get(f"{API}/coach/classes/{upcoming_class.id}/roster", headers=coach_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["booked_count"] == 2
        assert sorted(b["booked_for"] for b in data["bookings"]) == ["Kim Member", "Self"]

    def test_roster_of_unassigned_class(self, client, coach_headers, make_class, other_coach):
        instance = make_class(coach=other_coach)
        response = client.get(f"{API}/coach/classes/{instance.id}/roster", headers=coach_headers)
        assert response.status_code == 403

    def test_members_cannot_use_coach_routes(self, client, member_headers):
        assert client.get(f"{API}/coach/classes", headers=member_headers).status_code == 403


class TestAttendance:
    def test_mark_attended_on_class_day(self, client, coach_headers, make_class, member_user, member_package, make_booking):
        booking = make_booking(make_class(hours_from_now=0), member_user, member_package)

        response = client.put(
            f"{API}/coach/attendance/{booking.id}", json={"status": "attended"}, headers=coach_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "attended"
        assert response.json()["attendance_marked_at"] is not None

    def test_mark_attendance_other_day(self, client, coach_headers, make_class, member_user, member_package, make_booking):
        booking = make_booking(make_class(hours_from_now=72), member_user, member_package)

        response = client.put(
            f"{API}/coach/attendance/{booking.id}", json={"status": "no_show"}, headers=coach_headers
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_DATE"

    def test_invalid_status_value(self, client, coach_headers, upcoming_class, member_user, member_package, make_booking):
        booking = make_booking(upcoming_class, member_user, member_package)
        response = client.put(
            f"{API}/coach/attendance/{booking.id}", json={"status": "cancelled"}, headers=coach_headers
        )
        assert response.status_code == 422


class TestNotes:
    def test_note_upsert(self, client, coach_headers, upcoming_class, member_user, member_package, make_booking):
        booking = make_booking(upcoming_class, member_user, member_package)

        response = client.post(
            f"{API}/coach/notes/{booking.id}", json={"rating": 4, "notes": "Good guard"}, headers=coach_headers
        )
        assert response.status_code == 200
        note_id = response.json()["id"]

        response = client.post(f"{API}/coach/notes/{booking.id}", json={"rating": 5}, headers=coach_headers)
        assert response.json()["id"] == note_id
        assert response.json()["rating"] == 5
        assert response.json()["notes"] == "Good guard"

        notes = client.get(f"{API}/coach/classes/{upcoming_class.id}/notes", headers=coach_headers).json()
        assert [n["id"] for n in notes] == [note_id]

    def test_rating_out_of_range(self, client, coach_headers, upcoming_class, member_user, member_package, make_booking):
        booking = make_booking(upcoming_class, member_user, member_package)
        response = client.post(f"{API}/coach/notes/{booking.id}", json={"rating": 6}, headers=coach_headers)
        assert response.status_code == 422

    def test_member_profile(self, client, coach_headers, member_user, child):
        response = client.get(f"{API}/coach/members/{member_user.id}", headers=coach_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "member@test.com"
        assert [c["first_name"] for c in data["children"]] == ["Kim"]
        assert data["total_attended"] == 0


class TestQRCheckIn:
    def _generate(self, client, headers, booking_id):
        response = client.post(f"{API}/qr/generate/{booking_id}", headers=headers)
        assert response.status_code == 200
        return response.json()

    def test_generate_and_validate(
        self, client, member_headers, coach_headers, make_class, member_user, member_package, make_booking
    ):
        booking = make_booking(make_class(hours_from_now=0.25), member_user, member_package)

        qr = self._generate(client, member_headers, booking.id)
        assert qr["qr_image"].startswith("data:image/png;base64,")
        assert json.loads(qr["qr_string"])["booking_id"] == booking.id

        response = client.post(f"{API}/qr/validate", json={"qr_data": qr["qr_string"]}, headers=coach_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "attended"
        assert data["member_name"] == "Mia Member"

        response = client.post(f"{API}/qr/validate", json={"qr_data": qr["qr_data"]}, headers=coach_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ALREADY_CHECKED_IN"

    def test_tampered_signature(
        self, client, member_headers, coach_headers, make_class, member_user, member_package, make_booking
    ):
        booking = make_booking(make_class(hours_from_now=0.25), member_user, member_package)
        payload = self._generate(client, member_headers, booking.id)["qr_data"]
        payload["user_id"] = payload["user_id"] + 1

        response = client.post(f"{API}/qr/validate", json={"qr_data": payload}, headers=coach_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_SIGNATURE"

    def test_garbage_qr(self, client, coach_headers):
        response = client.post(f"{API}/qr/validate", json={"qr_data": "not json"}, headers=coach_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_QR"

    def test_too_early(self, client, member_headers, coach_headers, upcoming_class, member_user, member_package, make_booking):
        booking = make_booking(upcoming_class, member_user, member_package)
        qr = self._generate(client, member_headers, booking.id)

        response = client.post(f"{API}/qr/validate", json={"qr_data": qr["qr_string"]}, headers=coach_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "TOO_EARLY"

    def test_unassigned_coach(
        self, client, member_headers, other_coach_headers, make_class, member_user, member_package, make_booking
    ):
        booking = make_booking(make_class(hours_from_now=0.25), member_user, member_package)
        qr = self._generate(client, member_headers, booking.id)

        response = client.post(f"{API}/qr/validate", json={"qr_data": qr["qr_string"]}, headers=other_coach_headers)
        assert response.status_code == 403

    def test_status_and_foreign_booking(
        self, client, member_headers, other_member_headers, upcoming_class, member_user, member_package, make_booking
    ):
        booking = make_booking(upcoming_class, member_user, member_package)

        response = client.get(f"{API}/qr/status/{booking.id}", headers=member_headers)
        assert response.status_code == 200
        assert response.json()["can_generate_qr"] is True

        response = client.post(f"{API}/qr/generate/{booking.id}", headers=other_member_headers)
        assert response.status_code == 403

    def test_cancelled_booking_has_no_qr(
        self, client, member_headers, upcoming_class, member_user, member_package, make_booking
    ):
        booking = make_booking(upcoming_class, member_user, member_package, status=BookingStatus.CANCELLED)
        response = client.post(f"{API}/qr/generate/{booking.id}", headers=member_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "QR_NOT_AVAILABLE"

    def test_expired_qr(self, client, coach_headers, make_class, member_user, member_package, make_booking):
        booking = make_booking(make_class(hours_from_now=0.25), member_user, member_package)
        payload = _signed_qr(booking, minutes_ago=get_settings().QR_MAX_AGE_MINUTES + 5)

        response = client.post(f"{API}/qr/validate", json={"qr_data": payload}, headers=coach_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "QR_EXPIRED"

    def test_qr_for_someone_else(
        self, client, coach_headers, make_class, member_user, other_member, child, member_package, make_booking
    ):
        booking = make_booking(make_class(hours_from_now=0.25), member_user, member_package)

        for payload in (_signed_qr(booking, user_id=other_member.id), _signed_qr(booking, child_id=child.id)):
            response = client.post(f"{API}/qr/validate", json={"qr_data": payload}, headers=coach_headers)
            assert response.status_code == 400
            assert response.json()["detail"]["code"] == "QR_MISMATCH"

    def test_cancelled_booking_cannot_check_in(
        self, client, db, coach_headers, make_class, member_user, member_package, make_booking
    ):
        booking = make_booking(
            make_class(hours_from_now=0.25), member_user, member_package, status=BookingStatus.CANCELLED
        )

        response = client.post(f"{API}/qr/validate", json={"qr_data": _signed_qr(booking)}, headers=coach_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "BOOKING_CANCELLED"
        db.refresh(booking)
        assert booking.status == BookingStatus.CANCELLED

    def test_too_late(self, client, coach_headers, make_class, member_user, member_package, make_booking):
        # La clase terminó hace dos horas; el margen es de una hora
        booking = make_booking(make_class(hours_from_now=-3), member_user, member_package)

        response = client.post(f"{API}/qr/validate", json={"qr_data": _signed_qr(booking)}, headers=coach_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "TOO_LATE"
