"""
Tests de los endpoints de administración.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.timezone_utils import club_today, club_weekday, start_of_month_utc
from app.db.types import utcnow
from app.models.booking import Booking, BookingStatus
from app.models.package import MemberPackage
from app.models.payment import Payment, PaymentStatus
from app.models.schedule import ClassInstance, ClassSchedule

API = "/api/v1/admin"


@pytest.fixture
def pending_payment(db, member_user, package):
    payment = Payment(
        user_id=member_user.id,
        package_id=package.id,
        amount=Decimal("1000.00"),
        vat_amount=Decimal("0.00"),
        vat_included=False,
        total_amount=Decimal("1000.00"),
        screenshot_path="payments/2025/01/receipt.png",
        status=PaymentStatus.PENDING,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


@pytest.fixture
def schedule_payload(class_type, coach_user, location):
    """Horario semanal en el día de ayer: la próxima clase cae dentro de seis días"""
    return {
        "class_type_id": class_type.id,
        "coach_id": coach_user.id,
        "location_id": location.id,
        "day_of_week": club_weekday(club_today() - timedelta(days=1)),
        "start_time": "15:00",
        "capacity": 10,
    }


class TestAdminAccess:
    @pytest.mark.parametrize("path", ["/payments/pending", "/members", "/dashboard/stats", "/reports/attendance"])
    def test_non_admins_are_rejected(self, client, member_headers, coach_headers, path):
        assert client.get(f"{API}{path}", headers=member_headers).status_code == 403
        assert client.get(f"{API}{path}", headers=coach_headers).status_code == 403

    def test_anonymous_is_rejected(self, client):
        assert client.get(f"{API}/members").status_code == 401


class TestPayments:
    def test_pending_list_and_approve(self, client, db, admin_headers, member_user, pending_payment):
        pending = client.get(f"{API}/payments/pending", headers=admin_headers).json()
        assert [p["id"] for p in pending] == [pending_payment.id]
        assert pending[0]["user"]["email"] == "member@test.com"

        response = client.put(f"{API}/payments/{pending_payment.id}/approve", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["payment"]["status"] == "approved"
        assert data["member_package"]["sessions_remaining"] == 10
        assert client.get(f"{API}/payments/pending", headers=admin_headers).json() == []

        response = client.put(f"{API}/payments/{pending_payment.id}/approve", headers=admin_headers)
        assert response.status_code == 409

    def test_reject_requires_reason(self, client, admin_headers, pending_payment):
        response = client.put(
            f"{API}/payments/{pending_payment.id}/reject", json={"rejection_reason": "  "}, headers=admin_headers
        )
        assert response.status_code == 422

        response = client.put(
            f"{API}/payments/{pending_payment.id}/reject",
            json={"rejection_reason": "Amount does not match"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["payment"]["rejection_reason"] == "Amount does not match"


class TestClasses:
    def test_create_recurring_series(self, client, admin_headers, class_type, coach_user, location):
        start = (club_today() + timedelta(days=3)).isoformat() + "T18:00:00"
        response = client.post(f"{API}/classes", json={
            "class_type_id": class_type.id,
            "coach_id": coach_user.id,
            "location_id": location.id,
            "start_time": start,
            "capacity": 8,
            "recurring": {"frequency": "weekly", "count": 3},
        }, headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Successfully created 3 recurring class instances"
        assert len(data["classes"]) == 3
        assert all(c["capacity"] == 8 for c in data["classes"])

    def test_create_with_member_as_coach(self, client, admin_headers, class_type, member_user, location):
        start = (club_today() + timedelta(days=3)).isoformat() + "T18:00:00"
        response = client.post(f"{API}/classes", json={
            "class_type_id": class_type.id,
            "coach_id": member_user.id,
            "location_id": location.id,
            "start_time": start,
            "capacity": 8,
        }, headers=admin_headers)
        assert response.status_code == 404

    def test_cancel_class_refunds_bookings(self, client, db, admin_headers, upcoming_class, member_user, member_package, make_booking):
        booking = make_booking(upcoming_class, member_user, member_package)

        response = client.put(
            f"{API}/classes/{upcoming_class.id}", json={"is_cancelled": True}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["is_cancelled"] is True
        db.refresh(booking)
        db.refresh(member_package)
        assert booking.status == BookingStatus.CANCELLED
        assert member_package.sessions_remaining == 6

    def test_capacity_below_bookings(self, client, admin_headers, upcoming_class, member_user, member_package, make_booking, child):
        make_booking(upcoming_class, member_user, member_package)
        make_booking(upcoming_class, member_user, member_package, child=child)

        response = client.put(f"{API}/classes/{upcoming_class.id}", json={"capacity": 1}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "CAPACITY_TOO_LOW"

    def test_delete_class(self, client, db, admin_headers, upcoming_class, member_user, member_package, make_booking):
        make_booking(upcoming_class, member_user, member_package)

        response = client.delete(f"{API}/classes/{upcoming_class.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["refunded_bookings"] == 1
        assert db.get(ClassInstance, upcoming_class.id) is None
        db.refresh(member_package)
        assert member_package.sessions_remaining == 6

    def test_delete_location_cancels_future_classes(self, client, db, admin_headers, location, upcoming_class):
        response = client.delete(f"{API}/locations/{location.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["cancelled_classes"] == 1
        db.refresh(upcoming_class)
        db.refresh(location)
        assert upcoming_class.is_cancelled is True
        assert location.is_active is False

    def test_delete_location_deactivates_schedules(self, client, db, admin_headers, location, schedule_payload):
        created = client.post(f"{API}/schedules", json=schedule_payload, headers=admin_headers).json()
        schedule_id = created["schedule"]["id"]

        response = client.delete(f"{API}/locations/{location.id}", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["deactivated_schedules"] == 1
        assert data["cancelled_classes"] == created["generated"]["created"]
        schedule = db.get(ClassSchedule, schedule_id)
        db.refresh(schedule)
        assert schedule.is_active is False


class TestBookingsAndRefunds:
    def test_admin_books_for_member(self, client, db, admin_headers, member_user, member_package, upcoming_class):
        response = client.post(
            f"{API}/bookings",
            json={"user_id": member_user.id, "class_instance_id": upcoming_class.id},
            headers=admin_headers,
        )
        assert response.status_code == 201

        listed = client.get(
            f"{API}/bookings", params={"class_instance_id": upcoming_class.id}, headers=admin_headers
        ).json()
        assert [b["user"]["id"] for b in listed] == [member_user.id]

    def test_manual_refund(self, client, admin_headers, member_user, member_package):
        response = client.post(
            f"{API}/refund",
            json={"user_id": member_user.id, "credits": 2, "reason": "Studio closed early"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["balance_after"] == 7

    def test_manual_refund_limits(self, client, admin_headers, member_user, member_package):
        response = client.post(
            f"{API}/refund", json={"user_id": member_user.id, "credits": 0, "reason": "x"}, headers=admin_headers
        )
        assert response.status_code == 422


class TestMembers:
    def test_pause_blocks_booking(self, client, admin_headers, member_headers, member_user, member_package, upcoming_class):
        response = client.put(f"{API}/members/{member_user.id}/pause", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["user"]["is_paused"] is True

        response = client.post(
            "/api/v1/members/bookings", json={"class_instance_id": upcoming_class.id}, headers=member_headers
        )
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "ACCOUNT_PAUSED"

    def test_deleted_member_cannot_log_in(self, client, admin_headers, member_user):
        response = client.delete(f"{API}/members/{member_user.id}", headers=admin_headers)
        assert response.status_code == 200

        response = client.post("/api/v1/auth/login", json={"email": "member@test.com", "password": "password123"})
        assert response.status_code == 401

    def test_create_coach(self, client, admin_headers):
        response = client.post(f"{API}/coaches", json={
            "email": "new.coach@test.com",
            "password": "coachpass1",
            "first_name": "New",
            "last_name": "Coach",
        }, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["role"] == "coach"

        pickers = client.get(f"{API}/coaches", headers=admin_headers).json()
        assert any(c["id"] == response.json()["id"] for c in pickers)


class TestPricing:
    def test_member_price_for_renewal(self, client, db, admin_headers, member_headers, member_user, package, member_package):
        response = client.put(
            f"{API}/members/{member_user.id}/package-prices/{package.id}",
            json={"price": "750.00"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        offer = client.get("/api/v1/members/packages", headers=member_headers).json()
        assert offer["is_renewal"] is True
        assert offer["packages"][0]["price_type"] == "member"
        assert Decimal(offer["packages"][0]["price"]) == Decimal("750.00")

    def test_delete_package_deactivates(self, client, db, admin_headers, package):
        response = client.delete(f"{API}/packages/{package.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False


class TestReports:
    def _attended(self, make_class, make_booking, member_user, member_package):
        instance = make_class(hours_from_now=-30)
        make_booking(instance, member_user, member_package, status=BookingStatus.ATTENDED)
        return instance

    def test_attendance_json(self, client, admin_headers, make_class, make_booking, member_user, member_package):
        self._attended(make_class, make_booking, member_user, member_package)
        today = club_today()

        response = client.get(
            f"{API}/reports/attendance",
            params={"start_date": (today - timedelta(days=5)).isoformat(), "end_date": today.isoformat()},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["total_attended"] == 1

    def test_attendance_csv(self, client, admin_headers, make_class, make_booking, member_user, member_package):
        self._attended(make_class, make_booking, member_user, member_package)
        today = club_today()

        response = client.get(
            f"{API}/reports/attendance",
            params={
                "start_date": (today - timedelta(days=5)).isoformat(),
                "end_date": today.isoformat(),
                "format": "csv",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert response.text.splitlines()[0].startswith("Class,Location,Coach,Date")

    def test_invalid_range(self, client, admin_headers):
        today = club_today()
        response = client.get(
            f"{API}/reports/revenue",
            params={"start_date": today.isoformat(), "end_date": (today - timedelta(days=1)).isoformat()},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_DATE_RANGE"

    def test_dashboard_stats(self, client, admin_headers, member_user, pending_payment):
        response = client.get(f"{API}/dashboard/stats", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_members"] == 1
        assert data["pending_payments"] == 1


class TestSchedules:
    def _create(self, client, headers, payload):
        response = client.post(f"{API}/schedules", json=payload, headers=headers)
        assert response.status_code == 201
        return response.json()

    def _instances(self, db, schedule_id):
        return (
            db.query(ClassInstance)
            .filter(ClassInstance.schedule_id == schedule_id)
            .order_by(ClassInstance.start_time)
            .all()
        )

    def test_create_generates_upcoming_classes(self, client, db, admin_headers, schedule_payload):
        data = self._create(client, admin_headers, schedule_payload)

        assert data["generated"]["created"] >= 8
        instances = self._instances(db, data["schedule"]["id"])
        assert len(instances) == data["generated"]["created"]
        assert all(i.start_time > utcnow() for i in instances)
        assert all(i.capacity == 10 for i in instances)

    def test_duplicate_slot(self, client, admin_headers, schedule_payload):
        self._create(client, admin_headers, schedule_payload)

        response = client.post(f"{API}/schedules", json=schedule_payload, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SCHEDULE_EXISTS"

    def test_override_dates_are_validated(self, client, admin_headers, schedule_payload):
        today = club_today()
        response = client.post(f"{API}/schedules", json={
            **schedule_payload,
            "is_override": True,
            "override_start_date": (today + timedelta(days=10)).isoformat(),
            "override_end_date": today.isoformat(),
        }, headers=admin_headers)
        assert response.status_code == 422

        schedule_id = self._create(client, admin_headers, schedule_payload)["schedule"]["id"]
        response = client.put(f"{API}/schedules/{schedule_id}", json={"is_override": True}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_OVERRIDE_DATES"

    def test_update_current_month_regenerates_only_future_classes(
        self, client, db, admin_headers, schedule_payload, member_user, member_package, make_booking
    ):
        data = self._create(client, admin_headers, schedule_payload)
        schedule_id = data["schedule"]["id"]
        before = self._instances(db, schedule_id)
        booked = make_booking(before[0], member_user, member_package).class_instance_id

        response = client.put(
            f"{API}/schedules/{schedule_id}",
            json={"capacity": 15, "apply_to_current_month": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["deleted_instances"] == len(before) - 1
        after = self._instances(db, schedule_id)
        assert len(after) == len(before)
        assert all(i.start_time > utcnow() for i in after)
        assert {i.id: i.capacity for i in after}[booked] == 10
        assert all(i.capacity == 15 for i in after if i.id != booked)

    def test_update_from_next_month_keeps_current_month(self, client, db, admin_headers, schedule_payload):
        data = self._create(client, admin_headers, schedule_payload)
        schedule_id = data["schedule"]["id"]
        cutoff = start_of_month_utc(club_today(), 1)
        before = self._instances(db, schedule_id)

        response = client.put(f"{API}/schedules/{schedule_id}", json={"capacity": 15}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["deleted_instances"] == len([i for i in before if i.start_time >= cutoff])
        after = self._instances(db, schedule_id)
        assert len(after) == len(before)
        assert all(i.start_time > utcnow() for i in after)
        for instance in after:
            assert instance.capacity == (15 if instance.start_time >= cutoff else 10)

    def test_delete_deactivates_and_keeps_classes(self, client, db, admin_headers, schedule_payload):
        data = self._create(client, admin_headers, schedule_payload)
        schedule_id = data["schedule"]["id"]

        response = client.delete(f"{API}/schedules/{schedule_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert len(self._instances(db, schedule_id)) == data["generated"]["created"]
        assert client.get(f"{API}/schedules", headers=admin_headers).json() == []

    def test_generate_is_idempotent(self, client, admin_headers, schedule_payload):
        self._create(client, admin_headers, schedule_payload)

        response = client.post(f"{API}/schedules/generate", json={"months_ahead": 3}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["created"] > 0
        assert response.json()["updated"] == 0

        response = client.post(f"{API}/schedules/generate", json={"months_ahead": 3}, headers=admin_headers)
        assert response.json() == {"created": 0, "updated": 0}

        response = client.post(f"{API}/schedules/generate", json={"months_ahead": 13}, headers=admin_headers)
        assert response.status_code == 422
