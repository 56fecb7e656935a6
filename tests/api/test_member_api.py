"""
Tests de los endpoints de autoservicio del miembro: catálogo, compra,
reservas, panel e hijos.
"""

from decimal import Decimal

from app.models.booking import Booking, BookingStatus
from app.models.credit import CreditTransaction, CreditTransactionType
from app.models.location import Location
from app.models.package import LocationPackagePrice, MemberPackagePrice, SessionPackage
from app.models.payment import Payment, PaymentStatus

API = "/api/v1/members"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestCatalog:
    def test_packages_with_default_price(self, client, member_headers, package):
        response = client.get(f"{API}/packages", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["is_renewal"] is False
        offer = data["packages"][0]
        assert offer["name"] == "10 Sessions"
        assert offer["price_type"] == "default"
        assert Decimal(offer["total_price"]) == Decimal("1000.00")

    def test_location_price_with_vat(self, client, db, member_headers, package, location):
        db.add(LocationPackagePrice(
            location_id=location.id, package_id=package.id, price=Decimal("900.00"), include_vat=True, is_active=True
        ))
        db.commit()

        response = client.get(f"{API}/packages", params={"location_id": location.id}, headers=member_headers)

        offer = response.json()["packages"][0]
        assert offer["price_type"] == "location"
        assert Decimal(offer["vat_amount"]) == Decimal("126.00")
        assert Decimal(offer["total_price"]) == Decimal("1026.00")

    def test_inactive_packages_hidden(self, client, db, member_headers, package):
        package.is_active = False
        db.commit()

        response = client.get(f"{API}/packages", headers=member_headers)
        assert response.json()["packages"] == []

    def test_special_price_on_inactive_package_is_not_advertised(
        self, client, db, member_headers, member_user, package, member_package
    ):
        retired = SessionPackage(
            name="Old 5 Pack", session_count=5, price=Decimal("500.00"), expiry_days=30, is_active=False
        )
        db.add(retired)
        db.commit()
        db.add(MemberPackagePrice(user_id=member_user.id, package_id=retired.id, price=Decimal("300.00"), is_active=True))
        db.commit()

        data = client.get(f"{API}/packages", headers=member_headers).json()
        assert data["is_renewal"] is True
        assert data["has_special_renewal_prices"] is False

        db.add(MemberPackagePrice(user_id=member_user.id, package_id=package.id, price=Decimal("750.00"), is_active=True))
        db.commit()

        data = client.get(f"{API}/packages", headers=member_headers).json()
        assert data["has_special_renewal_prices"] is True

    def test_locations_only_active(self, client, db, member_headers, location):
        db.add(Location(name="Closed", address="x", capacity=10, is_active=False))
        db.commit()

        response = client.get(f"{API}/locations", headers=member_headers)
        assert [loc["name"] for loc in response.json()] == ["Downtown"]

    def test_coach_cannot_use_member_routes(self, client, coach_headers):
        response = client.get(f"{API}/packages", headers=coach_headers)
        assert response.status_code == 403


class TestPurchase:
    def test_purchase_creates_pending_payment(self, client, db, member_headers, member_user, package):
        response = client.post(
            f"{API}/purchase",
            data={"package_id": str(package.id)},
            files={"screenshot": ("receipt.png", PNG, "image/png")},
            headers=member_headers,
        )

        assert response.status_code == 201
        payment = response.json()["payment"]
        assert payment["status"] == "pending"
        assert Decimal(payment["total_amount"]) == Decimal("1000.00")
        assert payment["screenshot_path"].startswith("payments/")

        stored = db.get(Payment, payment["id"])
        assert stored.user_id == member_user.id
        assert stored.status == PaymentStatus.PENDING

        listed = client.get(f"{API}/payments", headers=member_headers).json()
        assert [p["id"] for p in listed] == [payment["id"]]

    def test_purchase_requires_screenshot(self, client, member_headers, package):
        response = client.post(f"{API}/purchase", data={"package_id": str(package.id)}, headers=member_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "FILE_REQUIRED"

    def test_purchase_rejects_other_file_types(self, client, member_headers, package):
        response = client.post(
            f"{API}/purchase",
            data={"package_id": str(package.id)},
            files={"screenshot": ("receipt.pdf", b"%PDF-1.4", "application/pdf")},
            headers=member_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_FILE_TYPE"

    def test_purchase_unknown_package(self, client, member_headers):
        response = client.post(
            f"{API}/purchase",
            data={"package_id": "99999"},
            files={"screenshot": ("receipt.png", PNG, "image/png")},
            headers=member_headers,
        )
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "PACKAGE_NOT_FOUND"


class TestBookings:
    def test_book_and_cancel(self, client, member_headers, member_package, upcoming_class):
        response = client.post(
            f"{API}/bookings", json={"class_instance_id": upcoming_class.id}, headers=member_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["credits_remaining"] == 4
        assert data["booking"]["booked_for"] == "Self"
        booking_id = data["booking"]["id"]

        response = client.delete(f"{API}/bookings/{booking_id}", headers=member_headers)
        assert response.status_code == 200
        assert response.json()["credits_remaining"] == 5

    def test_book_without_credits(self, client, member_headers, upcoming_class):
        response = client.post(
            f"{API}/bookings", json={"class_instance_id": upcoming_class.id}, headers=member_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INSUFFICIENT_CREDITS"

    def test_double_booking_conflict(self, client, member_headers, member_package, upcoming_class):
        body = {"class_instance_id": upcoming_class.id}
        client.post(f"{API}/bookings", json=body, headers=member_headers)
        response = client.post(f"{API}/bookings", json=body, headers=member_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ALREADY_BOOKED"

    def test_book_for_child(self, client, member_headers, member_package, child, upcoming_class):
        response = client.post(
            f"{API}/bookings",
            json={"class_instance_id": upcoming_class.id, "child_id": child.id},
            headers=member_headers,
        )
        assert response.status_code == 201
        assert response.json()["booking"]["booked_for"] == "Kim Member"

    def test_dashboard(self, client, member_headers, member_package, upcoming_class, make_booking, member_user):
        make_booking(upcoming_class, member_user, member_package)

        response = client.get(f"{API}/dashboard", headers=member_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_credits"] == 5
        assert len(data["active_packages"]) == 1
        assert data["active_packages"][0]["is_expiring_soon"] is False
        assert [b["class_instance_id"] for b in data["upcoming_bookings"]] == [upcoming_class.id]
        assert data["past_bookings"] == []


class TestChildren:
    def test_child_lifecycle(self, client, member_headers):
        response = client.post(
            f"{API}/children", json={"first_name": " Leo ", "last_name": "Member", "age": 8}, headers=member_headers
        )
        assert response.status_code == 201
        child_id = response.json()["id"]
        assert response.json()["first_name"] == "Leo"

        response = client.put(f"{API}/children/{child_id}", json={"age": 9}, headers=member_headers)
        assert response.status_code == 200
        assert response.json()["age"] == 9

        listed = client.get(f"{API}/children", headers=member_headers).json()
        assert [c["id"] for c in listed] == [child_id]

        response = client.delete(f"{API}/children/{child_id}", headers=member_headers)
        assert response.status_code == 200
        assert client.get(f"{API}/children", headers=member_headers).json() == []

    def test_cannot_edit_other_members_child(self, client, child, other_member_headers):
        response = client.put(f"{API}/children/{child.id}", json={"age": 10}, headers=other_member_headers)
        assert response.status_code == 404

    def test_delete_child_refunds_and_removes_bookings(
        self, client, db, member_headers, member_package, child, upcoming_class
    ):
        child_id = child.id
        client.post(
            f"{API}/bookings",
            json={"class_instance_id": upcoming_class.id, "child_id": child_id},
            headers=member_headers,
        )
        client.post(f"{API}/bookings", json={"class_instance_id": upcoming_class.id}, headers=member_headers)

        response = client.delete(f"{API}/children/{child_id}", headers=member_headers)

        assert response.status_code == 200
        assert response.json()["refunded_bookings"] == 1
        db.refresh(member_package)
        assert member_package.sessions_remaining == 4

        refund = (
            db.query(CreditTransaction)
            .filter(
                CreditTransaction.member_package_id == member_package.id,
                CreditTransaction.transaction_type == CreditTransactionType.REFUND,
            )
            .one()
        )
        assert refund.credits_change == 1
        assert refund.balance_after == 4

        # Solo queda la reserva del propio miembro
        remaining = db.query(Booking).filter(Booking.class_instance_id == upcoming_class.id).all()
        assert [(b.child_id, b.status) for b in remaining] == [(None, BookingStatus.CONFIRMED)]

        response = client.post(
            f"{API}/bookings", json={"class_instance_id": upcoming_class.id}, headers=member_headers
        )
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "ALREADY_BOOKED"
