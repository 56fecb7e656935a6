"""
Tests del servicio de reservas.

Cubren el descuento de créditos, las validaciones de reserva y la
cancelación con devolución de crédito.
"""

from unittest.mock import patch

import pytest

from app.core.exceptions import (
    CancellationWindowException,
    ClassFullException,
    ConflictException,
    ForbiddenException,
    InsufficientCreditsException,
    NotFoundException,
    ValidationException,
)
from app.models.booking import BookingStatus
from app.models.credit import CreditTransaction, CreditTransactionType
from app.repositories.schedule import class_instance_repository
from app.services.booking import booking_service


def _transactions(db, member_package):
    return (
        db.query(CreditTransaction)
        .filter(CreditTransaction.member_package_id == member_package.id)
        .order_by(CreditTransaction.id)
        .all()
    )


class TestCreateBooking:
    """Reservas creadas por el propio miembro."""

    def test_booking_consumes_one_credit(self, db, member_user, member_package, upcoming_class):
        result = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

        assert result["message"] == "Class booked successfully"
        assert result["credits_remaining"] == 4
        assert result["booking"].status == BookingStatus.CONFIRMED
        assert result["booking"].member_package_id == member_package.id

        db.refresh(member_package)
        assert member_package.sessions_remaining == 4

    def test_booking_writes_ledger_entry(self, db, member_user, member_package, upcoming_class):
        result = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

        transactions = _transactions(db, member_package)
        assert len(transactions) == 1
        assert transactions[0].transaction_type == CreditTransactionType.BOOKING
        assert transactions[0].credits_change == -1
        assert transactions[0].booking_id == result["booking"].id
        assert transactions[0].balance_after == 4

    def test_uses_package_that_expires_first(self, db, member_user, make_member_package, upcoming_class):
        late = make_member_package(member_user, credits=5, days=60)
        early = make_member_package(member_user, credits=2, days=10)

        result = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

        assert result["booking"].member_package_id == early.id
        db.refresh(late)
        assert late.sessions_remaining == 5

    def test_no_credits(self, db, member_user, upcoming_class):
        with pytest.raises(InsufficientCreditsException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        assert exc_info.value.code == "INSUFFICIENT_CREDITS"

    def test_empty_package_is_not_used(self, db, member_user, make_member_package, upcoming_class):
        make_member_package(member_user, credits=0)
        with pytest.raises(InsufficientCreditsException):
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

    def test_expired_credits(self, db, member_user, make_member_package, upcoming_class):
        make_member_package(member_user, credits=3, days=-1)
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        assert exc_info.value.code == "CREDITS_EXPIRED"

    def test_class_full(self, db, member_user, other_member, make_member_package, make_class, make_booking):
        instance = make_class(capacity=1)
        make_booking(instance, other_member, make_member_package(other_member))
        make_member_package(member_user)

        with pytest.raises(ClassFullException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=instance.id)
        assert exc_info.value.details == {"capacity": 1, "booked": 1}

    def test_cancelled_bookings_do_not_take_seats(
        self, db, member_user, other_member, make_member_package, make_class, make_booking
    ):
        instance = make_class(capacity=1)
        make_booking(instance, other_member, make_member_package(other_member), status=BookingStatus.CANCELLED)
        make_member_package(member_user)

        result = booking_service.create_booking(db, user=member_user, class_instance_id=instance.id)
        assert result["booking"].id is not None

    def test_already_booked(self, db, member_user, member_package, upcoming_class):
        booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        with pytest.raises(ConflictException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        assert exc_info.value.code == "ALREADY_BOOKED"

        db.refresh(member_package)
        assert member_package.sessions_remaining == 4

    def test_already_booked_despite_older_cancelled_row(
        self, db, member_user, member_package, upcoming_class, make_booking
    ):
        make_booking(upcoming_class, member_user, member_package, status=BookingStatus.CANCELLED)
        make_booking(upcoming_class, member_user, member_package)

        with pytest.raises(ConflictException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        assert exc_info.value.code == "ALREADY_BOOKED"

        db.refresh(member_package)
        assert member_package.sessions_remaining == 5

    def test_member_and_child_can_share_a_class(self, db, member_user, member_package, child, upcoming_class):
        booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        result = booking_service.create_booking(
            db, user=member_user, class_instance_id=upcoming_class.id, child_id=child.id
        )

        assert result["booking"].child_id == child.id
        assert result["credits_remaining"] == 3

    def test_child_of_another_member(self, db, other_member, make_member_package, child, upcoming_class):
        make_member_package(other_member)
        with pytest.raises(ForbiddenException) as exc_info:
            booking_service.create_booking(
                db, user=other_member, class_instance_id=upcoming_class.id, child_id=child.id
            )
        assert exc_info.value.code == "INVALID_CHILD"

    def test_class_not_found(self, db, member_user, member_package):
        with pytest.raises(NotFoundException):
            booking_service.create_booking(db, user=member_user, class_instance_id=999999)

    def test_cancelled_class(self, db, member_user, member_package, make_class):
        instance = make_class(is_cancelled=True)
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=instance.id)
        assert exc_info.value.code == "CLASS_CANCELLED"

    def test_class_in_past(self, db, member_user, member_package, make_class):
        instance = make_class(hours_from_now=-2)
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=instance.id)
        assert exc_info.value.code == "CLASS_IN_PAST"

    @pytest.mark.parametrize("flag, code", [("is_paused", "ACCOUNT_PAUSED"), ("is_frozen", "ACCOUNT_FROZEN")])
    def test_blocked_accounts(self, db, member_user, member_package, upcoming_class, flag, code):
        setattr(member_user, flag, True)
        db.commit()

        with pytest.raises(ForbiddenException) as exc_info:
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)
        assert exc_info.value.code == code

    def test_confirmation_email_is_sent(self, db, member_user, member_package, upcoming_class):
        with patch("app.services.booking.email_service") as mock_email:
            result = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

        mock_email.send_booking_confirmation.assert_called_once_with(member_user, result["booking"], 4)

    def test_class_row_is_locked_before_capacity_check(self, db, member_user, member_package, upcoming_class):
        with patch(
            "app.services.booking.class_instance_repository.lock",
            wraps=class_instance_repository.lock,
        ) as mock_lock:
            booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

        mock_lock.assert_called_once_with(db, upcoming_class.id)


class TestCancelBooking:
    """Cancelación por el miembro y por el administrador."""

    def test_cancel_refunds_credit(self, db, member_user, member_package, upcoming_class):
        booking = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)["booking"]

        result = booking_service.cancel_booking(db, user=member_user, booking_id=booking.id)

        assert result["credits_refunded"] == 1
        assert result["credits_remaining"] == 5
        db.refresh(booking)
        assert booking.status == BookingStatus.CANCELLED
        assert booking.cancelled_at is not None

        transactions = _transactions(db, member_package)
        assert [t.transaction_type for t in transactions] == [
            CreditTransactionType.BOOKING,
            CreditTransactionType.REFUND,
        ]
        assert [t.balance_after for t in transactions] == [4, 5]

    def test_rebook_after_cancel_reuses_booking(self, db, member_user, member_package, upcoming_class):
        booking = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)["booking"]
        booking_service.cancel_booking(db, user=member_user, booking_id=booking.id)

        result = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)

        assert result["booking"].id == booking.id
        assert result["booking"].status == BookingStatus.CONFIRMED
        assert result["booking"].cancelled_at is None

    def test_cancel_inside_window(self, db, member_user, member_package, make_class, make_booking):
        instance = make_class(hours_from_now=0.5)
        booking = make_booking(instance, member_user, member_package)

        with pytest.raises(CancellationWindowException) as exc_info:
            booking_service.cancel_booking(db, user=member_user, booking_id=booking.id)
        assert "minutes_until_class" in exc_info.value.details

        db.refresh(member_package)
        assert member_package.sessions_remaining == 5

    def test_cancel_other_members_booking(self, db, member_user, other_member, member_package, upcoming_class, make_booking):
        booking = make_booking(upcoming_class, member_user, member_package)
        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(db, user=other_member, booking_id=booking.id)

    def test_cancel_twice(self, db, member_user, member_package, upcoming_class):
        booking = booking_service.create_booking(db, user=member_user, class_instance_id=upcoming_class.id)["booking"]
        booking_service.cancel_booking(db, user=member_user, booking_id=booking.id)

        with pytest.raises(ValidationException) as exc_info:
            booking_service.cancel_booking(db, user=member_user, booking_id=booking.id)
        assert exc_info.value.code == "ALREADY_CANCELLED"

    def test_admin_cancel_ignores_window(self, db, member_user, member_package, make_class, make_booking):
        instance = make_class(hours_from_now=0.5)
        booking = make_booking(instance, member_user, member_package)

        result = booking_service.admin_cancel_booking(db, booking_id=booking.id)

        assert result["message"] == "Booking cancelled and credit refunded"
        assert result["credits_remaining"] == 6

    def test_admin_create_booking_for_member(self, db, member_user, member_package, upcoming_class):
        result = booking_service.admin_create_booking(
            db, user_id=member_user.id, class_instance_id=upcoming_class.id
        )
        assert result["message"] == "Booking created successfully"
        assert result["booking"].user_id == member_user.id

    def test_admin_create_booking_unknown_member(self, db, coach_user, upcoming_class):
        with pytest.raises(NotFoundException) as exc_info:
            booking_service.admin_create_booking(db, user_id=coach_user.id, class_instance_id=upcoming_class.id)
        assert exc_info.value.code == "USER_NOT_FOUND"
