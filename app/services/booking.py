import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    CancellationWindowException,
    ClassFullException,
    ConflictException,
    ForbiddenException,
    InsufficientCreditsException,
    NotFoundException,
    ValidationException,
)
from app.core.timezone_utils import format_local, local_day_bounds_utc
from app.db.types import utcnow
from app.models.booking import Booking, BookingStatus
from app.models.package import MemberPackage
from app.models.schedule import ClassInstance
from app.models.user import User, UserRole
from app.repositories.booking import booking_repository
from app.repositories.package import member_package_repository
from app.repositories.schedule import class_instance_repository
from app.repositories.user import child_repository, user_repository
from app.services.credit import credit_service
from app.services.email import email_service

logger = logging.getLogger(__name__)


class BookingService:
    def _get_bookable_class(self, db: Session, class_instance_id: int) -> ClassInstance:
        instance = class_instance_repository.get_with_relations(db, class_instance_id)
        if not instance:
            raise NotFoundException("Class not found", code="CLASS_NOT_FOUND")
        if instance.is_cancelled:
            raise ValidationException("This class has been cancelled", code="CLASS_CANCELLED")
        if instance.start_time <= utcnow():
            raise ValidationException("Cannot book a class that has already started", code="CLASS_IN_PAST")
        return instance

    def _select_credit_source(self, db: Session, user_id: int) -> MemberPackage:
        now = utcnow()
        member_package = member_package_repository.get_booking_source(db, user_id=user_id, now=now)
        if member_package:
            return member_package

        if member_package_repository.has_expired_credits(db, user_id=user_id, now=now):
            raise ValidationException(
                "Your session credits have expired. Please purchase a new package to book classes.",
                code="CREDITS_EXPIRED",
                details={"required": 1, "available": 0},
            )
        raise InsufficientCreditsException(
            "You do not have any available session credits. Please purchase a package to book classes.",
            details={"required": 1, "available": 0},
        )

    def _create(self, db: Session, *, user: User, class_instance_id: int, child_id: Optional[int]) -> Dict[str, Any]:
        if child_id is not None and not child_repository.get_for_parent(db, child_id=child_id, parent_id=user.id):
            raise ForbiddenException("Child does not belong to this member", code="INVALID_CHILD")

        instance = self._get_bookable_class(db, class_instance_id)

        # Las reservas concurrentes de la misma clase esperan aquí hasta el commit
        class_instance_repository.lock(db, instance.id)
        confirmed = booking_repository.count_confirmed(db, class_instance_id=instance.id)
        if confirmed >= instance.capacity:
            raise ClassFullException(
                "This class is fully booked",
                details={"capacity": instance.capacity, "booked": confirmed},
            )

        existing = booking_repository.get_by_triple(
            db, class_instance_id=instance.id, user_id=user.id, child_id=child_id
        )
        if existing and existing.status != BookingStatus.CANCELLED:
            raise ConflictException(
                "This child is already booked for this class" if child_id else "You are already booked for this class",
                code="ALREADY_BOOKED",
            )

        member_package = self._select_credit_source(db, user.id)

        try:
            if existing:
                # Reutilizar la reserva cancelada: la restricción única impide otra fila
                booking = existing
                booking.status = BookingStatus.CONFIRMED
                booking.member_package_id = member_package.id
                booking.booked_at = utcnow()
                booking.cancelled_at = None
                booking.attendance_marked_at = None
            else:
                booking = Booking(
                    class_instance_id=instance.id,
                    user_id=user.id,
                    child_id=child_id,
                    member_package_id=member_package.id,
                    status=BookingStatus.CONFIRMED,
                    booked_at=utcnow(),
                )
            db.add(booking)
            db.flush()
            credit_service.consume_for_booking(db, member_package=member_package, booking=booking)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictException("You are already booked for this class", code="ALREADY_BOOKED")
        except Exception:
            db.rollback()
            raise

        booking = booking_repository.get_with_class(db, booking.id)
        credits_remaining = member_package.sessions_remaining
        logger.info(
            f"Reserva {booking.id} creada: usuario {user.id}, clase {instance.id}, "
            f"paquete {member_package.id} (saldo {credits_remaining})"
        )

        email_service.send_booking_confirmation(user, booking, credits_remaining)

        return {
            "message": "Class booked successfully",
            "booking": booking,
            "credits_remaining": credits_remaining,
        }

    def create_booking(
        self, db: Session, *, user: User, class_instance_id: int, child_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Reserva de un miembro (para sí mismo o para un hijo).

        Raises:
            ForbiddenException: ACCOUNT_PAUSED, ACCOUNT_FROZEN o INVALID_CHILD
            NotFoundException: CLASS_NOT_FOUND
            ValidationException: CLASS_CANCELLED, CLASS_IN_PAST, CREDITS_EXPIRED
            ClassFullException / InsufficientCreditsException
            ConflictException: ALREADY_BOOKED
        """
        if user.is_frozen:
            raise ForbiddenException("Your account is frozen. Please contact the club.", code="ACCOUNT_FROZEN")
        if user.is_paused:
            raise ForbiddenException("Your account is paused. Please contact the club.", code="ACCOUNT_PAUSED")
        return self._create(db, user=user, class_instance_id=class_instance_id, child_id=child_id)

    def admin_create_booking(
        self, db: Session, *, user_id: int, class_instance_id: int, child_id: Optional[int] = None
    ) -> Dict[str, Any]:
        user = user_repository.get_active(db, user_id, role=UserRole.MEMBER)
        if not user:
            raise NotFoundException("Member not found", code="USER_NOT_FOUND")
        result = self._create(db, user=user, class_instance_id=class_instance_id, child_id=child_id)
        result["message"] = "Booking created successfully"
        return result

    def _cancel(self, db: Session, booking: Booking, *, notes: str) -> MemberPackage:
        try:
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = utcnow()
            db.add(booking)
            member_package = credit_service.refund_booking(db, booking=booking, notes=notes)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return member_package

    def cancel_booking(self, db: Session, *, user: User, booking_id: int) -> Dict[str, Any]:
        """
        Cancelación por el propio miembro, respetando la ventana de cancelación.

        Raises:
            NotFoundException: BOOKING_NOT_FOUND
            ForbiddenException: la reserva es de otro miembro
            ValidationException: ALREADY_CANCELLED o CLASS_IN_PAST
            CancellationWindowException: menos de CANCELLATION_WINDOW_HOURS antes del inicio
        """
        booking = booking_repository.get_with_class(db, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if booking.user_id != user.id:
            raise ForbiddenException("You can only cancel your own bookings")
        if booking.status == BookingStatus.CANCELLED:
            raise ValidationException("This booking is already cancelled", code="ALREADY_CANCELLED")
        if booking.status != BookingStatus.CONFIRMED:
            raise ValidationException("Only confirmed bookings can be cancelled", code="INVALID_STATUS")

        instance = booking.class_instance
        now = utcnow()
        if instance.start_time <= now:
            raise ValidationException("Cannot cancel a class that has already started", code="CLASS_IN_PAST")

        window = timedelta(hours=get_settings().CANCELLATION_WINDOW_HOURS)
        deadline = instance.start_time - window
        if now > deadline:
            minutes_until_class = int((instance.start_time - now).total_seconds() // 60)
            raise CancellationWindowException(
                f"Bookings can only be cancelled at least {get_settings().CANCELLATION_WINDOW_HOURS} hour(s) before the class",
                details={
                    "minutes_until_class": minutes_until_class,
                    "cancellation_deadline": deadline.isoformat(),
                },
            )

        member_package = self._cancel(
            db,
            booking,
            notes=f"Cancellation refund for {instance.class_type.name} on {format_local(instance.start_time)}",
        )
        logger.info(f"Reserva {booking.id} cancelada por el miembro {user.id}")

        email_service.send_booking_cancellation(user, booking, 1)

        return {
            "message": "Booking cancelled successfully. 1 credit has been refunded.",
            "booking_id": booking.id,
            "credits_refunded": 1,
            "credits_remaining": member_package.sessions_remaining,
        }

    def admin_cancel_booking(self, db: Session, *, booking_id: int) -> Dict[str, Any]:
        """Cancelación administrativa: sin ventana de cancelación, siempre devuelve el crédito"""
        booking = booking_repository.get_with_class(db, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if booking.status == BookingStatus.CANCELLED:
            raise ValidationException("This booking is already cancelled", code="ALREADY_CANCELLED")

        instance = booking.class_instance
        member_package = self._cancel(
            db,
            booking,
            notes=(
                f"Admin cancellation refund for {instance.class_type.name} "
                f"on {format_local(instance.start_time, '%Y-%m-%d')}"
            ),
        )
        logger.info(f"Reserva {booking.id} cancelada por un administrador")

        email_service.send_booking_cancellation(booking.user, booking, 1)

        return {
            "message": "Booking cancelled and credit refunded",
            "booking_id": booking.id,
            "credits_refunded": 1,
            "credits_remaining": member_package.sessions_remaining,
        }

    def refund_confirmed_for_class(self, db: Session, *, instance: ClassInstance, reason: str) -> int:
        """
        Cancela y reembolsa las reservas confirmadas de una clase.

        No hace commit: se usa dentro de cancelaciones o borrados de clases y sedes.

        Returns:
            int: Número de reservas reembolsadas
        """
        refunded = 0
        for booking in booking_repository.get_confirmed_for_class(db, class_instance_id=instance.id):
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = utcnow()
            db.add(booking)
            credit_service.refund_booking(
                db,
                booking=booking,
                notes=f"{reason}: {instance.class_type.name} on {format_local(instance.start_time, '%Y-%m-%d')}",
            )
            refunded += 1
        return refunded

    def list_bookings(
        self,
        db: Session,
        *,
        class_instance_id: Optional[int] = None,
        user_id: Optional[int] = None,
        day: Optional[date] = None,
        status: Optional[BookingStatus] = None,
        skip: int = 0,
        limit: int = 200
    ) -> List[Booking]:
        start = end = None
        if day is not None:
            start, end = local_day_bounds_utc(day)
        return booking_repository.search(
            db,
            class_instance_id=class_instance_id,
            user_id=user_id,
            status=status,
            start=start,
            end=end,
            skip=skip,
            limit=limit,
        )


booking_service = BookingService()
