"""
Libro de créditos.

Toda modificación de sessions_remaining pasa por este servicio y deja un
CreditTransaction cuyo balance_after es el saldo del paquete tras el cambio.
Los métodos internos no hacen commit; el llamador cierra la transacción.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import NotFoundException
from app.db.types import utcnow
from app.models.booking import Booking
from app.models.credit import CreditTransactionType
from app.models.package import MemberPackage
from app.models.user import UserRole
from app.repositories.credit import credit_transaction_repository
from app.repositories.package import member_package_repository
from app.repositories.user import user_repository

logger = logging.getLogger(__name__)


class CreditService:
    def consume_for_booking(self, db: Session, *, member_package: MemberPackage, booking: Booking) -> None:
        member_package.sessions_remaining -= 1
        db.add(member_package)
        db.flush()
        credit_transaction_repository.log(
            db,
            member_package=member_package,
            transaction_type=CreditTransactionType.BOOKING,
            credits_change=-1,
            booking_id=booking.id,
            notes=f"Booking #{booking.id}",
        )

    def refund_booking(self, db: Session, *, booking: Booking, notes: str) -> MemberPackage:
        """
        Devuelve el crédito de una reserva a su paquete de origen.

        Returns:
            MemberPackage: Paquete con el saldo actualizado
        """
        member_package = booking.member_package
        member_package.sessions_remaining += 1
        db.add(member_package)
        db.flush()
        credit_transaction_repository.log(
            db,
            member_package=member_package,
            transaction_type=CreditTransactionType.REFUND,
            credits_change=1,
            booking_id=booking.id,
            notes=notes,
        )
        logger.info(f"Crédito devuelto por reserva {booking.id}: saldo {member_package.sessions_remaining}")
        return member_package

    def log_purchase(self, db: Session, *, member_package: MemberPackage, payment_id: int) -> None:
        credit_transaction_repository.log(
            db,
            member_package=member_package,
            transaction_type=CreditTransactionType.PURCHASE,
            credits_change=member_package.sessions_total,
            notes=f"Payment #{payment_id} approved",
        )

    def expire_package(self, db: Session, *, member_package: MemberPackage) -> None:
        remaining = member_package.sessions_remaining
        member_package.is_expired = True
        if remaining > 0:
            member_package.sessions_remaining = 0
            db.add(member_package)
            db.flush()
            credit_transaction_repository.log(
                db,
                member_package=member_package,
                transaction_type=CreditTransactionType.EXPIRY,
                credits_change=-remaining,
                notes=f"{remaining} credit(s) expired from package: {member_package.package.name}",
            )
        else:
            db.add(member_package)
            db.flush()

    def manual_refund(self, db: Session, *, user_id: int, credits: int, reason: str) -> Dict[str, Any]:
        """
        Devolución manual de créditos por un administrador.

        Destino: el paquete activo que más tarde caduca; si no hay, el último comprado.
        Un paquete caducado se reactiva con REFUND_REACTIVATION_DAYS días de vigencia.

        Raises:
            NotFoundException: USER_NOT_FOUND o NO_PACKAGE_FOUND
        """
        user = user_repository.get_active(db, user_id, role=UserRole.MEMBER)
        if not user:
            raise NotFoundException("Member not found", code="USER_NOT_FOUND")

        now = utcnow()
        target: Optional[MemberPackage] = member_package_repository.get_latest_active(db, user_id=user_id, now=now)
        if target is None:
            target = member_package_repository.get_latest_purchased(db, user_id=user_id)
        if target is None:
            raise NotFoundException("Member has no packages to refund to", code="NO_PACKAGE_FOUND")

        reactivated = False
        try:
            if target.is_expired or target.expiry_date <= now:
                target.is_expired = False
                target.expiry_date = now + timedelta(days=get_settings().REFUND_REACTIVATION_DAYS)
                reactivated = True

            target.sessions_remaining += credits
            db.add(target)
            db.flush()
            credit_transaction_repository.log(
                db,
                member_package=target,
                transaction_type=CreditTransactionType.REFUND,
                credits_change=credits,
                notes=f"Admin manual refund: {reason}",
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Devolución manual de {credits} crédito(s) al usuario {user_id} "
            f"en paquete {target.id} (reactivado={reactivated})"
        )
        return {
            "message": f"{credits} credit(s) refunded successfully",
            "member_package_id": target.id,
            "credits_refunded": credits,
            "balance_after": target.sessions_remaining,
            "reactivated": reactivated,
        }


credit_service = CreditService()
