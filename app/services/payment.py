import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictException, FileUploadException, NotFoundException
from app.db.types import utcnow
from app.models.package import MemberPackage
from app.models.payment import Payment, PaymentStatus
from app.models.user import User
from app.repositories.location import location_repository
from app.repositories.package import package_repository
from app.repositories.payment import payment_repository
from app.services.credit import credit_service
from app.services.email import email_service
from app.services.pricing import pricing_service
from app.services.storage import storage_service

logger = logging.getLogger(__name__)


class PaymentService:
    async def submit_purchase(
        self,
        db: Session,
        *,
        user: User,
        package_id: int,
        location_id: Optional[int],
        screenshot: Optional[UploadFile]
    ) -> Dict[str, Any]:
        """
        Registra una compra pendiente de revisión con su comprobante.

        El importe se calcula en el servidor con la misma resolución de precios
        que ve el miembro en el catálogo.

        Raises:
            FileUploadException: FILE_REQUIRED, INVALID_FILE_TYPE, FILE_TOO_LARGE
            NotFoundException: PACKAGE_NOT_FOUND o LOCATION_NOT_FOUND
        """
        if screenshot is None or not screenshot.filename:
            raise FileUploadException("Payment screenshot is required", code="FILE_REQUIRED")

        package = package_repository.get_active_by_id(db, package_id)
        if not package:
            raise NotFoundException("Package not found", code="PACKAGE_NOT_FOUND")

        location = None
        if location_id is not None:
            location = location_repository.get_active_by_id(db, location_id)
            if not location:
                raise NotFoundException("Location not found", code="LOCATION_NOT_FOUND")

        quote = pricing_service.quote(db, user=user, package=package, location=location)
        screenshot_path = await storage_service.save_payment_screenshot(screenshot, user.id)

        payment = Payment(
            user_id=user.id,
            package_id=package.id,
            location_id=location.id if location else None,
            amount=quote["price"],
            vat_amount=quote["vat_amount"],
            vat_included=quote["include_vat"],
            total_amount=quote["total_price"],
            screenshot_path=screenshot_path,
            status=PaymentStatus.PENDING,
        )
        db.add(payment)
        try:
            db.commit()
        except Exception:
            db.rollback()
            storage_service.delete_file(screenshot_path)
            raise
        db.refresh(payment)

        logger.info(
            f"Pago {payment.id} enviado por usuario {user.id}: paquete {package.id}, "
            f"total {payment.total_amount} ({quote['price_type']})"
        )
        return {
            "message": "Payment submitted successfully. Your purchase will be reviewed by an administrator.",
            "payment": payment,
        }

    def get_member_payments(self, db: Session, *, user_id: int) -> List[Payment]:
        return payment_repository.get_by_user(db, user_id=user_id)

    def get_pending(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Payment]:
        return payment_repository.get_pending(db, skip=skip, limit=limit)

    def _get_pending_payment(self, db: Session, payment_id: int) -> Payment:
        payment = payment_repository.get_for_update(db, payment_id)
        if not payment:
            raise NotFoundException("Payment not found", code="PAYMENT_NOT_FOUND")
        if payment.status != PaymentStatus.PENDING:
            raise ConflictException(
                f"Payment has already been {payment.status.value}",
                code="PAYMENT_ALREADY_PROCESSED",
            )
        return payment

    def approve_payment(self, db: Session, *, payment_id: int, admin: User) -> Dict[str, Any]:
        """
        Aprueba un pago: crea el paquete del miembro y registra la compra en el libro.

        Raises:
            NotFoundException: PAYMENT_NOT_FOUND
            ConflictException: PAYMENT_ALREADY_PROCESSED
        """
        payment = self._get_pending_payment(db, payment_id)
        package = payment.package
        now = utcnow()

        try:
            member_package = MemberPackage(
                user_id=payment.user_id,
                package_id=package.id,
                sessions_total=package.session_count,
                sessions_remaining=package.session_count,
                purchase_date=now,
                expiry_date=now + timedelta(days=package.expiry_days),
                is_expired=False,
            )
            db.add(member_package)

            payment.status = PaymentStatus.APPROVED
            payment.reviewed_by = admin.id
            payment.reviewed_at = now
            db.add(payment)
            db.flush()

            credit_service.log_purchase(db, member_package=member_package, payment_id=payment.id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(payment)
        db.refresh(member_package)
        logger.info(
            f"Pago {payment.id} aprobado por admin {admin.id}: paquete {member_package.id} "
            f"con {member_package.sessions_total} créditos"
        )

        email_service.send_payment_receipt(payment, member_package)

        return {
            "message": "Payment approved and credits added",
            "payment": payment,
            "member_package": member_package,
        }

    def reject_payment(self, db: Session, *, payment_id: int, admin: User, reason: str) -> Dict[str, Any]:
        payment = self._get_pending_payment(db, payment_id)

        payment.status = PaymentStatus.REJECTED
        payment.rejection_reason = reason
        payment.reviewed_by = admin.id
        payment.reviewed_at = utcnow()
        db.add(payment)
        db.commit()
        db.refresh(payment)
        logger.info(f"Pago {payment.id} rechazado por admin {admin.id}")

        email_service.send_payment_rejected(payment)

        return {"message": "Payment rejected", "payment": payment}


payment_service = PaymentService()
