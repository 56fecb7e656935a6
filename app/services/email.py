"""
Envío de correos transaccionales por SMTP.

Si SMTP no está configurado el mensaje solo se registra en el log. Un fallo de
envío nunca debe interrumpir la operación que lo originó: todos los métodos
devuelven bool y registran el error.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from app.core.config import get_settings
from app.core.timezone_utils import format_local
from app.models.booking import Booking
from app.models.package import MemberPackage
from app.models.payment import Payment
from app.models.user import User

logger = logging.getLogger(__name__)


class EmailService:
    def send(self, to_email: str, subject: str, body: str, body_html: Optional[str] = None) -> bool:
        settings = get_settings()
        if not settings.emails_enabled:
            logger.info(f"SMTP no configurado; correo omitido para {to_email}: {subject}")
            return False

        if body_html:
            msg = MIMEMultipart("alternative")
            msg.attach(MIMEText(body, "plain", "utf-8"))
            msg.attach(MIMEText(body_html, "html", "utf-8"))
        else:
            msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = formataddr((settings.EMAILS_FROM_NAME, str(settings.EMAILS_FROM_EMAIL)))
        msg["To"] = to_email

        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=15) as server:
                if settings.SMTP_TLS:
                    server.starttls()
                if settings.SMTP_USER and settings.SMTP_PASSWORD:
                    server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                server.send_message(msg)
            logger.info(f"Correo enviado a {to_email}: {subject}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error enviando correo a {to_email}: {e}", exc_info=True)
            return False

    def _class_line(self, booking: Booking) -> str:
        instance = booking.class_instance
        return (
            f"{instance.class_type.name} at {instance.location.name} "
            f"on {format_local(instance.start_time, '%A %d %B %Y, %H:%M')}"
        )

    def send_booking_confirmation(self, user: User, booking: Booking, credits_remaining: int) -> bool:
        body = (
            f"Hi {user.first_name},\n\n"
            f"Your booking for {booking.booked_for} is confirmed: {self._class_line(booking)}.\n"
            f"Credits remaining: {credits_remaining}.\n\n"
            "See you at the club!"
        )
        return self.send(user.email, "Booking confirmed", body)

    def send_booking_cancellation(self, user: User, booking: Booking, credits_refunded: int) -> bool:
        body = (
            f"Hi {user.first_name},\n\n"
            f"Your booking for {booking.booked_for} ({self._class_line(booking)}) was cancelled.\n"
            f"Credits refunded: {credits_refunded}."
        )
        return self.send(user.email, "Booking cancelled", body)

    def send_payment_receipt(self, payment: Payment, member_package: MemberPackage) -> bool:
        user = payment.user
        body = (
            f"Hi {user.first_name},\n\n"
            f"Your payment #{payment.id} for {payment.package.name} was approved.\n"
            f"Amount: {payment.amount}\n"
            f"VAT: {payment.vat_amount}\n"
            f"Total: {payment.total_amount}\n\n"
            f"{member_package.sessions_total} credits were added to your account, "
            f"valid until {format_local(member_package.expiry_date, '%d %B %Y')}."
        )
        return self.send(user.email, f"Payment receipt #{payment.id}", body)

    def send_payment_rejected(self, payment: Payment) -> bool:
        user = payment.user
        body = (
            f"Hi {user.first_name},\n\n"
            f"Your payment #{payment.id} for {payment.package.name} could not be approved.\n"
            f"Reason: {payment.rejection_reason}\n\n"
            "Please contact the club or submit a new payment proof."
        )
        return self.send(user.email, "Payment rejected", body)

    def send_expiry_warning(self, member_package: MemberPackage, days_left: int) -> bool:
        user = member_package.user
        body = (
            f"Hi {user.first_name},\n\n"
            f"Your {member_package.package.name} package expires in {days_left} day(s) "
            f"with {member_package.sessions_remaining} credit(s) left. Book a class before they expire!"
        )
        return self.send(user.email, "Your credits are about to expire", body)

    def send_renewal_reminder(self, member_package: MemberPackage, days_left: int) -> bool:
        user = member_package.user
        settings = get_settings()
        body = (
            f"Hi {user.first_name},\n\n"
            f"Your {member_package.package.name} package expires in {days_left} day(s). "
            f"Renew it at {settings.FRONTEND_URL}/purchase to keep training."
        )
        return self.send(user.email, "Time to renew your package", body)


email_service = EmailService()
