"""
Caducidad de paquetes y avisos por email.

Se ejecuta desde las tareas programadas (ver app/core/scheduler.py); cada función
recibe la sesión y devuelve el número de paquetes procesados.
"""
import logging
import math
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.types import utcnow
from app.repositories.package import member_package_repository
from app.services.credit import credit_service
from app.services.email import email_service

logger = logging.getLogger(__name__)


def _days_left(expiry_date: datetime, now: datetime) -> int:
    return max(math.ceil((expiry_date - now).total_seconds() / 86400), 0)


def check_expired_packages(db: Session) -> int:
    """
    Marca como caducados los paquetes vencidos y pone su saldo a cero.

    Los créditos perdidos quedan en el libro como una transacción "expiry".
    """
    now = utcnow()
    packages = member_package_repository.get_due_for_expiry(db, now=now)
    try:
        for member_package in packages:
            credit_service.expire_package(db, member_package=member_package)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Paquetes caducados: {len(packages)}")
    return len(packages)


def check_expiring_packages(db: Session) -> int:
    """Aviso a los miembros con créditos en paquetes que caducan en EXPIRY_WARNING_DAYS días"""
    now = utcnow()
    end = now + timedelta(days=get_settings().EXPIRY_WARNING_DAYS)
    packages = member_package_repository.get_expiring_between(db, start=now, end=end, with_credits=True)
    for member_package in packages:
        email_service.send_expiry_warning(member_package, _days_left(member_package.expiry_date, now))

    logger.info(f"Avisos de caducidad enviados: {len(packages)}")
    return len(packages)


def check_renewal_reminders(db: Session) -> int:
    """Recordatorio de renovación para paquetes que caducan en RENEWAL_REMINDER_DAYS días"""
    now = utcnow()
    end = now + timedelta(days=get_settings().RENEWAL_REMINDER_DAYS)
    packages = member_package_repository.get_expiring_between(db, start=now, end=end)
    for member_package in packages:
        email_service.send_renewal_reminder(member_package, _days_left(member_package.expiry_date, now))

    logger.info(f"Recordatorios de renovación enviados: {len(packages)}")
    return len(packages)
