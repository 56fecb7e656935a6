"""
Informes de administración: asistencia, ingresos y estadísticas del panel.

Los rangos de fechas son días del calendario local del club (ambos incluidos);
sin fechas se usa el mes en curso hasta hoy.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationException
from app.core.timezone_utils import club_today, convert_utc_to_local, local_day_bounds_utc, start_of_month_utc
from app.db.types import utcnow
from app.models.booking import BookingStatus
from app.models.user import UserRole
from app.repositories.booking import booking_repository
from app.repositories.payment import payment_repository
from app.repositories.schedule import class_instance_repository
from app.repositories.user import user_repository

logger = logging.getLogger(__name__)

TOP_CLASSES_LIMIT = 10

ATTENDANCE_CSV_HEADER = [
    "Class", "Location", "Coach", "Date", "Total Attendees", "Attended", "No Shows", "No Show Rate"
]
REVENUE_CSV_HEADER = ["Package", "Session Count", "Sales Count", "Total Revenue"]


def _rate(part: int, total: int) -> float:
    return round(part * 100 / total, 2) if total else 0.0


def _resolve_range(start_date: Optional[date], end_date: Optional[date]) -> Tuple[date, date]:
    today = club_today()
    start_date = start_date or today.replace(day=1)
    end_date = end_date or today
    if end_date < start_date:
        raise ValidationException("end_date must not be before start_date", code="INVALID_DATE_RANGE")
    return start_date, end_date


def _to_csv(columns: List[str], data: List[Dict[str, Any]]) -> str:
    """CSV con cabecera fija; un informe vacío devuelve solo la cabecera"""
    df = pd.DataFrame(data, columns=columns)
    return df.to_csv(index=False, lineterminator="\n")


class ReportService:
    def attendance_report(
        self, db: Session, *, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Informe de asistencia a partir de las reservas marcadas (attended / no_show).

        Las tasas de ausencia son porcentajes con dos decimales.
        """
        start_date, end_date = _resolve_range(start_date, end_date)
        start, _ = local_day_bounds_utc(start_date)
        _, end = local_day_bounds_utc(end_date)
        bookings = booking_repository.get_attendance_between(db, start=start, end=end)

        by_class: Dict[int, Dict[str, Any]] = {}
        details = []
        for booking in bookings:
            instance = booking.class_instance
            row = by_class.get(instance.id)
            if row is None:
                row = by_class[instance.id] = {
                    "class_instance_id": instance.id,
                    "class_name": instance.class_type.name,
                    "location": instance.location.name,
                    "coach": instance.coach.full_name,
                    "start_time": instance.start_time,
                    "total_attendees": 0,
                    "attended": 0,
                    "no_shows": 0,
                }
            row["total_attendees"] += 1
            if booking.status == BookingStatus.ATTENDED:
                row["attended"] += 1
            else:
                row["no_shows"] += 1

            details.append({
                "booking_id": booking.id,
                "member_name": booking.user.full_name,
                "booked_for": booking.booked_for,
                "class_name": instance.class_type.name,
                "location": instance.location.name,
                "coach": instance.coach.full_name,
                "start_time": instance.start_time,
                "status": booking.status.value,
            })

        for row in by_class.values():
            row["no_show_rate"] = _rate(row["no_shows"], row["total_attendees"])

        # Más recientes primero
        class_rows = sorted(by_class.values(), key=lambda r: r["start_time"], reverse=True)
        top_classes = sorted(class_rows, key=lambda r: r["attended"], reverse=True)[:TOP_CLASSES_LIMIT]

        total_attended = sum(r["attended"] for r in class_rows)
        total_no_shows = sum(r["no_shows"] for r in class_rows)
        return {
            "start_date": start_date,
            "end_date": end_date,
            "total_bookings": len(bookings),
            "total_attended": total_attended,
            "total_no_shows": total_no_shows,
            "no_show_rate": _rate(total_no_shows, len(bookings)),
            "by_class": class_rows,
            "top_classes": top_classes,
            "details": details,
        }

    def attendance_csv(self, report: Dict[str, Any]) -> str:
        data = [
            {
                "Class": r["class_name"],
                "Location": r["location"],
                "Coach": r["coach"],
                "Date": convert_utc_to_local(r["start_time"]).date().isoformat(),
                "Total Attendees": r["total_attendees"],
                "Attended": r["attended"],
                "No Shows": r["no_shows"],
                "No Show Rate": f"{r['no_show_rate']:.2f}%",
            }
            for r in report["by_class"]
        ]
        return _to_csv(ATTENDANCE_CSV_HEADER, data)

    def revenue_report(
        self, db: Session, *, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Ingresos de los pagos aprobados según la fecha de revisión.

        Los importes son sin IVA; el IVA se informa aparte en total_vat.
        """
        start_date, end_date = _resolve_range(start_date, end_date)
        start, _ = local_day_bounds_utc(start_date)
        _, end = local_day_bounds_utc(end_date)
        payments = payment_repository.get_approved_between(db, start=start, end=end)
        pending_count, pending_amount = payment_repository.pending_totals(db)

        by_package: Dict[int, Dict[str, Any]] = {}
        by_location: Dict[Optional[int], Dict[str, Any]] = {}
        total_revenue = Decimal("0")
        total_vat = Decimal("0")
        for payment in payments:
            amount = Decimal(payment.amount)
            total_revenue += amount
            total_vat += Decimal(payment.vat_amount or 0)

            package_row = by_package.setdefault(payment.package_id, {
                "package_id": payment.package_id,
                "package_name": payment.package.name,
                "session_count": payment.package.session_count,
                "sales_count": 0,
                "total_revenue": Decimal("0"),
            })
            package_row["sales_count"] += 1
            package_row["total_revenue"] += amount

            location_row = by_location.setdefault(payment.location_id, {
                "location_id": payment.location_id,
                "location_name": payment.location.name if payment.location else "N/A",
                "sales_count": 0,
                "total_revenue": Decimal("0"),
            })
            location_row["sales_count"] += 1
            location_row["total_revenue"] += amount

        return {
            "start_date": start_date,
            "end_date": end_date,
            "total_revenue": total_revenue,
            "total_vat": total_vat,
            "approved_count": len(payments),
            "pending_count": pending_count,
            "pending_amount": pending_amount,
            "by_package": sorted(by_package.values(), key=lambda r: r["total_revenue"], reverse=True),
            "by_location": sorted(by_location.values(), key=lambda r: r["total_revenue"], reverse=True),
        }

    def revenue_csv(self, report: Dict[str, Any]) -> str:
        data = [
            {
                "Package": r["package_name"],
                "Session Count": r["session_count"],
                "Sales Count": r["sales_count"],
                "Total Revenue": f"{r['total_revenue']:.2f}",
            }
            for r in report["by_package"]
        ]
        return _to_csv(REVENUE_CSV_HEADER, data)

    def dashboard_stats(self, db: Session) -> Dict[str, Any]:
        """Contadores del panel de administración. La semana empieza en domingo."""
        now = utcnow()
        today = club_today()
        today_start, today_end = local_day_bounds_utc(today)
        # weekday(): lunes=0; retrocedemos hasta el domingo anterior (o hoy)
        week_start, _ = local_day_bounds_utc(today - timedelta(days=(today.weekday() + 1) % 7))

        return {
            "total_members": user_repository.count_by_role(db, role=UserRole.MEMBER),
            "total_coaches": user_repository.count_by_role(db, role=UserRole.COACH),
            "pending_payments": payment_repository.count_pending(db),
            "total_bookings": booking_repository.count_not_cancelled(db),
            "today_bookings": booking_repository.count_not_cancelled(db, start=today_start, end=today_end),
            "week_bookings": booking_repository.count_not_cancelled(db, start=week_start),
            "upcoming_classes": class_instance_repository.count_upcoming(db, start=now),
            "today_classes": class_instance_repository.count_upcoming(db, start=today_start, end=today_end),
            "total_revenue": payment_repository.approved_total(db),
            "month_revenue": payment_repository.approved_total(db, since=start_of_month_utc(today)),
        }


report_service = ReportService()
