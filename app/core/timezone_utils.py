"""
Utilidades para el manejo de zonas horarias del club.

Las fechas se guardan siempre en UTC; los horarios semanales ("HH:MM") y los
filtros por día se expresan en la zona horaria local del club (CLUB_TIMEZONE).
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
import pytz

from dateutil.relativedelta import relativedelta

from app.core.config import get_settings


def get_club_timezone(club_timezone: Optional[str] = None):
    return pytz.timezone(club_timezone or get_settings().CLUB_TIMEZONE)


def convert_naive_to_club_timezone(naive_dt: datetime, club_timezone: Optional[str] = None) -> datetime:
    """
    Interpreta un datetime naive como hora local del club y lo devuelve aware en esa zona.

    Args:
        naive_dt: Datetime naive que representa la hora local del club
        club_timezone: Zona horaria (por defecto CLUB_TIMEZONE)

    Returns:
        Datetime aware en la zona horaria del club
    """
    if naive_dt.tzinfo is not None:
        raise ValueError("El datetime debe ser naive (sin timezone)")

    tz = get_club_timezone(club_timezone)
    return tz.localize(naive_dt)


def convert_club_time_to_utc(naive_dt: datetime, club_timezone: Optional[str] = None) -> datetime:
    """Convierte un datetime naive (hora local del club) a UTC aware."""
    return convert_naive_to_club_timezone(naive_dt, club_timezone).astimezone(timezone.utc)


def convert_utc_to_local(utc_dt: datetime, club_timezone: Optional[str] = None) -> datetime:
    """
    Convierte un datetime UTC a hora local del club.

    Un datetime naive se asume en UTC.
    """
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)

    return utc_dt.astimezone(get_club_timezone(club_timezone))


def normalize_to_utc(dt: Optional[datetime], club_timezone: Optional[str] = None) -> Optional[datetime]:
    """
    Normaliza un datetime a UTC manejando entradas naive o aware.

    - Si `dt` es naive, se interpreta en la zona del club y se convierte a UTC.
    - Si `dt` es aware, se convierte directamente a UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return convert_club_time_to_utc(dt, club_timezone)
    return dt.astimezone(timezone.utc)


def get_current_time_in_club_timezone(club_timezone: Optional[str] = None) -> datetime:
    return datetime.now(timezone.utc).astimezone(get_club_timezone(club_timezone))


def club_today(club_timezone: Optional[str] = None) -> date:
    """Fecha de hoy según el calendario local del club."""
    return get_current_time_in_club_timezone(club_timezone).date()


def parse_hhmm(value: str) -> time:
    """
    Convierte "HH:MM" (24h) en un objeto time.

    Raises:
        ValueError: Si el formato no es válido
    """
    hours, minutes = value.split(":")
    if len(hours) != 2 or len(minutes) != 2:
        raise ValueError(f"Hora inválida: {value}")
    return time(int(hours), int(minutes))


def local_slot_to_utc(day: date, hhmm: str, club_timezone: Optional[str] = None) -> datetime:
    """Combina una fecha local del club con una hora "HH:MM" y devuelve el instante en UTC."""
    return convert_club_time_to_utc(datetime.combine(day, parse_hhmm(hhmm)), club_timezone)


def local_day_bounds_utc(day: date, club_timezone: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    Límites [inicio, fin) en UTC de un día del calendario local del club.
    """
    start = convert_club_time_to_utc(datetime.combine(day, time.min), club_timezone)
    end = convert_club_time_to_utc(datetime.combine(day + timedelta(days=1), time.min), club_timezone)
    return start, end


def start_of_month_utc(day: date, months_offset: int = 0, club_timezone: Optional[str] = None) -> datetime:
    """
    Inicio (00:00 local) del mes de `day` desplazado `months_offset` meses, expresado en UTC.
    """
    first = day.replace(day=1) + relativedelta(months=months_offset)
    return convert_club_time_to_utc(datetime.combine(first, time.min), club_timezone)


def club_weekday(day: date) -> int:
    """Día de la semana con 0=domingo ... 6=sábado."""
    return (day.weekday() + 1) % 7


def format_local(utc_dt: datetime, fmt: str = "%Y-%m-%d %H:%M", club_timezone: Optional[str] = None) -> str:
    return convert_utc_to_local(utc_dt, club_timezone).strftime(fmt)
