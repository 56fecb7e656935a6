"""
Generación de clases concretas a partir de los horarios semanales.

Los horarios se expresan en hora local del club; cada clase se guarda en UTC.
La generación es idempotente: las clases ya existentes se detectan por
(schedule_id, inicio) y, para los horarios temporales, por (sede, inicio).
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.core.timezone_utils import club_today, club_weekday, local_day_bounds_utc, local_slot_to_utc
from app.models.schedule import ClassInstance, ClassSchedule
from app.repositories.schedule import class_instance_repository, class_schedule_repository

logger = logging.getLogger(__name__)


def _iter_days(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _override_covers(override: ClassSchedule, schedule: ClassSchedule, day: date) -> bool:
    return (
        override.location_id == schedule.location_id
        and override.day_of_week == schedule.day_of_week
        and override.start_time == schedule.start_time
        and override.override_start_date <= day <= override.override_end_date
    )


def _new_instance(schedule: ClassSchedule, start_utc: datetime) -> ClassInstance:
    return ClassInstance(
        class_type_id=schedule.class_type_id,
        coach_id=schedule.coach_id,
        location_id=schedule.location_id,
        schedule_id=schedule.id,
        start_time=start_utc,
        end_time=start_utc + timedelta(minutes=schedule.class_type.duration_minutes),
        capacity=schedule.capacity,
        is_cancelled=False,
    )


def generate_classes_from_schedules(
    db: Session,
    months_ahead: int = 2,
    from_date: Optional[date] = None,
    schedule_ids: Optional[List[int]] = None
) -> Dict[str, int]:
    """
    Genera las clases de los horarios activos entre from_date y from_date + months_ahead meses.

    Args:
        db: Sesión de base de datos
        months_ahead: Meses a generar desde from_date
        from_date: Primer día local a generar (por defecto hoy en el club)
        schedule_ids: Limitar la generación a estos horarios (los temporales
            activos se consultan siempre para respetar las sustituciones)

    Returns:
        {"created": n, "updated": n}
    """
    window_start = from_date or club_today()
    window_end = window_start + relativedelta(months=months_ahead)

    range_start_utc, _ = local_day_bounds_utc(window_start)
    _, range_end_utc = local_day_bounds_utc(window_end)

    # Una sola consulta para las clases existentes del rango
    existing = class_instance_repository.get_in_window(db, start=range_start_utc, end=range_end_utc)
    by_schedule: Dict[Tuple[int, datetime], ClassInstance] = {}
    by_location: Dict[Tuple[int, datetime], ClassInstance] = {}
    for instance in existing:
        if instance.schedule_id is not None:
            by_schedule[(instance.schedule_id, instance.start_time)] = instance
        by_location.setdefault((instance.location_id, instance.start_time), instance)

    schedules = class_schedule_repository.get_active_for_generation(db)
    overrides = [s for s in schedules if s.is_override]
    base_schedules = [s for s in schedules if not s.is_override]
    if schedule_ids is not None:
        wanted = set(schedule_ids)
        base_schedules = [s for s in base_schedules if s.id in wanted]
        targeted_overrides = [s for s in overrides if s.id in wanted]
    else:
        targeted_overrides = overrides

    created = 0
    updated = 0

    for schedule in base_schedules:
        for day in _iter_days(window_start, window_end):
            if club_weekday(day) != schedule.day_of_week:
                continue
            if any(_override_covers(o, schedule, day) for o in overrides):
                continue

            start_utc = local_slot_to_utc(day, schedule.start_time)
            if (schedule.id, start_utc) in by_schedule:
                continue

            instance = _new_instance(schedule, start_utc)
            db.add(instance)
            by_schedule[(schedule.id, start_utc)] = instance
            by_location.setdefault((schedule.location_id, start_utc), instance)
            created += 1

    for override in targeted_overrides:
        first_day = max(window_start, override.override_start_date)
        last_day = min(window_end, override.override_end_date)
        for day in _iter_days(first_day, last_day):
            if club_weekday(day) != override.day_of_week:
                continue

            start_utc = local_slot_to_utc(day, override.start_time)
            instance = by_location.get((override.location_id, start_utc))
            if instance is not None:
                if instance.schedule_id == override.id and not instance.is_cancelled:
                    continue
                instance.schedule_id = override.id
                instance.class_type_id = override.class_type_id
                instance.coach_id = override.coach_id
                instance.capacity = override.capacity
                instance.end_time = start_utc + timedelta(minutes=override.class_type.duration_minutes)
                instance.is_cancelled = False
                db.add(instance)
                updated += 1
            else:
                instance = _new_instance(override, start_utc)
                db.add(instance)
                by_location[(override.location_id, start_utc)] = instance
                created += 1
            by_schedule[(override.id, start_utc)] = instance

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Generación de clases {window_start}..{window_end}: {created} creadas, {updated} actualizadas"
    )
    return {"created": created, "updated": updated}
