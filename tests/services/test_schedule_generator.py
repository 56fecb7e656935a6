"""
Tests de la generación de clases a partir de horarios semanales.

Enero de 2030 en El Cairo es UTC+2: un horario "18:00" local genera clases
a las 16:00 UTC. Los lunes del mes son 7, 14, 21 y 28.
"""

from datetime import date, datetime, timezone

import pytest

from app.models.schedule import ClassInstance, ClassSchedule
from app.services.schedule_generator import generate_classes_from_schedules

JAN_2030 = date(2030, 1, 1)


@pytest.fixture
def make_schedule(db, class_type, coach_user, location):
    def _make(day_of_week=1, start_time="18:00", capacity=12, coach=None, **extra):
        schedule = ClassSchedule(
            class_type_id=class_type.id,
            coach_id=(coach or coach_user).id,
            location_id=location.id,
            day_of_week=day_of_week,
            start_time=start_time,
            capacity=capacity,
            is_active=extra.pop("is_active", True),
            is_override=extra.pop("is_override", False),
            **extra,
        )
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule
    return _make


def _instances(db):
    return db.query(ClassInstance).order_by(ClassInstance.start_time).all()


class TestScheduleGenerator:
    """Generación idempotente de clases."""

    def test_generates_weekly_instances_in_utc(self, db, make_schedule):
        schedule = make_schedule()

        result = generate_classes_from_schedules(db, months_ahead=1, from_date=JAN_2030)

        assert result == {"created": 4, "updated": 0}
        instances = _instances(db)
        assert [i.start_time for i in instances] == [
            datetime(2030, 1, d, 16, 0, tzinfo=timezone.utc) for d in (7, 14, 21, 28)
        ]
        first = instances[0]
        assert first.schedule_id == schedule.id
        assert first.capacity == 12
        assert (first.end_time - first.start_time).total_seconds() == 60 * 60

    def test_generation_is_idempotent(self, db, make_schedule):
        make_schedule()
        generate_classes_from_schedules(db, months_ahead=1, from_date=JAN_2030)

        result = generate_classes_from_schedules(db, months_ahead=1, from_date=JAN_2030)

        assert result == {"created": 0, "updated": 0}
        assert len(_instances(db)) == 4

    def test_inactive_schedules_are_skipped(self, db, make_schedule):
        make_schedule(is_active=False)
        assert generate_classes_from_schedules(db, months_ahead=1, from_date=JAN_2030)["created"] == 0

    def test_override_replaces_base_slot(self, db, make_schedule, other_coach):
        make_schedule()
        override = make_schedule(
            coach=other_coach,
            capacity=6,
            is_override=True,
            override_start_date=date(2030, 1, 14),
            override_end_date=date(2030, 1, 20),
        )

        result = generate_classes_from_schedules(db, months_ahead=1, from_date=JAN_2030)

        assert result == {"created": 4, "updated": 0}
        covered = [i for i in _instances(db) if i.schedule_id == override.id]
        assert len(covered) == 1
        assert covered[0].start_time.day == 14
        assert covered[0].coach_id == other_coach.id
        assert covered[0].capacity == 6

    def test_late_override_updates_existing_instance(self, db, make_schedule, other_coach):
        make_schedule()
        generate_classes_from_schedules(db, months_ahead=1, from_date=JAN_2030)
        override = make_schedule(
            coach=other_coach,
            is_override=True,
            override_start_date=date(2030, 1, 21),
            override_end_date=date(2030, 1, 21),
        )

        result = generate_classes_from_schedules(
            db, months_ahead=1, from_date=JAN_2030, schedule_ids=[override.id]
        )

        assert result == {"created": 0, "updated": 1}
        instances = _instances(db)
        assert len(instances) == 4
        assert instances[2].schedule_id == override.id
        assert instances[2].coach_id == other_coach.id

    def test_schedule_ids_limit_base_generation(self, db, make_schedule):
        first = make_schedule(day_of_week=1)
        make_schedule(day_of_week=3)

        result = generate_classes_from_schedules(
            db, months_ahead=1, from_date=JAN_2030, schedule_ids=[first.id]
        )

        assert result["created"] == 4
        assert {i.schedule_id for i in _instances(db)} == {first.id}
