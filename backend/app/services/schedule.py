from __future__ import annotations

import logging
from datetime import date, time, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.clinic_schedule import ClinicSchedule, ScheduleOverride
from app.models.user import User
from app.services.audit import log_event
from app.services.errors import LedgerError, NotFoundError

logger = logging.getLogger("dental_chart.schedule")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def weekday_index(weekday_name: str) -> int:
    try:
        return WEEKDAYS.index(weekday_name.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown day of week: {weekday_name}") from None


def expand_weekday_dates(start: date, end: date, weekday_name: str) -> list[date]:
    target = weekday_index(weekday_name)
    if end < start:
        return []
    first = start + timedelta(days=(target - start.weekday()) % 7)
    dates = []
    current = first
    while current <= end:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def get_active_schedule(db: Session, *, organization_id: int, schedule_id: int) -> ClinicSchedule:
    schedule = db.scalar(
        select(ClinicSchedule)
        .where(ClinicSchedule.id == schedule_id)
        .where(ClinicSchedule.organization_id == organization_id)
        .where(ClinicSchedule.is_active.is_(True))
    )
    if schedule is None:
        raise NotFoundError("Schedule not found")
    return schedule


def list_overrides(db: Session, schedule: ClinicSchedule) -> list[ScheduleOverride]:
    stmt = (
        select(ScheduleOverride)
        .where(ScheduleOverride.schedule_id == schedule.id)
        .order_by(ScheduleOverride.date, ScheduleOverride.room_number, ScheduleOverride.id)
    )
    return list(db.scalars(stmt))


def _find_override(
    db: Session,
    *,
    schedule_id: int,
    target: date,
    room_number: int | None,
    practitioner_id: int | None,
) -> ScheduleOverride | None:
    stmt = (
        select(ScheduleOverride)
        .where(ScheduleOverride.schedule_id == schedule_id)
        .where(ScheduleOverride.date == target)
    )
    # NULL never equals NULL in SQL, so absent keys need IS NULL.
    if room_number is None:
        stmt = stmt.where(ScheduleOverride.room_number.is_(None))
    else:
        stmt = stmt.where(ScheduleOverride.room_number == room_number)
    if practitioner_id is None:
        stmt = stmt.where(ScheduleOverride.practitioner_id.is_(None))
    else:
        stmt = stmt.where(ScheduleOverride.practitioner_id == practitioner_id)
    return db.scalar(stmt)


def upsert_day_of_week_overrides(
    db: Session,
    *,
    schedule: ClinicSchedule,
    actor: User,
    day_of_week: str,
    is_unavailable: bool,
    room_number: int | None = None,
    practitioner_id: int | None = None,
    start_time: time | None = None,
    end_time: time | None = None,
    reason: str | None = None,
) -> list[ScheduleOverride]:
    if room_number is not None and not 1 <= room_number <= schedule.room_count:
        raise LedgerError(f"room_number must be between 1 and {schedule.room_count}")
    if start_time and end_time and end_time <= start_time:
        raise LedgerError("end_time must be after start_time")

    dates = expand_weekday_dates(schedule.start_date, schedule.end_date, day_of_week)
    overrides: list[ScheduleOverride] = []
    created = 0
    for target in dates:
        override = _find_override(
            db,
            schedule_id=schedule.id,
            target=target,
            room_number=room_number,
            practitioner_id=practitioner_id,
        )
        if override is None:
            override = ScheduleOverride(
                schedule_id=schedule.id,
                date=target,
                room_number=room_number,
                practitioner_id=practitioner_id,
            )
            created += 1
        override.start_time = start_time
        override.end_time = end_time
        override.is_unavailable = is_unavailable
        override.reason = reason
        db.add(override)
        overrides.append(override)
    db.flush()

    log_event(
        db,
        actor=actor,
        action="schedule.day_unavailable" if is_unavailable else "schedule.day_updated",
        entity_type="clinic_schedule",
        entity_id=str(schedule.id),
        after_data={
            "day_of_week": day_of_week,
            "room_number": room_number,
            "practitioner_id": practitioner_id,
            "start_time": start_time,
            "end_time": end_time,
            "is_unavailable": is_unavailable,
            "reason": reason,
            "dates": dates,
        },
    )
    db.commit()
    for override in overrides:
        db.refresh(override)
    logger.info(
        "Schedule %s: %s overrides for %s (%s new)",
        schedule.id,
        len(overrides),
        day_of_week,
        created,
    )
    return overrides
