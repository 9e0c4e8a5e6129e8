from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user, ledger_http_error, require_roles
from app.models.clinic_schedule import ClinicSchedule
from app.models.user import User
from app.schemas.clinic_schedule import (
    ClinicScheduleCreate,
    ClinicScheduleOut,
    DayOfWeekOverrideIn,
    DayOfWeekOverrideResult,
    ScheduleOverrideOut,
)
from app.services.audit import log_event
from app.services.errors import LedgerError
from app.services.schedule import (
    get_active_schedule,
    list_overrides,
    upsert_day_of_week_overrides,
)

router = APIRouter(prefix="/clinic-schedule", tags=["clinic-schedule"])

SCHEDULE_ROLES = ("superadmin", "dentist", "reception")


@router.post("", response_model=ClinicScheduleOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ClinicScheduleCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*SCHEDULE_ROLES)),
):
    schedule = ClinicSchedule(
        organization_id=user.organization_id,
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        room_count=payload.room_count,
        is_active=True,
    )
    db.add(schedule)
    db.flush()
    log_event(
        db,
        actor=user,
        action="schedule.created",
        entity_type="clinic_schedule",
        entity_id=str(schedule.id),
        after_obj=schedule,
    )
    db.commit()
    db.refresh(schedule)
    return schedule


@router.get("/active", response_model=list[ClinicScheduleOut])
def list_active_schedules(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    stmt = (
        select(ClinicSchedule)
        .where(ClinicSchedule.organization_id == user.organization_id)
        .where(ClinicSchedule.is_active.is_(True))
        .order_by(ClinicSchedule.start_date.desc(), ClinicSchedule.id.desc())
    )
    return list(db.scalars(stmt))


@router.post("/day-of-week-overrides", response_model=DayOfWeekOverrideResult)
def apply_day_of_week_overrides(
    payload: DayOfWeekOverrideIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*SCHEDULE_ROLES)),
):
    try:
        schedule = get_active_schedule(
            db, organization_id=user.organization_id, schedule_id=payload.schedule_id
        )
        overrides = upsert_day_of_week_overrides(
            db,
            schedule=schedule,
            actor=user,
            day_of_week=payload.day_of_week,
            is_unavailable=payload.is_unavailable,
            room_number=payload.room_number,
            practitioner_id=payload.practitioner_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            reason=payload.reason,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    day = payload.day_of_week.strip().capitalize()
    if payload.is_unavailable:
        message = f"{day} marked as unavailable successfully"
    else:
        message = f"{day} schedule updated successfully"
    return DayOfWeekOverrideResult(
        message=message,
        dates=[override.date for override in overrides],
        overrides=[ScheduleOverrideOut.model_validate(override) for override in overrides],
    )


@router.get("/{schedule_id}/overrides", response_model=list[ScheduleOverrideOut])
def get_schedule_overrides(
    schedule_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        schedule = get_active_schedule(
            db, organization_id=user.organization_id, schedule_id=schedule_id
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)
    return list_overrides(db, schedule)
