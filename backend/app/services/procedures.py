from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.dental_code import DentalCode
from app.models.dental_procedure import DentalProcedure, PaymentMethod, ProcedureStatus
from app.models.patient import Patient
from app.models.procedure_revision import RevisionAction
from app.models.user import User
from app.services.audit import log_event, snapshot_model
from app.services.chart_reconciler import get_tooth_type, is_valid_fdi, sealing_surfaces
from app.services.code_classification import (
    DISABLED_CODE,
    FIRST_SEALING_CODE,
    NEXT_SEALING_CODE,
)
from app.services.dental_codes import get_code_by_value, procedure_cost_cents
from app.services.errors import (
    LedgerError,
    NotFoundError,
    ToothAlreadyDisabledError,
    is_disabled_tooth_conflict,
)
from app.services.procedure_revisions import record_revision

logger = logging.getLogger("dental_chart.procedures")

BRIDGE_CODES = {"porcelain": "R40", "gold": "R45"}
FIVE_OR_MORE_ABUTMENTS_CODE = "R49"
BRIDGE_ROLES = ("abutment", "pontic")


def as_utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def list_procedures(db: Session, patient: Patient) -> list[DentalProcedure]:
    stmt = (
        select(DentalProcedure)
        .where(DentalProcedure.patient_id == patient.id)
        .where(DentalProcedure.organization_id == patient.organization_id)
        .order_by(DentalProcedure.date.asc(), DentalProcedure.id.asc())
    )
    return list(db.scalars(stmt))


def get_procedure(db: Session, patient: Patient, procedure_id: int) -> DentalProcedure:
    procedure = db.get(DentalProcedure, procedure_id)
    if (
        procedure is None
        or procedure.patient_id != patient.id
        or procedure.organization_id != patient.organization_id
    ):
        raise NotFoundError("Procedure not found")
    return procedure


def resolve_code(db: Session, *, code_id: int | None = None, code: str | None = None) -> DentalCode:
    dental_code = None
    if code_id is not None:
        dental_code = db.get(DentalCode, code_id)
    elif code:
        dental_code = get_code_by_value(db, code)
    if dental_code is None:
        raise NotFoundError("Dental code not found")
    return dental_code


def resolve_practitioner(db: Session, patient: Patient, practitioner_id: int) -> User:
    practitioner = db.scalar(
        select(User)
        .where(User.id == practitioner_id)
        .where(User.organization_id == patient.organization_id)
    )
    if practitioner is None:
        raise NotFoundError("Practitioner not found")
    return practitioner


def normalize_bridge_teeth(bridge_teeth: Iterable[Any] | None) -> list[dict[str, Any]]:
    members: list[dict[str, Any]] = []
    seen: set[int] = set()
    for item in bridge_teeth or ():
        if isinstance(item, dict):
            tooth, role = item.get("tooth"), item.get("role")
        else:
            tooth, role = item.tooth, item.role
        if not is_valid_fdi(tooth):
            raise LedgerError(f"bridge_teeth contains invalid tooth number {tooth}")
        if role not in BRIDGE_ROLES:
            raise LedgerError(f"bridge_teeth role must be one of {', '.join(BRIDGE_ROLES)}")
        if tooth in seen:
            raise LedgerError(f"bridge_teeth lists tooth {tooth} twice")
        seen.add(tooth)
        members.append({"tooth": tooth, "role": role})
    return sorted(members, key=lambda member: member["tooth"])


def analyze_bridge(bridge_teeth: Iterable[dict[str, Any]]) -> dict[str, Any]:
    abutments = sorted(m["tooth"] for m in bridge_teeth if m["role"] == "abutment")
    pontics = sorted(m["tooth"] for m in bridge_teeth if m["role"] == "pontic")
    total_units = len(abutments) + len(pontics)

    if total_units >= 5:
        bridge_type = f"{total_units}-unit extended bridge"
    else:
        bridge_type = f"{total_units}-unit bridge"

    complexity = "simple"
    if total_units >= 5 or len(abutments) >= 4:
        complexity = "complex"
    elif total_units == 4 or len(pontics) >= 2:
        complexity = "moderate"

    return {
        "abutments": abutments,
        "pontics": pontics,
        "total_units": total_units,
        "bridge_type": bridge_type,
        "complexity": complexity,
        "needs_five_or_more_code": len(abutments) >= 5,
    }


def _validate_placement(
    dental_code: DentalCode,
    *,
    tooth_number: int | None,
    surface: str | None,
    sub_surfaces: list[str],
    bridge_teeth: list[dict[str, Any]],
) -> None:
    if dental_code.requires_tooth and tooth_number is None and not bridge_teeth:
        raise LedgerError(f"tooth_number is required for code {dental_code.code}")
    if tooth_number is not None and not is_valid_fdi(tooth_number):
        raise LedgerError("tooth_number must be a valid FDI tooth number (11-48)")
    if dental_code.requires_surface and not sub_surfaces and not surface:
        raise LedgerError(f"sub_surfaces is required for code {dental_code.code}")


def _disabled_exists(db: Session, patient: Patient, tooth_number: int, code_id: int) -> bool:
    stmt = (
        select(DentalProcedure.id)
        .where(DentalProcedure.patient_id == patient.id)
        .where(DentalProcedure.tooth_number == tooth_number)
        .where(DentalProcedure.code_id == code_id)
        .where(DentalProcedure.disables_tooth.is_(True))
    )
    return db.scalar(stmt.limit(1)) is not None


def _flush_new(db: Session, procedure: DentalProcedure) -> None:
    db.add(procedure)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        if is_disabled_tooth_conflict(exc):
            raise ToothAlreadyDisabledError() from exc
        raise


def _insert_procedure(
    db: Session,
    *,
    patient: Patient,
    actor: User,
    dental_code: DentalCode,
    tooth_number: int | None = None,
    surface: str | None = None,
    sub_surfaces: list[str] | None = None,
    material: str | None = None,
    bridge_teeth: list[dict[str, Any]] | None = None,
    status: ProcedureStatus = ProcedureStatus.pending,
    when: datetime | None = None,
    notes: str | None = None,
    quantity: int = 1,
    cost_cents: int | None = None,
    practitioner_id: int | None = None,
) -> DentalProcedure:
    sub_surfaces = list(sub_surfaces or [])
    bridge_teeth = list(bridge_teeth or [])
    _validate_placement(
        dental_code,
        tooth_number=tooth_number,
        surface=surface,
        sub_surfaces=sub_surfaces,
        bridge_teeth=bridge_teeth,
    )
    disables_tooth = dental_code.code.upper() == DISABLED_CODE
    if disables_tooth and _disabled_exists(db, patient, tooth_number, dental_code.id):
        raise ToothAlreadyDisabledError()

    now = datetime.now(timezone.utc)
    procedure = DentalProcedure(
        organization_id=patient.organization_id,
        patient_id=patient.id,
        code_id=dental_code.id,
        tooth_number=tooth_number,
        surface=surface,
        sub_surfaces=sub_surfaces,
        material=material,
        bridge_teeth=bridge_teeth or None,
        status=status,
        date=as_utc(when),
        notes=notes,
        quantity=quantity,
        cost_cents=procedure_cost_cents(
            dental_code,
            quantity=quantity,
            explicit_cost_cents=cost_cents,
            long_term_care=patient.is_long_term_care,
            point_value=settings.point_value,
        ),
        practitioner_id=practitioner_id,
        disables_tooth=disables_tooth,
        created_at=now,
        updated_at=now,
    )
    _flush_new(db, procedure)
    after = snapshot_model(procedure)
    record_revision(db, actor=actor, procedure=procedure, action=RevisionAction.create, after=after)
    log_event(
        db,
        actor=actor,
        action="dental_procedure.created",
        entity_type="dental_procedure",
        entity_id=str(procedure.id),
        after_data=after,
    )
    return procedure


def create_procedure(db: Session, *, patient: Patient, actor: User, payload) -> DentalProcedure:
    dental_code = resolve_code(db, code_id=payload.code_id, code=payload.code)
    practitioner = actor
    if payload.practitioner_id is not None:
        practitioner = resolve_practitioner(db, patient, payload.practitioner_id)
    procedure = _insert_procedure(
        db,
        patient=patient,
        actor=actor,
        dental_code=dental_code,
        tooth_number=payload.tooth_number,
        surface=payload.surface,
        sub_surfaces=payload.sub_surfaces,
        material=payload.material,
        bridge_teeth=normalize_bridge_teeth(payload.bridge_teeth),
        status=payload.status,
        when=payload.date,
        notes=payload.notes,
        quantity=payload.quantity,
        cost_cents=payload.cost_cents,
        practitioner_id=practitioner.id,
    )
    db.commit()
    db.refresh(procedure)
    logger.info(
        "Created procedure %s (%s) for patient %s", procedure.id, dental_code.code, patient.id
    )
    return procedure


def update_procedure(
    db: Session, *, patient: Patient, actor: User, procedure_id: int, changes: dict[str, Any]
) -> DentalProcedure:
    procedure = get_procedure(db, patient, procedure_id)
    before = snapshot_model(procedure)

    for field in ("notes", "status", "quantity", "sub_surfaces", "material", "cost_cents"):
        if field not in changes:
            continue
        if changes[field] is None and field in ("status", "quantity"):
            continue
        setattr(procedure, field, changes[field])
    if changes.get("date") is not None:
        procedure.date = as_utc(changes["date"])
    if "sub_surfaces" in changes and changes["sub_surfaces"] is None:
        procedure.sub_surfaces = []
    if "quantity" in changes and "cost_cents" not in changes:
        procedure.cost_cents = procedure_cost_cents(
            procedure.code,
            quantity=procedure.quantity,
            long_term_care=patient.is_long_term_care,
            point_value=settings.point_value,
        )
    procedure.updated_at = datetime.now(timezone.utc)
    db.flush()

    after = snapshot_model(procedure)
    record_revision(
        db,
        actor=actor,
        procedure=procedure,
        action=RevisionAction.update,
        before=before,
        after=after,
    )
    log_event(
        db,
        actor=actor,
        action="dental_procedure.updated",
        entity_type="dental_procedure",
        entity_id=str(procedure.id),
        before_data=before,
        after_data=after,
    )
    db.commit()
    db.refresh(procedure)
    return procedure


def delete_procedure(db: Session, *, patient: Patient, actor: User, procedure_id: int) -> None:
    procedure = get_procedure(db, patient, procedure_id)
    before = snapshot_model(procedure)
    record_revision(
        db, actor=actor, procedure=procedure, action=RevisionAction.delete, before=before
    )
    log_event(
        db,
        actor=actor,
        action="dental_procedure.deleted",
        entity_type="dental_procedure",
        entity_id=str(procedure.id),
        before_data=before,
    )
    db.delete(procedure)
    db.commit()
    logger.info("Deleted procedure %s for patient %s", procedure_id, patient.id)


def _sealed_today(db: Session, patient: Patient, code_id: int, when: datetime) -> bool:
    day_start = datetime.combine(when.date(), time.min, tzinfo=timezone.utc)
    stmt = (
        select(DentalProcedure.id)
        .where(DentalProcedure.organization_id == patient.organization_id)
        .where(DentalProcedure.patient_id == patient.id)
        .where(DentalProcedure.code_id == code_id)
        .where(DentalProcedure.date >= day_start)
        .where(DentalProcedure.date < day_start + timedelta(days=1))
        .where(DentalProcedure.status != ProcedureStatus.cancelled)
    )
    return db.scalar(stmt.limit(1)) is not None


def create_sealings(
    db: Session,
    *,
    patient: Patient,
    actor: User,
    tooth_numbers: list[int],
    status: ProcedureStatus = ProcedureStatus.pending,
    when: datetime | None = None,
    tooth_types: dict[int, str] | None = None,
) -> list[DentalProcedure]:
    teeth = sorted(set(tooth_numbers))
    if not teeth:
        raise LedgerError("tooth_numbers must not be empty")
    for tooth in teeth:
        if not is_valid_fdi(tooth):
            raise LedgerError(f"Invalid FDI tooth number {tooth}")

    first_code = resolve_code(db, code=FIRST_SEALING_CODE)
    next_code = resolve_code(db, code=NEXT_SEALING_CODE)
    # One timestamp for the whole session keeps the teeth adjacent in the ledger.
    shared_when = as_utc(when)
    first_taken = _sealed_today(db, patient, first_code.id, shared_when)
    tooth_types = tooth_types or {}

    created: list[DentalProcedure] = []
    for index, tooth in enumerate(teeth):
        dental_code = first_code if index == 0 and not first_taken else next_code
        tooth_type = tooth_types.get(tooth) or get_tooth_type(tooth)
        created.append(
            _insert_procedure(
                db,
                patient=patient,
                actor=actor,
                dental_code=dental_code,
                tooth_number=tooth,
                sub_surfaces=list(sealing_surfaces(tooth_type)),
                status=status,
                when=shared_when,
                practitioner_id=actor.id,
            )
        )
    db.commit()
    for procedure in created:
        db.refresh(procedure)
    logger.info("Created %s sealings for patient %s", len(created), patient.id)
    return created


def create_bridge(
    db: Session,
    *,
    patient: Patient,
    actor: User,
    bridge_teeth: Iterable[Any],
    material: str = "porcelain",
    status: ProcedureStatus = ProcedureStatus.in_progress,
    when: datetime | None = None,
    notes: str | None = None,
) -> tuple[list[DentalProcedure], dict[str, Any]]:
    members = normalize_bridge_teeth(bridge_teeth)
    analysis = analyze_bridge(members)
    if not analysis["abutments"] or not analysis["pontics"]:
        raise LedgerError("A bridge needs at least one abutment and one pontic")
    if material not in BRIDGE_CODES:
        raise LedgerError(f"material must be one of {', '.join(BRIDGE_CODES)}")

    shared_when = as_utc(when)
    bridge_code = resolve_code(db, code=BRIDGE_CODES[material])
    created = [
        _insert_procedure(
            db,
            patient=patient,
            actor=actor,
            dental_code=bridge_code,
            tooth_number=analysis["abutments"][0],
            material=material,
            bridge_teeth=members,
            status=status,
            when=shared_when,
            notes=notes or analysis["bridge_type"],
            quantity=analysis["total_units"],
            practitioner_id=actor.id,
        )
    ]
    if analysis["needs_five_or_more_code"]:
        created.append(
            _insert_procedure(
                db,
                patient=patient,
                actor=actor,
                dental_code=resolve_code(db, code=FIVE_OR_MORE_ABUTMENTS_CODE),
                status=status,
                when=shared_when,
                practitioner_id=actor.id,
            )
        )
    db.commit()
    for procedure in created:
        db.refresh(procedure)
    logger.info(
        "Created %s for patient %s (procedure %s)",
        analysis["bridge_type"],
        patient.id,
        created[0].id,
    )
    return created, analysis


def pay_procedures(
    db: Session,
    *,
    patient: Patient,
    actor: User,
    procedure_ids: list[int],
    method: PaymentMethod,
) -> list[DentalProcedure]:
    procedures = [get_procedure(db, patient, procedure_id) for procedure_id in procedure_ids]
    paid_at = datetime.now(timezone.utc)
    for procedure in procedures:
        before = snapshot_model(procedure)
        procedure.is_paid = True
        procedure.payment_amount_cents = procedure.cost_cents or 0
        procedure.payment_method = method
        procedure.paid_at = paid_at
        db.flush()
        after = snapshot_model(procedure)
        record_revision(
            db,
            actor=actor,
            procedure=procedure,
            action=RevisionAction.update,
            before=before,
            after=after,
        )
        log_event(
            db,
            actor=actor,
            action="dental_procedure.paid",
            entity_type="dental_procedure",
            entity_id=str(procedure.id),
            before_data=before,
            after_data=after,
        )
    db.commit()
    for procedure in procedures:
        db.refresh(procedure)
    return procedures
