from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.dental_procedure import DentalProcedure, PaymentMethod, ProcedureStatus
from app.models.procedure_revision import ProcedureRevision, RevisionAction
from app.models.user import User
from app.services.audit import log_event, snapshot_model
from app.services.errors import (
    ToothAlreadyDisabledError,
    UndoError,
    is_disabled_tooth_conflict,
)

logger = logging.getLogger("dental_chart.procedures")

# Fields an update (or a payment) may change, and therefore what undo restores.
RESTORABLE_FIELDS = (
    "date",
    "notes",
    "status",
    "quantity",
    "sub_surfaces",
    "material",
    "cost_cents",
    "is_paid",
    "payment_amount_cents",
    "payment_method",
    "paid_at",
)

_DATETIME_FIELDS = {"date", "paid_at", "created_at", "updated_at"}


def _parse_field(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key in _DATETIME_FIELDS and isinstance(value, str):
        return datetime.fromisoformat(value)
    if key == "status":
        return ProcedureStatus(value)
    if key == "payment_method":
        return PaymentMethod(value)
    return value


def _apply_snapshot(procedure: DentalProcedure, snapshot: dict, fields: tuple[str, ...]) -> None:
    for key in fields:
        if key in snapshot:
            setattr(procedure, key, _parse_field(key, snapshot[key]))


def _reinsert(db: Session, snapshot: dict) -> DentalProcedure:
    if db.get(DentalProcedure, snapshot["id"]) is not None:
        raise UndoError("Procedure already exists", 409)
    columns = {key: _parse_field(key, value) for key, value in snapshot.items()}
    procedure = DentalProcedure(**columns)
    db.add(procedure)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        if is_disabled_tooth_conflict(exc):
            raise ToothAlreadyDisabledError() from exc
        raise
    return procedure


def _prune(db: Session, procedure_id: int) -> None:
    retention = settings.procedure_revision_retention
    if retention <= 0:
        return
    keep_ids = select(ProcedureRevision.id).where(
        ProcedureRevision.procedure_id == procedure_id
    ).order_by(ProcedureRevision.id.desc()).limit(retention)
    db.execute(
        delete(ProcedureRevision)
        .where(ProcedureRevision.procedure_id == procedure_id)
        .where(ProcedureRevision.id.not_in(keep_ids.scalar_subquery()))
    )


def record_revision(
    db: Session,
    *,
    actor: User,
    procedure: DentalProcedure,
    action: RevisionAction,
    before: dict | None = None,
    after: dict | None = None,
) -> ProcedureRevision:
    # A fresh mutation invalidates whatever this user could still redo.
    db.execute(
        delete(ProcedureRevision)
        .where(ProcedureRevision.actor_user_id == actor.id)
        .where(ProcedureRevision.undone_at.is_not(None))
    )
    revision = ProcedureRevision(
        organization_id=actor.organization_id,
        procedure_id=procedure.id,
        patient_id=procedure.patient_id,
        actor_user_id=actor.id,
        action=action,
        before_json=before,
        after_json=after,
    )
    db.add(revision)
    db.flush()
    _prune(db, procedure.id)
    return revision


def list_revisions(
    db: Session, *, organization_id: int, procedure_id: int, limit: int = 50
) -> list[ProcedureRevision]:
    stmt = (
        select(ProcedureRevision)
        .where(ProcedureRevision.organization_id == organization_id)
        .where(ProcedureRevision.procedure_id == procedure_id)
        .order_by(ProcedureRevision.id.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))


def _revert(db: Session, revision: ProcedureRevision) -> None:
    procedure = db.get(DentalProcedure, revision.procedure_id)
    if revision.action == RevisionAction.create:
        if procedure is not None:
            db.delete(procedure)
    elif revision.action == RevisionAction.update:
        if procedure is None:
            raise UndoError("Procedure no longer exists", 409)
        _apply_snapshot(procedure, revision.before_json or {}, RESTORABLE_FIELDS)
    else:
        _reinsert(db, revision.before_json or {})


def _reapply(db: Session, revision: ProcedureRevision) -> None:
    procedure = db.get(DentalProcedure, revision.procedure_id)
    if revision.action == RevisionAction.create:
        _reinsert(db, revision.after_json or {})
    elif revision.action == RevisionAction.update:
        if procedure is None:
            raise UndoError("Procedure no longer exists", 409)
        _apply_snapshot(procedure, revision.after_json or {}, RESTORABLE_FIELDS)
    elif procedure is not None:
        db.delete(procedure)


def undo_last(
    db: Session, *, actor: User, procedure_id: int | None = None
) -> ProcedureRevision:
    stmt = (
        select(ProcedureRevision)
        .where(ProcedureRevision.actor_user_id == actor.id)
        .where(ProcedureRevision.organization_id == actor.organization_id)
        .where(ProcedureRevision.undone_at.is_(None))
    )
    if procedure_id is not None:
        stmt = stmt.where(ProcedureRevision.procedure_id == procedure_id)
    revision = db.scalar(stmt.order_by(ProcedureRevision.id.desc()).limit(1))
    if revision is None:
        raise UndoError("No actions to undo")

    before = snapshot_model(db.get(DentalProcedure, revision.procedure_id))
    _revert(db, revision)
    revision.undone_at = datetime.now(timezone.utc)
    db.flush()
    log_event(
        db,
        actor=actor,
        action=f"dental_procedure.undo_{revision.action.value}",
        entity_type="dental_procedure",
        entity_id=str(revision.procedure_id),
        before_data=before,
        after_obj=db.get(DentalProcedure, revision.procedure_id),
    )
    db.commit()
    logger.info(
        "Undid %s of procedure %s for user %s",
        revision.action.value,
        revision.procedure_id,
        actor.id,
    )
    return revision


def redo_last(db: Session, *, actor: User) -> ProcedureRevision:
    stmt = (
        select(ProcedureRevision)
        .where(ProcedureRevision.actor_user_id == actor.id)
        .where(ProcedureRevision.organization_id == actor.organization_id)
        .where(ProcedureRevision.undone_at.is_not(None))
        .order_by(ProcedureRevision.undone_at.desc(), ProcedureRevision.id.asc())
        .limit(1)
    )
    revision = db.scalar(stmt)
    if revision is None:
        raise UndoError("No actions to redo")

    before = snapshot_model(db.get(DentalProcedure, revision.procedure_id))
    _reapply(db, revision)
    revision.undone_at = None
    db.flush()
    log_event(
        db,
        actor=actor,
        action=f"dental_procedure.redo_{revision.action.value}",
        entity_type="dental_procedure",
        entity_id=str(revision.procedure_id),
        before_data=before,
        after_obj=db.get(DentalProcedure, revision.procedure_id),
    )
    db.commit()
    logger.info(
        "Redid %s of procedure %s for user %s",
        revision.action.value,
        revision.procedure_id,
        actor.id,
    )
    return revision
