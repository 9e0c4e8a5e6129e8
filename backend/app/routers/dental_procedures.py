from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import CLINICAL_ROLES, get_current_user, ledger_http_error, require_roles
from app.models.user import User
from app.routers.patients import get_patient_or_404
from app.schemas.dental_procedure import (
    BridgeCreate,
    BridgeOut,
    DentalProcedureCreate,
    DentalProcedureOut,
    DentalProcedureUpdate,
    PaymentCreate,
    ProcedureRevisionOut,
    SealingCreate,
    UndoRequest,
    UndoResult,
)
from app.services import procedures as ledger
from app.services.chart_store import chart_hints
from app.services.errors import LedgerError
from app.services.procedure_revisions import list_revisions, redo_last, undo_last

patient_router = APIRouter(prefix="/patients/{patient_id}/dental-procedures", tags=["dental-procedures"])
router = APIRouter(prefix="/dental-procedures", tags=["dental-procedures"])


@patient_router.get("", response_model=list[DentalProcedureOut])
def list_patient_procedures(
    patient_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    patient = get_patient_or_404(db, patient_id, user)
    return ledger.list_procedures(db, patient)


@patient_router.post("", response_model=DentalProcedureOut, status_code=status.HTTP_201_CREATED)
def create_patient_procedure(
    patient_id: int,
    payload: DentalProcedureCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    patient = get_patient_or_404(db, patient_id, user)
    try:
        return ledger.create_procedure(db, patient=patient, actor=user, payload=payload)
    except LedgerError as exc:
        raise ledger_http_error(exc)


@patient_router.post(
    "/sealings", response_model=list[DentalProcedureOut], status_code=status.HTTP_201_CREATED
)
def create_patient_sealings(
    patient_id: int,
    payload: SealingCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    patient = get_patient_or_404(db, patient_id, user)
    tooth_types, _ = chart_hints(patient.dental_chart)
    try:
        return ledger.create_sealings(
            db,
            patient=patient,
            actor=user,
            tooth_numbers=payload.tooth_numbers,
            status=payload.status,
            when=payload.date,
            tooth_types=tooth_types,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)


@patient_router.post("/bridges", response_model=BridgeOut, status_code=status.HTTP_201_CREATED)
def create_patient_bridge(
    patient_id: int,
    payload: BridgeCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    patient = get_patient_or_404(db, patient_id, user)
    try:
        created, analysis = ledger.create_bridge(
            db,
            patient=patient,
            actor=user,
            bridge_teeth=payload.bridge_teeth,
            material=payload.material,
            status=payload.status,
            when=payload.date,
            notes=payload.notes,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)
    return BridgeOut(
        procedures=[DentalProcedureOut.model_validate(item) for item in created],
        analysis=analysis,
    )


@patient_router.post("/pay", response_model=list[DentalProcedureOut])
def pay_patient_procedures(
    patient_id: int,
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    patient = get_patient_or_404(db, patient_id, user)
    try:
        return ledger.pay_procedures(
            db,
            patient=patient,
            actor=user,
            procedure_ids=payload.procedure_ids,
            method=payload.method,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)


@patient_router.put("/{procedure_id}", response_model=DentalProcedureOut)
def update_patient_procedure(
    patient_id: int,
    procedure_id: int,
    payload: DentalProcedureUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    patient = get_patient_or_404(db, patient_id, user)
    try:
        return ledger.update_procedure(
            db,
            patient=patient,
            actor=user,
            procedure_id=procedure_id,
            changes=payload.model_dump(exclude_unset=True),
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)


@patient_router.delete("/{procedure_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient_procedure(
    patient_id: int,
    procedure_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    patient = get_patient_or_404(db, patient_id, user)
    try:
        ledger.delete_procedure(db, patient=patient, actor=user, procedure_id=procedure_id)
    except LedgerError as exc:
        raise ledger_http_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@patient_router.get("/{procedure_id}/revisions", response_model=list[ProcedureRevisionOut])
def list_procedure_revisions(
    patient_id: int,
    procedure_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    limit: int = Query(default=50, ge=1, le=200),
):
    patient = get_patient_or_404(db, patient_id, user)
    revisions = list_revisions(
        db, organization_id=user.organization_id, procedure_id=procedure_id, limit=limit
    )
    if not revisions:
        # Revisions outlive deleted procedures, so only a live lookup can 404 here.
        try:
            ledger.get_procedure(db, patient, procedure_id)
        except LedgerError as exc:
            raise ledger_http_error(exc)
    return [revision for revision in revisions if revision.patient_id == patient.id]


@router.post("/undo", response_model=UndoResult)
def undo(
    payload: UndoRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    try:
        revision = undo_last(
            db, actor=user, procedure_id=payload.procedure_id if payload else None
        )
    except LedgerError as exc:
        raise ledger_http_error(exc)
    return UndoResult(
        message=f"Undid {revision.action.value}",
        action=revision.action,
        procedure_id=revision.procedure_id,
        revision_id=revision.id,
    )


@router.post("/redo", response_model=UndoResult)
def redo(
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    try:
        revision = redo_last(db, actor=user)
    except LedgerError as exc:
        raise ledger_http_error(exc)
    return UndoResult(
        message=f"Redid {revision.action.value}",
        action=revision.action,
        procedure_id=revision.procedure_id,
        revision_id=revision.id,
    )
