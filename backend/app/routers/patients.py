from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user
from app.models.patient import Patient
from app.models.user import User
from app.schemas.patient import PatientCreate, PatientOut
from app.services.audit import log_event

router = APIRouter(prefix="/patients", tags=["patients"])


def get_patient_or_404(db: Session, patient_id: int, user: User) -> Patient:
    patient = db.scalar(
        select(Patient)
        .where(Patient.id == patient_id)
        .where(Patient.organization_id == user.organization_id)
        .where(Patient.deleted_at.is_(None))
    )
    if not patient:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


@router.get("", response_model=list[PatientOut])
def list_patients(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    q: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
):
    stmt = (
        select(Patient)
        .where(Patient.organization_id == user.organization_id)
        .where(Patient.deleted_at.is_(None))
    )
    if q and q.strip():
        like = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                Patient.first_name.ilike(like),
                Patient.last_name.ilike(like),
                Patient.patient_code.ilike(like),
            )
        )
    stmt = stmt.order_by(Patient.last_name, Patient.first_name).limit(limit)
    return list(db.scalars(stmt))


@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    patient = Patient(
        **payload.model_dump(),
        organization_id=user.organization_id,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    db.add(patient)
    db.flush()
    log_event(
        db,
        actor=user,
        action="patient.created",
        entity_type="patient",
        entity_id=str(patient.id),
        after_obj=patient,
    )
    db.commit()
    db.refresh(patient)
    return patient


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return get_patient_or_404(db, patient_id, user)
