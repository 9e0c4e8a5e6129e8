from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import CLINICAL_ROLES, get_current_user, require_roles
from app.models.user import User
from app.routers.patients import get_patient_or_404
from app.schemas.dental_chart import DentalDataIn, DentalDataOut
from app.services.chart_store import build_chart, dental_payload, save_chart

router = APIRouter(prefix="/patients/{patient_id}", tags=["dental-chart"])


@router.get("/dental", response_model=DentalDataOut)
def get_dental_data(
    patient_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    patient = get_patient_or_404(db, patient_id, user)
    return dental_payload(db, patient)


@router.post("/dental", response_model=DentalDataOut)
def save_dental_data(
    patient_id: int,
    payload: DentalDataIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*CLINICAL_ROLES)),
):
    patient = get_patient_or_404(db, patient_id, user)
    patient = save_chart(
        db,
        patient=patient,
        actor=user,
        dental_chart=payload.dental_chart,
        periodontal_chart=payload.periodontal_chart,
    )
    return dental_payload(db, patient)


@router.get("/dental/chart")
def get_reconciled_chart(
    patient_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> dict[str, Any]:
    patient = get_patient_or_404(db, patient_id, user)
    return build_chart(db, patient)["teeth"]


@router.get("/periodontal-charts")
def list_periodontal_charts(
    patient_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[dict[str, Any]]:
    patient = get_patient_or_404(db, patient_id, user)
    return list(patient.periodontal_charts or [])
