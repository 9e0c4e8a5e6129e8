from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.models.dental_procedure import DentalProcedure
from app.models.patient import Patient
from app.models.user import User
from app.services.audit import log_event
from app.services.chart_reconciler import ChartProcedure, chart_to_json, is_valid_fdi, reconcile_chart
from app.services.procedures import list_procedures

DEFAULT_PERIODONTAL_CHART_TYPE = "INITIAL_ASSESSMENT"


def to_chart_procedure(procedure: DentalProcedure) -> ChartProcedure:
    bridge_teeth = tuple(
        (int(member["tooth"]), str(member["role"])) for member in procedure.bridge_teeth or []
    )
    return ChartProcedure(
        id=procedure.id,
        code=procedure.code.code,
        category=procedure.code.category,
        tooth_number=procedure.tooth_number,
        date=procedure.date,
        status=procedure.status.value,
        surface=procedure.surface,
        sub_surfaces=tuple(procedure.sub_surfaces or ()),
        material=procedure.material,
        bridge_teeth=bridge_teeth,
        sequence=procedure.id,
    )


def _tooth_key(value: Any) -> int | None:
    try:
        tooth = int(value)
    except (TypeError, ValueError):
        return None
    return tooth if is_valid_fdi(tooth) else None


def chart_hints(stored: dict | None) -> tuple[dict[int, str], list[int]]:
    """Tooth type hints and known teeth from a saved chart; nothing else is trusted."""
    if not isinstance(stored, dict):
        return {}, []
    tooth_types: dict[int, str] = {}
    for key, value in (stored.get("toothTypes") or {}).items():
        tooth = _tooth_key(key)
        if tooth is not None and value in {"molar", "premolar", "anterior"}:
            tooth_types[tooth] = value
    prior_teeth = [
        tooth for tooth in map(_tooth_key, (stored.get("teeth") or {}).keys()) if tooth is not None
    ]
    return tooth_types, prior_teeth


def build_chart(db: Session, patient: Patient) -> dict[str, Any]:
    tooth_types, prior_teeth = chart_hints(patient.dental_chart)
    procedures = [to_chart_procedure(procedure) for procedure in list_procedures(db, patient)]
    teeth = reconcile_chart(procedures, tooth_types=tooth_types, prior_teeth=prior_teeth)
    return {
        "teeth": chart_to_json(teeth),
        "toothTypes": {str(tooth): value for tooth, value in sorted(tooth_types.items())},
    }


def default_periodontal_chart(patient: Patient) -> dict[str, Any]:
    return {
        "teeth": {},
        "date": datetime.now(timezone.utc).isoformat(),
        "patientId": patient.id,
        "chartType": DEFAULT_PERIODONTAL_CHART_TYPE,
        "isExplicitlySaved": False,
    }


def latest_periodontal_chart(patient: Patient) -> dict[str, Any]:
    charts = patient.periodontal_charts or []
    if charts:
        return charts[-1]
    return default_periodontal_chart(patient)


def merge_periodontal_charts(existing: list[dict] | None, incoming: dict) -> list[dict]:
    charts = list(existing or [])
    # Explicit saves start a new snapshot; auto-saves keep rewriting the newest one.
    if incoming.get("isExplicitlySaved") or not charts:
        return charts + [incoming]
    return charts[:-1] + [incoming]


def strip_disabled_teeth(dental_chart: dict) -> dict:
    teeth = {}
    for key, tooth in (dental_chart.get("teeth") or {}).items():
        if isinstance(tooth, dict):
            if tooth.get("isDisabled"):
                continue
            tooth = {field: value for field, value in tooth.items() if field != "isDisabled"}
        teeth[key] = tooth
    return {**dental_chart, "teeth": teeth}


def dental_payload(db: Session, patient: Patient) -> dict[str, Any]:
    return {
        "dental_chart": build_chart(db, patient),
        "periodontal_chart": latest_periodontal_chart(patient),
        "procedures": list_procedures(db, patient),
    }


def save_chart(
    db: Session,
    *,
    patient: Patient,
    actor: User,
    dental_chart: dict | None = None,
    periodontal_chart: dict | None = None,
) -> Patient:
    before = {
        "dental_chart": patient.dental_chart,
        "periodontal_charts": len(patient.periodontal_charts or []),
    }
    if periodontal_chart is not None:
        patient.periodontal_charts = merge_periodontal_charts(
            patient.periodontal_charts, periodontal_chart
        )
    if dental_chart is not None:
        patient.dental_chart = strip_disabled_teeth(dental_chart)
    patient.updated_by_user_id = actor.id
    db.add(patient)
    log_event(
        db,
        actor=actor,
        action="patient.dental_chart_saved",
        entity_type="patient",
        entity_id=str(patient.id),
        before_data=before,
        after_data={
            "dental_chart": patient.dental_chart,
            "periodontal_charts": len(patient.periodontal_charts or []),
        },
    )
    db.commit()
    db.refresh(patient)
    return patient
