from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user, require_admin
from app.models.dental_code import DentalCode
from app.models.user import User
from app.schemas.dental_code import DentalCodeBulkResult, DentalCodeCreate, DentalCodeOut
from app.services.audit import log_event
from app.services.dental_codes import get_code_by_value, list_codes, upsert_codes

router = APIRouter(prefix="/dental-codes", tags=["dental-codes"])


@router.get("", response_model=list[DentalCodeOut])
def search_codes(
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
    search: str | None = Query(default=None),
):
    return list_codes(db, search)


@router.get("/{code_id}", response_model=DentalCodeOut)
def get_code(
    code_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    dental_code = db.get(DentalCode, code_id)
    if not dental_code:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dental code not found")
    return dental_code


@router.post("", response_model=DentalCodeOut, status_code=status.HTTP_201_CREATED)
def create_code(
    payload: DentalCodeCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    if get_code_by_value(db, payload.code):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Dental code already exists")
    upsert_codes(db, [payload.model_dump()])
    dental_code = get_code_by_value(db, payload.code)
    log_event(
        db,
        actor=user,
        action="dental_code.created",
        entity_type="dental_code",
        entity_id=str(dental_code.id),
        after_obj=dental_code,
    )
    db.commit()
    db.refresh(dental_code)
    return dental_code


@router.post("/bulk", response_model=DentalCodeBulkResult)
def bulk_upsert(
    payload: list[DentalCodeCreate],
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    created, updated = upsert_codes(db, [entry.model_dump(exclude_unset=True) for entry in payload])
    log_event(
        db,
        actor=user,
        action="dental_code.bulk_upserted",
        entity_type="dental_code",
        entity_id="bulk",
        after_data={"created": created, "updated": updated},
    )
    db.commit()
    return DentalCodeBulkResult(created=created, updated=updated)
