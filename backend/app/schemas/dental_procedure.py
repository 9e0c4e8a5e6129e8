from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.dental_procedure import PaymentMethod, ProcedureStatus
from app.models.procedure_revision import RevisionAction
from app.schemas.actor import ActorOut
from app.schemas.dental_code import DentalCodeOut


class BridgeMember(BaseModel):
    tooth: int
    role: Literal["abutment", "pontic"]


class DentalProcedureCreate(BaseModel):
    code_id: Optional[int] = None
    code: Optional[str] = None
    tooth_number: Optional[int] = None
    surface: Optional[str] = None
    sub_surfaces: list[str] = Field(default_factory=list)
    material: Optional[str] = None
    bridge_teeth: Optional[list[BridgeMember]] = None
    status: ProcedureStatus = ProcedureStatus.pending
    date: Optional[datetime] = None
    notes: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    cost_cents: Optional[int] = Field(default=None, ge=0)
    practitioner_id: Optional[int] = None

    @model_validator(mode="after")
    def _code_reference(self):
        if self.code_id is None and not self.code:
            raise ValueError("code_id or code is required")
        return self


class DentalProcedureUpdate(BaseModel):
    date: Optional[datetime] = None
    notes: Optional[str] = None
    status: Optional[ProcedureStatus] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    sub_surfaces: Optional[list[str]] = None
    material: Optional[str] = None
    cost_cents: Optional[int] = Field(default=None, ge=0)


class DentalProcedureOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    code_id: int
    code: DentalCodeOut
    tooth_number: Optional[int] = None
    surface: Optional[str] = None
    sub_surfaces: list[str] = Field(default_factory=list)
    material: Optional[str] = None
    bridge_teeth: Optional[list[BridgeMember]] = None
    status: ProcedureStatus
    date: datetime
    notes: Optional[str] = None
    quantity: int
    cost_cents: Optional[int] = None
    is_paid: bool
    payment_amount_cents: Optional[int] = None
    payment_method: Optional[PaymentMethod] = None
    paid_at: Optional[datetime] = None
    practitioner: Optional[ActorOut] = None
    disables_tooth: bool
    created_at: datetime
    updated_at: datetime


class SealingCreate(BaseModel):
    tooth_numbers: list[int] = Field(min_length=1)
    status: ProcedureStatus = ProcedureStatus.pending
    date: Optional[datetime] = None


class BridgeCreate(BaseModel):
    bridge_teeth: list[BridgeMember] = Field(min_length=2)
    material: Literal["porcelain", "gold"] = "porcelain"
    status: ProcedureStatus = ProcedureStatus.in_progress
    date: Optional[datetime] = None
    notes: Optional[str] = None


class BridgeAnalysisOut(BaseModel):
    abutments: list[int]
    pontics: list[int]
    total_units: int
    bridge_type: str
    complexity: Literal["simple", "moderate", "complex"]
    needs_five_or_more_code: bool


class BridgeOut(BaseModel):
    procedures: list[DentalProcedureOut]
    analysis: BridgeAnalysisOut


class PaymentCreate(BaseModel):
    procedure_ids: list[int] = Field(min_length=1)
    method: PaymentMethod


class UndoRequest(BaseModel):
    procedure_id: Optional[int] = None


class ProcedureRevisionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    procedure_id: int
    patient_id: int
    action: RevisionAction
    actor: Optional[ActorOut] = None
    before_json: Optional[dict[str, Any]] = None
    after_json: Optional[dict[str, Any]] = None
    created_at: datetime
    undone_at: Optional[datetime] = None


class UndoResult(BaseModel):
    message: str
    action: RevisionAction
    procedure_id: int
    revision_id: int
