from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TenantMixin


class ProcedureStatus(str, enum.Enum):
    pending = "PENDING"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    cash = "CASH"
    card = "CARD"
    transfer = "TRANSFER"


class DentalProcedure(Base, TenantMixin):
    __tablename__ = "dental_procedures"
    __table_args__ = (
        # A tooth can only be disabled once; other codes may repeat freely.
        Index(
            "uq_dental_procedures_disabled_tooth",
            "patient_id",
            "tooth_number",
            "code_id",
            unique=True,
            postgresql_where=text("disables_tooth"),
            sqlite_where=text("disables_tooth = 1"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    code_id: Mapped[int] = mapped_column(ForeignKey("dental_codes.id"), nullable=False, index=True)
    tooth_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    surface: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sub_surfaces: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    material: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bridge_teeth: Mapped[list | None] = mapped_column(JSON, nullable=True)
    status: Mapped[ProcedureStatus] = mapped_column(
        Enum(ProcedureStatus, name="dental_procedure_status"),
        default=ProcedureStatus.pending,
        nullable=False,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    cost_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payment_amount_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        Enum(PaymentMethod, name="payment_method_enum"), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    practitioner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    disables_tooth: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    patient = relationship("Patient", back_populates="dental_procedures")
    code = relationship("DentalCode", lazy="joined")
    practitioner = relationship("User", foreign_keys=[practitioner_id], lazy="joined")
