from __future__ import annotations

from datetime import date

from sqlalchemy import JSON, Boolean, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import AuditMixin, Base, SoftDeleteMixin, TenantMixin


class Patient(Base, TenantMixin, AuditMixin, SoftDeleteMixin):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_code: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Long-term-care-act patients are only billed for the time-unit code.
    is_long_term_care: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Derived cache of the last chart the client saved; never authoritative.
    dental_chart: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    periodontal_charts: Mapped[list | None] = mapped_column(JSON, nullable=True)

    dental_procedures = relationship("DentalProcedure", back_populates="patient")
