from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class DentalCode(Base):
    __tablename__ = "dental_codes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    section: Mapped[str | None] = mapped_column(String(120), nullable=True)
    points: Mapped[float | None] = mapped_column(Float, nullable=True)
    rate_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    requires_tooth: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requires_surface: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requires_jaw: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_per_element: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requirements: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
