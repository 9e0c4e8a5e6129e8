from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TenantMixin


class RevisionAction(str, enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"


class ProcedureRevision(Base, TenantMixin):
    """One ledger mutation, kept so the acting user can undo and redo it."""

    __tablename__ = "procedure_revisions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Not a foreign key: revisions outlive the procedure they describe.
    procedure_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), nullable=False, index=True)
    actor_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    action: Mapped[RevisionAction] = mapped_column(
        Enum(RevisionAction, name="procedure_revision_action"), nullable=False
    )
    before_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    undone_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    actor = relationship("User", lazy="joined")
