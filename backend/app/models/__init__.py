from app.models.base import Base
from app.models.organization import Organization
from app.models.user import Role, User
from app.models.audit_log import AuditLog
from app.models.patient import Patient
from app.models.dental_code import DentalCode
from app.models.dental_procedure import DentalProcedure, PaymentMethod, ProcedureStatus
from app.models.procedure_revision import ProcedureRevision, RevisionAction
from app.models.clinic_schedule import ClinicSchedule, ScheduleOverride

__all__ = [
    "Base",
    "Organization",
    "Role",
    "User",
    "AuditLog",
    "Patient",
    "DentalCode",
    "DentalProcedure",
    "PaymentMethod",
    "ProcedureStatus",
    "ProcedureRevision",
    "RevisionAction",
    "ClinicSchedule",
    "ScheduleOverride",
]
