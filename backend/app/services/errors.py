from __future__ import annotations

DISABLED_TOOTH_INDEX = "uq_dental_procedures_disabled_tooth"
# SQLite reports the indexed columns instead of the index name.
_DISABLED_TOOTH_COLUMNS = (
    "dental_procedures.patient_id, dental_procedures.tooth_number, dental_procedures.code_id"
)


class LedgerError(ValueError):
    status_code = 400

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(LedgerError):
    status_code = 404


class ToothAlreadyDisabledError(LedgerError):
    status_code = 409

    def __init__(self, detail: str = "Tooth is already disabled") -> None:
        super().__init__(detail)


class UndoError(LedgerError):
    pass


def is_disabled_tooth_conflict(exc: Exception) -> bool:
    """True when an IntegrityError comes from the one-disable-per-tooth index."""
    orig = getattr(exc, "orig", exc)
    diag = getattr(orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None):
        return diag.constraint_name == DISABLED_TOOTH_INDEX
    message = str(orig)
    return DISABLED_TOOTH_INDEX in message or _DISABLED_TOOTH_COLUMNS in message
