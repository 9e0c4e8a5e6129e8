from typing import Any, Optional

from pydantic import BaseModel

from app.schemas.dental_procedure import DentalProcedureOut


class DentalDataIn(BaseModel):
    dental_chart: Optional[dict[str, Any]] = None
    periodontal_chart: Optional[dict[str, Any]] = None


class DentalDataOut(BaseModel):
    dental_chart: dict[str, Any]
    periodontal_chart: dict[str, Any]
    procedures: list[DentalProcedureOut]
