from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.code_classification import CodeCategory


class DentalCodeBase(BaseModel):
    code: str = Field(min_length=1, max_length=32)
    description: str
    category: Optional[CodeCategory] = None
    section: Optional[str] = None
    points: Optional[float] = Field(default=None, ge=0)
    rate_cents: Optional[int] = Field(default=None, ge=0)
    requires_tooth: bool = False
    requires_surface: bool = False
    requires_jaw: bool = False
    is_per_element: bool = False
    requirements: Optional[dict[str, Any]] = None


class DentalCodeCreate(DentalCodeBase):
    pass


class DentalCodeOut(DentalCodeBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: CodeCategory
    created_at: datetime
    updated_at: datetime


class DentalCodeBulkResult(BaseModel):
    created: int
    updated: int
