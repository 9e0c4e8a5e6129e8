from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from app.models.user import Role


class ActorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    full_name: Optional[str] = None
    role: Role


class CurrentUserOut(ActorOut):
    organization_id: int
    is_active: bool
    must_change_password: bool
