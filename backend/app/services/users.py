from __future__ import annotations

from datetime import datetime, timezone
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models.organization import Organization
from app.models.user import Role, User


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower().strip()))


def ensure_organization(db: Session, name: str) -> Organization:
    organization = db.scalar(select(Organization).where(Organization.name == name))
    if organization:
        return organization
    organization = Organization(name=name)
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


def create_user(
    db: Session,
    *,
    organization_id: int,
    email: str,
    password: str,
    full_name: str = "",
    role: Role = Role.reception,
    is_active: bool = True,
    must_change_password: bool = False,
) -> User:
    now = datetime.now(timezone.utc)
    user = User(
        organization_id=organization_id,
        email=email.lower().strip(),
        full_name=full_name,
        role=role,
        is_active=is_active,
        must_change_password=must_change_password,
        hashed_password=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def user_count(db: Session) -> int:
    return int(db.scalar(select(func.count(User.id))) or 0)


def seed_initial_admin(db: Session, *, organization_id: int, email: str, password: str) -> bool:
    if user_count(db) > 0:
        return False
    create_user(
        db,
        organization_id=organization_id,
        email=email,
        password=password,
        full_name="Admin",
        role=Role.superadmin,
        is_active=True,
        must_change_password=True,
    )
    return True
