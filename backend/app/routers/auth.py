from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.security import create_access_token, verify_password
from app.core.settings import settings
from app.db.session import get_db
from app.deps import get_current_user
from app.models.user import User
from app.schemas.actor import CurrentUserOut
from app.schemas.auth import LoginRequest, Token
from app.services.audit import log_event
from app.services.rate_limit import SlidingWindowLimiter
from app.services.users import get_user_by_email

router = APIRouter(prefix="/auth", tags=["auth"])

LOGIN_LIMITER = SlidingWindowLimiter(
    max_events=settings.login_attempts_per_minute, window_seconds=60
)
LOGIN_IP_LIMITER = SlidingWindowLimiter(
    max_events=settings.login_attempts_per_minute * 2, window_seconds=60
)


@router.post("/login", response_model=Token)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    ip_address = request.client.host if request.client else "unknown"
    rate_key = f"{ip_address}:{payload.email.lower().strip()}"
    if not LOGIN_LIMITER.hit(rate_key) or not LOGIN_IP_LIMITER.hit(ip_address):
        wait = max(LOGIN_LIMITER.retry_after(rate_key), LOGIN_IP_LIMITER.retry_after(ip_address))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts",
            headers={"Retry-After": str(wait)},
        )

    user = get_user_by_email(db, payload.email)
    if user and not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token(
        subject=str(user.id),
        organization_id=user.organization_id,
        secret=settings.secret_key,
        alg=settings.jwt_alg,
        expires_minutes=settings.access_token_expire_minutes,
        extra={"role": user.role.value, "email": user.email},
    )
    LOGIN_LIMITER.reset(rate_key)
    log_event(
        db,
        actor=user,
        action="auth.login",
        entity_type="user",
        entity_id=str(user.id),
        ip_address=ip_address,
    )
    db.commit()
    return Token(access_token=token, must_change_password=user.must_change_password)


@router.get("/me", response_model=CurrentUserOut)
def me(user: User = Depends(get_current_user)):
    return user
