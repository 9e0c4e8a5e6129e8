import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.settings import settings, validate_settings
from app.db.session import SessionLocal, engine
from app.models import Base
from app.routers.auth import router as auth_router
from app.routers.clinic_schedule import router as clinic_schedule_router
from app.routers.dental_chart import router as dental_chart_router
from app.routers.dental_codes import router as dental_codes_router
from app.routers.dental_procedures import (
    patient_router as patient_procedures_router,
    router as dental_procedures_router,
)
from app.routers.patients import router as patients_router
from app.services.dental_codes import ensure_default_codes
from app.services.users import ensure_organization, seed_initial_admin

app = FastAPI(title="Dental Chart API", version="0.1.0")
logger = logging.getLogger("dental_chart.startup")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = request.headers.get("x-request-id")
    logger.exception("Unhandled server error", extra={"request_id": request_id})
    payload = {"detail": "Internal server error"}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=500, content=payload)


@app.on_event("startup")
def startup():
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)

    admin_email = str(settings.admin_email)
    admin_password = settings.admin_password.strip()
    db: Session = SessionLocal()
    try:
        organization = ensure_organization(db, settings.default_organization_name)
        created = seed_initial_admin(
            db, organization_id=organization.id, email=admin_email, password=admin_password
        )
        if created:
            logger.info("Initial admin created for %s (must change password on first login).", admin_email)
        else:
            logger.info("Initial admin not created (users already exist).")
        if settings.seed_dental_codes:
            seeded = ensure_default_codes(db)
            if seeded:
                logger.info("Default dental codes ensured (%s added).", seeded)
    finally:
        db.close()


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(patients_router)
app.include_router(dental_codes_router)
app.include_router(patient_procedures_router)
app.include_router(dental_procedures_router)
app.include_router(dental_chart_router)
app.include_router(clinic_schedule_router)
