from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.models.dental_code import DentalCode
from app.services.code_classification import DISABLED_CODE, TIME_UNIT_CODE, classify_code

logger = logging.getLogger("dental_chart.codes")

SINGLE_LETTER_LIMIT = 500
SEARCH_LIMIT = 100

_TOOTH = {"requires_tooth": True, "is_per_element": True}
_SURFACE = {"requires_tooth": True, "requires_surface": True, "is_per_element": True}

# (code, description, section, points, rate in cents, flags)
DEFAULT_CODES: list[tuple[str, str, str, float | None, int | None, dict[str, bool]]] = [
    (DISABLED_CODE, "Tooth absent or disabled on chart", "chart", None, 0, _TOOTH),
    ("A10", "Local anaesthesia", "A", 2.0, 1517, {}),
    ("C002", "Periodic oral examination", "C", 2.8, 2124, {}),
    ("C022", "Problem-oriented consultation", "C", 2.8, 2124, {}),
    ("E13", "Root canal treatment, one canal", "E", 18.0, 13656, _TOOTH),
    ("E14", "Root canal treatment, two canals", "E", 26.0, 19725, _TOOTH),
    ("H11", "Extraction of tooth or molar", "H", 7.5, 5690, _TOOTH),
    ("H33", "Hemisection of a molar", "H", 11.0, 8345, _TOOTH),
    ("H35", "Surgical extraction of tooth or molar", "H", 14.0, 10621, _TOOTH),
    ("J040", "Place first implant", "J", 45.8, None, _TOOTH),
    ("J041", "Place subsequent implant in same jaw", "J", 18.9, None, _TOOTH),
    ("J046", "Replace first implant", "J", 45.7, None, _TOOTH),
    ("J047", "Replace subsequent implant", "J", 18.9, None, _TOOTH),
    ("R14", "Pin or post retention", "R", 3.6, 2731, _TOOTH),
    ("R24", "Porcelain crown on natural element", "R", 44.0, 33380, _TOOTH),
    ("R34", "Gold crown", "R", 40.0, 30346, _TOOTH),
    ("R40", "Porcelain bridge pontic", "R", 30.0, 22759, _TOOTH),
    ("R45", "Gold bridge pontic", "R", 15.0, 11380, _TOOTH),
    ("R49", "Supplement for bridge on five or more abutments", "R", 25.0, 18966, {}),
    ("T021", "Complex root cleaning", "T", 5.4, 4097, _TOOTH),
    ("T022", "Standard root cleaning", "T", 4.0, 3035, _TOOTH),
    ("U35", "Time unit of five minutes for long-term-care patients", "U", None, 1993, {}),
    ("V30", "Fissure sealant, first element", "V", 4.5, 3414, _TOOTH),
    ("V35", "Fissure sealant, next element in same session", "V", 2.5, 1897, _TOOTH),
    ("V71", "One-surface filling, amalgam", "V", 4.2, 3186, _SURFACE),
    ("V72", "Two-surface filling, amalgam", "V", 6.7, 5083, _SURFACE),
    ("V73", "Three-surface filling, amalgam", "V", 8.7, 6600, _SURFACE),
    ("V74", "Four or more surface filling, amalgam", "V", 12.7, 9635, _SURFACE),
    ("V81", "One-surface filling, glass ionomer", "V", 6.2, 4704, _SURFACE),
    ("V82", "Two-surface filling, glass ionomer", "V", 8.7, 6600, _SURFACE),
    ("V83", "Three-surface filling, glass ionomer", "V", 10.7, 8117, _SURFACE),
    ("V84", "Four or more surface filling, glass ionomer", "V", 14.2, 10773, _SURFACE),
    ("V91", "One-surface filling, composite", "V", 8.0, 6069, _SURFACE),
    ("V92", "Two-surface filling, composite", "V", 10.5, 7966, _SURFACE),
    ("V93", "Three-surface filling, composite", "V", 12.5, 9483, _SURFACE),
    ("V94", "Four or more surface filling, composite", "V", 16.0, 12138, _SURFACE),
]


def list_codes(db: Session, search: str | None = None) -> list[DentalCode]:
    stmt = select(DentalCode).order_by(DentalCode.code.asc())
    term = (search or "").strip()
    if not term:
        return list(db.scalars(stmt))
    # A single letter lists that letter's codes only, not every description hit.
    if len(term) == 1:
        stmt = stmt.where(DentalCode.code.ilike(f"{term}%")).limit(SINGLE_LETTER_LIMIT)
    else:
        stmt = stmt.where(
            or_(
                DentalCode.code.ilike(f"{term}%"),
                DentalCode.description.ilike(f"%{term}%"),
            )
        ).limit(SEARCH_LIMIT)
    return list(db.scalars(stmt))


def get_code_by_value(db: Session, code: str) -> DentalCode | None:
    return db.scalar(select(DentalCode).where(func.upper(DentalCode.code) == code.strip().upper()))


def _apply_entry(dental_code: DentalCode, entry: Mapping[str, Any]) -> None:
    for field in (
        "description",
        "section",
        "points",
        "rate_cents",
        "requires_tooth",
        "requires_surface",
        "requires_jaw",
        "is_per_element",
        "requirements",
    ):
        if field in entry:
            setattr(dental_code, field, entry[field])
    dental_code.category = entry.get("category") or classify_code(dental_code.code)


def upsert_codes(db: Session, entries: Iterable[Mapping[str, Any]]) -> tuple[int, int]:
    created = 0
    updated = 0
    for entry in entries:
        value = str(entry["code"]).strip().upper()
        dental_code = get_code_by_value(db, value)
        if dental_code is None:
            dental_code = DentalCode(code=value)
            created += 1
        else:
            updated += 1
        _apply_entry(dental_code, entry)
        db.add(dental_code)
    db.flush()
    return created, updated


def default_code_entries() -> list[dict[str, Any]]:
    entries = []
    for code, description, section, points, rate_cents, flags in DEFAULT_CODES:
        entries.append(
            {
                "code": code,
                "description": description,
                "section": section,
                "points": points,
                "rate_cents": rate_cents,
                **flags,
            }
        )
    return entries


def ensure_default_codes(db: Session) -> int:
    existing = set(db.scalars(select(DentalCode.code)))
    missing = [entry for entry in default_code_entries() if entry["code"] not in existing]
    if not missing:
        return 0
    created, _ = upsert_codes(db, missing)
    db.commit()
    logger.info("Seeded %s dental codes.", created)
    return created


def procedure_cost_cents(
    dental_code: DentalCode,
    *,
    quantity: int = 1,
    explicit_cost_cents: int | None = None,
    long_term_care: bool = False,
    point_value: float,
) -> int:
    # Long-term-care patients are only charged for time units.
    if long_term_care and dental_code.code.upper() != TIME_UNIT_CODE:
        return 0
    if explicit_cost_cents is not None:
        return explicit_cost_cents
    if dental_code.rate_cents is not None:
        unit = Decimal(dental_code.rate_cents)
    elif dental_code.points:
        unit = Decimal(str(dental_code.points)) * Decimal(str(point_value)) * 100
    else:
        unit = Decimal(0)
    total = unit * max(quantity, 1)
    return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
