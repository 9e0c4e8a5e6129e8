from __future__ import annotations

import argparse

from sqlalchemy import func, select

from app.db.session import SessionLocal
from app.models.dental_code import DentalCode
from app.models.dental_procedure import DentalProcedure


def find_conflicts(session, *, patient_id: int | None = None, disabled_only: bool = False):
    stmt = (
        select(
            DentalProcedure.patient_id,
            DentalProcedure.tooth_number,
            DentalCode.code,
            func.count(DentalProcedure.id).label("total"),
        )
        .join(DentalCode, DentalCode.id == DentalProcedure.code_id)
        .where(DentalProcedure.tooth_number.is_not(None))
        .group_by(DentalProcedure.patient_id, DentalProcedure.tooth_number, DentalCode.code)
        .having(func.count(DentalProcedure.id) > 1)
        .order_by(DentalProcedure.patient_id, DentalProcedure.tooth_number, DentalCode.code)
    )
    if patient_id is not None:
        stmt = stmt.where(DentalProcedure.patient_id == patient_id)
    if disabled_only:
        stmt = stmt.where(DentalProcedure.disables_tooth.is_(True))
    return session.execute(stmt).all()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Report patient/tooth/code groups recorded more than once."
    )
    parser.add_argument("--patient-id", type=int, help="Limit to one patient.")
    parser.add_argument(
        "--disabled-only",
        action="store_true",
        help="Only report duplicate tooth-disabling procedures.",
    )
    args = parser.parse_args()

    session = SessionLocal()
    try:
        rows = find_conflicts(
            session, patient_id=args.patient_id, disabled_only=args.disabled_only
        )
    finally:
        session.close()

    print(f"Conflicts: {len(rows)}")
    for row in rows:
        print(
            f"patient={row.patient_id} tooth={row.tooth_number} "
            f"code={row.code} count={row.total}"
        )
    return 1 if rows and args.disabled_only else 0


if __name__ == "__main__":
    raise SystemExit(main())
