from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from app.db.session import SessionLocal
from app.services.dental_codes import default_code_entries, upsert_codes


def load_entries(path: Path) -> list[dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("codes", [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of codes in {path}")
    entries = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict) or not item.get("code") or not item.get("description"):
            raise ValueError(f"Entry {index} needs at least code and description")
        entries.append(item)
    return entries


def main() -> int:
    parser = argparse.ArgumentParser(description="Bulk upsert dental codes from a JSON file.")
    parser.add_argument("--file", help="JSON list of code objects (or {\"codes\": [...]}).")
    parser.add_argument(
        "--defaults",
        action="store_true",
        help="Upsert the built-in default catalog instead of a file.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Roll back instead of committing.")
    args = parser.parse_args()

    if args.defaults:
        entries = default_code_entries()
    elif args.file:
        path = Path(args.file)
        if not path.exists():
            raise FileNotFoundError(f"Code file not found: {path}")
        entries = load_entries(path)
    else:
        parser.error("either --file or --defaults is required")

    session = SessionLocal()
    try:
        created, updated = upsert_codes(session, entries)
        if args.dry_run:
            session.rollback()
        else:
            session.commit()
    finally:
        session.close()

    print(f"created={created} updated={updated} dry_run={args.dry_run}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
