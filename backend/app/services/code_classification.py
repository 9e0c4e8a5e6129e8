from __future__ import annotations

from typing import Literal

CodeCategory = Literal[
    "disabled",
    "extraction",
    "implant",
    "bridge",
    "crown",
    "sealing",
    "filling",
    "scaling",
    "root_canal",
    "other",
]

DISABLED_CODE = "DISABLED"
TIME_UNIT_CODE = "U35"
FIRST_SEALING_CODE = "V30"
NEXT_SEALING_CODE = "V35"

_EXACT_CODES: dict[str, CodeCategory] = {
    DISABLED_CODE: "disabled",
    FIRST_SEALING_CODE: "sealing",
    NEXT_SEALING_CODE: "sealing",
    "R24": "crown",
    "R34": "crown",
    "R40": "bridge",
    "R45": "bridge",
    "R49": "bridge",
    "J040": "implant",
    "J041": "implant",
    "J046": "implant",
    "J047": "implant",
    "T021": "scaling",
    "T022": "scaling",
}

FILLING_MATERIALS: dict[str, str] = {
    "V7": "amalgam",
    "V8": "glass_ionomer",
    "V9": "composite",
}

CROWN_MATERIALS: dict[str, str] = {
    "R24": "porcelain",
    "R34": "gold",
    "R40": "porcelain",
    "R45": "gold",
}


def classify_code(code: str | None) -> CodeCategory:
    """Category from the code string alone; unknown codes are `other`."""
    value = str(code or "").strip().upper()
    if value in _EXACT_CODES:
        return _EXACT_CODES[value]
    if value.startswith("H"):
        return "extraction"
    if len(value) == 3 and value[:2] in FILLING_MATERIALS and value[2].isdigit():
        return "filling"
    if value.startswith("E"):
        return "root_canal"
    return "other"


def filling_material_for_code(code: str | None) -> str | None:
    return FILLING_MATERIALS.get(str(code or "").strip().upper()[:2])


def crown_material_for_code(code: str | None) -> str | None:
    return CROWN_MATERIALS.get(str(code or "").strip().upper())
