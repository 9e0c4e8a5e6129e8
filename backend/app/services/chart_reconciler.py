"""Rebuild a patient's tooth chart from the procedure ledger.

The ledger is the only source of truth. Nothing here touches the database: the
caller hands over plain ``ChartProcedure`` records and gets back a mapping of
FDI tooth number to ``ToothState``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Mapping

from app.services.code_classification import crown_material_for_code, filling_material_for_code

ToothType = Literal["molar", "premolar", "anterior"]
CreationStatus = Literal["pending", "current", "history"]

MOLAR_SEALING_SURFACES = ("occlusal-1", "occlusal-2", "occlusal-3", "occlusal-4")
DEFAULT_SURFACE = "occlusal"
DEFAULT_FILLING_MATERIAL = "composite"
DEFAULT_CROWN_MATERIAL = "porcelain"


@dataclass(frozen=True)
class ChartProcedure:
    id: int
    code: str
    category: str
    tooth_number: int | None
    date: datetime
    status: str = "PENDING"
    surface: str | None = None
    sub_surfaces: tuple[str, ...] = ()
    material: str | None = None
    # (tooth, role) pairs, role being "abutment" or "pontic"
    bridge_teeth: tuple[tuple[int, str], ...] = ()
    sequence: int = 0


@dataclass
class WholeTooth:
    type: str
    creation_status: CreationStatus
    material: str | None = None
    bridge_id: int | None = None
    role: str | None = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "creationStatus": self.creation_status}
        if self.material is not None:
            data["material"] = self.material
        if self.bridge_id is not None:
            data["bridgeId"] = self.bridge_id
            data["role"] = self.role
        return data


@dataclass
class ToothState:
    is_disabled: bool = False
    is_implant: bool = False
    whole_tooth: WholeTooth | None = None
    surfaces: dict[str, str] = field(default_factory=dict)
    history: list[dict[str, Any]] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            "isDisabled": self.is_disabled,
            "isImplant": self.is_implant,
            "wholeTooth": self.whole_tooth.to_json() if self.whole_tooth else None,
            "surfaces": dict(self.surfaces),
            "history": [dict(entry) for entry in self.history],
        }


def is_valid_fdi(tooth_number: Any) -> bool:
    if isinstance(tooth_number, bool) or not isinstance(tooth_number, int):
        return False
    quadrant, position = divmod(tooth_number, 10)
    return 1 <= quadrant <= 4 and 1 <= position <= 8


def get_tooth_type(tooth_number: int) -> ToothType:
    if not is_valid_fdi(tooth_number):
        return "anterior"
    position = tooth_number % 10
    if position >= 6:
        return "molar"
    if position >= 4:
        return "premolar"
    return "anterior"


def sealing_surfaces(tooth_type: str) -> tuple[str, ...]:
    if tooth_type == "molar":
        return MOLAR_SEALING_SURFACES
    return (DEFAULT_SURFACE,)


def creation_status(status: str) -> CreationStatus:
    if status == "IN_PROGRESS":
        return "current"
    if status == "COMPLETED":
        return "history"
    return "pending"


def _sort_key(procedure: ChartProcedure) -> tuple[datetime, int]:
    when = procedure.date
    # Naive timestamps come back from SQLite; treat them as UTC.
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when, procedure.sequence


def _target_surfaces(procedure: ChartProcedure) -> tuple[str, ...]:
    if procedure.sub_surfaces:
        return tuple(procedure.sub_surfaces)
    if procedure.surface:
        return (procedure.surface,)
    return ()


def _history_entry(procedure: ChartProcedure) -> dict[str, Any]:
    if procedure.category == "scaling":
        surface = "scaling"
    else:
        surface = next(iter(_target_surfaces(procedure)), DEFAULT_SURFACE)
    return {
        "procedure_id": procedure.id,
        "type": procedure.code,
        "surface": surface,
        "date": _sort_key(procedure)[0].isoformat(),
    }


def _bridge_members(procedure: ChartProcedure) -> list[tuple[int, str]]:
    members = [(tooth, role) for tooth, role in procedure.bridge_teeth if is_valid_fdi(tooth)]
    listed = {tooth for tooth, _ in members}
    if procedure.tooth_number is not None and procedure.tooth_number not in listed:
        members.append((procedure.tooth_number, "abutment"))
    return members


class _ChartBuilder:
    def __init__(self, tooth_types: Mapping[int, str], prior_teeth: Iterable[int]) -> None:
        self.tooth_types = tooth_types
        self.teeth: dict[int, ToothState] = {}
        for tooth in prior_teeth:
            if is_valid_fdi(tooth):
                self.teeth.setdefault(tooth, ToothState())

    def tooth(self, tooth_number: int) -> ToothState:
        return self.teeth.setdefault(tooth_number, ToothState())

    def tooth_type(self, tooth_number: int) -> str:
        return self.tooth_types.get(tooth_number) or get_tooth_type(tooth_number)

    def set_surfaces(self, state: ToothState, surfaces: Iterable[str], value: str) -> None:
        if state.is_disabled:
            return
        for surface in surfaces:
            state.surfaces[surface] = value

    def apply(self, procedure: ChartProcedure) -> None:
        status = creation_status(procedure.status)
        category = procedure.category

        if category == "bridge" or (category == "crown" and procedure.bridge_teeth):
            self._apply_bridge(procedure, status)
            return

        tooth_number = procedure.tooth_number
        if tooth_number is None or not is_valid_fdi(tooth_number):
            return
        state = self.tooth(tooth_number)
        state.history.append(_history_entry(procedure))

        if category == "disabled":
            # A pontic fills the gap; the tooth is not missing from the chart.
            if state.whole_tooth and state.whole_tooth.role == "pontic":
                return
            state.is_disabled = True
            state.surfaces.clear()
            state.whole_tooth = None
        elif category == "extraction":
            state.is_disabled = True
            state.surfaces.clear()
            state.whole_tooth = WholeTooth(type="extraction", creation_status=status)
        elif category == "implant":
            state.is_implant = True
        elif category == "filling":
            material = (
                procedure.material
                or filling_material_for_code(procedure.code)
                or DEFAULT_FILLING_MATERIAL
            )
            surfaces = _target_surfaces(procedure) or (DEFAULT_SURFACE,)
            self.set_surfaces(state, surfaces, f"filling-{status}-{material}")
        elif category == "sealing":
            surfaces = _target_surfaces(procedure) or sealing_surfaces(
                self.tooth_type(tooth_number)
            )
            self.set_surfaces(state, surfaces, f"sealing-{status}")
        elif category == "crown":
            material = (
                procedure.material
                or crown_material_for_code(procedure.code)
                or DEFAULT_CROWN_MATERIAL
            )
            state.whole_tooth = WholeTooth(type="crown", creation_status=status, material=material)
        elif category == "scaling":
            pass
        else:
            self.set_surfaces(state, _target_surfaces(procedure), f"{procedure.code}-{status}")

    def _apply_bridge(self, procedure: ChartProcedure, status: CreationStatus) -> None:
        material = (
            procedure.material or crown_material_for_code(procedure.code) or DEFAULT_CROWN_MATERIAL
        )
        for tooth_number, role in _bridge_members(procedure):
            state = self.tooth(tooth_number)
            state.history.append(_history_entry(procedure))
            state.whole_tooth = WholeTooth(
                type="bridge",
                creation_status=status,
                material=material,
                bridge_id=procedure.id,
                role=role,
            )

    def finish(self) -> dict[int, ToothState]:
        for state in self.teeth.values():
            if state.whole_tooth and state.whole_tooth.role == "pontic":
                state.is_disabled = False
        return dict(sorted(self.teeth.items()))


def reconcile_chart(
    procedures: Iterable[ChartProcedure],
    tooth_types: Mapping[int, str] | None = None,
    prior_teeth: Iterable[int] = (),
) -> dict[int, ToothState]:
    """Fold the ledger into per-tooth state, oldest procedure first.

    Cancelled procedures are ignored. Later procedures overwrite earlier ones
    surface by surface, except that a disabled tooth keeps an empty surface map.
    The result depends only on the arguments, so repeated calls agree.
    """
    builder = _ChartBuilder(tooth_types or {}, prior_teeth)
    active = [procedure for procedure in procedures if procedure.status != "CANCELLED"]
    for procedure in sorted(active, key=_sort_key):
        builder.apply(procedure)
    return builder.finish()


def chart_to_json(teeth: Mapping[int, ToothState]) -> dict[str, dict[str, Any]]:
    return {str(tooth): state.to_json() for tooth, state in teeth.items()}
