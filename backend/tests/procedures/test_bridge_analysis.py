import pytest

from app.models.dental_code import DentalCode
from app.services.dental_codes import procedure_cost_cents
from app.services.errors import LedgerError
from app.services.procedures import analyze_bridge, normalize_bridge_teeth


def members(roles: dict[int, str]) -> list[dict]:
    return normalize_bridge_teeth({"tooth": tooth, "role": role} for tooth, role in roles.items())


def test_three_unit_bridge():
    analysis = analyze_bridge(members({16: "abutment", 15: "pontic", 14: "abutment"}))

    assert analysis == {
        "abutments": [14, 16],
        "pontics": [15],
        "total_units": 3,
        "bridge_type": "3-unit bridge",
        "complexity": "simple",
        "needs_five_or_more_code": False,
    }


def test_four_unit_bridge_is_moderate():
    analysis = analyze_bridge(
        members({13: "abutment", 14: "pontic", 15: "pontic", 16: "abutment"})
    )

    assert analysis["bridge_type"] == "4-unit bridge"
    assert analysis["complexity"] == "moderate"


def test_extended_bridge_with_five_abutments():
    roles = {11: "abutment", 12: "abutment", 13: "abutment", 14: "abutment", 15: "abutment"}
    roles[16] = "pontic"
    analysis = analyze_bridge(members(roles))

    assert analysis["bridge_type"] == "6-unit extended bridge"
    assert analysis["complexity"] == "complex"
    assert analysis["needs_five_or_more_code"] is True


def test_normalize_rejects_invalid_members():
    with pytest.raises(LedgerError):
        normalize_bridge_teeth([{"tooth": 19, "role": "abutment"}])
    with pytest.raises(LedgerError):
        normalize_bridge_teeth([{"tooth": 14, "role": "wing"}])
    with pytest.raises(LedgerError):
        normalize_bridge_teeth([{"tooth": 14, "role": "abutment"}, {"tooth": 14, "role": "pontic"}])


def _code(code: str, *, rate_cents=None, points=None) -> DentalCode:
    return DentalCode(code=code, description=code, category="other", rate_cents=rate_cents, points=points)


def test_cost_prefers_explicit_then_rate_then_points():
    assert procedure_cost_cents(_code("V91", rate_cents=6069), explicit_cost_cents=100, point_value=7.59) == 100
    assert procedure_cost_cents(_code("V91", rate_cents=6069), quantity=2, point_value=7.59) == 12138
    assert procedure_cost_cents(_code("J040", points=45.8), point_value=7.59) == 34762


def test_cost_without_rate_or_points_is_zero():
    assert procedure_cost_cents(_code("X1"), point_value=7.59) == 0


def test_long_term_care_only_pays_time_units():
    assert procedure_cost_cents(_code("V91", rate_cents=6069), long_term_care=True, point_value=7.59) == 0
    assert procedure_cost_cents(_code("U35", rate_cents=1993), long_term_care=True, point_value=7.59) == 1993
