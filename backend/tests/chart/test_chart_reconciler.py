from datetime import datetime, timedelta, timezone

import pytest

from app.services.chart_reconciler import (
    ChartProcedure,
    chart_to_json,
    creation_status,
    get_tooth_type,
    is_valid_fdi,
    reconcile_chart,
)

BASE = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def proc(id, code, category, tooth, *, day=0, **kwargs):
    kwargs.setdefault("sequence", id)
    return ChartProcedure(
        id=id,
        code=code,
        category=category,
        tooth_number=tooth,
        date=BASE + timedelta(days=day),
        **kwargs,
    )


@pytest.mark.parametrize(
    ("tooth", "expected"),
    [(11, True), (18, True), (48, True), (10, False), (19, False), (51, False), (0, False)],
)
def test_is_valid_fdi(tooth, expected):
    assert is_valid_fdi(tooth) is expected


def test_is_valid_fdi_rejects_non_integers():
    assert is_valid_fdi("11") is False
    assert is_valid_fdi(None) is False
    assert is_valid_fdi(True) is False


@pytest.mark.parametrize(
    ("tooth", "expected"),
    [
        (16, "molar"),
        (28, "molar"),
        (37, "molar"),
        (14, "premolar"),
        (45, "premolar"),
        (11, "anterior"),
        (33, "anterior"),
        (99, "anterior"),
    ],
)
def test_get_tooth_type(tooth, expected):
    assert get_tooth_type(tooth) == expected


@pytest.mark.parametrize(
    ("status", "expected"),
    [("IN_PROGRESS", "current"), ("COMPLETED", "history"), ("PENDING", "pending")],
)
def test_creation_status(status, expected):
    assert creation_status(status) == expected


def test_filling_then_disabled_leaves_tooth_disabled_without_surfaces():
    procedures = [
        proc(1, "V93", "filling", 21, sub_surfaces=("mesial", "occlusal", "distal")),
        proc(2, "DISABLED", "disabled", 21, day=1),
    ]
    tooth = reconcile_chart(procedures)[21]

    assert tooth.is_disabled is True
    assert tooth.surfaces == {}
    assert [entry["type"] for entry in tooth.history] == ["V93", "DISABLED"]


def test_disabled_tooth_ignores_later_surface_procedures():
    procedures = [
        proc(1, "DISABLED", "disabled", 21),
        proc(2, "V93", "filling", 21, day=1, sub_surfaces=("mesial",)),
    ]
    tooth = reconcile_chart(procedures)[21]

    assert tooth.is_disabled is True
    assert tooth.surfaces == {}
    assert len(tooth.history) == 2


def test_filling_material_from_code_and_status():
    procedures = [
        proc(1, "V71", "filling", 36, status="COMPLETED", sub_surfaces=("occlusal",)),
        proc(2, "V82", "filling", 36, status="IN_PROGRESS", sub_surfaces=("mesial",)),
        proc(3, "V91", "filling", 36, sub_surfaces=("distal",)),
    ]
    surfaces = reconcile_chart(procedures)[36].surfaces

    assert surfaces == {
        "occlusal": "filling-history-amalgam",
        "mesial": "filling-current-glass_ionomer",
        "distal": "filling-pending-composite",
    }


def test_filling_without_surfaces_uses_primary_surface_then_occlusal():
    procedures = [
        proc(1, "V91", "filling", 11, surface="buccal"),
        proc(2, "V91", "filling", 12, material="amalgam"),
    ]
    chart = reconcile_chart(procedures)

    assert chart[11].surfaces == {"buccal": "filling-pending-composite"}
    assert chart[12].surfaces == {"occlusal": "filling-pending-amalgam"}


def test_sealing_defaults_follow_tooth_type():
    procedures = [
        proc(1, "V30", "sealing", 16),
        proc(2, "V35", "sealing", 14),
    ]
    chart = reconcile_chart(procedures)

    assert chart[16].surfaces == {
        "occlusal-1": "sealing-pending",
        "occlusal-2": "sealing-pending",
        "occlusal-3": "sealing-pending",
        "occlusal-4": "sealing-pending",
    }
    assert chart[14].surfaces == {"occlusal": "sealing-pending"}


def test_tooth_type_hint_overrides_fdi_type():
    chart = reconcile_chart([proc(1, "V30", "sealing", 14)], tooth_types={14: "molar"})

    assert set(chart[14].surfaces) == {"occlusal-1", "occlusal-2", "occlusal-3", "occlusal-4"}


def test_last_write_wins_per_surface():
    filling = proc(1, "V91", "filling", 46, sub_surfaces=("occlusal",))
    sealing = proc(2, "V30", "sealing", 46, day=1, sub_surfaces=("occlusal",))

    assert reconcile_chart([filling, sealing])[46].surfaces == {"occlusal": "sealing-pending"}
    assert reconcile_chart([sealing, filling])[46].surfaces == {"occlusal": "sealing-pending"}


def test_ordering_depends_on_date_not_input_order():
    early = proc(5, "V91", "filling", 46, day=0, sub_surfaces=("occlusal",))
    late = proc(1, "V71", "filling", 46, day=2, sub_surfaces=("occlusal",))

    surfaces = reconcile_chart([late, early])[46].surfaces

    assert surfaces == {"occlusal": "filling-pending-amalgam"}


def test_same_date_resolves_by_sequence():
    first = proc(1, "V91", "filling", 46, sub_surfaces=("occlusal",))
    second = proc(2, "V71", "filling", 46, sub_surfaces=("occlusal",))

    assert reconcile_chart([second, first])[46].surfaces == {
        "occlusal": "filling-pending-amalgam"
    }


def test_cancelled_procedures_are_ignored():
    procedures = [
        proc(1, "V91", "filling", 24, sub_surfaces=("mesial",)),
        proc(2, "DISABLED", "disabled", 24, day=1, status="CANCELLED"),
    ]
    with_cancelled = reconcile_chart(procedures)
    without = reconcile_chart(procedures[:1])

    assert chart_to_json(with_cancelled) == chart_to_json(without)
    assert with_cancelled[24].is_disabled is False


def test_removing_a_procedure_matches_never_having_it():
    procedures = [
        proc(1, "V91", "filling", 24, sub_surfaces=("mesial",)),
        proc(2, "DISABLED", "disabled", 24, day=1),
        proc(3, "R24", "crown", 25, day=2),
    ]
    after_delete = reconcile_chart([p for p in procedures if p.id != 2])

    assert after_delete[24].is_disabled is False
    assert after_delete[24].surfaces == {"mesial": "filling-pending-composite"}
    assert after_delete[25].whole_tooth.type == "crown"


def test_reconcile_is_idempotent():
    procedures = [
        proc(1, "V93", "filling", 21, sub_surfaces=("mesial", "distal")),
        proc(2, "R34", "crown", 22, day=1, status="COMPLETED"),
        proc(3, "H11", "extraction", 38, day=2),
    ]
    assert chart_to_json(reconcile_chart(procedures)) == chart_to_json(
        reconcile_chart(procedures)
    )


def test_extraction_disables_and_marks_whole_tooth():
    procedures = [
        proc(1, "V91", "filling", 38, sub_surfaces=("occlusal",)),
        proc(2, "H11", "extraction", 38, day=1, status="COMPLETED"),
    ]
    tooth = reconcile_chart(procedures)[38]

    assert tooth.is_disabled is True
    assert tooth.surfaces == {}
    assert tooth.whole_tooth.type == "extraction"
    assert tooth.whole_tooth.creation_status == "history"


def test_crown_material_from_code():
    chart = reconcile_chart(
        [proc(1, "R24", "crown", 11), proc(2, "R34", "crown", 12, status="IN_PROGRESS")]
    )

    assert chart[11].to_json()["wholeTooth"] == {
        "type": "crown",
        "creationStatus": "pending",
        "material": "porcelain",
    }
    assert chart[12].whole_tooth.material == "gold"
    assert chart[12].whole_tooth.creation_status == "current"


def test_bridge_assigns_roles_to_every_member():
    bridge = proc(
        7,
        "R40",
        "bridge",
        14,
        status="IN_PROGRESS",
        bridge_teeth=((14, "abutment"), (15, "pontic"), (16, "abutment")),
    )
    chart = reconcile_chart([bridge])

    assert {tooth: chart[tooth].whole_tooth.role for tooth in (14, 15, 16)} == {
        14: "abutment",
        15: "pontic",
        16: "abutment",
    }
    for tooth in (14, 15, 16):
        whole = chart[tooth].whole_tooth
        assert whole.type == "bridge"
        assert whole.bridge_id == 7
        assert whole.material == "porcelain"
        assert whole.creation_status == "current"


def test_bridge_record_tooth_defaults_to_abutment():
    bridge = proc(3, "R45", "bridge", 24, bridge_teeth=((25, "pontic"), (26, "abutment")))
    chart = reconcile_chart([bridge])

    assert chart[24].whole_tooth.role == "abutment"
    assert chart[25].whole_tooth.material == "gold"


def test_pontic_is_never_disabled():
    bridge = proc(
        1,
        "R40",
        "bridge",
        14,
        bridge_teeth=((14, "abutment"), (15, "pontic"), (16, "abutment")),
    )
    disabled_before = proc(2, "DISABLED", "disabled", 15, day=-1)
    disabled_after = proc(3, "DISABLED", "disabled", 15, day=1)

    chart = reconcile_chart([disabled_before, bridge, disabled_after])

    assert chart[15].is_disabled is False
    assert chart[15].whole_tooth.role == "pontic"


def test_implant_and_scaling():
    procedures = [
        proc(1, "J040", "implant", 36),
        proc(2, "T022", "scaling", 36, day=1),
    ]
    tooth = reconcile_chart(procedures)[36]

    assert tooth.is_implant is True
    assert tooth.surfaces == {}
    assert tooth.history[-1]["surface"] == "scaling"


def test_other_codes_mark_surfaces_with_code_and_status():
    chart = reconcile_chart(
        [proc(1, "E13", "root_canal", 11, status="COMPLETED", sub_surfaces=("root",))]
    )

    assert chart[11].surfaces == {"root": "E13-history"}


def test_prior_teeth_appear_but_are_never_disabled():
    chart = reconcile_chart([], prior_teeth=[11, 21, 99])

    assert sorted(chart) == [11, 21]
    assert chart[11].is_disabled is False


def test_procedures_without_tooth_are_skipped():
    chart = reconcile_chart([proc(1, "C002", "other", None)])

    assert chart == {}


def test_naive_and_aware_dates_sort_together():
    naive = ChartProcedure(
        id=2,
        code="V71",
        category="filling",
        tooth_number=46,
        date=datetime(2024, 3, 2, 9, 0),
        sub_surfaces=("occlusal",),
        sequence=2,
    )
    aware = proc(1, "V91", "filling", 46, sub_surfaces=("occlusal",))

    assert reconcile_chart([naive, aware])[46].surfaces == {"occlusal": "filling-pending-amalgam"}


def test_json_shape():
    payload = chart_to_json(reconcile_chart([proc(1, "V91", "filling", 11)]))

    assert set(payload["11"]) == {"isDisabled", "isImplant", "wholeTooth", "surfaces", "history"}
    assert payload["11"]["history"][0] == {
        "procedure_id": 1,
        "type": "V91",
        "surface": "occlusal",
        "date": BASE.isoformat(),
    }
