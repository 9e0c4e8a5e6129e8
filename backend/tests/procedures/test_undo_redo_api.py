import pytest


@pytest.fixture()
def dentist_headers(make_user_headers):
    return make_user_headers("dentist")


def _procedures(api_client, headers, patient_id):
    res = api_client.get(f"/patients/{patient_id}/dental-procedures", headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def _create_filling(api_client, headers, patient_id, tooth=11):
    res = api_client.post(
        f"/patients/{patient_id}/dental-procedures",
        json={"code": "V91", "tooth_number": tooth, "sub_surfaces": ["buccal"]},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()


def test_nothing_to_undo_or_redo(api_client, dentist_headers):
    undo = api_client.post("/dental-procedures/undo", headers=dentist_headers)
    assert undo.status_code == 400
    assert undo.json()["detail"] == "No actions to undo"

    redo = api_client.post("/dental-procedures/redo", headers=dentist_headers)
    assert redo.status_code == 400
    assert redo.json()["detail"] == "No actions to redo"


def test_undo_create_removes_procedure_and_redo_restores_it(
    api_client, dentist_headers, patient_id
):
    created = _create_filling(api_client, dentist_headers, patient_id)

    undo = api_client.post("/dental-procedures/undo", headers=dentist_headers)
    assert undo.status_code == 200, undo.text
    assert undo.json()["action"] == "create"
    assert _procedures(api_client, dentist_headers, patient_id) == []

    redo = api_client.post("/dental-procedures/redo", headers=dentist_headers)
    assert redo.status_code == 200, redo.text
    restored = _procedures(api_client, dentist_headers, patient_id)
    assert [item["id"] for item in restored] == [created["id"]]


def test_undo_update_restores_previous_values(api_client, dentist_headers, patient_id):
    created = _create_filling(api_client, dentist_headers, patient_id)
    res = api_client.put(
        f"/patients/{patient_id}/dental-procedures/{created['id']}",
        json={"status": "COMPLETED", "notes": "finished"},
        headers=dentist_headers,
    )
    assert res.status_code == 200, res.text

    undo = api_client.post("/dental-procedures/undo", headers=dentist_headers)
    assert undo.status_code == 200, undo.text
    assert undo.json()["action"] == "update"

    (procedure,) = _procedures(api_client, dentist_headers, patient_id)
    assert procedure["status"] == "PENDING"
    assert procedure["notes"] is None


def test_undo_delete_reinserts_with_original_id(api_client, dentist_headers, patient_id):
    created = _create_filling(api_client, dentist_headers, patient_id)
    res = api_client.delete(
        f"/patients/{patient_id}/dental-procedures/{created['id']}", headers=dentist_headers
    )
    assert res.status_code == 204

    undo = api_client.post("/dental-procedures/undo", headers=dentist_headers)
    assert undo.status_code == 200, undo.text

    (procedure,) = _procedures(api_client, dentist_headers, patient_id)
    assert procedure["id"] == created["id"]
    assert procedure["sub_surfaces"] == ["buccal"]
    assert procedure["cost_cents"] == created["cost_cents"]


def test_undo_steps_back_through_history(api_client, dentist_headers, patient_id):
    first = _create_filling(api_client, dentist_headers, patient_id, tooth=11)
    _create_filling(api_client, dentist_headers, patient_id, tooth=12)

    assert api_client.post("/dental-procedures/undo", headers=dentist_headers).status_code == 200
    assert [p["id"] for p in _procedures(api_client, dentist_headers, patient_id)] == [first["id"]]

    assert api_client.post("/dental-procedures/undo", headers=dentist_headers).status_code == 200
    assert _procedures(api_client, dentist_headers, patient_id) == []


def test_new_mutation_clears_redo(api_client, dentist_headers, patient_id):
    _create_filling(api_client, dentist_headers, patient_id, tooth=11)
    assert api_client.post("/dental-procedures/undo", headers=dentist_headers).status_code == 200

    _create_filling(api_client, dentist_headers, patient_id, tooth=12)

    redo = api_client.post("/dental-procedures/redo", headers=dentist_headers)
    assert redo.status_code == 400
    assert redo.json()["detail"] == "No actions to redo"


def test_undo_is_per_user(api_client, dentist_headers, make_user_headers, patient_id):
    _create_filling(api_client, dentist_headers, patient_id)
    colleague = make_user_headers("hygienist")

    undo = api_client.post("/dental-procedures/undo", headers=colleague)
    assert undo.status_code == 400
    assert len(_procedures(api_client, dentist_headers, patient_id)) == 1


def test_undo_can_target_one_procedure(api_client, dentist_headers, patient_id):
    first = _create_filling(api_client, dentist_headers, patient_id, tooth=11)
    second = _create_filling(api_client, dentist_headers, patient_id, tooth=12)

    undo = api_client.post(
        "/dental-procedures/undo", json={"procedure_id": first["id"]}, headers=dentist_headers
    )
    assert undo.status_code == 200, undo.text
    assert undo.json()["procedure_id"] == first["id"]
    assert [p["id"] for p in _procedures(api_client, dentist_headers, patient_id)] == [second["id"]]


def test_revisions_are_listed_newest_first(api_client, dentist_headers, patient_id):
    created = _create_filling(api_client, dentist_headers, patient_id)
    api_client.put(
        f"/patients/{patient_id}/dental-procedures/{created['id']}",
        json={"notes": "first"},
        headers=dentist_headers,
    )

    res = api_client.get(
        f"/patients/{patient_id}/dental-procedures/{created['id']}/revisions",
        headers=dentist_headers,
    )
    assert res.status_code == 200, res.text
    revisions = res.json()
    assert [item["action"] for item in revisions] == ["update", "create"]
    assert revisions[0]["before_json"]["notes"] is None
    assert revisions[0]["after_json"]["notes"] == "first"
