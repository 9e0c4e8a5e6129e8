import uuid

import pytest


@pytest.fixture()
def outsider_headers(make_user_headers):
    return make_user_headers("dentist", organization_name=f"Other Practice {uuid.uuid4().hex[:6]}")


def test_patient_from_other_organization_is_not_found(
    api_client, auth_headers, outsider_headers, patient_id
):
    assert api_client.get(f"/patients/{patient_id}", headers=auth_headers).status_code == 200

    assert api_client.get(f"/patients/{patient_id}", headers=outsider_headers).status_code == 404
    assert (
        api_client.get(f"/patients/{patient_id}/dental", headers=outsider_headers).status_code
        == 404
    )
    res = api_client.post(
        f"/patients/{patient_id}/dental-procedures",
        json={"code": "C002"},
        headers=outsider_headers,
    )
    assert res.status_code == 404


def test_patient_list_is_scoped(api_client, auth_headers, outsider_headers, patient_id):
    ids = {item["id"] for item in api_client.get("/patients", headers=outsider_headers).json()}
    assert patient_id not in ids


def test_schedule_from_other_organization_is_not_found(
    api_client, auth_headers, outsider_headers
):
    created = api_client.post(
        "/clinic-schedule",
        json={"name": "Home rota", "start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    schedule_id = created.json()["id"]

    res = api_client.get(f"/clinic-schedule/{schedule_id}/overrides", headers=outsider_headers)
    assert res.status_code == 404
    res = api_client.post(
        "/clinic-schedule/day-of-week-overrides",
        json={"schedule_id": schedule_id, "day_of_week": "Monday", "is_unavailable": True},
        headers=outsider_headers,
    )
    assert res.status_code == 404


def test_requests_without_token_are_rejected(api_client, patient_id):
    assert api_client.get(f"/patients/{patient_id}/dental").status_code == 401
    assert api_client.get("/dental-codes").status_code == 401


def test_me_reports_organization(api_client, auth_headers):
    res = api_client.get("/auth/me", headers=auth_headers)
    assert res.status_code == 200, res.text
    assert res.json()["role"] == "superadmin"
    assert res.json()["organization_id"]
