from __future__ import annotations

from datetime import datetime, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.entities import AppRole
from app.services.worklog_service import to_server_local

from conftest import auth_headers, create_user, headers_for

DEV = auth_headers(username="dev.one", email="dev.one@test.local", display_name="Dev One")
OTHER_DEV = auth_headers(username="dev.two", email="dev.two@test.local", display_name="Dev Two")


def _create_issue(client: TestClient, headers: dict[str, str] = DEV) -> str:
    response = client.post(
        "/api/v1/issues",
        headers=headers,
        json={
            "issue_key": "JIRA-101",
            "project_name": "Alpha",
            "service_name": "billing-api",
            "description": "Fix invoice rounding",
            "due_date": "2024-03-29",
        },
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_issue_lifecycle_with_logs(client: TestClient) -> None:
    issue_id = _create_issue(client)

    first = client.post(
        f"/api/v1/issues/{issue_id}/logs",
        headers=DEV,
        json={"log_date": "2024-03-05T09:00:00", "hours_spent": "2.50", "description": "analysis"},
    )
    second = client.post(
        f"/api/v1/issues/{issue_id}/logs",
        headers=DEV,
        json={"log_date": "2024-03-04T09:00:00", "hours_spent": 1, "description": "setup", "detail": "env"},
    )
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["hours_spent"] == "2.50"

    logs = client.get(f"/api/v1/issues/{issue_id}/logs", headers=DEV).json()["items"]
    assert [entry["description"] for entry in logs] == ["setup", "analysis"]

    mine = client.get("/api/v1/issues/mine", headers=DEV).json()["items"]
    assert len(mine) == 1
    assert mine[0]["logged_hours"] == "3.50"
    assert mine[0]["lifecycle_status"] == "Open"


def test_update_and_delete_log(client: TestClient) -> None:
    issue_id = _create_issue(client)
    log_id = client.post(
        f"/api/v1/issues/{issue_id}/logs",
        headers=DEV,
        json={"log_date": "2024-03-05T09:00:00", "hours_spent": "2", "description": "analysis"},
    ).json()["id"]

    updated = client.put(
        f"/api/v1/issues/{issue_id}/logs/{log_id}",
        headers=DEV,
        json={"hours_spent": "4.25", "description": "deeper analysis"},
    )
    assert updated.status_code == 200
    assert updated.json()["hours_spent"] == "4.25"
    assert updated.json()["issue_id"] == issue_id

    deleted = client.delete(f"/api/v1/issues/{issue_id}/logs/{log_id}", headers=DEV)
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/issues/{issue_id}/logs", headers=DEV).json()["items"] == []

    missing = client.delete(f"/api/v1/issues/{issue_id}/logs/{log_id}", headers=DEV)
    assert missing.status_code == 404


def test_log_cannot_be_reached_through_another_issue(client: TestClient) -> None:
    issue_a = _create_issue(client)
    issue_b = _create_issue(client)
    log_id = client.post(
        f"/api/v1/issues/{issue_a}/logs",
        headers=DEV,
        json={"log_date": "2024-03-05T09:00:00", "hours_spent": "1", "description": "work"},
    ).json()["id"]

    response = client.put(
        f"/api/v1/issues/{issue_b}/logs/{log_id}",
        headers=DEV,
        json={"hours_spent": "3"},
    )

    assert response.status_code == 404


def test_negative_hours_rejected(client: TestClient) -> None:
    issue_id = _create_issue(client)

    response = client.post(
        f"/api/v1/issues/{issue_id}/logs",
        headers=DEV,
        json={"log_date": "2024-03-05T09:00:00", "hours_spent": "-1", "description": "oops"},
    )

    assert response.status_code == 422


def test_only_owner_can_log_time(client: TestClient) -> None:
    issue_id = _create_issue(client)

    response = client.post(
        f"/api/v1/issues/{issue_id}/logs",
        headers=OTHER_DEV,
        json={"log_date": "2024-03-05T09:00:00", "hours_spent": "1", "description": "not mine"},
    )

    assert response.status_code == 403


def test_issue_visibility_for_leads(client: TestClient, db_session: Session) -> None:
    issue_id = _create_issue(client)
    lead = create_user(db_session, username="team.lead", roles=(AppRole.TEAM_LEAD,))

    assert client.get(f"/api/v1/issues/{issue_id}", headers=OTHER_DEV).status_code == 403
    assert client.get(f"/api/v1/issues/{issue_id}", headers=headers_for(lead)).status_code == 200
    assert client.get("/api/v1/issues/unknown", headers=DEV).status_code == 404


def test_update_issue_deployment_dates(client: TestClient) -> None:
    issue_id = _create_issue(client)

    response = client.patch(
        f"/api/v1/issues/{issue_id}",
        headers=DEV,
        json={"lifecycle_status": "Deployed", "deploy_uat_date": "2024-03-20", "deploy_prod_date": "2024-03-28"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["lifecycle_status"] == "Deployed"
    assert body["deploy_uat_date"] == "2024-03-20"
    assert body["deploy_prod_date"] == "2024-03-28"
    assert body["deploy_sit_date"] is None
    assert body["due_date"] == "2024-03-29"


def test_offset_log_dates_are_stored_as_server_local_time(client: TestClient, db_session: Session) -> None:
    issue_id = _create_issue(client)
    lead = create_user(db_session, username="it.lead", roles=(AppRole.IT_LEAD,))
    sent = datetime.fromisoformat("2024-02-29T23:30:00-05:00")
    expected = sent.astimezone().replace(tzinfo=None)

    created = client.post(
        f"/api/v1/issues/{issue_id}/logs",
        headers=DEV,
        json={"log_date": sent.isoformat(), "hours_spent": "2", "description": "late call"},
    )

    assert created.status_code == 201
    assert created.json()["log_date"] == expected.isoformat()

    summary = client.get(
        f"/api/v1/summary/monthly?year={expected.year}&month={expected.month}",
        headers=headers_for(lead),
    ).json()
    assert [(row["user"]["username"], row["totalHours"]) for row in summary["individualSummary"]] == [
        ("dev.one", 2.0)
    ]

    moved = client.put(
        f"/api/v1/issues/{issue_id}/logs/{created.json()['id']}",
        headers=DEV,
        json={"log_date": "2024-03-10T08:00:00+00:00"},
    )
    assert moved.json()["log_date"] == (
        datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None).isoformat()
    )


def test_to_server_local_keeps_the_instant() -> None:
    aware = datetime(2024, 3, 1, 4, 30, tzinfo=timezone.utc)
    naive = datetime(2024, 2, 29, 23, 30)

    converted = to_server_local(aware)

    assert converted.tzinfo is None
    assert converted.astimezone(timezone.utc) == aware
    assert to_server_local(naive) is naive
