from __future__ import annotations

import csv
import io
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy.orm import Session

from app.models.entities import AppRole, User

from conftest import add_log, create_issue, create_project, create_user, headers_for


@pytest.fixture()
def it_lead(db_session: Session) -> User:
    return create_user(db_session, username="it.lead", roles=(AppRole.IT_LEAD,))


def _seed_logs(db: Session) -> None:
    owner = create_user(db, username="alice")
    create_project(db, name="Alpha", type="Internal")
    alpha = create_issue(db, owner=owner, project_name="Alpha", issue_key="ALPHA-1")
    beta = create_issue(db, owner=owner, project_name="Beta", issue_key="BETA-1")
    idle = create_issue(db, owner=owner, project_name="Alpha", issue_key="ALPHA-2")

    add_log(db, issue=alpha, log_date=datetime(2024, 3, 1, 9, 0), hours="2")
    add_log(db, issue=alpha, log_date=datetime(2024, 3, 31, 23, 30), hours="1.5")
    add_log(db, issue=beta, log_date=datetime(2024, 3, 15, 10, 0), hours="3")
    add_log(db, issue=beta, log_date=datetime(2024, 4, 1, 0, 0), hours="8")
    add_log(db, issue=idle, log_date=datetime(2024, 2, 29, 12, 0), hours="4")


def test_xlsx_export_has_summary_and_detail_sheets(
    client: TestClient,
    db_session: Session,
    it_lead: User,
) -> None:
    _seed_logs(db_session)

    response = client.get(
        "/api/v1/exports/logs?start=2024-03-01&end=2024-03-31",
        headers=headers_for(it_lead),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert 'filename="work-log-20240301-20240331.xlsx"' in response.headers["content-disposition"]

    workbook = load_workbook(io.BytesIO(response.content))
    assert workbook.sheetnames == ["Summary", "Detail"]

    summary = list(workbook["Summary"].iter_rows(values_only=True))
    assert summary[0] == ("Issue", "Description", "Project", "Project type", "Status", "Owner", "Total hours")
    assert [(row[0], row[3], row[6]) for row in summary[1:]] == [
        ("ALPHA-1", "Internal", 3.5),
        ("BETA-1", None, 3),
    ]

    detail = list(workbook["Detail"].iter_rows(values_only=True))
    assert [(row[0], row[1], row[4]) for row in detail[1:]] == [
        ("2024-03-01", "ALPHA-1", 2),
        ("2024-03-15", "BETA-1", 3),
        ("2024-03-31", "ALPHA-1", 1.5),
    ]


def test_csv_export_lists_detail_rows(client: TestClient, db_session: Session, it_lead: User) -> None:
    _seed_logs(db_session)

    response = client.get(
        "/api/v1/exports/logs?start=2024-04-01&end=2024-04-30&format=csv",
        headers=headers_for(it_lead),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [(row["Log date"], row["Issue"], row["Owner"], row["Hours"]) for row in rows] == [
        ("2024-04-01", "BETA-1", "alice", "8.0"),
    ]


def test_export_rejects_bad_format_and_range(client: TestClient, it_lead: User) -> None:
    headers = headers_for(it_lead)

    bad_format = client.get("/api/v1/exports/logs?start=2024-03-01&end=2024-03-31&format=pdf", headers=headers)
    reversed_range = client.get("/api/v1/exports/logs?start=2024-03-31&end=2024-03-01", headers=headers)

    assert bad_format.status_code == 422
    assert bad_format.json()["error_code"] == "VALIDATION_ERROR"
    assert reversed_range.status_code == 400
    assert reversed_range.json()["error_code"] == "INVALID_PERIOD"


def test_export_requires_it_lead(client: TestClient, db_session: Session) -> None:
    dev = create_user(db_session, username="dev")

    response = client.get("/api/v1/exports/logs?start=2024-03-01&end=2024-03-31", headers=headers_for(dev))

    assert response.status_code == 403
