from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, has_role, require_roles
from app.core.config import get_settings
from app.core.errors import Forbidden
from app.models.entities import AppRole, UserClassification

from conftest import auth_headers, create_user, headers_for


def _context(*roles: AppRole) -> RequestUserContext:
    return RequestUserContext(
        user_id="user-1",
        username="someone",
        email="someone@test.local",
        display_name="Someone",
        classification=UserClassification.CORE,
        roles=roles,
    )


def test_has_role_matches_expected_roles() -> None:
    context = _context(AppRole.DEVELOPER, AppRole.IT_LEAD)

    assert has_role(context, {AppRole.IT_LEAD}) is True
    assert has_role(context, {AppRole.ADMIN, AppRole.TEAM_LEAD}) is False


def test_require_roles_rejects_before_handler_runs() -> None:
    guard = require_roles(AppRole.IT_LEAD)

    assert guard(context=_context(AppRole.IT_LEAD)).username == "someone"
    with pytest.raises(Forbidden):
        guard(context=_context(AppRole.DEVELOPER))


def test_me_upserts_new_user_with_defaults(client: TestClient) -> None:
    response = client.get(
        "/api/v1/me",
        headers=auth_headers(username="new.dev", email="New.Dev@Test.Local", display_name="New Dev"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "new.dev"
    assert body["email"] == "new.dev@test.local"
    assert body["classification"] == "Non-Core"
    assert body["roles"] == ["DEVELOPER"]


def test_me_reports_assigned_roles(client: TestClient, db_session: Session) -> None:
    lead = create_user(
        db_session,
        username="lead",
        classification=UserClassification.CORE,
        roles=(AppRole.IT_LEAD,),
    )

    response = client.get("/api/v1/me", headers=headers_for(lead))

    assert response.status_code == 200
    assert set(response.json()["roles"]) == {"DEVELOPER", "IT LEAD"}
    assert response.json()["classification"] == "Core"


def test_dev_principal_is_used_without_headers(client: TestClient) -> None:
    response = client.get("/api/v1/me")

    assert response.status_code == 200
    assert response.json()["username"] == get_settings().auth_dev_username


def test_missing_headers_rejected_when_dev_principal_disabled(
    client: TestClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(get_settings(), "auth_allow_dev_principal", False)

    response = client.get("/api/v1/me")

    assert response.status_code == 401
    assert response.json()["error_code"] == "UNAUTHORIZED"


def test_email_taken_by_other_username_is_conflict(client: TestClient, db_session: Session) -> None:
    create_user(db_session, username="first")

    response = client.get(
        "/api/v1/me",
        headers=auth_headers(username="second", email="first@test.local"),
    )

    assert response.status_code == 409
