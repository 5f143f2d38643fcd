from __future__ import annotations

from collections.abc import Generator
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import ensure_user_principal
from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.models.entities import (
    AppRole,
    Issue,
    Project,
    RoleAssignment,
    Team,
    TeamMember,
    TimeLogEntry,
    User,
    UserClassification,
)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(
    *,
    username: str = "it.lead",
    email: str = "it.lead@test.local",
    display_name: str = "IT Lead",
) -> dict[str, str]:
    return {
        "X-USERNAME": username,
        "X-EMAIL": email,
        "X-DISPLAY-NAME": display_name,
    }


def create_user(
    db: Session,
    *,
    username: str,
    classification: UserClassification = UserClassification.NON_CORE,
    roles: tuple[AppRole, ...] = (),
    display_name: str | None = None,
) -> User:
    user = ensure_user_principal(
        db,
        username=username,
        email=f"{username}@test.local",
        display_name=display_name or username.title(),
        classification=classification,
    )
    now = datetime.utcnow()
    for role in roles:
        if role is AppRole.DEVELOPER:
            continue
        db.add(RoleAssignment(user_id=user.id, role=role, active=True, created_at=now, updated_at=now))
    db.commit()
    return user


def headers_for(user: User) -> dict[str, str]:
    return auth_headers(username=user.username, email=user.email, display_name=user.display_name)


def create_project(db: Session, *, name: str, type: str | None) -> Project:
    project = Project(name=name, type=type)
    db.add(project)
    db.commit()
    return project


def create_issue(db: Session, *, owner: User | str, project_name: str, issue_key: str = "JIRA-1") -> Issue:
    owner_id = owner if isinstance(owner, str) else owner.id
    issue = Issue(issue_key=issue_key, project_name=project_name, owner_user_id=owner_id)
    db.add(issue)
    db.commit()
    return issue


def add_log(db: Session, *, issue: Issue | str, log_date: datetime, hours: str) -> TimeLogEntry:
    issue_id = issue if isinstance(issue, str) else issue.id
    entry = TimeLogEntry(
        issue_id=issue_id,
        log_date=log_date,
        hours_spent=Decimal(hours),
        description="work",
    )
    db.add(entry)
    db.commit()
    return entry


def create_team(db: Session, *, name: str, lead: User, members: list[User], active: bool = True) -> Team:
    team = Team(team_lead_user_id=lead.id, team_name=name, is_active=active)
    db.add(team)
    db.flush()
    for member in members:
        db.add(TeamMember(team_id=team.id, user_id=member.id))
    db.commit()
    return team
