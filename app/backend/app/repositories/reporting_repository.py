"""Read-only queries feeding the time-reporting pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, select, text
from sqlalchemy.orm import Session

from app.models.entities import Issue, Project, Team, TeamMember, TimeLogEntry, User


@dataclass(frozen=True, slots=True)
class UserRef:
    user_id: str
    username: str
    email: str
    display_name: str
    classification: str


@dataclass(frozen=True, slots=True)
class LoggedHoursRow:
    """One time log entry with its issue, owner and catalog columns.

    Issue and user columns are ``None`` when the referenced row is gone;
    ``project_type`` is ``None`` when the catalog has no matching name.
    """

    entry_id: str
    log_date: datetime
    hours_spent: object
    issue_id: str | None
    project_name: str | None
    project_type: str | None
    user: UserRef | None


class ReportingRepository:
    """Joins logs, issues, users, projects and teams for reporting."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def apply_statement_timeout(self, seconds: float | None) -> None:
        """Bound the next statements of the current transaction.

        Only PostgreSQL exposes a per-transaction statement timeout; other
        dialects run without one.
        """

        if not seconds or self.db.get_bind().dialect.name != "postgresql":
            return
        milliseconds = max(1, int(seconds * 1000))
        self.db.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))

    def list_logged_hours(self, *, start: datetime, end: datetime) -> list[LoggedHoursRow]:
        """Entries with ``start <= log_date < end`` joined outward.

        Issue, user and project joins are outer joins so that callers can
        account for entries that would otherwise vanish.
        """

        rows = self.db.execute(
            select(
                TimeLogEntry.id,
                TimeLogEntry.log_date,
                TimeLogEntry.hours_spent,
                Issue.id,
                Issue.project_name,
                Project.type,
                User.id,
                User.username,
                User.email,
                User.display_name,
                User.classification,
            )
            .select_from(TimeLogEntry)
            .outerjoin(Issue, Issue.id == TimeLogEntry.issue_id)
            .outerjoin(User, User.id == Issue.owner_user_id)
            .outerjoin(Project, Project.name == Issue.project_name)
            .where(and_(TimeLogEntry.log_date >= start, TimeLogEntry.log_date < end))
            .order_by(TimeLogEntry.log_date.asc(), TimeLogEntry.id.asc())
        ).all()

        result: list[LoggedHoursRow] = []
        for (
            entry_id,
            log_date,
            hours_spent,
            issue_id,
            project_name,
            project_type,
            user_id,
            username,
            email,
            display_name,
            classification,
        ) in rows:
            user = None
            if user_id is not None:
                user = UserRef(
                    user_id=user_id,
                    username=username,
                    email=email,
                    display_name=display_name,
                    classification=classification.value,
                )
            result.append(
                LoggedHoursRow(
                    entry_id=entry_id,
                    log_date=log_date,
                    hours_spent=hours_spent,
                    issue_id=issue_id,
                    project_name=project_name,
                    project_type=project_type,
                    user=user,
                )
            )
        return result

    def list_users(self) -> list[UserRef]:
        users = self.db.scalars(select(User).order_by(User.username.asc())).all()
        return [
            UserRef(
                user_id=user.id,
                username=user.username,
                email=user.email,
                display_name=user.display_name,
                classification=user.classification.value,
            )
            for user in users
        ]

    def team_names_for_users(self, user_ids: Iterable[str]) -> dict[str, str]:
        """Map user id to the name of one active team containing it.

        A user listed by several active teams gets the lowest team name
        (then id), so every user maps to at most one label.
        """

        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}

        rows = self.db.execute(
            select(TeamMember.user_id, Team.team_name)
            .join(Team, Team.id == TeamMember.team_id)
            .where(and_(Team.is_active.is_(True), TeamMember.user_id.in_(ids)))
            .order_by(TeamMember.user_id.asc(), Team.team_name.asc(), Team.id.asc())
        ).all()

        names: dict[str, str] = {}
        for user_id, team_name in rows:
            names.setdefault(user_id, team_name)
        return names
