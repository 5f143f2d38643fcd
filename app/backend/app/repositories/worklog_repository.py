"""Repository helpers for directory, catalog, issue and time log data."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from app.models.entities import (
    AppRole,
    Issue,
    Project,
    RoleAssignment,
    Team,
    TeamMember,
    TimeLogEntry,
    User,
)


class WorklogRepository:
    """Persistence operations used by the CRUD collaborators."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users and roles ----------
    def get_user(self, user_id: str) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def list_users(self) -> list[User]:
        return self.db.scalars(select(User).order_by(User.username.asc())).all()

    def list_users_by_ids(self, user_ids: Iterable[str]) -> list[User]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        return self.db.scalars(select(User).where(User.id.in_(ids)).order_by(User.username.asc())).all()

    def list_users_with_role(self, role: AppRole) -> list[User]:
        return self.db.scalars(
            select(User)
            .join(RoleAssignment, RoleAssignment.user_id == User.id)
            .where(and_(RoleAssignment.role == role, RoleAssignment.active.is_(True)))
            .order_by(User.username.asc())
        ).all()

    def list_role_assignments(self, user_id: str) -> list[RoleAssignment]:
        return self.db.scalars(
            select(RoleAssignment)
            .where(RoleAssignment.user_id == user_id)
            .order_by(RoleAssignment.role.asc())
        ).all()

    def add_role_assignment(self, assignment: RoleAssignment) -> RoleAssignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    # ---------- Project catalog ----------
    def list_projects(self) -> list[Project]:
        return self.db.scalars(select(Project).order_by(Project.name.asc())).all()

    def get_project(self, project_id: str) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        self.db.delete(project)
        self.db.flush()

    def rename_issue_project(self, *, old_name: str, new_name: str) -> int:
        result = self.db.execute(
            update(Issue).where(Issue.project_name == old_name).values(project_name=new_name)
        )
        return result.rowcount or 0

    # ---------- Issues ----------
    def get_issue(self, issue_id: str) -> Issue | None:
        return self.db.scalar(select(Issue).where(Issue.id == issue_id))

    def list_issues_for_owner(self, owner_user_id: str) -> list[Issue]:
        return self.db.scalars(
            select(Issue)
            .where(Issue.owner_user_id == owner_user_id)
            .order_by(Issue.created_at.desc(), Issue.issue_key.asc())
        ).all()

    def list_open_issues_for_owners(
        self,
        owner_user_ids: Iterable[str],
        *,
        closed_statuses: Iterable[str],
    ) -> list[Issue]:
        ids = list(dict.fromkeys(owner_user_ids))
        if not ids:
            return []
        closed = [status.lower() for status in closed_statuses]
        return self.db.scalars(
            select(Issue)
            .where(and_(Issue.owner_user_id.in_(ids), func.lower(Issue.lifecycle_status).not_in(closed)))
            .order_by(Issue.created_at.desc(), Issue.issue_key.asc())
        ).all()

    def add_issue(self, issue: Issue) -> Issue:
        self.db.add(issue)
        self.db.flush()
        return issue

    def logged_hours_by_issue(self, issue_ids: Iterable[str]) -> dict[str, Decimal]:
        ids = list(issue_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(TimeLogEntry.issue_id, func.coalesce(func.sum(TimeLogEntry.hours_spent), 0))
            .where(TimeLogEntry.issue_id.in_(ids))
            .group_by(TimeLogEntry.issue_id)
        ).all()
        return {issue_id: Decimal(str(total)) for issue_id, total in rows}

    # ---------- Time logs ----------
    def list_logs(self, issue_id: str) -> list[TimeLogEntry]:
        return self.db.scalars(
            select(TimeLogEntry)
            .where(TimeLogEntry.issue_id == issue_id)
            .order_by(TimeLogEntry.log_date.asc(), TimeLogEntry.created_at.asc())
        ).all()

    def list_logs_for_issues(self, issue_ids: Iterable[str]) -> dict[str, list[TimeLogEntry]]:
        ids = list(dict.fromkeys(issue_ids))
        if not ids:
            return {}
        entries = self.db.scalars(
            select(TimeLogEntry)
            .where(TimeLogEntry.issue_id.in_(ids))
            .order_by(TimeLogEntry.log_date.asc(), TimeLogEntry.created_at.asc())
        ).all()
        grouped: dict[str, list[TimeLogEntry]] = {}
        for entry in entries:
            grouped.setdefault(entry.issue_id, []).append(entry)
        return grouped

    def list_logs_with_issues(
        self,
        *,
        start: datetime,
        end: datetime,
    ) -> list[tuple[TimeLogEntry, Issue, str | None, str | None]]:
        """Logs with ``start <= log_date < end`` and their issue, project type and owner username."""

        rows = self.db.execute(
            select(TimeLogEntry, Issue, Project.type, User.username)
            .join(Issue, Issue.id == TimeLogEntry.issue_id)
            .outerjoin(Project, Project.name == Issue.project_name)
            .outerjoin(User, User.id == Issue.owner_user_id)
            .where(and_(TimeLogEntry.log_date >= start, TimeLogEntry.log_date < end))
            .order_by(TimeLogEntry.log_date.asc(), Issue.issue_key.asc(), TimeLogEntry.id.asc())
        ).all()
        return [(entry, issue, project_type, username) for entry, issue, project_type, username in rows]

    def get_log(self, *, issue_id: str, log_id: str) -> TimeLogEntry | None:
        return self.db.scalar(
            select(TimeLogEntry).where(and_(TimeLogEntry.id == log_id, TimeLogEntry.issue_id == issue_id))
        )

    def add_log(self, entry: TimeLogEntry) -> TimeLogEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_log(self, entry: TimeLogEntry) -> None:
        self.db.delete(entry)
        self.db.flush()

    # ---------- Teams ----------
    def get_active_team_for_lead(self, lead_user_id: str) -> Team | None:
        return self.db.scalar(
            select(Team)
            .where(and_(Team.team_lead_user_id == lead_user_id, Team.is_active.is_(True)))
            .order_by(Team.created_at.asc(), Team.id.asc())
        )

    def add_team(self, team: Team) -> Team:
        self.db.add(team)
        self.db.flush()
        return team

    def list_member_ids(self, team_id: str) -> list[str]:
        return self.db.scalars(
            select(TeamMember.user_id).where(TeamMember.team_id == team_id).order_by(TeamMember.user_id.asc())
        ).all()

    def active_team_ids_for_users(self, user_ids: Iterable[str], *, exclude_team_id: str | None = None) -> dict[str, str]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        conditions = [Team.is_active.is_(True), TeamMember.user_id.in_(ids)]
        if exclude_team_id is not None:
            conditions.append(Team.id != exclude_team_id)
        rows = self.db.execute(
            select(TeamMember.user_id, Team.id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(and_(*conditions))
        ).all()
        return {user_id: team_id for user_id, team_id in rows}

    def replace_members(self, team_id: str, member_ids: Iterable[str]) -> None:
        existing = self.db.scalars(select(TeamMember).where(TeamMember.team_id == team_id)).all()
        for member in existing:
            self.db.delete(member)
        self.db.flush()
        for user_id in dict.fromkeys(member_ids):
            self.db.add(TeamMember(team_id=team_id, user_id=user_id))
        self.db.flush()

    def remove_members(self, team_id: str, member_ids: Iterable[str]) -> None:
        ids = list(member_ids)
        if not ids:
            return
        members = self.db.scalars(
            select(TeamMember).where(and_(TeamMember.team_id == team_id, TeamMember.user_id.in_(ids)))
        ).all()
        for member in members:
            self.db.delete(member)
        self.db.flush()
