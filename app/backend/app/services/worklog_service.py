"""Application service for the project catalog, issues and time logs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, has_role
from app.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.models.entities import AppRole, Issue, Project, TimeLogEntry
from app.repositories.worklog_repository import WorklogRepository

logger = logging.getLogger(__name__)

CATALOG_EDIT_ROLES = {AppRole.ADMIN, AppRole.IT_LEAD}
ISSUE_VIEW_ROLES = {AppRole.TEAM_LEAD, AppRole.IT_LEAD, AppRole.ADMIN}

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def to_server_local(value: datetime) -> datetime:
    """Naive server-local wall time; offset-aware input is converted first."""

    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


@dataclass(slots=True)
class ProjectCreateData:
    name: str
    type: str


@dataclass(slots=True)
class ProjectUpdateData:
    name: str
    type: str
    migrate_issues: bool = False


@dataclass(slots=True)
class IssueCreateData:
    issue_key: str
    project_name: str
    service_name: str | None = None
    description: str | None = None
    lifecycle_status: str | None = None
    due_date: date | None = None


@dataclass(slots=True)
class IssueUpdateData:
    lifecycle_status: str | None = None
    due_date: date | None = None
    deploy_sit_date: date | None = None
    deploy_uat_date: date | None = None
    deploy_preprod_date: date | None = None
    deploy_prod_date: date | None = None


@dataclass(slots=True)
class TimeLogCreateData:
    log_date: datetime
    hours_spent: Decimal
    description: str
    detail: str | None = None


@dataclass(slots=True)
class TimeLogUpdateData:
    log_date: datetime | None = None
    hours_spent: Decimal | None = None
    description: str | None = None
    detail: str | None = None


class WorklogService:
    """Catalog, issue and time log operations for authenticated users."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = WorklogRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": project.id,
            "name": project.name,
            "type": project.type,
            "created_at": project.created_at.isoformat(),
            "updated_at": project.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_issue(issue: Issue, *, logged_hours: Decimal | None = None) -> dict[str, object]:
        def _iso(value: date | None) -> str | None:
            return value.isoformat() if value else None

        payload: dict[str, object] = {
            "id": issue.id,
            "issue_key": issue.issue_key,
            "project_name": issue.project_name,
            "service_name": issue.service_name,
            "description": issue.description,
            "owner_user_id": issue.owner_user_id,
            "lifecycle_status": issue.lifecycle_status,
            "due_date": _iso(issue.due_date),
            "deploy_sit_date": _iso(issue.deploy_sit_date),
            "deploy_uat_date": _iso(issue.deploy_uat_date),
            "deploy_preprod_date": _iso(issue.deploy_preprod_date),
            "deploy_prod_date": _iso(issue.deploy_prod_date),
            "created_at": issue.created_at.isoformat(),
            "updated_at": issue.updated_at.isoformat(),
        }
        if logged_hours is not None:
            payload["logged_hours"] = str(_q2(logged_hours))
        return payload

    @staticmethod
    def serialize_log(entry: TimeLogEntry) -> dict[str, object]:
        return {
            "id": entry.id,
            "issue_id": entry.issue_id,
            "log_date": entry.log_date.isoformat(),
            "hours_spent": str(_q2(Decimal(str(entry.hours_spent)))),
            "description": entry.description,
            "detail": entry.detail,
            "created_at": entry.created_at.isoformat(),
            "updated_at": entry.updated_at.isoformat(),
        }

    # ---------- Project catalog ----------
    def list_projects(self) -> list[Project]:
        return self.repo.list_projects()

    def _ensure_can_edit_catalog(self, context: RequestUserContext) -> None:
        if not has_role(context, CATALOG_EDIT_ROLES):
            raise Forbidden("Insufficient role permissions for this operation.")

    def create_project(self, *, context: RequestUserContext, data: ProjectCreateData) -> Project:
        self._ensure_can_edit_catalog(context)

        now = datetime.utcnow()
        project = Project(name=data.name.strip(), type=data.type.strip(), created_at=now, updated_at=now)
        try:
            self.repo.add_project(project)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict("Project name already exists.") from exc

        self.db.refresh(project)
        return project

    def update_project(self, *, context: RequestUserContext, project_id: str, data: ProjectUpdateData) -> Project:
        self._ensure_can_edit_catalog(context)
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFound("Project not found.")

        old_name = project.name
        new_name = data.name.strip()
        project.name = new_name
        project.type = data.type.strip()
        project.updated_at = datetime.utcnow()

        migrated = 0
        if data.migrate_issues and new_name != old_name:
            migrated = self.repo.rename_issue_project(old_name=old_name, new_name=new_name)

        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict("Project name already exists.") from exc

        if migrated:
            logger.info("Re-pointed %d issues from project %r to %r", migrated, old_name, new_name)
        self.db.refresh(project)
        return project

    def delete_project(self, *, context: RequestUserContext, project_id: str) -> None:
        self._ensure_can_edit_catalog(context)
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFound("Project not found.")
        self.repo.delete_project(project)
        self.db.commit()

    # ---------- Issues ----------
    def _get_issue(self, issue_id: str) -> Issue:
        issue = self.repo.get_issue(issue_id)
        if issue is None:
            raise NotFound("Issue not found.")
        return issue

    def _ensure_owner(self, context: RequestUserContext, issue: Issue, *, allow_admin: bool = False) -> None:
        if issue.owner_user_id == context.user_id:
            return
        if allow_admin and context.is_admin:
            return
        raise Forbidden("Only the issue owner can perform this operation.")

    def create_issue(self, *, context: RequestUserContext, data: IssueCreateData) -> Issue:
        now = datetime.utcnow()
        issue = Issue(
            issue_key=data.issue_key.strip(),
            project_name=data.project_name.strip(),
            service_name=data.service_name.strip() if data.service_name else None,
            description=data.description.strip() if data.description else None,
            owner_user_id=context.user_id,
            lifecycle_status=(data.lifecycle_status or "Open").strip(),
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_issue(issue)
        self.db.commit()
        self.db.refresh(issue)
        return issue

    def list_my_issues(self, *, context: RequestUserContext) -> list[tuple[Issue, Decimal]]:
        issues = self.repo.list_issues_for_owner(context.user_id)
        totals = self.repo.logged_hours_by_issue(issue.id for issue in issues)
        return [(issue, totals.get(issue.id, ZERO)) for issue in issues]

    def get_issue(self, *, context: RequestUserContext, issue_id: str) -> Issue:
        issue = self._get_issue(issue_id)
        if issue.owner_user_id != context.user_id and not has_role(context, ISSUE_VIEW_ROLES):
            raise Forbidden("Insufficient role permissions for this operation.")
        return issue

    def update_issue(self, *, context: RequestUserContext, issue_id: str, data: IssueUpdateData) -> Issue:
        issue = self._get_issue(issue_id)
        self._ensure_owner(context, issue, allow_admin=True)

        if data.lifecycle_status is not None:
            issue.lifecycle_status = data.lifecycle_status.strip()
        for field_name in (
            "due_date",
            "deploy_sit_date",
            "deploy_uat_date",
            "deploy_preprod_date",
            "deploy_prod_date",
        ):
            value = getattr(data, field_name)
            if value is not None:
                setattr(issue, field_name, value)
        issue.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(issue)
        return issue

    # ---------- Time logs ----------
    @staticmethod
    def _validate_hours(value: Decimal) -> Decimal:
        if value < ZERO:
            raise ValidationFailed("hours_spent must be greater or equal zero.")
        return _q2(value)

    def list_logs(self, *, context: RequestUserContext, issue_id: str) -> list[TimeLogEntry]:
        self.get_issue(context=context, issue_id=issue_id)
        return self.repo.list_logs(issue_id)

    def add_log(self, *, context: RequestUserContext, issue_id: str, data: TimeLogCreateData) -> TimeLogEntry:
        issue = self._get_issue(issue_id)
        self._ensure_owner(context, issue)

        now = datetime.utcnow()
        entry = TimeLogEntry(
            issue_id=issue.id,
            log_date=to_server_local(data.log_date),
            hours_spent=self._validate_hours(data.hours_spent),
            description=data.description.strip(),
            detail=data.detail,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_log(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def update_log(
        self,
        *,
        context: RequestUserContext,
        issue_id: str,
        log_id: str,
        data: TimeLogUpdateData,
    ) -> TimeLogEntry:
        issue = self._get_issue(issue_id)
        self._ensure_owner(context, issue)
        entry = self.repo.get_log(issue_id=issue.id, log_id=log_id)
        if entry is None:
            raise NotFound("Log not found.")

        if data.log_date is not None:
            entry.log_date = to_server_local(data.log_date)
        if data.hours_spent is not None:
            entry.hours_spent = self._validate_hours(data.hours_spent)
        if data.description is not None:
            entry.description = data.description.strip()
        if data.detail is not None:
            entry.detail = data.detail
        entry.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def delete_log(self, *, context: RequestUserContext, issue_id: str, log_id: str) -> None:
        issue = self._get_issue(issue_id)
        self._ensure_owner(context, issue)
        entry = self.repo.get_log(issue_id=issue.id, log_id=log_id)
        if entry is None:
            raise NotFound("Log not found.")
        self.repo.delete_log(entry)
        self.db.commit()
