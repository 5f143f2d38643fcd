"""User directory administration and team membership management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.models.entities import AppRole, RoleAssignment, Team, User, UserClassification
from app.repositories.worklog_repository import WorklogRepository
from app.services.worklog_service import WorklogService

logger = logging.getLogger(__name__)

CLOSED_ISSUE_STATUSES = ("done", "closed")


@dataclass(slots=True)
class TeamUpsertData:
    team_name: str
    member_ids: list[str]


class DirectoryService:
    """Role and classification edits plus team-lead team maintenance."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = WorklogRepository(db)

    # ---------- Serialization ----------
    def serialize_user(self, user: User) -> dict[str, object]:
        roles = [
            assignment.role.value
            for assignment in self.repo.list_role_assignments(user.id)
            if assignment.active
        ]
        return {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "display_name": user.display_name,
            "classification": user.classification.value,
            "status": user.status,
            "roles": roles,
        }

    @staticmethod
    def serialize_member(user: User) -> dict[str, object]:
        return {"id": user.id, "username": user.username, "email": user.email}

    def serialize_team(self, team: Team) -> dict[str, object]:
        member_ids = self.repo.list_member_ids(team.id)
        return {
            "id": team.id,
            "team_name": team.team_name,
            "team_lead_user_id": team.team_lead_user_id,
            "is_active": team.is_active,
            "member_ids": member_ids,
            "members": [self.serialize_member(user) for user in self.repo.list_users_by_ids(member_ids)],
        }

    # ---------- Users ----------
    def list_users(self) -> list[User]:
        return self.repo.list_users()

    def _get_user(self, user_id: str) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFound("User not found.")
        return user

    def update_roles(self, *, context: RequestUserContext, user_id: str, roles: list[AppRole]) -> User:
        user = self._get_user(user_id)
        wanted = set(roles)
        if user.id == context.user_id and AppRole.ADMIN not in wanted:
            raise Forbidden("Admin cannot remove their own admin role.")

        now = datetime.utcnow()
        existing = {assignment.role: assignment for assignment in self.repo.list_role_assignments(user.id)}
        for role, assignment in existing.items():
            active = role in wanted
            if assignment.active != active:
                assignment.active = active
                assignment.updated_at = now
        for role in wanted - existing.keys():
            self.repo.add_role_assignment(
                RoleAssignment(user_id=user.id, role=role, active=True, created_at=now, updated_at=now)
            )
        user.updated_at = now
        self.db.commit()
        self.db.refresh(user)
        logger.info("Roles of %s set to %s by %s", user.username, sorted(r.value for r in wanted), context.username)
        return user

    def update_classification(
        self,
        *,
        context: RequestUserContext,
        user_id: str,
        classification: UserClassification,
    ) -> User:
        user = self._get_user(user_id)
        user.classification = classification
        user.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)
        logger.info("Classification of %s set to %s by %s", user.username, classification.value, context.username)
        return user

    # ---------- Teams ----------
    def get_team(self, *, context: RequestUserContext) -> tuple[Team | None, list[User]]:
        team = self.repo.get_active_team_for_lead(context.user_id)
        available = [
            user for user in self.repo.list_users_with_role(AppRole.DEVELOPER) if user.id != context.user_id
        ]
        return team, available

    def upsert_team(self, *, context: RequestUserContext, data: TeamUpsertData) -> Team:
        member_ids = list(dict.fromkeys(data.member_ids))
        known = {user.id for user in self.repo.list_users_by_ids(member_ids)}
        unknown = [member_id for member_id in member_ids if member_id not in known]
        if unknown:
            raise ValidationFailed(f"Unknown member ids: {', '.join(unknown)}.")

        now = datetime.utcnow()
        team = self.repo.get_active_team_for_lead(context.user_id)
        elsewhere = self.repo.active_team_ids_for_users(
            member_ids,
            exclude_team_id=team.id if team is not None else None,
        )
        if elsewhere:
            raise Conflict(f"Users already belong to another active team: {', '.join(sorted(elsewhere))}.")

        if team is None:
            team = self.repo.add_team(
                Team(
                    team_lead_user_id=context.user_id,
                    team_name=data.team_name.strip(),
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
        else:
            team.team_name = data.team_name.strip()
            team.updated_at = now

        self.repo.replace_members(team.id, member_ids)
        self.db.commit()
        self.db.refresh(team)
        return team

    def remove_members(self, *, context: RequestUserContext, member_ids: list[str]) -> Team:
        team = self.repo.get_active_team_for_lead(context.user_id)
        if team is None:
            raise NotFound("Team not found.")
        self.repo.remove_members(team.id, member_ids)
        team.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(team)
        return team

    def team_issues(self, *, context: RequestUserContext) -> tuple[Team | None, dict[str, dict[str, object]]]:
        """Open issues of every member of the lead's active team, keyed by member id.

        Issues whose status is done or closed (any case) are left out.
        """

        team = self.repo.get_active_team_for_lead(context.user_id)
        if team is None:
            return None, {}

        member_ids = self.repo.list_member_ids(team.id)
        members = self.repo.list_users_by_ids(member_ids)
        issues = self.repo.list_open_issues_for_owners(
            [member.id for member in members],
            closed_statuses=CLOSED_ISSUE_STATUSES,
        )
        issue_ids = [issue.id for issue in issues]
        hours = self.repo.logged_hours_by_issue(issue_ids)
        logs = self.repo.list_logs_for_issues(issue_ids)

        grouped: dict[str, dict[str, object]] = {
            member.id: {"member_info": self.serialize_member(member), "issues": []} for member in members
        }
        for issue in issues:
            payload = WorklogService.serialize_issue(issue, logged_hours=hours.get(issue.id, Decimal("0")))
            payload["logs"] = [WorklogService.serialize_log(entry) for entry in logs.get(issue.id, [])]
            grouped[issue.owner_user_id]["issues"].append(payload)
        return team, grouped
