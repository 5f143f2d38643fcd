"""Team lead endpoints for the lead's active team and its open work."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, require_roles
from app.db.dependencies import get_db_session
from app.models.entities import AppRole
from app.services.directory_service import DirectoryService, TeamUpsertData

router = APIRouter(prefix="/team", tags=["team"])


class TeamUpsertPayload(BaseModel):
    team_name: str = Field(min_length=1, max_length=255)
    member_ids: list[str]


class TeamMembersRemovePayload(BaseModel):
    member_ids: list[str]


def _service(db: Session) -> DirectoryService:
    return DirectoryService(db)


@router.get("")
def get_team(
    context: RequestUserContext = Depends(require_roles(AppRole.TEAM_LEAD)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team, available = service.get_team(context=context)
    return {
        "team": service.serialize_team(team) if team is not None else None,
        "available_members": [service.serialize_member(user) for user in available],
    }


@router.put("")
def upsert_team(
    payload: TeamUpsertPayload,
    context: RequestUserContext = Depends(require_roles(AppRole.TEAM_LEAD)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team = service.upsert_team(
        context=context,
        data=TeamUpsertData(team_name=payload.team_name, member_ids=payload.member_ids),
    )
    return {"team": service.serialize_team(team)}


@router.delete("/members")
def remove_team_members(
    payload: TeamMembersRemovePayload,
    context: RequestUserContext = Depends(require_roles(AppRole.TEAM_LEAD)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    team = service.remove_members(context=context, member_ids=payload.member_ids)
    return {"team": service.serialize_team(team)}


@router.get("/issues")
def list_team_issues(
    context: RequestUserContext = Depends(require_roles(AppRole.TEAM_LEAD)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Open issues with their logs for each member of the lead's team."""

    service = _service(db)
    team, issues_by_member = service.team_issues(context=context)
    return {
        "team": service.serialize_team(team) if team is not None else None,
        "issues_by_member": issues_by_member,
    }
