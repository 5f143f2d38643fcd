"""Issue and time log endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.services.worklog_service import (
    IssueCreateData,
    IssueUpdateData,
    TimeLogCreateData,
    TimeLogUpdateData,
    WorklogService,
)

router = APIRouter(prefix="/issues", tags=["issues"])


class IssueCreatePayload(BaseModel):
    issue_key: str = Field(min_length=1, max_length=64)
    project_name: str = Field(min_length=1, max_length=255)
    service_name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    lifecycle_status: str | None = Field(default=None, min_length=1, max_length=64)
    due_date: date | None = None


class IssueUpdatePayload(BaseModel):
    lifecycle_status: str | None = Field(default=None, min_length=1, max_length=64)
    due_date: date | None = None
    deploy_sit_date: date | None = None
    deploy_uat_date: date | None = None
    deploy_preprod_date: date | None = None
    deploy_prod_date: date | None = None


class TimeLogCreatePayload(BaseModel):
    log_date: datetime
    hours_spent: Decimal = Field(ge=0, max_digits=6, decimal_places=2)
    description: str = Field(min_length=1, max_length=2000)
    detail: str | None = None


class TimeLogUpdatePayload(BaseModel):
    log_date: datetime | None = None
    hours_spent: Decimal | None = Field(default=None, ge=0, max_digits=6, decimal_places=2)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    detail: str | None = None


def _service(db: Session) -> WorklogService:
    return WorklogService(db)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_issue(
    payload: IssueCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    issue = service.create_issue(
        context=context,
        data=IssueCreateData(
            issue_key=payload.issue_key,
            project_name=payload.project_name,
            service_name=payload.service_name,
            description=payload.description,
            lifecycle_status=payload.lifecycle_status,
            due_date=payload.due_date,
        ),
    )
    return service.serialize_issue(issue)


@router.get("/mine")
def list_my_issues(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {
        "items": [
            service.serialize_issue(issue, logged_hours=hours)
            for issue, hours in service.list_my_issues(context=context)
        ]
    }


@router.get("/{issue_id}")
def get_issue(
    issue_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_issue(service.get_issue(context=context, issue_id=issue_id))


@router.patch("/{issue_id}")
def update_issue(
    issue_id: str,
    payload: IssueUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    issue = service.update_issue(
        context=context,
        issue_id=issue_id,
        data=IssueUpdateData(**payload.model_dump()),
    )
    return service.serialize_issue(issue)


@router.get("/{issue_id}/logs")
def list_issue_logs(
    issue_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    return {"items": [service.serialize_log(entry) for entry in service.list_logs(context=context, issue_id=issue_id)]}


@router.post("/{issue_id}/logs", status_code=status.HTTP_201_CREATED)
def add_issue_log(
    issue_id: str,
    payload: TimeLogCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.add_log(
        context=context,
        issue_id=issue_id,
        data=TimeLogCreateData(
            log_date=payload.log_date,
            hours_spent=payload.hours_spent,
            description=payload.description,
            detail=payload.detail,
        ),
    )
    return service.serialize_log(entry)


@router.put("/{issue_id}/logs/{log_id}")
def update_issue_log(
    issue_id: str,
    log_id: str,
    payload: TimeLogUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    entry = service.update_log(
        context=context,
        issue_id=issue_id,
        log_id=log_id,
        data=TimeLogUpdateData(**payload.model_dump()),
    )
    return service.serialize_log(entry)


@router.delete("/{issue_id}/logs/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_issue_log(
    issue_id: str,
    log_id: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    service.delete_log(context=context, issue_id=issue_id, log_id=log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
