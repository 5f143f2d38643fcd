"""IT lead time-reporting summary endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, require_roles
from app.core.config import get_settings
from app.db.dependencies import get_db_session
from app.models.entities import AppRole
from app.repositories.reporting_repository import ReportingRepository
from app.services.reporting_service import ReportingService

router = APIRouter(prefix="/summary", tags=["summary"])


def _service(db: Session) -> ReportingService:
    return ReportingService(ReportingRepository(db))


@router.get("/monthly")
def get_monthly_summary(
    year: str | None = None,
    month: str | None = None,
    include_idle: bool = False,
    _: RequestUserContext = Depends(require_roles(AppRole.IT_LEAD)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Project/type and per-user hours for one calendar month."""

    service = _service(db)
    return service.compute_monthly_summary(
        year,
        month,
        include_idle=include_idle,
        timeout_seconds=get_settings().report_query_timeout_seconds,
    )


@router.get("/yearly")
def get_yearly_trend(
    year: str | None = None,
    _: RequestUserContext = Depends(require_roles(AppRole.IT_LEAD)),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    """Core / non-core hours for each of the twelve months of ``year``."""

    service = _service(db)
    return service.compute_yearly_trend(
        year,
        timeout_seconds=get_settings().report_query_timeout_seconds,
    )
