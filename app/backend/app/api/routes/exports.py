"""Export endpoint for logged time."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, require_roles
from app.db.dependencies import get_db_session
from app.models.entities import AppRole
from app.services.export_service import ExportService

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> ExportService:
    return ExportService(db)


@router.get("/logs")
def export_logs(
    start: date = Query(...),
    end: date = Query(...),
    format: str = Query(default="xlsx"),
    _: RequestUserContext = Depends(require_roles(AppRole.IT_LEAD)),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_logs(start=start, end=end, format_name=format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
