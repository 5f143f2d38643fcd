"""Administration endpoints for user roles and classification."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, require_roles
from app.db.dependencies import get_db_session
from app.models.entities import AppRole, UserClassification
from app.services.directory_service import DirectoryService

router = APIRouter(prefix="/admin", tags=["admin"])


class RolesUpdate(BaseModel):
    roles: list[AppRole] = Field(min_length=1)


class ClassificationUpdate(BaseModel):
    classification: UserClassification


def _service(db: Session) -> DirectoryService:
    return DirectoryService(db)


@router.get("/users")
def list_users(
    _: RequestUserContext = Depends(require_roles(AppRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    """List all users with their active roles."""

    service = _service(db)
    return {"items": [service.serialize_user(user) for user in service.list_users()]}


@router.put("/users/{user_id}/roles")
def update_user_roles(
    user_id: str,
    payload: RolesUpdate,
    context: RequestUserContext = Depends(require_roles(AppRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    user = service.update_roles(context=context, user_id=user_id, roles=payload.roles)
    return service.serialize_user(user)


@router.put("/users/{user_id}/classification")
def update_user_classification(
    user_id: str,
    payload: ClassificationUpdate,
    context: RequestUserContext = Depends(require_roles(AppRole.ADMIN)),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    user = service.update_classification(
        context=context,
        user_id=user_id,
        classification=payload.classification,
    )
    return service.serialize_user(user)
