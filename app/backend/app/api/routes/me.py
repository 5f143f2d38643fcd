"""Current user endpoint."""

from fastapi import APIRouter, Depends

from app.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and roles."""

    return {
        "id": context.user_id,
        "username": context.username,
        "email": context.email,
        "display_name": context.display_name,
        "classification": context.classification.value,
        "roles": list(context.role_names),
    }
