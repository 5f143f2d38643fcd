"""Authentication context extraction and RBAC guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, Header
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import Conflict, Forbidden, Unauthorized
from app.db.dependencies import get_db_session
from app.models.entities import AppRole, RoleAssignment, User, UserClassification

DEFAULT_ROLES: tuple[AppRole, ...] = (AppRole.DEVELOPER,)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state.

    Acts as the capability token handed to guards; it carries no session
    or database handle.
    """

    user_id: str
    username: str
    email: str
    display_name: str
    classification: UserClassification
    roles: tuple[AppRole, ...]

    @property
    def role_names(self) -> tuple[str, ...]:
        return tuple(role.value for role in self.roles)

    @property
    def is_admin(self) -> bool:
        return AppRole.ADMIN in self.roles


def _resolve_identity(
    x_username: str | None,
    x_email: str | None,
    x_display_name: str | None,
) -> tuple[str, str, str]:
    if x_username and x_email:
        display_name = x_display_name or x_username
        return x_username.strip(), x_email.strip().lower(), display_name.strip()

    settings = get_settings()
    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_username.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    raise Unauthorized(
        "Missing identity headers. Expected X-USERNAME and X-EMAIL or enable development principal fallback."
    )


def _upsert_user(db: Session, *, username: str, email: str, display_name: str) -> User:
    user = db.scalar(select(User).where(User.username == username))
    now = datetime.utcnow()

    if user is None:
        user = User(
            username=username,
            email=email,
            display_name=display_name,
            classification=UserClassification.NON_CORE,
            status="active",
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        for role in DEFAULT_ROLES:
            db.add(RoleAssignment(user_id=user.id, role=role, active=True, created_at=now, updated_at=now))
        db.flush()
        return user

    changed = False
    if user.email != email:
        user.email = email
        changed = True
    if user.display_name != display_name:
        user.display_name = display_name
        changed = True

    user.last_login_at = now
    if changed:
        user.updated_at = now
    db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    username: str,
    email: str,
    display_name: str,
    classification: UserClassification | None = None,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_username = username.strip()
    normalized_email = email.strip().lower()
    normalized_display_name = display_name.strip() or normalized_username

    user = _upsert_user(
        db,
        username=normalized_username,
        email=normalized_email,
        display_name=normalized_display_name,
    )
    if classification is not None:
        user.classification = classification
    db.commit()
    db.refresh(user)
    return user


def load_active_roles(db: Session, *, user_id: str) -> tuple[AppRole, ...]:
    roles = db.scalars(
        select(RoleAssignment.role)
        .where(and_(RoleAssignment.user_id == user_id, RoleAssignment.active.is_(True)))
        .order_by(RoleAssignment.role.asc())
    ).all()
    return tuple(dict.fromkeys(roles))


def get_current_user_context(
    x_username: str | None = Header(default=None, alias="X-USERNAME"),
    x_email: str | None = Header(default=None, alias="X-EMAIL"),
    x_display_name: str | None = Header(default=None, alias="X-DISPLAY-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and active roles.

    Identity is taken from headers set by the authenticating proxy; password
    handling never reaches this service.
    """

    username, email, display_name = _resolve_identity(x_username, x_email, x_display_name)
    try:
        user = _upsert_user(db, username=username, email=email, display_name=display_name)
        roles = load_active_roles(db, user_id=user.id)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Email is already registered to another username.") from exc

    return RequestUserContext(
        user_id=user.id,
        username=user.username,
        email=user.email,
        display_name=user.display_name,
        classification=user.classification,
        roles=roles,
    )


def has_role(context: RequestUserContext, allowed_roles: set[AppRole]) -> bool:
    """Check whether user has any of the allowed roles."""

    return any(role in allowed_roles for role in context.roles)


def require_roles(*roles: AppRole):
    """Dependency factory requiring at least one provided role."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise Forbidden()
        return context

    return dependency
