"""ORM entities for the worklog dashboard schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


class AppRole(str, enum.Enum):
    DEVELOPER = "DEVELOPER"
    TEAM_LEAD = "TEAM LEAD"
    IT_LEAD = "IT LEAD"
    ADMIN = "ADMIN"


class UserClassification(str, enum.Enum):
    CORE = "Core"
    NON_CORE = "Non-Core"


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    classification: Mapped[UserClassification] = mapped_column(
        SQLEnum(
            UserClassification,
            name="user_classification",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=UserClassification.NON_CORE,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class RoleAssignment(Base):
    __tablename__ = "role_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_role_assignments_user_role"),
        Index("ix_role_assignments_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    role: Mapped[AppRole] = mapped_column(
        SQLEnum(
            AppRole,
            name="app_role",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Project(Base):
    """Catalog entry; issues refer to it by ``name``, not by id."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (
        Index("ix_issues_owner_user_id", "owner_user_id"),
        Index("ix_issues_project_name", "project_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    issue_key: Mapped[str] = mapped_column(String(64), nullable=False)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    service_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    # Opaque reference into users.id, intentionally not a foreign key.
    owner_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    lifecycle_status: Mapped[str] = mapped_column(String(64), nullable=False, default="Open")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deploy_sit_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deploy_uat_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deploy_preprod_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    deploy_prod_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class TimeLogEntry(Base):
    __tablename__ = "time_log_entries"
    __table_args__ = (
        CheckConstraint("hours_spent >= 0", name="ck_time_log_entries_hours_non_negative"),
        Index("ix_time_log_entries_log_date", "log_date"),
        Index("ix_time_log_entries_issue_id", "issue_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    issue_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # Naive server-local timestamp; reporting windows are computed in the same clock.
    log_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    hours_spent: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0.00"))
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Team(Base):
    __tablename__ = "teams"
    __table_args__ = (Index("ix_teams_lead_active", "team_lead_user_id", "is_active"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    team_lead_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
        Index("ix_team_members_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    team_id: Mapped[str] = mapped_column(String(36), ForeignKey("teams.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
