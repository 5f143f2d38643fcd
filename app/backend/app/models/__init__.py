"""ORM model package."""

from app.models.entities import (
    AppRole,
    Issue,
    Project,
    RoleAssignment,
    Team,
    TeamMember,
    TimeLogEntry,
    User,
    UserClassification,
)

__all__ = [
    "AppRole",
    "Issue",
    "Project",
    "RoleAssignment",
    "Team",
    "TeamMember",
    "TimeLogEntry",
    "User",
    "UserClassification",
]
