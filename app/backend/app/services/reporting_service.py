"""Time-reporting aggregation for IT lead summaries.

The monthly summary and the yearly trend are built from one store call each
(``ReportingRepository.list_logged_hours``) followed by pure, in-memory
stages:

``drop_unattributed`` -> ``attribute_rows`` -> ``summarize_projects`` /
``summarize_individuals`` / ``summarize_months`` -> ``fill_month_gaps``.

Every stage takes and returns plain rows so each can be exercised alone.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.errors import AggregationFailed, InvalidPeriod
from app.models.entities import UserClassification
from app.repositories.reporting_repository import LoggedHoursRow, ReportingRepository, UserRef

logger = logging.getLogger(__name__)

CORE = UserClassification.CORE.value
NON_CORE = UserClassification.NON_CORE.value
OTHER_PROJECT_TYPE = "Other"
MIN_YEAR = 1
MAX_YEAR = 9998
MONTHS = tuple(range(1, 13))
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    """Half-open ``[start, end)`` window in server-local time."""

    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value < self.end


@dataclass(frozen=True, slots=True)
class AttributedHours:
    """A log entry resolved to its project bucket, user and team."""

    entry_id: str
    log_date: datetime
    hours: float
    project_name: str
    project_type: str
    user: UserRef
    team_name: str | None


# ---------- Period parsing ----------
def _parse_int(value: object, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidPeriod(f"Invalid {field_name}.")
    if isinstance(value, int):
        return value
    if value is None:
        raise InvalidPeriod(f"Missing {field_name}.")
    text = str(value).strip()
    if not INTEGER_PATTERN.fullmatch(text):
        raise InvalidPeriod(f"Invalid {field_name}.")
    return int(text)


def parse_year(value: object) -> int:
    year = _parse_int(value, "year")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriod(f"year must be between {MIN_YEAR} and {MAX_YEAR}.")
    return year


def parse_month(value: object) -> int:
    month = _parse_int(value, "month")
    if month not in MONTHS:
        raise InvalidPeriod("month must be between 1 and 12.")
    return month


def month_window(year: int, month: int) -> ReportPeriod:
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return ReportPeriod(start=start, end=end)


def year_window(year: int) -> ReportPeriod:
    return ReportPeriod(start=datetime(year, 1, 1), end=datetime(year + 1, 1, 1))


# ---------- Pipeline stages ----------
def coerce_hours(value: object) -> float:
    """Best-effort float conversion; anything unparseable counts as zero."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return 0.0
    if hours != hours or hours in (float("inf"), float("-inf")):
        return 0.0
    return hours


def resolve_project_type(project_type: str | None, *, fallback: str = OTHER_PROJECT_TYPE) -> str:
    if project_type is None or not project_type.strip():
        return fallback
    return project_type


def drop_unattributed(rows: Iterable[LoggedHoursRow]) -> list[LoggedHoursRow]:
    """Keep rows whose issue and owning user both still exist.

    Dropped rows are reported at WARNING with their total hours so that
    deleted issues or owners never lose hours silently.
    """

    kept: list[LoggedHoursRow] = []
    dropped = 0
    dropped_hours = 0.0
    for row in rows:
        if row.issue_id is None or row.user is None:
            dropped += 1
            dropped_hours += coerce_hours(row.hours_spent)
            continue
        kept.append(row)

    if dropped:
        logger.warning(
            "Excluded %d time log entries (%.2f hours) without an existing issue or owner",
            dropped,
            dropped_hours,
        )
    return kept


def attribute_rows(
    rows: Iterable[LoggedHoursRow],
    team_names: Mapping[str, str],
    *,
    fallback_type: str = OTHER_PROJECT_TYPE,
) -> list[AttributedHours]:
    """Coerce hours, resolve project type and attach the team label."""

    attributed: list[AttributedHours] = []
    for row in rows:
        if row.user is None:
            raise ValueError(f"Row {row.entry_id} has no owning user; run drop_unattributed first.")
        attributed.append(
            AttributedHours(
                entry_id=row.entry_id,
                log_date=row.log_date,
                hours=coerce_hours(row.hours_spent),
                project_name=row.project_name or "",
                project_type=resolve_project_type(row.project_type, fallback=fallback_type),
                user=row.user,
                team_name=team_names.get(row.user.user_id),
            )
        )
    return attributed


def _split(classification: str, hours: float) -> tuple[float, float]:
    if classification == CORE:
        return hours, 0.0
    if classification == NON_CORE:
        return 0.0, hours
    return 0.0, 0.0


def summarize_projects(items: Iterable[AttributedHours]) -> list[dict[str, object]]:
    """Group hours by (project, type), then nest projects under their type.

    Outer groups are sorted by type label, projects inside a group by name.
    """

    buckets: dict[tuple[str, str], dict[str, float]] = {}
    for item in items:
        bucket = buckets.setdefault(
            (item.project_type, item.project_name),
            {"totalHours": 0.0, "nonCoreHours": 0.0, "coreHours": 0.0},
        )
        core, non_core = _split(item.user.classification, item.hours)
        bucket["totalHours"] += item.hours
        bucket["coreHours"] += core
        bucket["nonCoreHours"] += non_core

    by_type: dict[str, list[dict[str, object]]] = {}
    for (project_type, project_name), totals in sorted(buckets.items()):
        by_type.setdefault(project_type, []).append({"name": project_name, **totals})

    return [{"_id": project_type, "projects": projects} for project_type, projects in by_type.items()]


def summarize_individuals(
    items: Iterable[AttributedHours],
    *,
    idle_users: Iterable[UserRef] = (),
    team_names: Mapping[str, str] | None = None,
) -> list[dict[str, object]]:
    """Total hours per user, sorted by username.

    ``idle_users`` without any hours are appended with ``totalHours == 0``.
    """

    totals: dict[str, float] = {}
    users: dict[str, UserRef] = {}
    teams: dict[str, str | None] = {}
    for item in items:
        user_id = item.user.user_id
        totals[user_id] = totals.get(user_id, 0.0) + item.hours
        users.setdefault(user_id, item.user)
        teams.setdefault(user_id, item.team_name)

    for user in idle_users:
        if user.user_id in users:
            continue
        users[user.user_id] = user
        totals[user.user_id] = 0.0
        teams[user.user_id] = (team_names or {}).get(user.user_id)

    ordered = sorted(users.values(), key=lambda user: (user.username, user.user_id))
    return [
        {
            "user": {
                "id": user.user_id,
                "username": user.username,
                "email": user.email,
                "classification": user.classification,
                "displayName": user.display_name,
                "teamName": teams.get(user.user_id),
            },
            "totalHours": totals[user.user_id],
        }
        for user in ordered
    ]


def summarize_months(items: Iterable[AttributedHours]) -> dict[int, dict[str, float]]:
    """Sum core / non-core hours per calendar month of ``log_date``."""

    months: dict[int, dict[str, float]] = {}
    for item in items:
        bucket = months.setdefault(item.log_date.month, {"coreHours": 0.0, "nonCoreHours": 0.0})
        core, non_core = _split(item.user.classification, item.hours)
        bucket["coreHours"] += core
        bucket["nonCoreHours"] += non_core
    return months


def fill_month_gaps(months: Mapping[int, Mapping[str, float]]) -> list[dict[str, object]]:
    """Return exactly twelve rows, month 1 through 12, zeros where absent."""

    filled: list[dict[str, object]] = []
    for month in MONTHS:
        bucket = months.get(month, {})
        filled.append(
            {
                "month": month,
                "coreHours": bucket.get("coreHours", 0.0),
                "nonCoreHours": bucket.get("nonCoreHours", 0.0),
            }
        )
    return filled


def _round_hours(value: float) -> float:
    return round(value, 2)


def _round_project_summary(groups: Sequence[dict[str, object]]) -> list[dict[str, object]]:
    return [
        {
            "_id": group["_id"],
            "projects": [
                {
                    "name": project["name"],
                    "totalHours": _round_hours(project["totalHours"]),
                    "nonCoreHours": _round_hours(project["nonCoreHours"]),
                    "coreHours": _round_hours(project["coreHours"]),
                }
                for project in group["projects"]
            ],
        }
        for group in groups
    ]


class ReportingService:
    """Monthly summary and yearly trend aggregators.

    Stateless apart from the injected repository; safe to call concurrently
    with separate sessions.
    """

    def __init__(self, repo: ReportingRepository, *, unmatched_project_type: str | None = None) -> None:
        self.repo = repo
        self.unmatched_project_type = unmatched_project_type or get_settings().unmatched_project_type

    def _load_rows(self, period: ReportPeriod, *, timeout_seconds: float | None) -> list[LoggedHoursRow]:
        try:
            self.repo.apply_statement_timeout(timeout_seconds)
            return self.repo.list_logged_hours(start=period.start, end=period.end)
        except SQLAlchemyError as exc:
            logger.exception("Reporting query failed for window %s - %s", period.start, period.end)
            raise AggregationFailed() from exc

    def _load_team_names(self, user_ids: Iterable[str]) -> dict[str, str]:
        try:
            return self.repo.team_names_for_users(user_ids)
        except SQLAlchemyError as exc:
            logger.exception("Team lookup failed during reporting")
            raise AggregationFailed() from exc

    def _load_users(self) -> list[UserRef]:
        try:
            return self.repo.list_users()
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed during reporting")
            raise AggregationFailed() from exc

    def compute_monthly_summary(
        self,
        year: object,
        month: object,
        *,
        include_idle: bool = False,
        timeout_seconds: float | None = None,
    ) -> dict[str, list[dict[str, object]]]:
        """Project/type summary and per-user totals for one calendar month."""

        period = month_window(parse_year(year), parse_month(month))
        rows = drop_unattributed(self._load_rows(period, timeout_seconds=timeout_seconds))

        idle_users: list[UserRef] = self._load_users() if include_idle else []
        user_ids = [row.user.user_id for row in rows] + [user.user_id for user in idle_users]
        team_names = self._load_team_names(user_ids)

        items = attribute_rows(rows, team_names, fallback_type=self.unmatched_project_type)
        individuals = summarize_individuals(items, idle_users=idle_users, team_names=team_names)
        for row in individuals:
            row["totalHours"] = _round_hours(row["totalHours"])

        logger.debug(
            "Monthly summary %04d-%02d built from %d entries",
            period.start.year,
            period.start.month,
            len(items),
        )
        return {
            "projectSummary": _round_project_summary(summarize_projects(items)),
            "individualSummary": individuals,
        }

    def compute_yearly_trend(self, year: object, *, timeout_seconds: float | None = None) -> list[dict[str, object]]:
        """Twelve monthly rows of core / non-core hours for ``year``."""

        period = year_window(parse_year(year))
        rows = drop_unattributed(self._load_rows(period, timeout_seconds=timeout_seconds))
        items = attribute_rows(rows, {}, fallback_type=self.unmatched_project_type)

        trend = fill_month_gaps(summarize_months(items))
        for row in trend:
            row["coreHours"] = _round_hours(row["coreHours"])
            row["nonCoreHours"] = _round_hours(row["nonCoreHours"])
        return trend
