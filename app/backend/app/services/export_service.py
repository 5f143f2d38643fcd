"""Spreadsheet exports of logged time."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from openpyxl import Workbook
from sqlalchemy.orm import Session

from app.core.errors import InvalidPeriod, ValidationFailed
from app.repositories.worklog_repository import WorklogRepository

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("xlsx", "csv")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUMMARY_COLUMNS = (
    "Issue",
    "Description",
    "Project",
    "Project type",
    "Status",
    "Owner",
    "Total hours",
)
DETAIL_COLUMNS = (
    "Log date",
    "Issue",
    "Project",
    "Owner",
    "Hours",
    "Description",
    "Detail",
)


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


class ExportService:
    """Builds time log exports over an inclusive date range."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = WorklogRepository(db)

    def _collect(self, start: date, end: date) -> tuple[list[dict[str, object]], list[dict[str, object]]]:
        rows = self.repo.list_logs_with_issues(
            start=datetime.combine(start, datetime.min.time()),
            end=datetime.combine(end + timedelta(days=1), datetime.min.time()),
        )

        detail: list[dict[str, object]] = []
        summary: dict[str, dict[str, object]] = {}
        for entry, issue, project_type, owner in rows:
            hours = Decimal(str(entry.hours_spent))
            detail.append(
                {
                    "Log date": entry.log_date.date().isoformat(),
                    "Issue": issue.issue_key,
                    "Project": issue.project_name,
                    "Owner": owner or "",
                    "Hours": float(hours),
                    "Description": entry.description,
                    "Detail": entry.detail or "",
                }
            )
            row = summary.setdefault(
                issue.id,
                {
                    "Issue": issue.issue_key,
                    "Description": issue.description or "",
                    "Project": issue.project_name,
                    "Project type": project_type,
                    "Status": issue.lifecycle_status,
                    "Owner": owner or "",
                    "Total hours": Decimal("0"),
                },
            )
            row["Total hours"] += hours

        # Issues with nothing logged in the range are not listed.
        summary_rows = [
            {**row, "Total hours": float(row["Total hours"])}
            for row in sorted(summary.values(), key=lambda item: (item["Issue"], item["Project"]))
            if row["Total hours"] > 0
        ]
        return summary_rows, detail

    def export_logs(self, *, start: date, end: date, format_name: str) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in EXPORT_FORMATS:
            raise ValidationFailed(f"format must be one of: {', '.join(EXPORT_FORMATS)}.")
        if end < start:
            raise InvalidPeriod("end must not be before start.")

        summary_rows, detail_rows = self._collect(start, end)
        base_filename = f"work-log-{start:%Y%m%d}-{end:%Y%m%d}"
        logger.info(
            "Exporting %d log entries (%s) for %s..%s",
            len(detail_rows),
            normalized_format,
            start,
            end,
        )

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=DETAIL_COLUMNS)
            writer.writeheader()
            writer.writerows(detail_rows)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        workbook = Workbook()
        summary_sheet = workbook.active
        summary_sheet.title = "Summary"
        summary_sheet.append(SUMMARY_COLUMNS)
        for row in summary_rows:
            summary_sheet.append([row[column] for column in SUMMARY_COLUMNS])

        detail_sheet = workbook.create_sheet("Detail")
        detail_sheet.append(DETAIL_COLUMNS)
        for row in detail_rows:
            detail_sheet.append([row[column] for column in DETAIL_COLUMNS])

        output = io.BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
