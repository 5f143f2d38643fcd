from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from app.repositories.reporting_repository import ReportingRepository


class RecordingSession:
    """Session stand-in that reports a dialect and records executed SQL."""

    def __init__(self, dialect_name: str) -> None:
        self.bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect_name))
        self.statements: list[str] = []

    def get_bind(self) -> SimpleNamespace:
        return self.bind

    def execute(self, statement: object) -> None:
        self.statements.append(str(statement))


def test_statement_timeout_is_set_locally_on_postgresql() -> None:
    session = RecordingSession("postgresql")

    ReportingRepository(session).apply_statement_timeout(30)

    assert session.statements == ["SET LOCAL statement_timeout = 30000"]


def test_sub_millisecond_timeout_is_rounded_up() -> None:
    session = RecordingSession("postgresql")

    ReportingRepository(session).apply_statement_timeout(0.0001)

    assert session.statements == ["SET LOCAL statement_timeout = 1"]


@pytest.mark.parametrize("seconds", [None, 0, 0.0])
def test_disabled_timeout_emits_nothing(seconds: float | None) -> None:
    session = RecordingSession("postgresql")

    ReportingRepository(session).apply_statement_timeout(seconds)

    assert session.statements == []


def test_other_dialects_run_without_timeout() -> None:
    session = RecordingSession("sqlite")

    ReportingRepository(session).apply_statement_timeout(30)

    assert session.statements == []


def test_sqlite_session_accepts_timeout_call(db_session: Session) -> None:
    ReportingRepository(db_session).apply_statement_timeout(5)

    assert ReportingRepository(db_session).list_users() == []
