from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from app.models.entities import User

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"

EXPECTED_TABLES = {
    "users",
    "role_assignments",
    "projects",
    "issues",
    "time_log_entries",
    "teams",
    "team_members",
}


def _config(url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_upgrade_and_downgrade_initial_schema(tmp_path: Path) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'worklog.db'}"
    cfg = _config(url)

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    inspector = inspect(engine)
    assert EXPECTED_TABLES <= set(inspector.get_table_names())
    log_columns = {column["name"] for column in inspector.get_columns("time_log_entries")}
    assert {"issue_id", "log_date", "hours_spent", "description", "detail"} <= log_columns
    user_columns = {column["name"] for column in inspector.get_columns("users")}
    assert user_columns == {
        "id",
        "username",
        "email",
        "display_name",
        "classification",
        "status",
        "last_login_at",
        "created_at",
        "updated_at",
    }
    assert user_columns == set(User.__table__.columns.keys())
    assert "ix_time_log_entries_log_date" in {index["name"] for index in inspector.get_indexes("time_log_entries")}

    command.downgrade(cfg, "base")

    assert set(inspect(engine).get_table_names()) == {"alembic_version"}
    engine.dispose()
