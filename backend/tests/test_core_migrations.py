import pytest
from sqlalchemy import create_engine, inspect

from allo.core import migrations
from allo.core.migrations import BuildAlembicConfig, RunMigrations


def test_upgrade_creates_every_table(tmp_path):
    url = f"sqlite:///{tmp_path / 'allo.db'}"

    RunMigrations(url)

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert {"families", "users", "allowances", "requests", "transactions", "scheduled_task_runs"} <= set(
            inspector.get_table_names()
        )
        unique = inspector.get_unique_constraints("scheduled_task_runs")
        assert [sorted(item["column_names"]) for item in unique] == [["PeriodLabel", "TaskName"]]
    finally:
        engine.dispose()


def test_config_points_at_the_backend_scripts():
    config = BuildAlembicConfig("sqlite:///example.db")

    assert config.get_main_option("sqlalchemy.url") == "sqlite:///example.db"
    assert config.get_main_option("script_location").endswith("alembic")


def test_failed_upgrade_is_logged_and_raised(monkeypatch, caplog):
    def _broken_upgrade(config, revision):
        raise RuntimeError("lock timeout")

    monkeypatch.setattr(migrations.command, "upgrade", _broken_upgrade)

    with caplog.at_level("ERROR", logger="app.migrations"):
        with pytest.raises(RuntimeError, match="lock timeout"):
            RunMigrations("sqlite:///unused.db")

    assert "migrations failed revision=head" in caplog.text
