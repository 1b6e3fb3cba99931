"""CLI command tests for RefWriter."""

import json
import os
import tempfile
from collections.abc import Generator

import pytest
from typer.testing import CliRunner

from refwriter.cli.context import get_catalog_path, get_database_url
from refwriter.cli.main import app

runner = CliRunner()


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary SQLite database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    if os.path.exists(db_path):
        os.remove(db_path)


@pytest.fixture
def initialized_db(temp_db: str) -> str:
    result = runner.invoke(app, ["-d", temp_db, "schema", "init"])
    assert result.exit_code == 0
    return temp_db


class TestContext:
    def test_database_url_priority(self, monkeypatch) -> None:
        monkeypatch.setenv("REFWRITER_URL", "sqlite:///env.db")
        assert get_database_url("sqlite:///arg.db") == "sqlite:///arg.db"
        assert get_database_url(None) == "sqlite:///env.db"
        monkeypatch.delenv("REFWRITER_URL")
        assert get_database_url(None) == "sqlite:///./refwriter.db"

    def test_catalog_path(self, monkeypatch) -> None:
        monkeypatch.delenv("REFWRITER_CATALOG", raising=False)
        assert get_catalog_path(None) is None
        monkeypatch.setenv("REFWRITER_CATALOG", "feed.json")
        assert get_catalog_path(None) == "feed.json"


class TestVersionCommand:
    def test_version_output(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "RefWriter v" in result.stdout


class TestSchemaCommands:
    def test_init_json(self, temp_db: str) -> None:
        result = runner.invoke(app, ["-d", temp_db, "--json", "schema", "init"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert "routes" in data["tables"]
        assert data["unique_keys"] is True

    def test_list_json(self, temp_db: str) -> None:
        result = runner.invoke(app, ["-d", temp_db, "--json", "schema", "list"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)[0] == "agency"

    def test_list_table(self, temp_db: str) -> None:
        result = runner.invoke(app, ["-d", temp_db, "schema", "list"])
        assert result.exit_code == 0
        assert "stop_times" in result.stdout

    def test_show_json(self, initialized_db: str) -> None:
        result = runner.invoke(app, ["-d", initialized_db, "--json", "schema", "show", "trips"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["key_field"] == "trip_id"
        assert data["child_tables"] == ["stop_times"]
        assert data["row_count"] == 0

    def test_show_unknown_table(self, temp_db: str) -> None:
        result = runner.invoke(app, ["-d", temp_db, "--json", "schema", "show", "vehicles"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "TableNotFoundError"

    def test_custom_catalog(self, temp_db: str, tmp_path) -> None:
        catalog = {
            "tables": [
                {"name": "depots", "key_field": "depot_id", "fields": [{"name": "depot_id"}]}
            ]
        }
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog))
        result = runner.invoke(app, ["-d", temp_db, "-c", str(path), "--json", "schema", "list"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == ["depots"]

    def test_drop(self, initialized_db: str) -> None:
        result = runner.invoke(app, ["-d", initialized_db, "schema", "drop", "--force"])
        assert result.exit_code == 0
        result = runner.invoke(app, ["-d", initialized_db, "--json", "schema", "show", "routes"])
        assert json.loads(result.stdout)["exists"] is False


class TestDataCommands:
    def test_create_json(self, initialized_db: str) -> None:
        result = runner.invoke(
            app,
            ["-d", initialized_db, "--json", "data", "create", "routes", '{"route_id": "R1"}'],
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"route_id": "R1", "id": 1}

    def test_create_from_file(self, initialized_db: str, tmp_path) -> None:
        trip = {
            "trip_id": "T1",
            "route_id": "R1",
            "stop_times": [{"stop_id": "S1", "stop_sequence": 1, "arrival_time": "07:00:00"}],
        }
        path = tmp_path / "trip.json"
        path.write_text(json.dumps(trip))
        result = runner.invoke(
            app,
            ["-d", initialized_db, "--json", "data", "create", "trips", "--from-file", str(path)],
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["stop_times"][0]["trip_id"] == "T1"

    def test_update_and_delete(self, initialized_db: str) -> None:
        runner.invoke(app, ["-d", initialized_db, "data", "create", "routes", '{"route_id": "R1"}'])
        result = runner.invoke(
            app,
            [
                "-d",
                initialized_db,
                "--json",
                "data",
                "update",
                "routes",
                "1",
                '{"route_id": "R2"}',
            ],
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["route_id"] == "R2"

        result = runner.invoke(app, ["-d", initialized_db, "--json", "data", "delete", "routes", "1"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["deleted"] == 1

    def test_bad_json(self, initialized_db: str) -> None:
        result = runner.invoke(
            app, ["-d", initialized_db, "--json", "data", "create", "routes", "{not json"]
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "ValidationError"

    def test_missing_body(self, initialized_db: str) -> None:
        result = runner.invoke(app, ["-d", initialized_db, "data", "create", "routes"])
        assert result.exit_code == 1
        assert "--from-file" in result.stdout

    def test_duplicate_key(self, initialized_db: str) -> None:
        args = ["-d", initialized_db, "data", "create", "routes", '{"route_id": "R1"}']
        assert runner.invoke(app, args).exit_code == 0
        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert "already belongs to row 1" in result.stdout

    def test_delete_missing_row(self, initialized_db: str) -> None:
        result = runner.invoke(app, ["-d", initialized_db, "--json", "data", "delete", "routes", "9"])
        assert result.exit_code == 1

    def test_database_from_env(self, initialized_db: str) -> None:
        result = runner.invoke(
            app,
            ["--json", "data", "create", "agency", '{"agency_id": "MT"}'],
            env={"REFWRITER_URL": initialized_db},
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["id"] == 1
