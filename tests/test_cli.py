import json

from typer.testing import CliRunner

from chroma_explorer.cli import app

runner = CliRunner()


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Browse and edit a Chroma server" in result.stdout


def test_status_offline():
    result = runner.invoke(app, ["--offline", "status"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["connected"] is False


def test_tenants_offline():
    result = runner.invoke(app, ["--offline", "tenants"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == ["default_tenant"]


def test_collections_offline():
    result = runner.invoke(app, ["--offline", "--tenant", "default_tenant", "--database", "default_database", "collections"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == [{"id": "example_collection", "name": "example_collection", "count": 3}]


def test_records_and_get_offline():
    result = runner.invoke(app, ["--offline", "records", "example_collection", "--limit", "1"])
    assert result.exit_code == 0
    assert [r["id"] for r in json.loads(result.stdout)] == ["r1"]

    result = runner.invoke(app, ["--offline", "get", "example_collection", "r2"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["document"] == "Sample doc"


def test_get_missing_record_exits_1():
    result = runner.invoke(app, ["--offline", "get", "example_collection", "nope"])
    assert result.exit_code == 1


def test_add_rejects_bad_json():
    result = runner.invoke(app, ["--offline", "add", "example_collection", "doc", "--metadata", "{not json"])
    assert result.exit_code == 2


def test_add_to_missing_collection_exits_1():
    result = runner.invoke(app, ["--offline", "add", "ghost", "doc"])
    assert result.exit_code == 1


def test_add_offline_prints_id():
    result = runner.invoke(app, ["--offline", "add", "example_collection", "hello", "--id", "cli1", "--embedding", "[0.1, 0.2]"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"id": "cli1"}


def test_tree_offline():
    result = runner.invoke(app, ["--offline", "tree"])
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0].startswith("Not connected")
    assert any("example_collection (3)" in line for line in lines)
    assert any(line.strip().startswith("r1") and "Hello world" in line for line in lines)


def test_bad_url_exits_2():
    result = runner.invoke(app, ["--url", "ftp://example.com", "status"])
    assert result.exit_code == 2
