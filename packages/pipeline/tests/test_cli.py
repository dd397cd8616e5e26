"""
tests/test_cli.py — Tests for the `pantry` Click CLI.

Stores are swapped for in-memory DuckDB ones; Graph calls are mocked with respx.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from pantry_pipeline import cli

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def in_memory_stores(monkeypatch, record_store, config_store):
    monkeypatch.setattr(cli, "_open_stores", lambda backend: (record_store, config_store))


class TestImportFile:
    def test_imports_fixture(self, runner, record_store):
        result = runner.invoke(cli.main, ["import-file", str(FIXTURES / "pantries_wpsl.csv")])
        assert result.exit_code == 0, result.output
        assert "# Imported: 4 records" in result.output
        assert "# Rejected: 2 records" in result.output
        assert len(record_store.list_active()) == 4

    def test_malformed_file_exits_nonzero(self, runner, tmp_path):
        broken = tmp_path / "broken.csv"
        broken.write_bytes(b'name,address\n"Unclosed,1 Main St\n')
        result = runner.invoke(cli.main, ["import-file", str(broken)])
        assert result.exit_code == 1
        assert "unterminated quoted field" in result.output


class TestSearch:
    def test_radius_search(self, runner):
        runner.invoke(cli.main, ["import-file", str(FIXTURES / "pantries_wpsl.csv")])
        result = runner.invoke(
            cli.main, ["search", "--lat", "40.62", "--lng", "-75.37", "--radius", "5"]
        )
        assert result.exit_code == 0, result.output
        assert "Bethlehem Food Pantry" in result.output
        assert "New Bethany Ministries" in result.output
        assert "Helping Hands" not in result.output
        assert "2 pantries" in result.output

    def test_lat_without_lng(self, runner):
        result = runner.invoke(cli.main, ["search", "--lat", "40.62", "--radius", "5"])
        assert result.exit_code == 2

    def test_no_results(self, runner):
        result = runner.invoke(cli.main, ["search", "nothing-matches"])
        assert result.exit_code == 0
        assert "No pantries found." in result.output


class TestExport:
    def test_stdout(self, runner):
        runner.invoke(cli.main, ["import-file", str(FIXTURES / "pantries_wpsl.csv")])
        result = runner.invoke(cli.main, ["export"])
        assert result.exit_code == 0
        assert result.output.startswith("id,name,address")

    def test_backup_into_directory(self, runner, tmp_path):
        result = runner.invoke(cli.main, ["export", "--backup", "--output", str(tmp_path)])
        assert result.exit_code == 0, result.output
        (written,) = tmp_path.iterdir()
        assert written.name.startswith("pantry-backup-")
        assert written.read_text().startswith("# Food Pantry Data Backup")


class TestSync:
    def test_unknown_config(self, runner):
        result = runner.invoke(cli.main, ["sync", "missing", "--token", "tok"])
        assert result.exit_code == 1
        assert "No sync configuration with id missing" in result.output

    def test_sync_runs(self, runner, sync_config, config_store, sharepoint_columns, sharepoint_items, mock_http):
        mock_http.get(url__regex=r".*/columns$").mock(
            return_value=httpx.Response(200, json=sharepoint_columns)
        )
        mock_http.get(url__regex=r".*/items\?.*").mock(
            return_value=httpx.Response(200, json=sharepoint_items)
        )
        result = runner.invoke(cli.main, ["sync", sync_config.id, "--token", "tok"])
        assert result.exit_code == 0, result.output
        assert "# Imported: 2 records" in result.output
        assert config_store.get(sync_config.id).sync_status == "success"

    def test_validate_mapping(self, runner, sync_config, sharepoint_columns, mock_http):
        mock_http.get(url__regex=r".*/columns$").mock(
            return_value=httpx.Response(200, json=sharepoint_columns)
        )
        result = runner.invoke(cli.main, ["validate-mapping", sync_config.id, "--token", "tok"])
        assert result.exit_code == 0, result.output
        assert "Mapping is valid." in result.output


class TestDiscovery:
    def test_list_lists(self, runner, sync_config, mock_http):
        mock_http.get(url__regex=r".*/sites/[^/]+/lists$").mock(
            return_value=httpx.Response(
                200,
                json={"value": [{"id": "list-1", "name": "Pantries", "displayName": "Pantry Directory"}]},
            )
        )
        result = runner.invoke(cli.main, ["list-lists", sync_config.id, "--token", "tok"])
        assert result.exit_code == 0, result.output
        assert "list-1  Pantry Directory" in result.output
        assert "1 lists" in result.output

    def test_list_sites_with_search(self, runner, sync_config, mock_http):
        route = mock_http.get(url__regex=r".*/sites\?search=.*").mock(
            return_value=httpx.Response(200, json={"value": []})
        )
        result = runner.invoke(
            cli.main, ["list-sites", sync_config.id, "--search", "harvest", "--token", "tok"]
        )
        assert result.exit_code == 0, result.output
        assert "No sites found." in result.output
        assert route.calls[0].request.url.params["search"] == "harvest"

    def test_refused_token_exits_nonzero(self, runner, sync_config, mock_http):
        mock_http.get(url__regex=r".*/sites/[^/]+/lists$").mock(return_value=httpx.Response(401))
        result = runner.invoke(cli.main, ["list-lists", sync_config.id, "--token", "tok"])
        assert result.exit_code == 1
        assert "refused the bearer token" in result.output
