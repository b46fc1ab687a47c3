"""Unit tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner
from helpers import WIND_ID, BankFolder, event_json, seed_old_cache_layout

from studio_index import __version__
from studio_index.cache.entries import StableId
from studio_index.cache.session import CACHE_DB_NAME
from studio_index.cli import cli
from studio_index.commands import EXIT_CACHE_ERROR, EXIT_NOT_FOUND, EXIT_USAGE_ERROR


def _invoke(config: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config), "--no-color", *args])


class TestGroup:
    def test_version(self) -> None:
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_commands_registered(self) -> None:
        for name in ("rebuild-cache", "find", "list-events", "list-banks", "check-refs"):
            assert name in cli.commands

    def test_help_command(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "help", "find")
        assert result.exit_code == 0
        assert "Find an event by path or GUID" in result.output

    def test_invalid_config_exits(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.toml"
        config_path.write_text("[linkage]\nmode = 3\n")
        result = _invoke(config_path, "list-banks")
        assert result.exit_code == 1


class TestRebuildCache:
    def test_rebuild(self, sample_config: Path, temp_dir: Path) -> None:
        result = _invoke(sample_config, "rebuild-cache")
        assert result.exit_code == 0, result.output
        assert "3 events" in result.output
        assert (temp_dir / "cache" / CACHE_DB_NAME).exists()

    def test_force(self, sample_config: Path) -> None:
        assert _invoke(sample_config, "rebuild-cache").exit_code == 0
        assert _invoke(sample_config, "rebuild-cache", "--force").exit_code == 0

    def test_no_bank_folder_configured(self, temp_dir: Path) -> None:
        config_path = temp_dir / "config.toml"
        config_path.write_text("[display]\ncolored_output = false\n")
        result = _invoke(config_path, "rebuild-cache")
        assert result.exit_code == EXIT_NOT_FOUND

    def test_broken_export_is_cache_error(
        self, sample_config: Path, bank_folder: BankFolder
    ) -> None:
        bank_folder.add_bank("sfx/Broken", export={"events": []})
        result = _invoke(sample_config, "rebuild-cache")
        assert result.exit_code == EXIT_CACHE_ERROR

    def test_rebuild_over_old_cache_layout(self, sample_config: Path, temp_dir: Path) -> None:
        seed_old_cache_layout(temp_dir / "cache")
        result = _invoke(sample_config, "rebuild-cache")
        assert result.exit_code == 0, result.output
        assert "3 events" in result.output

    def test_undecodable_export_is_cache_error(
        self, sample_config: Path, bank_folder: BankFolder
    ) -> None:
        bank = bank_folder.add_bank("sfx/Garbled")
        bank.with_name(bank.name + ".json").write_bytes(b'{"id": "\xff"}')
        result = _invoke(sample_config, "rebuild-cache")
        assert result.exit_code == EXIT_CACHE_ERROR

    def test_banks_option_overrides_config(self, temp_dir: Path, bank_folder: BankFolder) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "--config",
                str(temp_dir / "missing.toml"),
                "--banks",
                str(bank_folder.root),
                "rebuild-cache",
            ],
        )
        assert result.exit_code == 0, result.output
        assert (bank_folder.root / CACHE_DB_NAME).exists()


class TestFind:
    def test_find_by_path(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "find", "event:/amb/wind")
        assert result.exit_code == 0, result.output
        assert str(WIND_ID) in result.output

    def test_find_by_guid_json(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "find", str(WIND_ID), "--format", "json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["path"] == "event:/amb/wind"
        assert data["banks"] == ["sfx/Ambience"]
        assert [p["name"] for p in data["parameters"]] == ["Strength", "Weather"]

    def test_not_found(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "find", "event:/amb/thunder")
        assert result.exit_code == EXIT_NOT_FOUND

    def test_invalid_guid(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "find", "{nope}")
        assert result.exit_code == EXIT_USAGE_ERROR

    def test_path_with_markup_characters(
        self, sample_config: Path, bank_folder: BankFolder
    ) -> None:
        bank_folder.add_bank(
            "ui/[menu]", events=[event_json("event:/ui/[/menu]/click", StableId(0x44))]
        )
        result = _invoke(sample_config, "find", "event:/ui/[/menu]/click")
        assert result.exit_code == 0, result.output
        assert "event:/ui/[/menu]/click" in result.output
        assert "ui/[menu]" in result.output


class TestListCommands:
    def test_list_event_paths(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "list-events", "--paths")
        assert result.exit_code == 0, result.output
        assert result.stdout.splitlines() == [
            "event:/amb/rain",
            "event:/amb/wind",
            "event:/sfx/steps",
        ]

    def test_list_events_prefix(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "list-events", "--prefix", "event:/sfx/", "--paths")
        assert result.stdout.splitlines() == ["event:/sfx/steps"]

    def test_list_events_table(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "list-events")
        assert result.exit_code == 0, result.output
        assert "3 events" in result.output

    def test_list_events_table_with_markup_characters(
        self, sample_config: Path, bank_folder: BankFolder
    ) -> None:
        bank_folder.add_bank("ui/Menu", events=[event_json("event:/ui/[b]x", StableId(0x45))])
        result = _invoke(sample_config, "list-events", "--prefix", "event:/ui/")
        assert result.exit_code == 0, result.output
        assert "event:/ui/[b]x" in result.output

    def test_list_banks(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "list-banks")
        assert result.exit_code == 0, result.output
        assert "4 banks" in result.output


class TestCheckRefs:
    def _manifest(self, temp_dir: Path) -> Path:
        path = temp_dir / "refs.json"
        path.write_text(
            json.dumps(
                {
                    "references": {
                        "wind": {"path": "event:/amb/wind", "guid": str(WIND_ID)},
                        "rain": {"path": "event:/amb/rain"},
                    }
                }
            )
        )
        return path

    def test_reports_without_writing(self, sample_config: Path, temp_dir: Path) -> None:
        manifest = self._manifest(temp_dir)
        before = manifest.read_text()
        result = _invoke(sample_config, "check-refs", str(manifest))
        assert result.exit_code == 0, result.output
        assert manifest.read_text() == before

    def test_repair(self, sample_config: Path, temp_dir: Path) -> None:
        manifest = self._manifest(temp_dir)
        result = _invoke(sample_config, "check-refs", str(manifest), "--repair")
        assert result.exit_code == 0, result.output

        data = json.loads(manifest.read_text())
        assert data["references"]["rain"]["guid"] == "{00000000-0000-0000-0000-00000000beef}"
        assert _invoke(sample_config, "check-refs", str(manifest)).exit_code == 0

    def test_skip(self, sample_config: Path, temp_dir: Path) -> None:
        manifest = self._manifest(temp_dir)
        _invoke(sample_config, "check-refs", str(manifest), "--repair", "--skip", "rain")
        data = json.loads(manifest.read_text())
        assert "guid" not in data["references"]["rain"]

    def test_unresolved_reference(self, sample_config: Path, temp_dir: Path) -> None:
        manifest = temp_dir / "refs.json"
        manifest.write_text(json.dumps({"references": {"x": {"path": "event:/gone"}}}))
        result = _invoke(sample_config, "check-refs", str(manifest))
        assert result.exit_code == EXIT_NOT_FOUND

    def test_guid_linkage_override(self, sample_config: Path, temp_dir: Path) -> None:
        manifest = temp_dir / "refs.json"
        manifest.write_text(
            json.dumps({"references": {"x": {"path": "event:/old", "guid": str(WIND_ID)}}})
        )
        result = _invoke(
            sample_config, "check-refs", str(manifest), "--linkage", "guid", "--repair"
        )
        assert result.exit_code == 0, result.output
        data = json.loads(manifest.read_text())
        assert data["references"]["x"]["path"] == "event:/amb/wind"

    def test_missing_manifest(self, sample_config: Path, temp_dir: Path) -> None:
        result = _invoke(sample_config, "check-refs", str(temp_dir / "nope.json"))
        assert result.exit_code == EXIT_USAGE_ERROR


class TestLinkage:
    def test_show(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "linkage")
        assert result.exit_code == 0
        assert "path" in result.output

    def test_set_persists(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "linkage", "guid")
        assert result.exit_code == 0, result.output
        assert 'mode = "guid"' in sample_config.read_text()
        assert "guid" in _invoke(sample_config, "linkage").output

    def test_rejects_unknown_mode(self, sample_config: Path) -> None:
        result = _invoke(sample_config, "linkage", "name")
        assert result.exit_code == 2
