"""Tests for the component catalog and edit settings."""

import json
import logging
import os

import pytest

from flowgraph.config import edit_config
from flowgraph.config.catalog import ComponentMetadata, ManifestCatalog, MemoryCatalog, load_catalog
from flowgraph.config.edit_config import EditSettings, get_catalog_paths, get_edit_settings, reset_config

# ============================================================================
# Catalog
# ============================================================================


def write_json_manifest(directory, component_id, required):
    path = directory / f"{component_id}.manifest.json"
    path.write_text(json.dumps({"id": component_id, "config_schema": {"required": required}}), encoding="utf-8")
    return path


class TestMemoryCatalog:
    """Tests for MemoryCatalog."""

    def test_resolve(self):
        catalog = MemoryCatalog([ComponentMetadata("qa.process", ("prompt",))])
        assert catalog.resolve("qa.process").required_fields == ("prompt",)
        assert catalog.resolve("qa.other") is None

    def test_contains(self, catalog):
        assert "http.fetch" in catalog
        assert "vendor.unknown" not in catalog

    def test_insert_replaces(self):
        catalog = MemoryCatalog([ComponentMetadata("qa.process", ("prompt",))])
        catalog.insert(ComponentMetadata("qa.process"))
        assert catalog.resolve("qa.process").required_fields == ()
        assert catalog.ids() == ["qa.process"]


class TestManifestCatalog:
    """Tests for ManifestCatalog.load_from_paths()."""

    def test_json_manifest(self, tmp_path):
        path = write_json_manifest(tmp_path, "ai.greentic.echo", ["message"])
        catalog = ManifestCatalog.load_from_paths([path])
        assert catalog.resolve("ai.greentic.echo") == ComponentMetadata("ai.greentic.echo", ("message",))

    def test_yaml_manifest(self, tmp_path):
        path = tmp_path / "fetch.manifest.yaml"
        path.write_text("id: http.fetch\nconfig_schema:\n  required: [request.url]\n", encoding="utf-8")
        catalog = ManifestCatalog.load_from_paths([str(path)])
        assert catalog.resolve("http.fetch").required_fields == ("request.url",)

    def test_manifest_without_schema(self, tmp_path):
        path = tmp_path / "bare.manifest.json"
        path.write_text('{"id": "qa.bare"}', encoding="utf-8")
        assert ManifestCatalog.load_from_paths([path]).resolve("qa.bare").required_fields == ()

    def test_directory_expansion(self, tmp_path):
        write_json_manifest(tmp_path, "qa.process", ["prompt"])
        write_json_manifest(tmp_path, "ai.greentic.echo", ["message"])
        (tmp_path / "notes.txt").write_text("not a manifest", encoding="utf-8")
        catalog = ManifestCatalog.load_from_paths([tmp_path])
        assert catalog.ids() == ["ai.greentic.echo", "qa.process"]

    def test_bad_manifest_skipped(self, tmp_path, caplog):
        good = write_json_manifest(tmp_path, "qa.process", ["prompt"])
        bad = tmp_path / "bad.manifest.json"
        bad.write_text("{not json", encoding="utf-8")
        missing_id = tmp_path / "noid.manifest.json"
        missing_id.write_text('{"config_schema": {}}', encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="flowgraph.config.catalog"):
            catalog = ManifestCatalog.load_from_paths([good, bad, missing_id, tmp_path / "gone.manifest.json"])

        assert catalog.ids() == ["qa.process"]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 3
        assert "Failed to load component manifest" in warnings[0].getMessage()

    def test_load_catalog_explicit_paths(self, tmp_path):
        path = write_json_manifest(tmp_path, "qa.process", ["prompt"])
        assert "qa.process" in load_catalog([path])

    def test_load_catalog_from_env(self, tmp_path, monkeypatch):
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        write_json_manifest(first, "qa.process", ["prompt"])
        write_json_manifest(second, "http.fetch", ["request.url"])
        monkeypatch.setenv("FLOWGRAPH_CATALOG_PATHS", os.pathsep.join([str(first), str(second)]))
        catalog = load_catalog()
        assert catalog.ids() == ["http.fetch", "qa.process"]


# ============================================================================
# Edit settings
# ============================================================================


class TestEditSettings:
    """Tests for get_edit_settings()."""

    def test_packaged_defaults(self):
        assert get_edit_settings() == EditSettings()

    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_env_true_values(self, monkeypatch, raw):
        monkeypatch.setenv("FLOWGRAPH_ALLOW_CYCLES", raw)
        assert get_edit_settings().allow_cycles is True

    @pytest.mark.parametrize("raw", ["0", "false", "No", "off"])
    def test_env_false_values(self, monkeypatch, raw):
        monkeypatch.setenv("FLOWGRAPH_REQUIRE_PLACEHOLDER", raw)
        assert get_edit_settings().require_placeholder is False

    def test_invalid_bool_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("FLOWGRAPH_BACKUP_ON_WRITE", "sometimes")
        with caplog.at_level(logging.WARNING, logger="flowgraph.config.edit_config"):
            settings = get_edit_settings()
        assert settings.backup_on_write is True
        assert "FLOWGRAPH_BACKUP_ON_WRITE" in caplog.text

    def test_choice_env_override(self, monkeypatch):
        monkeypatch.setenv("FLOWGRAPH_DELETE_STRATEGY", "REMOVE-ONLY")
        monkeypatch.setenv("FLOWGRAPH_MULTI_PREDECESSOR", "splice-all")
        settings = get_edit_settings()
        assert settings.delete_strategy == "remove-only"
        assert settings.multi_predecessor == "splice-all"

    def test_invalid_choice_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("FLOWGRAPH_DELETE_STRATEGY", "shred")
        with caplog.at_level(logging.WARNING, logger="flowgraph.config.edit_config"):
            assert get_edit_settings().delete_strategy == "splice"
        assert "valid: splice, remove-only" in caplog.text

    def test_config_file_values(self, monkeypatch):
        monkeypatch.setattr(
            edit_config,
            "_cached_config",
            {"defaults": {"allow_cycles": True, "multi_predecessor": "splice-all"}, "catalog_paths": ["components"]},
        )
        settings = get_edit_settings()
        assert settings.allow_cycles is True
        assert settings.multi_predecessor == "splice-all"
        assert settings.catalog_paths == ["components"]

    def test_env_beats_config_file(self, monkeypatch):
        monkeypatch.setattr(edit_config, "_cached_config", {"defaults": {"allow_cycles": True}})
        monkeypatch.setenv("FLOWGRAPH_ALLOW_CYCLES", "false")
        assert get_edit_settings().allow_cycles is False

    def test_missing_config_file_uses_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setattr(edit_config, "_CONFIG_PATH", tmp_path / "absent.yaml")
        reset_config()
        assert get_edit_settings() == EditSettings()

    def test_catalog_paths_split(self, monkeypatch):
        monkeypatch.setenv("FLOWGRAPH_CATALOG_PATHS", os.pathsep.join(["a", "", "b"]))
        assert get_catalog_paths() == ["a", "b"]

    def test_reset_config_reloads(self, monkeypatch):
        monkeypatch.setattr(edit_config, "_cached_config", {"defaults": {"allow_cycles": True}})
        assert get_edit_settings().allow_cycles is True
        reset_config()
        assert get_edit_settings().allow_cycles is False
