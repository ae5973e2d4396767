"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest
import toml
import yaml

from livingdocs.config import Config
from livingdocs.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in ("GROQ_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
                "LIVINGDOCS_DB_PATH", "LIVINGDOCS_TEAM_ID", "LIVINGDOCS_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


class TestConfig:
    def test_defaults(self):
        config = Config()

        assert config.config.ai.provider == "groq"
        assert config.config.ai.model == "llama-3.3-70b-versatile"
        assert config.config.generation.staleness_days == 7
        assert config.config.generation.search_limit == 20
        assert config.config.collaboration.room == "docs-collaboration"
        assert config.config.ai.api_key is None

    def test_yaml_file_found_in_parent(self, isolated, monkeypatch):
        (isolated / ".livingdocs.yaml").write_text(yaml.dump({"project": {"name": "Acme"}}))
        child = isolated / "src" / "pkg"
        child.mkdir(parents=True)
        monkeypatch.chdir(child)

        config = Config()
        assert config.config.project.name == "Acme"
        assert config.config.project.team_id == "default"

    def test_toml_file(self, isolated):
        path = isolated / "settings.toml"
        path.write_text(toml.dumps({"ai": {"provider": "openai", "model": "gpt-4o"}}))

        config = Config(str(path))
        assert config.config.ai.provider == "openai"
        assert config.config.ai.temperature == 0.3

    def test_json_file(self, isolated):
        path = isolated / "settings.json"
        path.write_text(json.dumps({"generation": {"staleness_days": 3}}))

        assert Config(str(path)).config.generation.staleness_days == 3

    def test_invalid_values_raise(self, isolated):
        path = isolated / ".livingdocs.yaml"
        path.write_text(yaml.dump({"generation": {"staleness_days": "often"}}))

        with pytest.raises(ConfigurationError):
            Config(str(path))

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
        monkeypatch.setenv("LIVINGDOCS_DB_PATH", "/tmp/other.db")
        monkeypatch.setenv("LIVINGDOCS_TEAM_ID", "team-x")
        monkeypatch.setenv("LIVINGDOCS_LOG_LEVEL", "DEBUG")

        config = Config()
        assert config.config.ai.api_key == "gsk-test"
        assert config.config.storage.resolved_path() == Path("/tmp/other.db")
        assert config.config.project.team_id == "team-x"
        assert config.config.logging.level == "DEBUG"

    def test_provider_specific_key(self, isolated, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        path = isolated / "c.yaml"
        path.write_text(yaml.dump({"ai": {"provider": "anthropic"}}))

        assert Config(str(path)).config.ai.api_key == "sk-ant"

    def test_get_and_set(self):
        config = Config()
        assert config.get("ai.provider") == "groq"
        assert config.get("missing.key", "fallback") == "fallback"

        config.set("project.name", "Renamed")
        assert config.config.project.name == "Renamed"
        assert config.get("project.name") == "Renamed"

    def test_save_and_reload(self, isolated):
        config = Config()
        config.set("generation.search_limit", 5)
        saved = config.save(str(isolated / "out.yaml"))

        assert Config(str(saved)).config.generation.search_limit == 5
        assert config.validate() is True

    def test_create_default(self, isolated):
        config = Config.create_default(str(isolated / ".livingdocs.yaml"))
        assert (isolated / ".livingdocs.yaml").exists()
        assert config.config.ai.provider == "groq"

    def test_resolved_path_expands_home(self):
        path = Config().config.storage.resolved_path()
        assert "~" not in str(path)
        assert path.name == "livingdocs.db"
