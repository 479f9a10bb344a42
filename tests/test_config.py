"""Tests for memoria.utils.config and the typed configuration models."""

import json

import pytest
import yaml

from memoria.types import AnalysisConfig
from memoria.utils.config import (
    DEFAULT_CONFIG_PATH,
    Config,
    load_default_config,
    merge_configs,
    validate_config,
)


# ---------------------------------------------------------------------------
# Config access
# ---------------------------------------------------------------------------

class TestConfig:

    def test_dotted_get(self):
        config = Config({"memory": {"repetitions": 10}})
        assert config.get("memory.repetitions") == 10
        assert config["memory.repetitions"] == 10
        assert config.get("memory.missing", "fallback") == "fallback"
        assert "memory" in config
        assert "lags" not in config

    def test_dotted_set_creates_sections(self):
        config = Config()
        config.set("lags.response", "Pinus")
        config["memory.repetitions"] = 3
        assert config.to_dict() == {"lags": {"response": "Pinus"}, "memory": {"repetitions": 3}}

    def test_update_merges_deeply(self):
        config = Config({"memory": {"repetitions": 10, "n_estimators": 500}})
        config.update({"memory": {"repetitions": 3}})
        assert config.get("memory.repetitions") == 3
        assert config.get("memory.n_estimators") == 500

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        Config({"lags": {"lags": [0, 1, 2]}}).save(path)
        assert Config.from_file(path).get("lags.lags") == [0, 1, 2]

    def test_json_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        Config({"memory": {"random_mode": "none"}}).save(path, format="json")
        with open(path) as f:
            assert json.load(f) == {"memory": {"random_mode": "none"}}
        assert Config.from_file(path).get("memory.random_mode") == "none"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "absent.yaml")

    def test_unknown_save_format(self, tmp_path):
        with pytest.raises(ValueError):
            Config({}).save(tmp_path / "config.toml", format="toml")

    def test_to_analysis_config(self):
        typed = Config({"memory": {"repetitions": 4}}).to_analysis_config()
        assert isinstance(typed, AnalysisConfig)
        assert typed.memory.repetitions == 4


class TestFromEnv:

    def test_nested_keys(self, monkeypatch):
        monkeypatch.setenv("MEMORIA_MEMORY__REPETITIONS", "20")
        monkeypatch.setenv("MEMORIA_LAGS__RESPONSE", "Pinus")
        monkeypatch.setenv("MEMORIA_LAGS__LAGS", "[0, 10, 20]")
        config = Config.from_env()
        assert config.get("memory.repetitions") == 20
        assert config.get("lags.response") == "Pinus"
        assert config.get("lags.lags") == [0, 10, 20]

    def test_ignores_other_prefixes(self, monkeypatch):
        monkeypatch.setenv("OTHER_MEMORY__REPETITIONS", "20")
        assert Config.from_env().get("memory.repetitions") is None

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("MEMORIA_MEMORY__RANDOM_MODE", "white_noise")
        merged = merge_configs(load_default_config(), Config.from_env())
        assert merged.get("memory.random_mode") == "white_noise"
        assert merged.get("memory.repetitions") == 10


# ---------------------------------------------------------------------------
# Defaults, merging and validation
# ---------------------------------------------------------------------------

class TestDefaults:

    def test_packaged_default_exists(self):
        assert DEFAULT_CONFIG_PATH.exists()

    def test_default_values(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_default_config()
        assert config.get("memory.random_mode") == "autocorrelated"
        assert config.get("lags.oldest_sample") == "first"
        assert config.get("features.enabled") is True

    def test_project_config_takes_precedence(self, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        with open(tmp_path / "config" / "memoria.yaml", "w") as f:
            yaml.safe_dump({"memory": {"repetitions": 2}}, f)
        monkeypatch.chdir(tmp_path)
        assert load_default_config().get("memory.repetitions") == 2

    def test_default_validates(self):
        assert validate_config(load_default_config()) == (True, [])


class TestMergeAndValidate:

    def test_later_configs_win(self):
        merged = merge_configs({"a": 1, "b": {"c": 2}}, None, Config({"b": {"c": 3}}))
        assert merged.to_dict() == {"a": 1, "b": {"c": 3}}

    def test_invalid_values_reported(self):
        valid, errors = validate_config({"memory": {"repetitions": 0}, "lags": {"lags": [-1]}})
        assert valid is False
        assert any(error.startswith("memory.repetitions") for error in errors)
        assert any(error.startswith("lags.lags") for error in errors)

    def test_extra_sections_allowed(self):
        assert validate_config({"logging": {"level": "DEBUG"}})[0] is True

    def test_oldest_sample_normalized(self):
        typed = AnalysisConfig(lags={"oldest_sample": "LAST"})
        assert typed.lags.oldest_sample == "last"
