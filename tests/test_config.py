"""Tests for configuration loading and saving."""
from __future__ import annotations

import dataclasses
import json
from unittest.mock import patch

import pytest

from quizsmith.config import DEFAULTS, Settings, check_field, known_fields, load_settings, save_settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.llm_provider == "openrouter"
        assert s.request_timeout == 55.0
        assert s.temperature == 0.7
        assert s.search_enabled is False

    def test_to_dict(self):
        d = Settings().to_dict()
        assert d == DEFAULTS
        assert set(d) == known_fields()

    def test_frozen(self):
        s = Settings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.llm_provider = "gemini"

    def test_replace_builds_new_snapshot(self):
        s = Settings()
        s2 = dataclasses.replace(s, llm_provider="anthropic", temperature=0.2)
        assert s.llm_provider == "openrouter"
        assert s2.llm_provider == "anthropic"
        assert s2.temperature == 0.2

    def test_no_credentials_in_settings(self):
        assert not any("key" in name for name in known_fields())


class TestCheckField:
    def test_accepts_matching_types(self):
        assert check_field("llm_model", "gpt-4o") == "gpt-4o"
        assert check_field("search_enabled", True) is True
        assert check_field("search_results", 3) == 3

    def test_int_widens_to_float(self):
        value = check_field("request_timeout", 30)
        assert value == 30.0
        assert isinstance(value, float)

    @pytest.mark.parametrize("name, value", [
        ("request_timeout", "abc"),
        ("request_timeout", True),
        ("request_timeout", -1),
        ("search_enabled", 1),
        ("search_results", 0),
        ("max_output_tokens", 100.5),
        ("llm_provider", None),
    ])
    def test_rejects(self, name, value):
        with pytest.raises(ValueError):
            check_field(name, value)


class TestLoadSaveSettings:
    def test_load_from_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"llm_provider": "gemini", "request_timeout": 30}))

        with patch("quizsmith.config.CONFIG_PATH", config_path):
            s = load_settings()
        assert s.llm_provider == "gemini"
        assert s.request_timeout == 30
        # Defaults for unspecified fields
        assert s.top_p == 0.95

    def test_load_missing_file(self, tmp_path):
        s = load_settings(tmp_path / "nonexistent.json")
        assert s == Settings()

    def test_save_then_load(self, tmp_path):
        config_path = tmp_path / "config.json"
        save_settings(Settings(llm_provider="ollama", llm_model="qwen3:8b"), config_path)

        data = json.loads(config_path.read_text())
        assert data["llm_provider"] == "ollama"
        assert load_settings(config_path).llm_model == "qwen3:8b"

    def test_unknown_keys_ignored(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"llm_provider": "openai", "tts_provider": "edge-tts"}))

        s = load_settings(config_path)
        assert s.llm_provider == "openai"
        assert not hasattr(s, "tts_provider")
