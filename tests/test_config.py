import json

import pytest

from config import config_section, load_config


def test_shipped_config_sections():
    assert config_section("costs")["base_fields"] == 163
    assert config_section("agents")["base_action_interval_ms"] == 5000
    assert config_section("missing") == {}


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.json")


def test_section_must_be_an_object(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"costs": [1, 2, 3]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)
