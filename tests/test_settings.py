import os
import sys

import pytest
import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from db import SettingsRepository
from settings_schema import SettingsSchema, validate_settings


def test_defaults_written_to_yaml(tmp_path):
    yaml_path = tmp_path / "settings.yaml"
    repo = SettingsRepository(str(tmp_path / "s.db"), str(yaml_path))
    assert repo.get_int("week_start", -1) == 0
    assert repo.get_text("timezone", "") == "UTC"
    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    assert data == {"default_set_count": 3, "timezone": "UTC", "week_start": 0}


def test_yaml_edits_are_picked_up(tmp_path):
    yaml_path = tmp_path / "settings.yaml"
    repo = SettingsRepository(str(tmp_path / "s.db"), str(yaml_path))
    YamlConfig(str(yaml_path)).save(
        {"week_start": 6, "timezone": "Europe/Berlin", "default_set_count": 4}
    )
    assert repo.get_int("week_start", 0) == 6
    schema = repo.schema()
    assert schema.timezone == "Europe/Berlin"
    assert schema.tzinfo.key == "Europe/Berlin"


def test_invalid_values_rejected(tmp_path):
    repo = SettingsRepository(str(tmp_path / "s.db"), str(tmp_path / "s.yaml"))
    with pytest.raises(ValueError):
        repo.set_int("week_start", 7)
    with pytest.raises(ValueError):
        repo.set_int("default_set_count", 0)
    assert repo.get_int("week_start", -1) == 0


def test_schema_validation():
    assert SettingsSchema().week_start == 0
    validate_settings({"timezone": "America/New_York"})
    with pytest.raises(ValueError):
        validate_settings({"timezone": "Nowhere/Special"})


def test_yaml_config_requires_mapping(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        YamlConfig(str(path)).load()
    assert YamlConfig(str(tmp_path / "missing.yaml")).load() == {}
