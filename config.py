import os
import yaml

APP_VERSION = "1.0.0"

DEFAULT_DB_PATH = os.environ.get("IRONLOG_DB", "workout.db")
DEFAULT_SETTINGS_PATH = os.environ.get("IRONLOG_SETTINGS", "settings.yaml")


class YamlConfig:
    """Load and save settings to a YAML file."""

    def __init__(self, path: str = DEFAULT_SETTINGS_PATH) -> None:
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        return data

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f)
