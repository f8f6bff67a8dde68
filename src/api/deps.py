import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.core.services.editor_plugins import create_editor_plugins
from src.core.services.plugins import PluginRegistry
from src.rules.loader import load_rules
from src.rules.models import EditorRules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(os.environ.get("EDITOR_RULES_PATH", self.base_dir / "editor_rules.yaml"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def _load_rules(path: Path) -> EditorRules:
    return load_rules(path)


def get_rules(settings: Settings = Depends(get_settings)) -> EditorRules:
    return _load_rules(settings.rules_path)


# --- Plugins ---
@lru_cache
def _registry_for(rules_json: str) -> PluginRegistry:
    return create_editor_plugins(EditorRules.model_validate_json(rules_json))


def get_registry(rules: EditorRules = Depends(get_rules)) -> PluginRegistry:
    """One registry per distinct rules value, built once per process."""
    return _registry_for(rules.model_dump_json())
