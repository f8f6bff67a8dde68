from pathlib import Path

import pytest

from src.core.services.editor import Editor
from src.core.services.editor_plugins import create_editor_plugins
from src.core.services.plugins import PluginRegistry
from src.rules.loader import load_rules
from src.rules.models import EditorRules


class FakeUI:
    """Scripted prompt answers; records prompts and alerts."""

    def __init__(self) -> None:
        self.answers: list[str | None] = []
        self.prompts: list[str] = []
        self.alerts: list[str] = []

    def prompt(self, message: str) -> str | None:
        self.prompts.append(message)
        return self.answers.pop(0) if self.answers else None

    def alert(self, message: str) -> None:
        self.alerts.append(message)


@pytest.fixture
def rules_path() -> Path:
    return Path(__file__).parent.parent / "editor_rules.yaml"


@pytest.fixture
def rules(rules_path: Path) -> EditorRules:
    """Rules from the project's editor_rules.yaml."""
    return load_rules(rules_path)


@pytest.fixture
def registry() -> PluginRegistry:
    """Default plugin set with default rules."""
    return create_editor_plugins()


@pytest.fixture
def ui() -> FakeUI:
    return FakeUI()


@pytest.fixture
def editor(registry: PluginRegistry, ui: FakeUI) -> Editor:
    """Editor on a new document (one empty paragraph)."""
    return Editor(registry, ui=ui)
