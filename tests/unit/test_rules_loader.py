"""
Editor rules loading and schema validation tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.rules.loader import load_rules
from src.rules.models import EditorRules


def _write(tmp_path: Path, content: str, name: str = "rules.yaml") -> Path:
    path = tmp_path / name
    path.write_text(content)
    return path


class TestLoadRules:
    def test_project_rules_file(self, rules_path: Path) -> None:
        """The shipped rules file loads and adds vbscript: to the blocklist."""
        rules = load_rules(rules_path)
        assert "vbscript:" in rules.links.forbidden_protocols
        assert rules.serializer.preserve_class_names == ["slate-"]
        assert rules.autoformat.heading_level_offset == 0

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_rules(_write(tmp_path, "serializer: [unclosed"))

    def test_schema_violation(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="validation failed"):
            load_rules(_write(tmp_path, "autoformat:\n  heading_level_offset: 9\n"))

    def test_empty_prefix_rejected(self, tmp_path: Path) -> None:
        content = 'serializer:\n  preserve_class_names: [""]\n'
        with pytest.raises(ValueError):
            load_rules(_write(tmp_path, content))

    def test_empty_file_means_defaults(self, tmp_path: Path) -> None:
        assert load_rules(_write(tmp_path, "")) == EditorRules()

    def test_yaml_block_in_markdown(self, tmp_path: Path) -> None:
        """Rules can live in a ```yaml block of a Markdown document."""
        content = "# Editor rules\n\nNotes.\n\n```yaml\nuploads:\n  timeout_seconds: 5\n```\n\nMore notes.\n"
        rules = load_rules(_write(tmp_path, content, "rules.md"))
        assert rules.uploads.timeout_seconds == 5
