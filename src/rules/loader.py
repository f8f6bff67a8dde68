import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import EditorRules

logger = logging.getLogger(__name__)


def _extract_yaml(content: str) -> str:
    """
    Return the first ```yaml fenced block, or the whole text when there is none.
    """
    block: list[str] = []
    in_block = False

    for line in content.splitlines():
        stripped = line.strip()
        if not in_block and stripped.startswith("```yaml"):
            in_block = True
            continue
        if in_block and stripped.startswith("```"):
            return "\n".join(block)
        if in_block:
            block.append(line)

    # Unterminated fence still counts as a block
    return "\n".join(block) if in_block else content


def load_rules(path: Path) -> EditorRules:
    """
    Load and validate the editor rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Editor rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(_extract_yaml(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in editor rules file: {e}") from e

    # An empty file means "all defaults"
    if data is None:
        data = {}

    try:
        rules = EditorRules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Editor rules validation failed:\n{e}") from e

    logger.info("Editor rules loaded from %s", path)
    return rules
