from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

DEFAULT_RULES_PATH = Path(__file__).resolve().parents[2] / "rules.yaml"


def _strip_code_fence(content: str) -> str:
    # Rules are sometimes pasted from docs inside a ```yaml block
    yaml_lines = []
    in_block = False
    found_block = False

    for line in content.splitlines():
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def parse_rules(content: str) -> Rules:
    """
    Parse and validate rules from YAML text.
    Raises ValueError on bad YAML or schema violations.
    """
    try:
        data = yaml.safe_load(_strip_code_fence(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Rules file must contain a mapping at the top level")

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e


def load_rules(path: Path = DEFAULT_RULES_PATH) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        return parse_rules(f.read())
