"""YAML rule loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rulebook.core.config import get_settings
from rulebook.core.errors import RuleValidationError
from rulebook.core.logging import get_logger
from rulebook.rules.schemas import Rule

logger = get_logger(__name__)


class RuleLoader:
    """Loads and validates YAML rules from files or directories."""

    def __init__(self, rules_dir: str | Path | None = None):
        rules_dir = rules_dir or get_settings().rules_dir
        self.rules_dir = Path(rules_dir) if rules_dir else None
        self._rules: dict[str, Rule] = {}

    def load_file(self, path: str | Path) -> list[Rule]:
        """Load rules from a single YAML file.

        The document may hold one rule mapping or a list of them.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rule file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)

        if content is None:
            return []

        items = content if isinstance(content, list) else [content]
        rules = [self._parse_rule(item, source=path) for item in items]
        for rule in rules:
            self._rules[rule.id] = rule

        return rules

    def load_directory(self, path: str | Path | None = None) -> list[Rule]:
        """Load all YAML rules from a directory.

        Files that fail to parse or validate are logged and skipped.
        """
        path = Path(path) if path else self.rules_dir
        if not path:
            raise ValueError("No rules directory specified")
        if not path.exists():
            raise FileNotFoundError(f"Rules directory not found: {path}")

        files = sorted([*path.glob("*.yaml"), *path.glob("*.yml")])
        rules = []
        for yaml_file in files:
            try:
                rules.extend(self.load_file(yaml_file))
            except (yaml.YAMLError, RuleValidationError) as e:
                logger.warning("rule_file_skipped", path=str(yaml_file), error=str(e))

        return rules

    def get_rule(self, rule_id: str) -> Rule | None:
        """Get a loaded rule by ID."""
        return self._rules.get(rule_id)

    def get_all_rules(self) -> list[Rule]:
        """Get all loaded rules."""
        return list(self._rules.values())

    def _parse_rule(self, data: Any, source: Path | None = None) -> Rule:
        """Parse a rule from dictionary data."""
        if not isinstance(data, dict):
            raise RuleValidationError(
                None, f"expected a mapping, got {type(data).__name__} in {source}"
            )
        try:
            return Rule.model_validate(data)
        except ValidationError as e:
            raise RuleValidationError(data.get("id"), str(e)) from e
