"""Generator configuration and YAML/JSON loading."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from .composite_tree import (
    DEFAULT_BRANCH_PROBABILITY,
    DEFAULT_FALLBACK_OPERAND,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODES,
)
from .token_sources import SENTINEL

logger = logging.getLogger(__name__)

DEFAULT_COUNT = 25
DEFAULT_LINE_TEMPLATE = "what = {expression}; /* {node_count} {max_depth} */"
CONFIG_SECTION = "generator"


class ConfigError(ValueError):
    """Raised when generator configuration is missing, malformed or out of range."""


def _require_int(name: str, value: object, *, minimum: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")


@dataclass(frozen=True)
class GeneratorConfig:
    """Tunable parameters for a generation run."""

    count: int = DEFAULT_COUNT
    max_nodes: int = DEFAULT_MAX_NODES
    max_depth: int = DEFAULT_MAX_DEPTH
    branch_probability: float = DEFAULT_BRANCH_PROBABILITY
    sentinel: str = SENTINEL
    seed: Optional[int] = None
    strict: bool = False
    fallback_operand: str = DEFAULT_FALLBACK_OPERAND
    line_template: str = DEFAULT_LINE_TEMPLATE

    def __post_init__(self) -> None:
        _require_int("count", self.count, minimum=0)
        _require_int("max_nodes", self.max_nodes, minimum=0)
        _require_int("max_depth", self.max_depth, minimum=0)

        probability = self.branch_probability
        if not isinstance(probability, (int, float)) or isinstance(probability, bool):
            raise ConfigError(f"branch_probability must be a number, got {probability!r}")
        if not 0.0 <= probability <= 1.0:
            raise ConfigError(f"branch_probability must lie within [0, 1], got {probability}")

        if not isinstance(self.sentinel, str) or not self.sentinel:
            raise ConfigError("sentinel must be a non-empty string")
        if self.seed is not None and (not isinstance(self.seed, int) or isinstance(self.seed, bool)):
            raise ConfigError(f"seed must be an integer, got {self.seed!r}")
        if not isinstance(self.strict, bool):
            raise ConfigError(f"strict must be a boolean, got {self.strict!r}")
        if not isinstance(self.fallback_operand, str):
            raise ConfigError("fallback_operand must be a string")
        if not isinstance(self.line_template, str):
            raise ConfigError("line_template must be a string")
        try:
            self.line_template.format(expression="", node_count=0, max_depth=0)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise ConfigError(f"line_template is not a valid format string: {exc}") from exc

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GeneratorConfig":
        """Build a config from ``data``, rejecting unknown keys."""

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError("Unknown configuration keys: " + ", ".join(map(str, unknown)))
        return cls(**dict(data))

    def with_overrides(self, **overrides: Any) -> "GeneratorConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        try:
            return replace(self, **changes)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc


def load_config(path: Union[str, Path]) -> GeneratorConfig:
    """Load a :class:`GeneratorConfig` from a YAML or JSON file.

    Settings may sit at the top level or under a ``generator`` mapping.  An
    empty document yields the defaults.
    """

    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {config_path}: {exc}") from exc
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in configuration {config_path}: {exc}") from exc

    if payload is None:
        logger.info("Configuration %s is empty; using defaults", config_path)
        return GeneratorConfig()
    if not isinstance(payload, Mapping):
        raise ConfigError(f"Configuration {config_path} must contain a mapping")

    section = payload.get(CONFIG_SECTION, payload)
    if not isinstance(section, Mapping):
        raise ConfigError(f"'{CONFIG_SECTION}' section in {config_path} must be a mapping")
    return GeneratorConfig.from_mapping(section)


__all__ = [
    "CONFIG_SECTION",
    "ConfigError",
    "DEFAULT_COUNT",
    "DEFAULT_LINE_TEMPLATE",
    "GeneratorConfig",
    "load_config",
]
