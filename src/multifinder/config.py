"""Settings and rule files for the command line tools."""
from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .patterns import CaseMode

LOGGER = logging.getLogger(__name__)

FALLBACK_READ_SIZE: Final[int] = 128
FALLBACK_LOG_LEVEL: Final[str] = "WARNING"
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_read_size() -> int:
    """Return the default read size, honoring ``MULTIFINDER_READ_SIZE``."""

    env_value = os.environ.get("MULTIFINDER_READ_SIZE")
    if env_value is None:
        return FALLBACK_READ_SIZE

    try:
        size = int(env_value)
    except ValueError:
        LOGGER.warning(
            "Invalid value for MULTIFINDER_READ_SIZE=%s; falling back to %d.",
            env_value,
            FALLBACK_READ_SIZE,
        )
        return FALLBACK_READ_SIZE

    if size <= 0:
        LOGGER.warning(
            "MULTIFINDER_READ_SIZE %s must be positive; falling back to %d.",
            size,
            FALLBACK_READ_SIZE,
        )
        return FALLBACK_READ_SIZE

    return size


def _resolve_log_level() -> str:
    env_value = os.environ.get("MULTIFINDER_LOG_LEVEL")
    if env_value is None:
        return FALLBACK_LOG_LEVEL
    level = env_value.strip().upper()
    if level not in LOG_LEVELS:
        LOGGER.warning(
            "Invalid value for MULTIFINDER_LOG_LEVEL=%s; falling back to %s.",
            env_value,
            FALLBACK_LOG_LEVEL,
        )
        return FALLBACK_LOG_LEVEL
    return level


DEFAULT_READ_SIZE = _resolve_read_size()
DEFAULT_LOG_LEVEL = _resolve_log_level()


class PatternRule(BaseModel):
    """One pattern from a rule file, with its optional replacement."""

    pattern: str
    replacement: str | None = None
    case_insensitive: bool | None = None

    model_config = ConfigDict(extra="forbid")

    @property
    def case(self) -> CaseMode:
        return CaseMode.INSENSITIVE if self.case_insensitive else CaseMode.SENSITIVE


class RuleFile(BaseModel):
    """Top level layout of a TOML rule file."""

    case_insensitive: bool = False
    rules: list[PatternRule] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("rules")
    @classmethod
    def _drop_empty(cls, value: list[PatternRule]) -> list[PatternRule]:
        return [rule for rule in value if rule.pattern]

    def resolved(self) -> list[PatternRule]:
        """Return the rules with the file-wide case default applied."""

        resolved: list[PatternRule] = []
        for rule in self.rules:
            if rule.case_insensitive is None:
                rule = rule.model_copy(update={"case_insensitive": self.case_insensitive})
            resolved.append(rule)
        return resolved


def parse_rules(text: str, source: str = "<string>") -> list[PatternRule]:
    """Parse TOML rule text into resolved :class:`PatternRule` objects."""

    try:
        payload: dict[str, Any] = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {source}: {exc}") from exc
    try:
        rule_file = RuleFile.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid rule file {source}: {exc}") from exc
    rules = rule_file.resolved()
    LOGGER.debug("Loaded %d rules from %s", len(rules), source)
    return rules


def load_rules(path: str | os.PathLike[str]) -> list[PatternRule]:
    rule_path = Path(path)
    try:
        text = rule_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read rule file {rule_path}: {exc}") from exc
    return parse_rules(text, source=str(rule_path))
