"""
Engine configuration for formlogic.

This module defines the EngineConfig dataclass that captures the tunable
parameters of rule compilation and evaluation. Values can be given directly
or read from FORMLOGIC_* environment variables (optionally from a .env file).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from formlogic.constants import (
    ENV_CALCULATION_DECIMAL_PLACES,
    ENV_MAX_RULES,
    ENV_VALIDATE_NAVIGATION_TARGETS,
)

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the form-logic engine.

    Attributes:
        calculation_decimal_places: Rounding applied to calculate results.
            None disables rounding.
        validate_navigation_targets: Reject skip_to/jump_to targets that are
            neither a field nor a page of the schema at compile time.
        max_rules: Upper bound on enabled rules in one compiled graph.
            None means unbounded.
    """

    calculation_decimal_places: Optional[int] = 2
    validate_navigation_targets: bool = True
    max_rules: Optional[int] = None

    def __post_init__(self):
        if self.calculation_decimal_places is not None and self.calculation_decimal_places < 0:
            raise ValueError(
                f"calculation_decimal_places must be non-negative, got {self.calculation_decimal_places}"
            )
        if self.max_rules is not None and self.max_rules <= 0:
            raise ValueError(f"max_rules must be positive, got {self.max_rules}")

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "EngineConfig":
        """
        Build configuration from environment variables.

        Args:
            env_file: Optional .env file loaded before reading the environment.
                Existing environment variables are not overridden.

        Returns:
            EngineConfig with defaults for unset variables.

        Raises:
            ValueError: If a variable is set but cannot be parsed.
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)
        else:
            load_dotenv(override=False)

        defaults = cls()
        places = _env_optional_int(ENV_CALCULATION_DECIMAL_PLACES, defaults.calculation_decimal_places)
        validate_nav = _env_bool(ENV_VALIDATE_NAVIGATION_TARGETS, defaults.validate_navigation_targets)
        max_rules = _env_optional_int(ENV_MAX_RULES, defaults.max_rules)
        return cls(
            calculation_decimal_places=places,
            validate_navigation_targets=validate_nav,
            max_rules=max_rules,
        )


def _env_optional_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    if raw.strip().lower() == "none":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer or 'none', got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")
