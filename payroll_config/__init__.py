"""
Payroll configuration (``payroll_config``).

Jurisdiction rate tables and statutory constants, authored as YAML under
``payroll_config/sets`` and parsed into frozen dataclasses.

Usage::

    from payroll_config import get_jurisdiction_config

    config = get_jurisdiction_config("np_2082_83")
    brackets = config.brackets_for("2082/83", "single")
"""

from functools import lru_cache
from pathlib import Path

from payroll_config.loader import load_jurisdiction_config
from payroll_config.schema import (
    DEFAULT_STATUTORY_CONFIG,
    ConfigScope,
    JurisdictionConfig,
    LeaveTypeDef,
    StatutoryConfig,
    TaxBracketDef,
)

SETS_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_NAME = "np_2082_83"


@lru_cache(maxsize=None)
def get_jurisdiction_config(name: str = DEFAULT_CONFIG_NAME) -> JurisdictionConfig:
    """
    Load a bundled jurisdiction configuration by name (cached).

    Raises:
        FileNotFoundError: if no ``sets/<name>.yaml`` exists.
    """
    return load_jurisdiction_config(SETS_DIR / f"{name}.yaml")


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_STATUTORY_CONFIG",
    "ConfigScope",
    "JurisdictionConfig",
    "LeaveTypeDef",
    "StatutoryConfig",
    "TaxBracketDef",
    "get_jurisdiction_config",
]
