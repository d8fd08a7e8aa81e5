"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads jurisdiction YAML files and parses them into the frozen dataclasses
of ``payroll_config.schema``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid date format  -> ``ValueError`` from ``date.fromisoformat``.

Audit relevance
---------------
``compute_checksum`` gives a deterministic SHA-256 of the parsed set so an
auditor can verify which rate table produced a payroll run.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    ConfigScope,
    JurisdictionConfig,
    LeaveTypeDef,
    StatutoryConfig,
    TaxBracketDef,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else _decimal(value)


def parse_scope(data: dict[str, Any]) -> ConfigScope:
    """Parse a ConfigScope from a dict."""
    return ConfigScope(
        jurisdiction=data["jurisdiction"],
        currency=data["currency"],
        fiscal_year=str(data["fiscal_year"]),
        fiscal_year_start=parse_date(data["fiscal_year_start"]),
        fiscal_year_end=(
            parse_date(data["fiscal_year_end"]) if data.get("fiscal_year_end") else None
        ),
    )


def parse_statutory(data: dict[str, Any]) -> StatutoryConfig:
    """
    Parse ``StatutoryConfig`` overrides.

    Keys absent from ``data`` keep the dataclass defaults.
    """
    kwargs: dict[str, Any] = {}
    for key in ("working_days_per_month", "working_hours_per_day",
                "default_probation_months", "months_per_year",
                "money_decimal_places"):
        if key in data:
            kwargs[key] = int(data[key])
    for key in ("overtime_multiplier", "employee_contribution_rate",
                "employer_contribution_rate", "social_contribution_rate"):
        if key in data:
            kwargs[key] = _decimal(data[key])
    if "weekly_off_days" in data:
        kwargs["weekly_off_days"] = tuple(int(d) for d in data["weekly_off_days"])
    return StatutoryConfig(**kwargs)


def parse_tax_bracket(data: dict[str, Any]) -> TaxBracketDef:
    """Parse a TaxBracketDef from a dict."""
    return TaxBracketDef(
        min_amount=_decimal(data["min"]),
        max_amount=_optional_decimal(data.get("max")),
        rate=_decimal(data["rate"]),
    )


def parse_tax_tables(
    data: dict[str, Any],
) -> dict[tuple[str, str], tuple[TaxBracketDef, ...]]:
    """
    Parse ``{fiscal_year: {marital_status: [brackets]}}``.

    Brackets are sorted ascending by ``min_amount``.
    """
    tables: dict[tuple[str, str], tuple[TaxBracketDef, ...]] = {}
    for fiscal_year, by_status in data.items():
        for marital_status, rows in by_status.items():
            brackets = sorted(
                (parse_tax_bracket(r) for r in rows),
                key=lambda b: b.min_amount,
            )
            tables[(str(fiscal_year), marital_status)] = tuple(brackets)
    return tables


def parse_leave_type(data: dict[str, Any]) -> LeaveTypeDef:
    """Parse a LeaveTypeDef from a dict."""
    return LeaveTypeDef(
        code=data["code"],
        name=data["name"],
        annual_entitlement=_decimal(data["annual_entitlement"]),
        accrual_type=data["accrual_type"],
        max_accrual=_optional_decimal(data.get("max_accrual")),
        max_carry_forward=_decimal(data.get("max_carry_forward", 0)),
        accrual_rate=_optional_decimal(data.get("accrual_rate")),
        accrual_per_days=(
            int(data["accrual_per_days"]) if data.get("accrual_per_days") else None
        ),
        gender_restriction=data.get("gender_restriction"),
        is_paid=bool(data.get("is_paid", True)),
        requires_approval=bool(data.get("requires_approval", True)),
        display_order=int(data.get("display_order", 0)),
    )


def parse_jurisdiction_config(data: dict[str, Any]) -> JurisdictionConfig:
    """
    Parse a complete JurisdictionConfig from a dict.

    The returned config carries its checksum.
    """
    config = JurisdictionConfig(
        name=data["name"],
        version=int(data.get("version", 1)),
        scope=parse_scope(data["scope"]),
        statutory=parse_statutory(data.get("statutory") or {}),
        tax_tables=parse_tax_tables(data.get("tax_tables") or {}),
        leave_types=tuple(parse_leave_type(lt) for lt in data.get("leave_types") or ()),
    )
    return replace(config, checksum=compute_checksum(config))


def load_jurisdiction_config(path: Path) -> JurisdictionConfig:
    """Load and parse one jurisdiction YAML file."""
    config = parse_jurisdiction_config(load_yaml_file(path))
    logger.info(
        "jurisdiction_config_loaded",
        extra={
            "config_name": config.name,
            "config_version": config.version,
            "fiscal_year": config.scope.fiscal_year,
            "tax_tables": len(config.tax_tables),
            "leave_types": len(config.leave_types),
            "checksum": config.checksum,
        },
    )
    return config


def compute_checksum(config: JurisdictionConfig) -> str:
    """
    Deterministic SHA-256 over the parsed configuration (checksum excluded).
    """
    payload = asdict(replace(config, checksum=""))
    payload["tax_tables"] = {
        f"{fy}|{status}": [asdict(b) for b in brackets]
        for (fy, status), brackets in sorted(config.tax_tables.items())
    }
    canonical = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
