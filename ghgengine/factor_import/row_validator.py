# -*- coding: utf-8 -*-
"""
Row Validator

Validates one imported row:

Errors (row is rejected):
- missing name, category, unit or source
- gas factor that is not a number, or is negative
- no gas factor at all

Warnings (row is still persisted, the field is dropped):
- validity year that is not a whole number or falls outside the
  configured range
"""

import logging
import math
from typing import Optional

from ghgengine.config import EngineConfig, get_config
from ghgengine.factor_import.models import (
    EmissionFactorData,
    ImportRow,
    RowValidationResult,
)

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = (
    ("name", "Name"),
    ("category", "Category"),
    ("unit", "Unit"),
    ("source", "Source"),
)

_GAS_FIELDS = (
    ("co2_factor", "CO2"),
    ("ch4_factor", "CH4"),
    ("n2o_factor", "N2O"),
)


def parse_number(raw: Optional[str]) -> Optional[float]:
    """Parse a numeric cell, accepting a comma as decimal separator.

    Returns None for empty, non-numeric or non-finite values.
    """
    if raw is None:
        return None
    text = str(raw).strip().replace(",", ".")
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


class RowValidator:
    """Applies required-field and numeric rules to import rows."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_config()

    def validate(self, row: ImportRow) -> RowValidationResult:
        """Validate ``row`` and build its factor payload when it passes."""
        result = RowValidationResult(row_number=row.row_number)

        for field_name, label in _REQUIRED_FIELDS:
            if not getattr(row, field_name):
                result.errors.append(f"{label} is required")

        factors = {}
        for field_name, label in _GAS_FIELDS:
            raw = getattr(row, field_name)
            if raw is None:
                continue
            value = parse_number(raw)
            if value is None:
                result.errors.append(f"{label} factor must be a valid number (got {raw!r})")
            elif value < 0:
                result.errors.append(f"{label} factor cannot be negative")
            else:
                factors[field_name] = value

        if all(getattr(row, f) is None for f, _ in _GAS_FIELDS):
            result.errors.append("At least one emission factor (CO2, CH4 or N2O) is required")

        year = self._parse_year(row, result)

        if result.errors:
            logger.debug("Row %d rejected: %s", row.row_number, "; ".join(result.errors))
            return result

        result.data = EmissionFactorData(
            name=row.name,
            category=row.category,
            activity_unit=row.unit,
            source=row.source,
            year_of_validity=year,
            **factors,
        )
        return result

    def _parse_year(self, row: ImportRow, result: RowValidationResult) -> Optional[int]:
        if row.validity_year is None:
            return None
        value = parse_number(row.validity_year)
        low, high = self.config.min_validity_year, self.config.max_validity_year
        if value is None or value != int(value) or not low <= value <= high:
            result.warnings.append(
                f"Invalid validity year {row.validity_year!r} "
                f"(expected {low}-{high}); it will be ignored"
            )
            return None
        return int(value)


__all__ = ["RowValidator", "parse_number"]
