# -*- coding: utf-8 -*-
"""
Factor Import Data Models

Pydantic v2 models for emission factor import and reconciliation:

Enumerations (4):
    - FactorOrigin, ImportStatus, MatchType, DuplicateAction

Models (7):
    - EmissionFactorData, EmissionFactorRecord, ImportRow,
      DuplicateMatch, RowValidationResult, ImportOutcome, ImportReport
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


#: Gas factor fields of an emission factor.
GAS_FACTOR_FIELDS = ("co2_factor", "ch4_factor", "n2o_factor")


# =============================================================================
# Enumerations
# =============================================================================


class FactorOrigin(str, Enum):
    """Ownership of a persisted emission factor.

    SYSTEM: Seeded reference data, read-only.
    CUSTOM: User-owned, editable and deletable.
    """

    SYSTEM = "system"
    CUSTOM = "custom"


class ImportStatus(str, Enum):
    """Outcome status of one imported row."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    DUPLICATE = "duplicate"


class MatchType(str, Enum):
    """How a duplicate was matched."""

    EXACT = "exact"
    FUZZY = "fuzzy"


class DuplicateAction(str, Enum):
    """Decision returned by a duplicate policy."""

    SKIP = "skip"
    REPLACE = "replace"
    KEEP_BOTH = "keep_both"


# =============================================================================
# Emission factors
# =============================================================================


class EmissionFactorData(BaseModel):
    """Payload to create or update an emission factor.

    At least one of the three gas factors must be present, and name,
    category and activity unit must be non-empty.
    """

    name: str = Field(..., description="Factor name")
    category: str = Field(..., description="Emission category")
    activity_unit: str = Field(..., description="Unit the factor applies to")
    co2_factor: Optional[float] = Field(None, ge=0, description="CO2 factor")
    ch4_factor: Optional[float] = Field(None, ge=0, description="CH4 factor")
    n2o_factor: Optional[float] = Field(None, ge=0, description="N2O factor")
    source: Optional[str] = Field(None, description="Source citation")
    year_of_validity: Optional[int] = Field(None, description="Validity year")

    model_config = {"extra": "forbid"}

    @field_validator("name", "category", "activity_unit")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate identifying fields are non-empty."""
        if not v or not v.strip():
            raise ValueError("must be non-empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_gas_factor_present(self) -> "EmissionFactorData":
        """Require at least one gas factor."""
        if all(getattr(self, f) is None for f in GAS_FACTOR_FIELDS):
            raise ValueError("at least one gas factor (CO2, CH4 or N2O) is required")
        return self

    def renamed(self, name: str) -> "EmissionFactorData":
        """Copy of this payload with a different name."""
        return self.model_copy(update={"name": name})


class EmissionFactorRecord(EmissionFactorData):
    """A persisted emission factor."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier of the factor",
    )
    origin: FactorOrigin = Field(
        default=FactorOrigin.CUSTOM,
        description="system (read-only) or custom (user-owned)",
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_editable(self) -> bool:
        return self.origin == FactorOrigin.CUSTOM

    def to_data(self) -> EmissionFactorData:
        """The editable payload part of this record."""
        return EmissionFactorData(**self.model_dump(include=set(EmissionFactorData.model_fields)))


# =============================================================================
# Import rows and outcomes
# =============================================================================


class ImportRow(BaseModel):
    """One raw line of an uploaded factor file, mapped to canonical fields.

    Values are kept as the raw text found in the file; numbers supplied
    programmatically are converted to text.
    """

    row_number: int = Field(..., ge=1, description="Line number in the source file")
    name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    co2_factor: Optional[str] = None
    ch4_factor: Optional[str] = None
    n2o_factor: Optional[str] = None
    source: Optional[str] = None
    validity_year: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator(
        "name", "category", "unit", "co2_factor", "ch4_factor",
        "n2o_factor", "source", "validity_year",
        mode="before",
    )
    @classmethod
    def coerce_to_text(cls, v: Any) -> Optional[str]:
        """Numbers become text; blank text becomes None."""
        if v is None:
            return None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class DuplicateMatch(BaseModel):
    """An existing factor that conflicts with an incoming one."""

    existing: EmissionFactorRecord = Field(..., description="Conflicting record")
    match_type: MatchType = Field(..., description="exact or fuzzy")
    similarity: float = Field(..., ge=0.0, le=1.0, description="Name similarity")


class RowValidationResult(BaseModel):
    """Errors (blocking), warnings (non-blocking) and the parsed payload."""

    row_number: int
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    data: Optional[EmissionFactorData] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors and self.data is not None


class ImportOutcome(BaseModel):
    """Result of processing one import row.

    Attributes:
        row_number: Line number in the source file.
        status: success, error, warning or duplicate.
        message: Human-readable description.
        name: Factor name from the row, if any.
        factor_id: Identifier of the record created or updated.
        existing_factor: Conflicting record for duplicate outcomes.
        kept_both: True when a duplicate was persisted alongside the original.
        warnings: Non-blocking validation messages.
    """

    row_number: int = Field(..., ge=1)
    status: ImportStatus
    message: str
    name: Optional[str] = None
    factor_id: Optional[str] = None
    existing_factor: Optional[EmissionFactorRecord] = None
    kept_both: bool = False
    warnings: List[str] = Field(default_factory=list)


class ImportReport(BaseModel):
    """Aggregate report of one import run; one outcome per row."""

    file_name: Optional[str] = None
    file_hash: Optional[str] = None
    outcomes: List[ImportOutcome] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None

    def add_outcome(self, outcome: ImportOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def total_rows(self) -> int:
        return len(self.outcomes)

    @property
    def status_counts(self) -> Dict[str, int]:
        """Outcome count per status; the values sum to ``total_rows``."""
        counts = {status.value: 0 for status in ImportStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def success(self) -> int:
        return self.status_counts[ImportStatus.SUCCESS.value]

    @property
    def errors(self) -> int:
        return self.status_counts[ImportStatus.ERROR.value]

    @property
    def warnings(self) -> int:
        return self.status_counts[ImportStatus.WARNING.value]

    @property
    def duplicates(self) -> int:
        """Duplicate outcomes plus rows persisted under keep-both."""
        kept_both = sum(1 for o in self.outcomes if o.kept_both)
        return self.status_counts[ImportStatus.DUPLICATE.value] + kept_both

    @property
    def persisted(self) -> int:
        """Rows that created or updated a record."""
        return sum(1 for o in self.outcomes if o.factor_id is not None)

    def summary(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "total_rows": self.total_rows,
            "success": self.success,
            "errors": self.errors,
            "warnings": self.warnings,
            "duplicates": self.duplicates,
            "persisted": self.persisted,
            "duration_ms": self.duration_ms,
        }


__all__ = [
    "GAS_FACTOR_FIELDS",
    "FactorOrigin",
    "ImportStatus",
    "MatchType",
    "DuplicateAction",
    "EmissionFactorData",
    "EmissionFactorRecord",
    "ImportRow",
    "DuplicateMatch",
    "RowValidationResult",
    "ImportOutcome",
    "ImportReport",
]
