# -*- coding: utf-8 -*-
"""
Batch Processing Data Models

Pydantic v2 models for confidence-gated batch processing of stored
records:

Enumerations (2):
    - BatchStatus, MergeStrategy

Models (4):
    - BatchEligibleRecord, BatchResult, BatchProgress,
      DeduplicationOptions
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class BatchStatus(str, Enum):
    """Result status of one processed record."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class MergeStrategy(str, Enum):
    """Field merge strategy for downstream near-duplicate merging."""

    PREFER_NON_EMPTY = "prefer_non_empty"
    PREFER_EXISTING = "prefer_existing"
    PREFER_INCOMING = "prefer_incoming"


class BatchEligibleRecord(BaseModel):
    """A stored, not-yet-decided record awaiting batch processing.

    Attributes:
        id: Record identifier.
        confidence_score: Extraction/classification confidence (0.0-1.0).
        decision: Prior decision, None while undecided.
        target_table: Destination the downstream service writes into.
        payload: Extracted field values handed to the processor.
    """

    id: str = Field(..., description="Record identifier")
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    decision: Optional[str] = Field(None, description="Prior decision, if any")
    target_table: Optional[str] = Field(None)
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "forbid"}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is non-empty."""
        if not v or not v.strip():
            raise ValueError("id must be non-empty")
        return v

    def is_eligible(self, threshold: float) -> bool:
        return self.decision is None and self.confidence_score >= threshold


class BatchResult(BaseModel):
    """Outcome of processing one record."""

    id: str
    status: BatchStatus
    message: str = ""
    processed_at: datetime = Field(default_factory=_utcnow)


class BatchProgress(BaseModel):
    """Running progress of a batch run, updated after each group."""

    current: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0 if self.current == 0 else 0.0
        return round(self.current * 100.0 / self.total, 1)


class DeduplicationOptions(BaseModel):
    """Instructions for the downstream service to merge near-duplicates.

    The merge itself is performed by the downstream collaborator.
    """

    enabled: bool = False
    similarity_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    merge_strategy: MergeStrategy = MergeStrategy.PREFER_NON_EMPTY


__all__ = [
    "BatchStatus",
    "MergeStrategy",
    "BatchEligibleRecord",
    "BatchResult",
    "BatchProgress",
    "DeduplicationOptions",
]
