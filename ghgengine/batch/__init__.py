# -*- coding: utf-8 -*-
"""Confidence-gated batch processing of stored records."""

from ghgengine.batch.manager import APPROVED_DECISION, BatchProcessingManager, BatchProcessor
from ghgengine.batch.models import (
    BatchEligibleRecord,
    BatchProgress,
    BatchResult,
    BatchStatus,
    DeduplicationOptions,
    MergeStrategy,
)

__all__ = [
    "APPROVED_DECISION",
    "BatchProcessingManager",
    "BatchProcessor",
    "BatchEligibleRecord",
    "BatchProgress",
    "BatchResult",
    "BatchStatus",
    "DeduplicationOptions",
    "MergeStrategy",
]
