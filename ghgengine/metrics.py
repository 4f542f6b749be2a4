# -*- coding: utf-8 -*-
"""
Prometheus Metrics - GHG Engine

Prometheus metrics for factor import, emission calculation and batch
processing.

Metrics:
    1. ghg_import_rows_total (Counter, labels: status)
    2. ghg_import_runs_total (Counter, labels: result)
    3. ghg_duplicates_detected_total (Counter, labels: match_type)
    4. ghg_calculations_total (Counter, labels: status)
    5. ghg_batch_items_total (Counter, labels: status)
    6. ghg_processing_duration_seconds (Histogram, labels: operation)
    7. ghg_batch_active_runs (Gauge)

All helper functions are no-ops when ``EngineConfig.enable_metrics`` is
false.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

from ghgengine.config import get_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Imported rows by outcome status
ghg_import_rows_total = Counter(
    "ghg_import_rows_total",
    "Total imported factor rows by outcome status",
    labelnames=["status"],
)

# 2. Import runs by result
ghg_import_runs_total = Counter(
    "ghg_import_runs_total",
    "Total factor import runs",
    labelnames=["result"],
)

# 3. Duplicates detected by match type
ghg_duplicates_detected_total = Counter(
    "ghg_duplicates_detected_total",
    "Total duplicate factors detected during import",
    labelnames=["match_type"],
)

# 4. Emission calculations by status
ghg_calculations_total = Counter(
    "ghg_calculations_total",
    "Total emission calculations",
    labelnames=["status"],
)

# 5. Batch items by result status
ghg_batch_items_total = Counter(
    "ghg_batch_items_total",
    "Total batch items processed",
    labelnames=["status"],
)

# 6. Processing duration by operation
ghg_processing_duration_seconds = Histogram(
    "ghg_processing_duration_seconds",
    "GHG engine processing duration in seconds",
    labelnames=["operation"],
    buckets=(
        0.001, 0.005, 0.01, 0.05, 0.1, 0.25,
        0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0,
    ),
)

# 7. Active batch runs
ghg_batch_active_runs = Gauge(
    "ghg_batch_active_runs",
    "Number of currently running batch processing runs",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _enabled() -> bool:
    return get_config().enable_metrics


def inc_import_rows(status: str, count: int = 1) -> None:
    """Record imported rows.

    Args:
        status: Outcome status (success, error, warning, duplicate).
        count: Number of rows.
    """
    if not _enabled():
        return
    ghg_import_rows_total.labels(status=status).inc(count)


def inc_import_runs(result: str) -> None:
    """Record a finished import run.

    Args:
        result: Run result (completed, failed).
    """
    if not _enabled():
        return
    ghg_import_runs_total.labels(result=result).inc()


def inc_duplicates(match_type: str) -> None:
    """Record a detected duplicate (exact or fuzzy)."""
    if not _enabled():
        return
    ghg_duplicates_detected_total.labels(match_type=match_type).inc()


def inc_calculations(status: str) -> None:
    """Record an emission calculation (success, not_found, sector_mismatch, error)."""
    if not _enabled():
        return
    ghg_calculations_total.labels(status=status).inc()


def inc_batch_items(status: str, count: int = 1) -> None:
    """Record batch items by result status (success, failed, skipped)."""
    if not _enabled():
        return
    ghg_batch_items_total.labels(status=status).inc(count)


def observe_duration(operation: str, seconds: float) -> None:
    """Record processing duration for an operation.

    Args:
        operation: Operation name (import, calculate, batch).
        seconds: Elapsed wall-clock seconds.
    """
    if not _enabled():
        return
    ghg_processing_duration_seconds.labels(operation=operation).observe(seconds)


def set_active_batch_runs(delta: int) -> None:
    """Adjust the active batch run gauge by ``delta``."""
    if not _enabled():
        return
    ghg_batch_active_runs.inc(delta)


__all__ = [
    "ghg_import_rows_total",
    "ghg_import_runs_total",
    "ghg_duplicates_detected_total",
    "ghg_calculations_total",
    "ghg_batch_items_total",
    "ghg_processing_duration_seconds",
    "ghg_batch_active_runs",
    "inc_import_rows",
    "inc_import_runs",
    "inc_duplicates",
    "inc_calculations",
    "inc_batch_items",
    "observe_duration",
    "set_active_batch_runs",
]
