# -*- coding: utf-8 -*-
"""
GHG Engine Configuration

Centralized configuration for the emission factor ingestion and GHG
calculation engine covering:
- Reference data locations (fuel catalog, generic conversion table)
- Duplicate matching threshold and validity year bounds
- Import naming conventions for system-record replacement
- Batch processing group size and eligibility threshold
- Downstream deduplication defaults
- Logging and metrics settings

All settings can be overridden via environment variables with the
``GHG_`` prefix (e.g. ``GHG_BATCH_SIZE``).

Example:
    >>> from ghgengine.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.fuzzy_match_threshold, cfg.batch_size)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix and bundled data
# ---------------------------------------------------------------------------

_ENV_PREFIX = "GHG_"

DATA_DIR = Path(__file__).resolve().parent / "data"


# ---------------------------------------------------------------------------
# EngineConfig
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Complete configuration for the GHG engine.

    Attributes:
        fuel_catalog_path: YAML file holding the fuel reference catalog.
        conversion_factors_path: YAML file holding the generic
            ``(from_unit, to_unit, category)`` conversion table.
        fuzzy_match_threshold: Name similarity strictly above which two
            factors with equal category and unit are duplicates.
        min_validity_year: Lowest accepted validity year.
        max_validity_year: Highest accepted validity year.
        system_replace_suffix: Name suffix for the custom copy created
            when a "replace" decision targets a system record.
        default_import_category: Category under which catalog fuels are
            published as system factors.
        batch_size: Concurrent operations per batch group.
        batch_confidence_threshold: Minimum confidence score for a
            stored record to be eligible for batch processing.
        dedup_enabled: Default downstream deduplication switch.
        dedup_similarity_threshold: Downstream merge threshold.
        dedup_merge_strategy: Downstream field merge strategy.
        log_level: Logging level used by the CLI.
        enable_metrics: Whether Prometheus metrics are recorded.
    """

    # -- Reference data ------------------------------------------------------
    fuel_catalog_path: str = str(DATA_DIR / "stationary_fuels.yaml")
    conversion_factors_path: str = str(DATA_DIR / "conversion_factors.yaml")

    # -- Import --------------------------------------------------------------
    fuzzy_match_threshold: float = 0.85
    min_validity_year: int = 1990
    max_validity_year: int = 2050
    system_replace_suffix: str = " (Customizado)"
    default_import_category: str = "Combustão Estacionária"

    # -- Batch processing ----------------------------------------------------
    batch_size: int = 5
    batch_confidence_threshold: float = 0.8
    dedup_enabled: bool = False
    dedup_similarity_threshold: float = 0.85
    dedup_merge_strategy: str = "prefer_non_empty"

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    # -- Metrics -------------------------------------------------------------
    enable_metrics: bool = True

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build an EngineConfig from environment variables.

        Every field can be overridden via ``GHG_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).

        Returns:
            Populated EngineConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            # Reference data
            fuel_catalog_path=_str(
                "FUEL_CATALOG_PATH", cls.fuel_catalog_path,
            ),
            conversion_factors_path=_str(
                "CONVERSION_FACTORS_PATH", cls.conversion_factors_path,
            ),
            # Import
            fuzzy_match_threshold=_float(
                "FUZZY_MATCH_THRESHOLD", cls.fuzzy_match_threshold,
            ),
            min_validity_year=_int(
                "MIN_VALIDITY_YEAR", cls.min_validity_year,
            ),
            max_validity_year=_int(
                "MAX_VALIDITY_YEAR", cls.max_validity_year,
            ),
            system_replace_suffix=_str(
                "SYSTEM_REPLACE_SUFFIX", cls.system_replace_suffix,
            ),
            default_import_category=_str(
                "DEFAULT_IMPORT_CATEGORY", cls.default_import_category,
            ),
            # Batch processing
            batch_size=_int("BATCH_SIZE", cls.batch_size),
            batch_confidence_threshold=_float(
                "BATCH_CONFIDENCE_THRESHOLD", cls.batch_confidence_threshold,
            ),
            dedup_enabled=_bool("DEDUP_ENABLED", cls.dedup_enabled),
            dedup_similarity_threshold=_float(
                "DEDUP_SIMILARITY_THRESHOLD", cls.dedup_similarity_threshold,
            ),
            dedup_merge_strategy=_str(
                "DEDUP_MERGE_STRATEGY", cls.dedup_merge_strategy,
            ),
            # Logging
            log_level=_str("LOG_LEVEL", cls.log_level),
            # Metrics
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
        )

        logger.info(
            "EngineConfig loaded: fuzzy_threshold=%.2f, years=[%d-%d], "
            "batch=%d (confidence>=%.2f), dedup=%s (%s @ %.2f), metrics=%s",
            config.fuzzy_match_threshold,
            config.min_validity_year,
            config.max_validity_year,
            config.batch_size,
            config.batch_confidence_threshold,
            config.dedup_enabled,
            config.dedup_merge_strategy,
            config.dedup_similarity_threshold,
            config.enable_metrics,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[EngineConfig] = None
_config_lock = threading.Lock()


def get_config() -> EngineConfig:
    """Return the singleton EngineConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = EngineConfig.from_env()
    return _config_instance


def set_config(config: EngineConfig) -> None:
    """Replace the singleton EngineConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("EngineConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "DATA_DIR",
    "EngineConfig",
    "get_config",
    "set_config",
    "reset_config",
]
