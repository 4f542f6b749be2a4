# -*- coding: utf-8 -*-
"""
GHG Engine - Emission Factor Ingestion & GHG Emission Calculation

Two pipelines over a shared persistence collaborator:

1. Factor import: CSV rows are validated, checked for exact and fuzzy
   duplicates (scoped by category and unit), resolved through a
   Skip / Replace / KeepBoth policy and persisted, producing one outcome
   per row.
2. Emission calculation: fuel quantities are normalized to mass and
   converted to CO2, CH4, N2O and CO2e with a fossil/biogenic split.

A batch manager processes stored, confidence-gated records through a
downstream service in concurrent groups.

Example:
    >>> from ghgengine import EmissionCalculator, FuelCatalog, get_config
    >>> catalog = FuelCatalog.from_yaml(get_config().fuel_catalog_path)
    >>> EmissionCalculator(catalog).calculate("Lenha Comercial", 1000, "kg").total_co2e
"""

__version__ = "1.0.0"

from ghgengine.config import EngineConfig, get_config, reset_config, set_config
from ghgengine.exceptions import (
    AmbiguousFuelError,
    BatchItemSkipped,
    ConfigurationError,
    FileReadError,
    FuelNotFoundError,
    GHGEngineException,
    PersistenceError,
    ReadOnlyFactorError,
    SectorMismatchError,
    UnitConversionError,
    UnsupportedFormatError,
)
from ghgengine.calculation import (
    ConversionFactorTable,
    EconomicSector,
    EmissionCalculator,
    EmissionResult,
    FuelCatalog,
    FuelCategory,
    FuelReferenceEntry,
    MassNormalizer,
)
from ghgengine.store import FactorStore, InMemoryFactorStore
from ghgengine.factor_import import (
    DuplicateAction,
    DuplicateResolver,
    EmissionFactorData,
    EmissionFactorRecord,
    FactorImportOrchestrator,
    FactorOrigin,
    ImportReport,
    ImportStatus,
    KeepBothPolicy,
    ReplacePolicy,
    SkipPolicy,
    seed_catalog_factors,
    similarity,
)
from ghgengine.batch import (
    BatchEligibleRecord,
    BatchProcessingManager,
    BatchResult,
    BatchStatus,
    DeduplicationOptions,
)

__all__ = [
    "__version__",
    "EngineConfig",
    "get_config",
    "reset_config",
    "set_config",
    "AmbiguousFuelError",
    "BatchItemSkipped",
    "ConfigurationError",
    "FileReadError",
    "FuelNotFoundError",
    "GHGEngineException",
    "PersistenceError",
    "ReadOnlyFactorError",
    "SectorMismatchError",
    "UnitConversionError",
    "UnsupportedFormatError",
    "ConversionFactorTable",
    "EconomicSector",
    "EmissionCalculator",
    "EmissionResult",
    "FuelCatalog",
    "FuelCategory",
    "FuelReferenceEntry",
    "MassNormalizer",
    "FactorStore",
    "InMemoryFactorStore",
    "DuplicateAction",
    "DuplicateResolver",
    "EmissionFactorData",
    "EmissionFactorRecord",
    "FactorImportOrchestrator",
    "FactorOrigin",
    "ImportReport",
    "ImportStatus",
    "KeepBothPolicy",
    "ReplacePolicy",
    "SkipPolicy",
    "seed_catalog_factors",
    "similarity",
    "BatchEligibleRecord",
    "BatchProcessingManager",
    "BatchResult",
    "BatchStatus",
    "DeduplicationOptions",
]
