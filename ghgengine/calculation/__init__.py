# -*- coding: utf-8 -*-
"""
Stationary combustion calculation: fuel catalog, mass normalization and
emission computation with fossil/biogenic separation.
"""

from ghgengine.calculation.emission_calculator import (
    GWP_CH4_BIOGENIC,
    GWP_CH4_FOSSIL,
    GWP_N2O,
    CalculationDetails,
    EmissionCalculator,
    EmissionResult,
)
from ghgengine.calculation.fuel_catalog import (
    EconomicSector,
    FuelCatalog,
    FuelCategory,
    FuelReferenceEntry,
)
from ghgengine.calculation.unit_converter import ConversionFactorTable, MassNormalizer

__all__ = [
    "GWP_CH4_BIOGENIC",
    "GWP_CH4_FOSSIL",
    "GWP_N2O",
    "CalculationDetails",
    "EmissionCalculator",
    "EmissionResult",
    "EconomicSector",
    "FuelCatalog",
    "FuelCategory",
    "FuelReferenceEntry",
    "ConversionFactorTable",
    "MassNormalizer",
]
