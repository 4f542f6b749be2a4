# -*- coding: utf-8 -*-
"""
Unit & Mass Normalization

Converts an activity quantity for a given fuel into kilograms:
- ``kg`` passes through unchanged
- volume units (litres, cubic metres, gallons) use the fuel density
- anything else goes through the generic conversion-factor table

The generic table is best-effort: a missing ``(from_unit, to_unit,
category)`` entry yields the neutral factor 1.0 and a warning.
"""

import logging
import math
from decimal import Decimal
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple, Union

import yaml

from ghgengine.calculation.fuel_catalog import DENSITY_UNITS_TO_KG_PER_L, FuelCatalog, FuelReferenceEntry
from ghgengine.config import get_config
from ghgengine.exceptions import ConfigurationError, UnitConversionError

logger = logging.getLogger(__name__)

ConversionKey = Tuple[str, str, str]

#: Category wildcard in the conversion table.
ANY_CATEGORY = "*"

NEUTRAL_FACTOR = Decimal("1.0")


def unit_key(unit: Optional[str]) -> str:
    """Case- and padding-insensitive form of a unit symbol."""
    return (unit or "").strip().lower()


def to_quantity(quantity: Union[float, Decimal]) -> Decimal:
    """
    Validate an activity quantity or mass and return it as a Decimal.

    Raises:
        UnitConversionError: Value is not numeric, not finite or negative
    """
    try:
        as_float = float(quantity)
    except (TypeError, ValueError) as e:
        raise UnitConversionError(
            f"Quantity is not numeric: {quantity!r}",
            context={"quantity": repr(quantity)},
        ) from e
    if not math.isfinite(as_float) or as_float < 0:
        raise UnitConversionError(
            f"Quantity must be a finite, non-negative number: {quantity!r}",
            context={"quantity": repr(quantity)},
        )
    return quantity if isinstance(quantity, Decimal) else Decimal(str(quantity))


class ConversionFactorTable:
    """Generic conversion factors keyed by ``(from_unit, to_unit, category)``.

    Unit symbols are matched case-insensitively.
    """

    def __init__(self, factors: Optional[Mapping[ConversionKey, Union[Decimal, float]]] = None):
        self._factors: Dict[ConversionKey, Decimal] = {
            (unit_key(from_unit), unit_key(to_unit), category): Decimal(str(value))
            for (from_unit, to_unit, category), value in (factors or {}).items()
        }

    @classmethod
    def bundled(cls) -> "ConversionFactorTable":
        """Table at ``EngineConfig.conversion_factors_path``."""
        return cls.from_yaml(get_config().conversion_factors_path)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ConversionFactorTable":
        """Load factors from a YAML file with a ``conversion_factors`` list."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Cannot load conversion factors {path}: {e}",
                context={"path": str(path)},
            ) from e

        factors = {}
        for item in raw.get("conversion_factors") or []:
            try:
                key = (item["from_unit"], item["to_unit"], item.get("category", ANY_CATEGORY))
                factors[key] = item["factor"]
            except (KeyError, TypeError) as e:
                raise ConfigurationError(
                    f"Malformed conversion factor entry in {path}: {item!r}",
                    context={"path": str(path)},
                ) from e
        logger.info("Loaded %d conversion factors from %s", len(factors), path)
        return cls(factors)

    def lookup(self, from_unit: str, to_unit: str, category: str) -> Decimal:
        """Return the factor for a conversion, or 1.0 when none is known."""
        source, target = unit_key(from_unit), unit_key(to_unit)
        if source == target:
            return NEUTRAL_FACTOR
        for key in ((source, target, category), (source, target, ANY_CATEGORY)):
            factor = self._factors.get(key)
            if factor is not None:
                return factor
        logger.warning(
            "No conversion factor for %s -> %s (%s); using neutral factor 1.0",
            from_unit, to_unit, category,
        )
        return NEUTRAL_FACTOR

    def __len__(self) -> int:
        return len(self._factors)


class MassNormalizer:
    """
    Normalizes fuel activity quantities to kilograms.

    Volume units are converted through the fuel density when the fuel
    defines one; otherwise the generic conversion table is consulted.
    """

    # Volume conversions (to litres as base unit)
    VOLUME_TO_LITERS: Dict[str, Decimal] = {
        'l': Decimal('1.0'),
        'liter': Decimal('1.0'),
        'liters': Decimal('1.0'),
        'litro': Decimal('1.0'),
        'litros': Decimal('1.0'),
        'm³': Decimal('1000.0'),
        'm3': Decimal('1000.0'),
        'cubic_meter': Decimal('1000.0'),
        'gallon': Decimal('3.78541'),  # US gallon
        'gallons': Decimal('3.78541'),
        'gal': Decimal('3.78541'),
    }

    def __init__(
        self,
        conversion_table: Optional[ConversionFactorTable] = None,
        catalog: Optional[FuelCatalog] = None,
    ):
        if conversion_table is None:
            conversion_table = ConversionFactorTable.bundled()
        self.conversion_table = conversion_table
        self.catalog = catalog

    def normalize(
        self,
        fuel: Union[FuelReferenceEntry, str],
        quantity: Union[float, Decimal],
        unit: str,
    ) -> Decimal:
        """
        Convert ``quantity`` of ``fuel`` in ``unit`` to kilograms.

        Args:
            fuel: Catalog entry, or a fuel name resolved through the catalog
            quantity: Non-negative activity quantity
            unit: Unit of ``quantity``

        Returns:
            Mass in kg

        Raises:
            FuelNotFoundError: Fuel name is not in the catalog
            UnitConversionError: Quantity is negative or not finite
        """
        entry = self._resolve_fuel(fuel)
        value = to_quantity(quantity)
        unit = unit_key(unit)

        if unit == "kg":
            return value

        liters_per_unit = self.VOLUME_TO_LITERS.get(unit)
        density = self._density(entry)
        if liters_per_unit is not None and density is not None:
            mass = value * liters_per_unit * density
            logger.debug(
                "%s: %s %s -> %s kg via density %s kg/L",
                entry.name, value, unit, mass, density,
            )
            return mass

        factor = self.conversion_table.lookup(unit, "kg", entry.category.value)
        return value * factor

    @staticmethod
    def _density(entry: FuelReferenceEntry) -> Optional[Decimal]:
        """Fuel density in kg/L as an exact Decimal."""
        if entry.density is None:
            return None
        scale = DENSITY_UNITS_TO_KG_PER_L[entry.density_unit]
        return Decimal(str(entry.density)) * Decimal(str(scale))

    def _resolve_fuel(self, fuel: Union[FuelReferenceEntry, str]) -> FuelReferenceEntry:
        if isinstance(fuel, FuelReferenceEntry):
            return fuel
        if self.catalog is None:
            raise ConfigurationError(
                "A fuel catalog is required to resolve fuels by name",
                context={"fuel_name": fuel},
            )
        return self.catalog.get(fuel)


__all__ = [
    "ANY_CATEGORY",
    "NEUTRAL_FACTOR",
    "ConversionFactorTable",
    "MassNormalizer",
    "to_quantity",
    "unit_key",
]
