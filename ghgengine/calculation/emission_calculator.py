# -*- coding: utf-8 -*-
"""
Stationary Combustion Emission Calculator

Deterministic calculation of CO2, CH4 and N2O emissions from fuel
combustion with CO2-equivalent conversion and fossil/biogenic separation:

1. mass_gg  = mass_kg / 1e6
2. co2      = mass_gg x calorific_value x co2_factor / 1e3   (t CO2)
3. ch4, n2o = mass_gg x calorific_value x factor / 1e6       (t gas)
4. CO2e     = ch4 x GWP_CH4 + n2o x GWP_N2O (IPCC AR6, 100-year)
5. fossil   = co2 x (1 - biogenic_fraction) + CH4/N2O CO2e
   biogenic = co2 x biogenic_fraction

All arithmetic uses Decimal; reported magnitudes are rounded half-up to
3 decimal places (CH4 and N2O mass to 6). The total is the sum of the
rounded fossil and biogenic parts, so the two always add up exactly.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

from ghgengine import metrics
from ghgengine.calculation.fuel_catalog import EconomicSector, FuelCatalog, FuelReferenceEntry
from ghgengine.calculation.unit_converter import MassNormalizer, to_quantity
from ghgengine.exceptions import FuelNotFoundError, SectorMismatchError
from ghgengine.provenance import compute_provenance_hash

logger = logging.getLogger(__name__)

# GWP factors, IPCC AR6 100-year horizon
GWP_CH4_FOSSIL = Decimal("30")
GWP_CH4_BIOGENIC = Decimal("27")
GWP_N2O = Decimal("273")

KG_PER_GG = Decimal("1000000")
CO2_SCALE = Decimal("1000")
TRACE_GAS_SCALE = Decimal("1000000")

CO2E_PRECISION = Decimal("0.001")
TRACE_GAS_PRECISION = Decimal("0.000001")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _round(value: Decimal, precision: Decimal) -> Decimal:
    return value.quantize(precision, rounding=ROUND_HALF_UP)


@dataclass
class CalculationDetails:
    """Intermediate values and provenance of one calculation."""

    fuel_name: str
    mass_kg: Decimal
    mass_gg: Decimal
    calorific_value: Decimal
    calorific_value_unit: str
    emission_factors: Dict[str, Decimal]
    gwp_factors: Dict[str, Decimal]
    biogenic_fraction: Decimal
    fossil_fraction: Decimal
    raw_emissions: Dict[str, Decimal]
    co2e_breakdown: Dict[str, Decimal]
    economic_sector: Optional[str] = None
    input_quantity: Optional[Decimal] = None
    input_unit: Optional[str] = None
    calculation_steps: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fuel_name": self.fuel_name,
            "economic_sector": self.economic_sector,
            "input_quantity": _str_or_none(self.input_quantity),
            "input_unit": self.input_unit,
            "mass_kg": str(self.mass_kg),
            "mass_gg": str(self.mass_gg),
            "calorific_value": str(self.calorific_value),
            "calorific_value_unit": self.calorific_value_unit,
            "emission_factors": {k: str(v) for k, v in self.emission_factors.items()},
            "gwp_factors": {k: str(v) for k, v in self.gwp_factors.items()},
            "biogenic_fraction": str(self.biogenic_fraction),
            "fossil_fraction": str(self.fossil_fraction),
            "raw_emissions": {k: str(v) for k, v in self.raw_emissions.items()},
            "co2e_breakdown": {k: str(v) for k, v in self.co2e_breakdown.items()},
            "calculation_steps": self.calculation_steps,
        }


def _str_or_none(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class EmissionResult:
    """
    Emission calculation result, all magnitudes in tonnes.

    ``total_co2e == fossil_co2e + biogenic_co2e`` holds exactly.
    """

    fossil_co2e: Decimal
    biogenic_co2e: Decimal
    total_co2e: Decimal
    co2: Decimal
    ch4: Decimal
    n2o: Decimal
    details: CalculationDetails
    calculated_at: datetime = field(default_factory=_utcnow)
    provenance_hash: Optional[str] = None

    def __post_init__(self):
        if self.provenance_hash is None:
            self.provenance_hash = self._calculate_provenance_hash()

    def _calculate_provenance_hash(self) -> str:
        return compute_provenance_hash({
            "fossil_co2e": str(self.fossil_co2e),
            "biogenic_co2e": str(self.biogenic_co2e),
            "total_co2e": str(self.total_co2e),
            "details": self.details.to_dict(),
        })

    def verify_provenance(self) -> bool:
        """True if the result has not been altered since it was computed."""
        return self.provenance_hash == self._calculate_provenance_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fossil_co2e": str(self.fossil_co2e),
            "biogenic_co2e": str(self.biogenic_co2e),
            "total_co2e": str(self.total_co2e),
            "co2": str(self.co2),
            "ch4": str(self.ch4),
            "n2o": str(self.n2o),
            "details": self.details.to_dict(),
            "calculated_at": self.calculated_at.isoformat(),
            "provenance_hash": self.provenance_hash,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class EmissionCalculator:
    """
    Stationary combustion calculator over an explicit fuel catalog.

    Example:
        >>> catalog = FuelCatalog.from_yaml(get_config().fuel_catalog_path)
        >>> calc = EmissionCalculator(catalog)
        >>> result = calc.calculate("Óleo Diesel (puro)", 1000, "L", EconomicSector.ENERGY)
        >>> result.total_co2e
    """

    def __init__(
        self,
        catalog: FuelCatalog,
        normalizer: Optional[MassNormalizer] = None,
    ):
        self.catalog = catalog
        self.normalizer = normalizer or MassNormalizer(catalog=catalog)
        if self.normalizer.catalog is None:
            self.normalizer.catalog = catalog

    def calculate(
        self,
        fuel_name: str,
        quantity: Union[float, Decimal],
        unit: str,
        sector: Optional[Union[EconomicSector, str]] = None,
    ) -> EmissionResult:
        """
        Resolve the fuel, check the sector, normalize the quantity and compute.

        Args:
            fuel_name: Fuel name (exact, case-insensitive or unique partial)
            quantity: Activity quantity in ``unit``
            unit: Activity unit (kg, L, m³, t, ...)
            sector: Economic sector; when given, the fuel must be valid for it

        Raises:
            FuelNotFoundError: Unknown or ambiguous fuel name
            SectorMismatchError: Fuel not valid for ``sector``
            UnitConversionError: Invalid quantity
        """
        start = time.perf_counter()
        try:
            fuel = self.catalog.get(fuel_name)
        except FuelNotFoundError:
            metrics.inc_calculations("not_found")
            raise

        sector_value = self._sector_value(sector)
        if sector_value is not None and not fuel.is_valid_for(sector_value):
            metrics.inc_calculations("sector_mismatch")
            raise SectorMismatchError(
                f"Fuel {fuel.name} is not valid for sector {sector_value}",
                fuel_name=fuel.name,
                sector=sector_value,
                valid_sectors=[s.value for s in fuel.economic_sectors],
            )

        mass_kg = self.normalizer.normalize(fuel, quantity, unit)
        result = self.compute(fuel, mass_kg)

        result.details.economic_sector = sector_value
        result.details.input_quantity = Decimal(str(quantity))
        result.details.input_unit = unit
        result.details.calculation_steps.insert(0, {
            "step": 0,
            "description": "Normalize activity to mass",
            "input": f"{quantity} {unit}",
            "mass_kg": str(mass_kg),
        })
        result.provenance_hash = result._calculate_provenance_hash()

        metrics.observe_duration("calculate", time.perf_counter() - start)
        logger.info(
            "Calculated %s %s of %s: total=%s t CO2e (fossil=%s, biogenic=%s)",
            quantity, unit, fuel.name,
            result.total_co2e, result.fossil_co2e, result.biogenic_co2e,
        )
        return result

    def compute(
        self,
        fuel: Union[FuelReferenceEntry, str],
        mass_kg: Union[float, Decimal],
    ) -> EmissionResult:
        """
        Compute emissions for a mass of fuel already expressed in kg.

        Returns:
            EmissionResult with fossil/biogenic split and details

        Raises:
            UnitConversionError: Mass is negative or not finite
        """
        if not isinstance(fuel, FuelReferenceEntry):
            fuel = self.catalog.get(fuel)

        mass_kg = to_quantity(mass_kg)
        calorific_value = Decimal(str(fuel.calorific_value))
        co2_factor = Decimal(str(fuel.co2_factor))
        ch4_factor = Decimal(str(fuel.ch4_factor))
        n2o_factor = Decimal(str(fuel.n2o_factor))
        biogenic_fraction = Decimal(str(fuel.biogenic_fraction))
        fossil_fraction = Decimal("1") - biogenic_fraction
        steps: List[Dict[str, Any]] = []

        # Step 1: mass to Gg
        mass_gg = mass_kg / KG_PER_GG
        steps.append({
            "step": 1,
            "description": "Convert mass to Gg",
            "mass_gg": str(mass_gg),
        })

        # Step 2: gas emissions
        energy = mass_gg * calorific_value
        co2 = energy * co2_factor / CO2_SCALE
        ch4 = energy * ch4_factor / TRACE_GAS_SCALE
        n2o = energy * n2o_factor / TRACE_GAS_SCALE
        steps.append({
            "step": 2,
            "description": "Apply calorific value and emission factors",
            "formula": "gas = mass_gg x calorific_value x factor / scale",
            "co2": str(co2),
            "ch4": str(ch4),
            "n2o": str(n2o),
        })

        # Step 3: GWP weighting
        gwp_ch4 = GWP_CH4_BIOGENIC if fuel.is_biofuel else GWP_CH4_FOSSIL
        ch4_co2e = ch4 * gwp_ch4
        n2o_co2e = n2o * GWP_N2O
        steps.append({
            "step": 3,
            "description": "Convert CH4 and N2O to CO2e",
            "gwp_ch4": str(gwp_ch4),
            "gwp_n2o": str(GWP_N2O),
            "ch4_co2e": str(ch4_co2e),
            "n2o_co2e": str(n2o_co2e),
        })

        # Step 4: fossil/biogenic split
        fossil_co2 = co2 * fossil_fraction
        biogenic_co2 = co2 * biogenic_fraction
        fossil_co2e = _round(fossil_co2 + ch4_co2e + n2o_co2e, CO2E_PRECISION)
        biogenic_co2e = _round(biogenic_co2, CO2E_PRECISION)
        total_co2e = fossil_co2e + biogenic_co2e
        steps.append({
            "step": 4,
            "description": "Split fossil and biogenic CO2e",
            "fossil_co2e": str(fossil_co2e),
            "biogenic_co2e": str(biogenic_co2e),
            "total_co2e": str(total_co2e),
        })

        details = CalculationDetails(
            fuel_name=fuel.name,
            mass_kg=mass_kg,
            mass_gg=mass_gg,
            calorific_value=calorific_value,
            calorific_value_unit=fuel.calorific_value_unit,
            emission_factors={"co2": co2_factor, "ch4": ch4_factor, "n2o": n2o_factor},
            gwp_factors={"ch4": gwp_ch4, "n2o": GWP_N2O},
            biogenic_fraction=biogenic_fraction,
            fossil_fraction=fossil_fraction,
            raw_emissions={"co2": co2, "ch4": ch4, "n2o": n2o},
            co2e_breakdown={
                "fossil_co2": fossil_co2,
                "biogenic_co2": biogenic_co2,
                "ch4_co2e": ch4_co2e,
                "n2o_co2e": n2o_co2e,
            },
            calculation_steps=steps,
        )

        metrics.inc_calculations("success")
        return EmissionResult(
            fossil_co2e=fossil_co2e,
            biogenic_co2e=biogenic_co2e,
            total_co2e=total_co2e,
            co2=_round(co2, CO2E_PRECISION),
            ch4=_round(ch4, TRACE_GAS_PRECISION),
            n2o=_round(n2o, TRACE_GAS_PRECISION),
            details=details,
        )

    @staticmethod
    def _sector_value(sector: Optional[Union[EconomicSector, str]]) -> Optional[str]:
        if sector is None:
            return None
        if isinstance(sector, EconomicSector):
            return sector.value
        return str(sector)


__all__ = [
    "GWP_CH4_FOSSIL",
    "GWP_CH4_BIOGENIC",
    "GWP_N2O",
    "CalculationDetails",
    "EmissionResult",
    "EmissionCalculator",
]
