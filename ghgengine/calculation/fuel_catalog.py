# -*- coding: utf-8 -*-
"""
Fuel Reference Catalog

Immutable, loaded-once catalog of stationary combustion fuels. Each entry
carries the calorific value, optional density, per-gas emission factors,
biogenic fraction and the economic sectors the entry is valid for.

The catalog is an explicit object: load it once (from the bundled YAML or
a fixture) and pass it to the normalizer and calculator.

Example:
    >>> catalog = FuelCatalog.from_yaml("ghgengine/data/stationary_fuels.yaml")
    >>> fuel = catalog.get("Óleo Diesel (puro)")
    >>> fuel.is_valid_for(EconomicSector.ENERGY)
    True
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ghgengine.exceptions import AmbiguousFuelError, ConfigurationError, FuelNotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FuelCategory(str, Enum):
    """Physical state of a fuel."""

    LIQUID = "liquid"
    GAS = "gas"
    SOLID = "solid"


class EconomicSector(str, Enum):
    """Economic sectors for which a stationary fuel may be reported."""

    ENERGY = "Energia"
    MANUFACTURING = "Manufatura e construção"
    COMMERCIAL = "Comercial e Institucional"
    RESIDENTIAL = "Residencial, Agricultura, Florestal ou Pesca"


#: Density units and their multiplier to kg per litre.
DENSITY_UNITS_TO_KG_PER_L: Dict[str, float] = {
    "kg/L": 1.0,
    "kg/l": 1.0,
    "t/m³": 1.0,
    "t/m3": 1.0,
    "kg/m³": 0.001,
    "kg/m3": 0.001,
}


# ---------------------------------------------------------------------------
# FuelReferenceEntry
# ---------------------------------------------------------------------------


class FuelReferenceEntry(BaseModel):
    """Read-only catalog record for one fuel."""

    name: str = Field(..., description="Fuel name as published")
    category: FuelCategory = Field(..., description="Physical category")
    calorific_value: float = Field(..., gt=0, description="Energy per mass")
    calorific_value_unit: str = Field(default="TJ/Gg")
    density: Optional[float] = Field(default=None, gt=0, description="Mass per volume")
    density_unit: Optional[str] = Field(default=None)
    co2_factor: float = Field(..., ge=0, description="t CO2 per TJ")
    ch4_factor: float = Field(..., ge=0, description="kg CH4 per TJ")
    n2o_factor: float = Field(..., ge=0, description="kg N2O per TJ")
    is_biofuel: bool = Field(default=False)
    biogenic_fraction: float = Field(default=0.0, ge=0.0, le=1.0)
    activity_unit: str = Field(..., description="Native unit of measure")
    economic_sectors: Tuple[EconomicSector, ...] = Field(default=())
    source: Optional[str] = Field(default=None)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("name", "activity_unit")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate text fields are non-empty."""
        if not v or not v.strip():
            raise ValueError("must be non-empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_density_unit(self) -> "FuelReferenceEntry":
        """A density needs a known unit."""
        if self.density is not None:
            if self.density_unit not in DENSITY_UNITS_TO_KG_PER_L:
                raise ValueError(
                    f"unsupported density_unit {self.density_unit!r} for {self.name}"
                )
        return self

    @property
    def density_kg_per_l(self) -> Optional[float]:
        """Density expressed in kg/L, or None when unknown."""
        if self.density is None:
            return None
        return self.density * DENSITY_UNITS_TO_KG_PER_L[self.density_unit]

    def is_valid_for(self, sector: Union[EconomicSector, str]) -> bool:
        """Whether the fuel may be reported under ``sector``."""
        return sector in self.economic_sectors


# ---------------------------------------------------------------------------
# FuelCatalog
# ---------------------------------------------------------------------------


def _normalize_name(name: str) -> str:
    return name.lower().replace("(", "").replace(")", "").strip()


class FuelCatalog:
    """Immutable collection of fuel reference entries with name lookup."""

    def __init__(
        self,
        entries: Iterable[FuelReferenceEntry],
        source: Optional[str] = None,
    ):
        self._entries: Tuple[FuelReferenceEntry, ...] = tuple(entries)
        self._by_name: Dict[str, FuelReferenceEntry] = {}
        for entry in self._entries:
            if entry.name in self._by_name:
                raise ConfigurationError(
                    f"Duplicate fuel in catalog: {entry.name}",
                    context={"source": source},
                )
            self._by_name[entry.name] = entry
        self.source = source

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "FuelCatalog":
        """Load a catalog from a YAML file with a top-level ``fuels`` list.

        Raises:
            ConfigurationError: When the file is missing, malformed, or an
                entry fails validation.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Cannot load fuel catalog {path}: {e}",
                context={"path": str(path)},
            ) from e

        source = (raw.get("metadata") or {}).get("source")
        entries: List[FuelReferenceEntry] = []
        for item in raw.get("fuels") or []:
            item = dict(item)
            item.setdefault("source", source)
            try:
                entries.append(FuelReferenceEntry(**item))
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid fuel entry {item.get('name')!r} in {path}: {e}",
                    context={"path": str(path), "fuel": item.get("name")},
                ) from e

        catalog = cls(entries, source=str(path))
        logger.info("Loaded %d fuels from %s", len(catalog), path)
        return catalog

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> FuelReferenceEntry:
        """Resolve a fuel by name.

        Tries, in order: exact name, case-insensitive name, then partial
        containment on names with parentheses removed.

        Raises:
            FuelNotFoundError: No fuel matches.
            AmbiguousFuelError: The partial match hits several fuels.
        """
        if not name or not name.strip():
            raise FuelNotFoundError("Fuel name is empty", fuel_name=name)

        fuel = self._by_name.get(name)
        if fuel is not None:
            return fuel

        lowered = name.strip().lower()
        for entry in self._entries:
            if entry.name.lower() == lowered:
                return entry

        wanted = _normalize_name(name)
        candidates = []
        for entry in self._entries:
            normalized = _normalize_name(entry.name)
            if normalized == wanted:
                return entry
            if wanted in normalized or normalized in wanted:
                candidates.append(entry)

        if len(candidates) == 1:
            logger.debug("Fuel %r resolved by partial match to %r", name, candidates[0].name)
            return candidates[0]
        if candidates:
            raise AmbiguousFuelError(
                f"Fuel name {name!r} matches several fuels",
                fuel_name=name,
                candidates=[c.name for c in candidates],
            )
        raise FuelNotFoundError(
            f"Fuel not found: {name}. Check the stationary combustion fuel list.",
            fuel_name=name,
        )

    def find(self, name: str) -> Optional[FuelReferenceEntry]:
        """Like :meth:`get` but returns None when the fuel is unknown."""
        try:
            return self.get(name)
        except FuelNotFoundError:
            return None

    def for_sector(self, sector: Union[EconomicSector, str]) -> List[FuelReferenceEntry]:
        """Fuels valid for one economic sector, in catalog order."""
        return [entry for entry in self._entries if entry.is_valid_for(sector)]

    def names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FuelReferenceEntry]:
        return iter(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


__all__ = [
    "FuelCategory",
    "EconomicSector",
    "DENSITY_UNITS_TO_KG_PER_L",
    "FuelReferenceEntry",
    "FuelCatalog",
]
