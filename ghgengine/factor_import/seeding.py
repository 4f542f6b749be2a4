# -*- coding: utf-8 -*-
"""
Publish the fuel reference catalog as read-only system emission factors.

Each catalog fuel becomes one ``system`` record under the configured
stationary combustion category, keyed on (name, category, unit): an
existing system record is refreshed, a missing one is created. A fuel
that fails to store is reported and the remaining fuels still go through.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, Field

from ghgengine.calculation.fuel_catalog import FuelCatalog, FuelReferenceEntry
from ghgengine.config import EngineConfig, get_config
from ghgengine.factor_import.models import EmissionFactorData

if TYPE_CHECKING:
    from ghgengine.store import InMemoryFactorStore

logger = logging.getLogger(__name__)

#: Validity year of the bundled catalog edition.
CATALOG_VALIDITY_YEAR = 2025


class SeedSummary(BaseModel):
    """Counts of a catalog seeding run."""

    created: int = 0
    updated: int = 0
    errors: List[str] = Field(default_factory=list)


def fuel_to_factor(fuel: FuelReferenceEntry, category: str) -> EmissionFactorData:
    """Emission factor payload for one catalog fuel."""
    return EmissionFactorData(
        name=fuel.name,
        category=category,
        activity_unit=fuel.activity_unit,
        co2_factor=fuel.co2_factor,
        ch4_factor=fuel.ch4_factor,
        n2o_factor=fuel.n2o_factor,
        source=fuel.source,
        year_of_validity=CATALOG_VALIDITY_YEAR,
    )


async def seed_catalog_factors(
    catalog: FuelCatalog,
    store: "InMemoryFactorStore",
    config: Optional[EngineConfig] = None,
) -> SeedSummary:
    """Upsert every catalog fuel into ``store`` as a system factor."""
    config = config or get_config()
    summary = SeedSummary()
    for fuel in catalog:
        try:
            _, created = await store.upsert_system_factor(
                fuel_to_factor(fuel, config.default_import_category),
            )
        except Exception as exc:
            logger.error("Failed to seed fuel %s: %s", fuel.name, exc)
            summary.errors.append(f"{fuel.name}: {exc}")
            continue
        if created:
            summary.created += 1
        else:
            summary.updated += 1

    logger.info(
        "Seeded %d catalog fuels: %d created, %d updated, %d errors",
        len(catalog), summary.created, summary.updated, len(summary.errors),
    )
    return summary


__all__ = ["CATALOG_VALIDITY_YEAR", "SeedSummary", "fuel_to_factor", "seed_catalog_factors"]
