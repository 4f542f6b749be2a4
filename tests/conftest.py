# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from ghgengine.calculation import (
    ConversionFactorTable,
    EconomicSector,
    FuelCatalog,
    FuelCategory,
    FuelReferenceEntry,
)
from ghgengine.config import DATA_DIR, EngineConfig, reset_config, set_config
from ghgengine.factor_import.models import EmissionFactorRecord, FactorOrigin, ImportRow
from ghgengine.store import InMemoryFactorStore

STATIONARY = "Combustão Estacionária"

ALL_SECTORS = tuple(EconomicSector)


@pytest.fixture(autouse=True)
def engine_config():
    """Fresh default configuration for every test."""
    config = EngineConfig()
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(scope="session")
def data_dir() -> Path:
    """Bundled reference data directory."""
    return DATA_DIR


@pytest.fixture(scope="session")
def bundled_catalog(data_dir) -> FuelCatalog:
    """The GHG Protocol Brasil catalog shipped with the package."""
    return FuelCatalog.from_yaml(data_dir / "stationary_fuels.yaml")


@pytest.fixture(scope="session")
def conversion_table(data_dir) -> ConversionFactorTable:
    return ConversionFactorTable.from_yaml(data_dir / "conversion_factors.yaml")


@pytest.fixture
def fixture_catalog() -> FuelCatalog:
    """Small catalog with hand-checkable factors.

    "Lenha Teste" carries a non-zero CO2 factor so the biogenic share is
    visible in results.
    """
    return FuelCatalog([
        FuelReferenceEntry(
            name="Lenha Teste",
            category=FuelCategory.SOLID,
            calorific_value=15.6,
            co2_factor=112,
            ch4_factor=300,
            n2o_factor=4,
            is_biofuel=True,
            biogenic_fraction=1.0,
            activity_unit="kg",
            economic_sectors=ALL_SECTORS,
        ),
        FuelReferenceEntry(
            name="Diesel Teste",
            category=FuelCategory.LIQUID,
            calorific_value=42.6,
            density=0.84,
            density_unit="kg/L",
            co2_factor=74.1,
            ch4_factor=3,
            n2o_factor=0.6,
            activity_unit="L",
            economic_sectors=ALL_SECTORS,
        ),
        FuelReferenceEntry(
            name="Mistura B50",
            category=FuelCategory.LIQUID,
            calorific_value=10,
            co2_factor=100,
            ch4_factor=10,
            n2o_factor=1,
            is_biofuel=True,
            biogenic_fraction=0.5,
            activity_unit="kg",
            economic_sectors=ALL_SECTORS,
        ),
        FuelReferenceEntry(
            name="Querosene Teste",
            category=FuelCategory.LIQUID,
            calorific_value=43.8,
            density=0.81,
            density_unit="kg/L",
            co2_factor=71.9,
            ch4_factor=3,
            n2o_factor=0.6,
            activity_unit="L",
            economic_sectors=(EconomicSector.COMMERCIAL, EconomicSector.RESIDENTIAL),
        ),
        FuelReferenceEntry(
            name="Gás Teste",
            category=FuelCategory.GAS,
            calorific_value=48.0,
            density=0.75,
            density_unit="kg/m³",
            co2_factor=56.1,
            ch4_factor=1,
            n2o_factor=0.1,
            activity_unit="m³",
            economic_sectors=ALL_SECTORS,
        ),
        FuelReferenceEntry(
            name="Gás Sem Densidade",
            category=FuelCategory.GAS,
            calorific_value=40.0,
            co2_factor=50,
            ch4_factor=1,
            n2o_factor=0.1,
            activity_unit="m³",
            economic_sectors=ALL_SECTORS,
        ),
    ], source="fixture")


@pytest.fixture
def store() -> InMemoryFactorStore:
    return InMemoryFactorStore()


def _make_record(name="Diesel", category=STATIONARY, unit="L", origin=FactorOrigin.CUSTOM, **kwargs):
    """Build a persisted factor record with sensible defaults."""
    kwargs.setdefault("co2_factor", 74.1)
    kwargs.setdefault("source", "GHG Protocol")
    return EmissionFactorRecord(
        name=name,
        category=category,
        activity_unit=unit,
        origin=origin,
        **kwargs,
    )


def _make_row(row_number=2, **overrides):
    """Build an import row; pass a field as None to leave it blank."""
    values = {
        "name": "Diesel",
        "category": STATIONARY,
        "unit": "L",
        "co2_factor": "74.1",
        "source": "X",
        "validity_year": "2025",
    }
    values.update(overrides)
    return ImportRow(row_number=row_number, **values)


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def make_row():
    return _make_row
