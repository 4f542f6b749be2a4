# -*- coding: utf-8 -*-
"""
Factor Import Orchestrator Tests

End-to-end import runs against the in-memory store:
- new factors, validation errors and warnings
- duplicate handling under skip, replace and keep-both policies
- system record protection on replace
- per-row failure isolation and report completeness
"""

from datetime import date

import pytest
from prometheus_client import REGISTRY

from ghgengine.config import EngineConfig, set_config
from ghgengine.exceptions import FileReadError, PersistenceError, UnsupportedFormatError
from ghgengine.factor_import.models import FactorOrigin, ImportStatus
from ghgengine.factor_import.orchestrator import FactorImportOrchestrator
from ghgengine.factor_import.policies import KeepBothPolicy
from ghgengine.store import InMemoryFactorStore

TODAY = date(2025, 3, 1)


class FlakyStore(InMemoryFactorStore):
    """Fails to create factors with the given names."""

    def __init__(self, fail_names, **kwargs):
        super().__init__(**kwargs)
        self.fail_names = set(fail_names)

    async def create_factor(self, data, origin=FactorOrigin.CUSTOM):
        if data.name in self.fail_names:
            raise PersistenceError("connection reset by peer")
        return await super().create_factor(data, origin)


class UnavailableStore(InMemoryFactorStore):

    async def list_existing_factors(self):
        raise PersistenceError("database unavailable")


def _orchestrator(store):
    return FactorImportOrchestrator(store, today=lambda: TODAY)


async def _factors(store):
    return await store.list_existing_factors()


# ==================== NEW FACTORS ====================

class TestNewFactors:

    @pytest.mark.asyncio
    async def test_row_into_empty_corpus(self, store, make_row):
        report = await _orchestrator(store).import_rows([make_row()])

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.SUCCESS
        assert outcome.row_number == 2
        assert outcome.name == "Diesel"

        factors = await _factors(store)
        assert len(factors) == 1
        assert factors[0].id == outcome.factor_id
        assert factors[0].origin == FactorOrigin.CUSTOM
        assert factors[0].co2_factor == 74.1
        assert factors[0].year_of_validity == 2025

    @pytest.mark.asyncio
    async def test_missing_unit_is_error(self, store, make_row):
        report = await _orchestrator(store).import_rows([make_row(unit=None)])

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.ERROR
        assert "Unit is required" in outcome.message
        assert outcome.factor_id is None
        assert await _factors(store) == []

    @pytest.mark.asyncio
    async def test_invalid_year_persists_with_warning(self, store, make_row):
        report = await _orchestrator(store).import_rows([make_row(validity_year="1800")])

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.WARNING
        assert "with warnings" in outcome.message
        assert outcome.warnings
        factors = await _factors(store)
        assert len(factors) == 1
        assert factors[0].year_of_validity is None

    @pytest.mark.asyncio
    async def test_same_name_different_unit_is_new(self, make_record, make_row):
        store = InMemoryFactorStore(factors=[make_record("Diesel", unit="kg")])
        report = await _orchestrator(store).import_rows([make_row(unit="L")])

        assert report.outcomes[0].status == ImportStatus.SUCCESS
        assert len(await _factors(store)) == 2


# ==================== DUPLICATES ====================

class TestSkip:

    @pytest.mark.asyncio
    async def test_fuzzy_duplicate_skipped_by_default(self, make_record, make_row):
        existing = make_record("Diesel")
        store = InMemoryFactorStore(factors=[existing])

        report = await _orchestrator(store).import_rows([make_row(name="Dieesel")])

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.DUPLICATE
        assert outcome.existing_factor.id == existing.id
        assert outcome.factor_id is None
        assert report.duplicates == 1
        assert len(await _factors(store)) == 1

    @pytest.mark.asyncio
    async def test_duplicates_within_one_run(self, store, make_row):
        rows = [make_row(2, name="Diesel"), make_row(3, name="Dieesel"), make_row(4, name="DIESEL")]
        report = await _orchestrator(store).import_rows(rows)

        assert [o.status for o in report.outcomes] == [
            ImportStatus.SUCCESS, ImportStatus.DUPLICATE, ImportStatus.DUPLICATE,
        ]
        assert len(await _factors(store)) == 1


class TestReplace:

    @pytest.mark.asyncio
    async def test_custom_record_updated_in_place(self, make_record, make_row):
        existing = make_record("Diesel", co2_factor=74.1)
        store = InMemoryFactorStore(factors=[existing])

        report = await _orchestrator(store).import_rows(
            [make_row(co2_factor="80")], policy="replace",
        )

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.SUCCESS
        assert outcome.factor_id == existing.id
        factors = await _factors(store)
        assert len(factors) == 1
        assert factors[0].co2_factor == 80.0

    @pytest.mark.asyncio
    async def test_system_record_never_mutated(self, make_record, make_row):
        system = make_record("Diesel", origin=FactorOrigin.SYSTEM, co2_factor=74.1)
        store = InMemoryFactorStore(factors=[system])

        report = await _orchestrator(store).import_rows(
            [make_row(co2_factor="80")], policy="replace",
        )

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.SUCCESS
        assert "read-only" in outcome.message
        by_name = {f.name: f for f in await _factors(store)}
        assert by_name["Diesel"].co2_factor == 74.1
        assert by_name["Diesel"].origin == FactorOrigin.SYSTEM
        copy = by_name["Diesel (Customizado)"]
        assert copy.origin == FactorOrigin.CUSTOM
        assert copy.co2_factor == 80.0
        assert copy.id == outcome.factor_id

    @pytest.mark.asyncio
    async def test_second_replace_reuses_custom_copy(self, make_record, make_row):
        store = InMemoryFactorStore(factors=[make_record("Diesel", origin=FactorOrigin.SYSTEM)])
        orchestrator = _orchestrator(store)

        await orchestrator.import_rows([make_row(co2_factor="80")], policy="replace")
        await orchestrator.import_rows([make_row(co2_factor="81")], policy="replace")

        factors = await _factors(store)
        assert len(factors) == 2
        copy = next(f for f in factors if f.name == "Diesel (Customizado)")
        assert copy.co2_factor == 81.0

    @pytest.mark.asyncio
    async def test_configured_suffix(self, make_record, make_row):
        set_config(EngineConfig(system_replace_suffix=" [custom]"))
        store = InMemoryFactorStore(factors=[make_record("Diesel", origin=FactorOrigin.SYSTEM)])

        await FactorImportOrchestrator(store).import_rows([make_row()], policy="replace")

        names = {f.name for f in await _factors(store)}
        assert names == {"Diesel", "Diesel [custom]"}


class TestKeepBoth:

    @pytest.mark.asyncio
    async def test_dated_copy_counted_as_duplicate(self, make_record, make_row):
        existing = make_record("Diesel")
        store = InMemoryFactorStore(factors=[existing])

        report = await _orchestrator(store).import_rows([make_row()], policy=KeepBothPolicy())

        outcome = report.outcomes[0]
        assert outcome.status == ImportStatus.SUCCESS
        assert outcome.kept_both
        assert outcome.existing_factor.id == existing.id
        assert report.success == 1
        assert report.duplicates == 1

        names = sorted(f.name for f in await _factors(store))
        assert names == ["Diesel", "Diesel (2025-03-01)"]

    @pytest.mark.asyncio
    async def test_callback_policy(self, make_record, make_row):
        store = InMemoryFactorStore(factors=[make_record("Diesel")])
        asked = []

        def ask(match, candidate):
            asked.append((match.existing.name, candidate.name, match.match_type.value))
            return "keep_both"

        report = await _orchestrator(store).import_rows([make_row(name="Dieesel")], policy=ask)

        assert asked == [("Diesel", "Dieesel", "fuzzy")]
        assert report.outcomes[0].kept_both
        assert "Dieesel (2025-03-01)" in {f.name for f in await _factors(store)}


# ==================== FAILURES & REPORT ====================

class TestFailures:

    @pytest.mark.asyncio
    async def test_persistence_failure_isolated_to_row(self, make_row):
        store = FlakyStore(fail_names={"Gasolina"})
        rows = [make_row(2, name="Diesel"), make_row(3, name="Gasolina"), make_row(4, name="Etanol")]

        report = await _orchestrator(store).import_rows(rows)

        statuses = [o.status for o in report.outcomes]
        assert statuses == [ImportStatus.SUCCESS, ImportStatus.ERROR, ImportStatus.SUCCESS]
        assert report.outcomes[1].message.startswith("Failed to save factor:")
        assert "connection reset" in report.outcomes[1].message
        assert len(await _factors(store)) == 2

    @pytest.mark.asyncio
    async def test_corpus_failure_propagates(self, make_row):
        with pytest.raises(PersistenceError):
            await _orchestrator(UnavailableStore()).import_rows([make_row()])


class TestReport:

    @pytest.mark.asyncio
    async def test_every_row_has_one_outcome(self, store, make_row):
        rows = [
            make_row(2, name="Diesel"),
            make_row(3, name="Carvão", unit=None),
            make_row(4, name="Gasolina", validity_year="1800"),
            make_row(5, name="Dieesel"),
            make_row(6, name="Etanol", co2_factor="-3"),
        ]
        report = await _orchestrator(store).import_rows(rows)

        assert report.total_rows == 5
        assert [o.row_number for o in report.outcomes] == [2, 3, 4, 5, 6]
        assert sum(report.status_counts.values()) == 5
        assert report.status_counts == {"success": 1, "error": 2, "warning": 1, "duplicate": 1}
        assert report.persisted == 2
        assert report.completed_at is not None
        assert report.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_summary(self, store, make_row):
        report = await _orchestrator(store).import_rows([make_row()], file_name="x.csv")
        summary = report.summary()
        assert summary["file_name"] == "x.csv"
        assert summary["total_rows"] == 1
        assert summary["success"] == 1

    @pytest.mark.asyncio
    async def test_rows_counted_in_metrics(self, store, make_row):
        labels = {"status": "success"}
        before = REGISTRY.get_sample_value("ghg_import_rows_total", labels) or 0.0

        await _orchestrator(store).import_rows([make_row(2, name="A"), make_row(3, name="Zeta")])

        assert REGISTRY.get_sample_value("ghg_import_rows_total", labels) == before + 2

    @pytest.mark.asyncio
    async def test_metrics_disabled(self, store, make_row):
        set_config(EngineConfig(enable_metrics=False))
        labels = {"status": "error"}
        before = REGISTRY.get_sample_value("ghg_import_rows_total", labels) or 0.0

        await FactorImportOrchestrator(store).import_rows([make_row(unit=None)])

        assert (REGISTRY.get_sample_value("ghg_import_rows_total", labels) or 0.0) == before


# ==================== FILES ====================

class TestImportFile:

    @pytest.mark.asyncio
    async def test_csv_bytes(self, store):
        content = (
            "nome;categoria;unidade;fator_co2;fonte;ano\n"
            "Diesel;Combustão Estacionária;L;74,1;IPCC;2025\n"
            "Gasolina;Combustão Estacionária;;69,3;IPCC;2025\n"
            "Dieesel;Combustão Estacionária;L;74,1;IPCC;2025\n"
        ).encode("utf-8")

        report = await _orchestrator(store).import_file(content, file_name="fatores.csv")

        assert report.file_name == "fatores.csv"
        assert len(report.file_hash) == 64
        assert [o.row_number for o in report.outcomes] == [2, 3, 4]
        assert [o.status for o in report.outcomes] == [
            ImportStatus.SUCCESS, ImportStatus.ERROR, ImportStatus.DUPLICATE,
        ]
        factors = await _factors(store)
        assert factors[0].co2_factor == 74.1

    @pytest.mark.asyncio
    async def test_path(self, store, tmp_path):
        path = tmp_path / "factors.csv"
        path.write_text(
            "name,category,unit,co2,source\nDiesel,Combustão Estacionária,L,74.1,IPCC\n",
            encoding="utf-8",
        )
        report = await _orchestrator(store).import_file(path, policy="skip")
        assert report.file_name == "factors.csv"
        assert report.success == 1

    @pytest.mark.asyncio
    async def test_excel_rejected_before_any_row(self, store):
        with pytest.raises(UnsupportedFormatError):
            await _orchestrator(store).import_file(b"PK\x03\x04", file_name="factors.xlsx")
        assert await _factors(store) == []

    @pytest.mark.asyncio
    async def test_unreadable_file(self, store, tmp_path):
        with pytest.raises(FileReadError):
            await _orchestrator(store).import_file(tmp_path / "missing.csv")
