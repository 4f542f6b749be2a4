# -*- coding: utf-8 -*-
"""
Persistence collaborator interface and an in-memory implementation.

The engine talks to storage only through ``FactorStore``:

- ``list_existing_factors() -> [EmissionFactorRecord]``
- ``create_factor(data) -> EmissionFactorRecord``
- ``update_factor(id, data) -> EmissionFactorRecord`` (custom records only)
- ``list_eligible_batch_records(threshold) -> [BatchEligibleRecord]``
- ``mark_record_decided(id, decision)``

Retries and timeouts belong to the implementation, not the engine.
``InMemoryFactorStore`` backs the CLI and the test suite.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from ghgengine.batch.models import BatchEligibleRecord
from ghgengine.exceptions import PersistenceError, ReadOnlyFactorError
from ghgengine.factor_import.models import (
    EmissionFactorData,
    EmissionFactorRecord,
    FactorOrigin,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@runtime_checkable
class FactorStore(Protocol):
    """Storage operations the engine depends on."""

    async def list_existing_factors(self) -> List[EmissionFactorRecord]:
        ...

    async def create_factor(self, data: EmissionFactorData) -> EmissionFactorRecord:
        ...

    async def update_factor(self, factor_id: str, data: EmissionFactorData) -> EmissionFactorRecord:
        ...

    async def list_eligible_batch_records(self, threshold: float) -> List[BatchEligibleRecord]:
        ...

    async def mark_record_decided(self, record_id: str, decision: str) -> None:
        ...


class InMemoryFactorStore:
    """Dictionary-backed ``FactorStore`` that enforces the origin rules."""

    def __init__(
        self,
        factors: Optional[Iterable[EmissionFactorRecord]] = None,
        batch_records: Optional[Iterable[BatchEligibleRecord]] = None,
    ):
        self._factors: Dict[str, EmissionFactorRecord] = {}
        self._batch_records: Dict[str, BatchEligibleRecord] = {}
        for record in factors or []:
            self._factors[record.id] = record
        for batch_record in batch_records or []:
            self.add_batch_record(batch_record)

    # ------------------------------------------------------------------
    # Emission factors
    # ------------------------------------------------------------------

    async def list_existing_factors(self) -> List[EmissionFactorRecord]:
        return list(self._factors.values())

    async def create_factor(
        self,
        data: EmissionFactorData,
        origin: FactorOrigin = FactorOrigin.CUSTOM,
    ) -> EmissionFactorRecord:
        record = EmissionFactorRecord(**data.model_dump(), origin=origin)
        self._factors[record.id] = record
        logger.debug("Created %s factor %s (%s)", origin.value, record.id, record.name)
        return record

    async def update_factor(self, factor_id: str, data: EmissionFactorData) -> EmissionFactorRecord:
        existing = self._get(factor_id)
        if not existing.is_editable:
            raise ReadOnlyFactorError(
                f"System factor {existing.name!r} cannot be modified",
                factor_id=factor_id,
            )
        record = existing.model_copy(update={**data.model_dump(), "updated_at": _utcnow()})
        self._factors[factor_id] = record
        logger.debug("Updated factor %s (%s)", factor_id, record.name)
        return record

    async def delete_factor(self, factor_id: str) -> None:
        existing = self._get(factor_id)
        if not existing.is_editable:
            raise ReadOnlyFactorError(
                f"System factor {existing.name!r} cannot be deleted",
                factor_id=factor_id,
            )
        del self._factors[factor_id]

    async def upsert_system_factor(
        self, data: EmissionFactorData,
    ) -> Tuple[EmissionFactorRecord, bool]:
        """Insert or refresh a system factor keyed on (name, category, unit).

        Returns:
            The stored record and whether it was newly created.
        """
        for record in self._factors.values():
            if (
                record.origin == FactorOrigin.SYSTEM
                and record.name == data.name
                and record.category == data.category
                and record.activity_unit == data.activity_unit
            ):
                updated = record.model_copy(update={**data.model_dump(), "updated_at": _utcnow()})
                self._factors[record.id] = updated
                return updated, False
        created = await self.create_factor(data, origin=FactorOrigin.SYSTEM)
        return created, True

    def _get(self, factor_id: str) -> EmissionFactorRecord:
        try:
            return self._factors[factor_id]
        except KeyError:
            raise PersistenceError(
                f"Factor not found: {factor_id}",
                context={"factor_id": factor_id},
            ) from None

    # ------------------------------------------------------------------
    # Batch records
    # ------------------------------------------------------------------

    def add_batch_record(self, record: BatchEligibleRecord) -> None:
        self._batch_records[record.id] = record

    def get_batch_record(self, record_id: str) -> Optional[BatchEligibleRecord]:
        return self._batch_records.get(record_id)

    async def list_eligible_batch_records(self, threshold: float) -> List[BatchEligibleRecord]:
        return [r for r in self._batch_records.values() if r.is_eligible(threshold)]

    async def mark_record_decided(self, record_id: str, decision: str) -> None:
        record = self._batch_records.get(record_id)
        if record is None:
            raise PersistenceError(
                f"Batch record not found: {record_id}",
                context={"record_id": record_id},
            )
        self._batch_records[record_id] = record.model_copy(update={"decision": decision})


__all__ = ["FactorStore", "InMemoryFactorStore"]
