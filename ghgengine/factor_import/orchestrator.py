# -*- coding: utf-8 -*-
"""
Factor Import Orchestrator

Drives one emission factor file import end to end::

    read file -> for each row:
        validate       -> error outcome on blocking errors
        find duplicate -> none: create custom record
                       -> found: apply duplicate policy
                            skip      -> duplicate outcome
                            replace   -> update custom record, or create a
                                         custom copy of a system record
                            keep_both -> create dated copy (kept_both)

Rows are processed strictly in order and every created or updated record
is folded back into the working corpus, so later rows see earlier ones.
A failing row becomes an error outcome and the run continues; only file
and setup failures propagate. Every row yields exactly one outcome.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional, Union

from ghgengine import metrics
from ghgengine.config import EngineConfig, get_config
from ghgengine.factor_import.csv_reader import FactorFileReader
from ghgengine.factor_import.duplicate_resolver import DuplicateResolver
from ghgengine.factor_import.models import (
    DuplicateAction,
    DuplicateMatch,
    EmissionFactorData,
    EmissionFactorRecord,
    ImportOutcome,
    ImportReport,
    ImportRow,
    ImportStatus,
    RowValidationResult,
)
from ghgengine.factor_import.policies import DuplicatePolicy, resolve_policy
from ghgengine.factor_import.row_validator import RowValidator

if TYPE_CHECKING:
    from ghgengine.store import FactorStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class FactorImportOrchestrator:
    """Imports emission factor files against a factor store."""

    def __init__(
        self,
        store: "FactorStore",
        reader: Optional[FactorFileReader] = None,
        validator: Optional[RowValidator] = None,
        resolver: Optional[DuplicateResolver] = None,
        config: Optional[EngineConfig] = None,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.config = config or get_config()
        self.reader = reader or FactorFileReader()
        self.validator = validator or RowValidator(self.config)
        self.resolver = resolver or DuplicateResolver(self.config.fuzzy_match_threshold)
        self._today = today

    async def import_file(
        self,
        source: Union[str, Path, bytes],
        file_name: Optional[str] = None,
        policy: Optional[Any] = None,
    ) -> ImportReport:
        """
        Import a CSV file of emission factors.

        Args:
            source: File path or raw bytes
            file_name: Name used for format detection and reporting
            policy: Duplicate policy: a DuplicatePolicy, an action name
                ("skip", "replace", "keep_both"), a callable, or None (skip)

        Returns:
            ImportReport with one outcome per data row

        Raises:
            UnsupportedFormatError: Excel or unknown file type
            FileReadError: File cannot be read
        """
        try:
            parsed = self.reader.read(source, file_name)
        except Exception:
            metrics.inc_import_runs("failed")
            raise
        return await self.import_rows(
            parsed.rows,
            policy=policy,
            file_name=parsed.file_name,
            file_hash=parsed.file_hash,
        )

    async def import_rows(
        self,
        rows: Iterable[ImportRow],
        policy: Optional[Any] = None,
        file_name: Optional[str] = None,
        file_hash: Optional[str] = None,
    ) -> ImportReport:
        """Import already-parsed rows. See :meth:`import_file`."""
        start = time.perf_counter()
        duplicate_policy = resolve_policy(policy)
        corpus: List[EmissionFactorRecord] = list(await self.store.list_existing_factors())
        report = ImportReport(file_name=file_name, file_hash=file_hash)

        logger.info(
            "Starting factor import %s against %d existing factors (policy=%s)",
            file_name or "<rows>", len(corpus), type(duplicate_policy).__name__,
        )

        for row in rows:
            outcome = await self._process_row(row, corpus, duplicate_policy)
            report.add_outcome(outcome)
            metrics.inc_import_rows(outcome.status.value)

        elapsed = time.perf_counter() - start
        report.completed_at = _utcnow()
        report.duration_ms = round(elapsed * 1000, 2)
        metrics.inc_import_runs("completed")
        metrics.observe_duration("import", elapsed)
        logger.info(
            "Factor import %s finished: %d rows, %d success, %d warnings, "
            "%d errors, %d duplicates (%.1f ms)",
            file_name or "<rows>", report.total_rows, report.success,
            report.warnings, report.errors, report.duplicates, report.duration_ms,
        )
        return report

    # ------------------------------------------------------------------
    # Row processing
    # ------------------------------------------------------------------

    async def _process_row(
        self,
        row: ImportRow,
        corpus: List[EmissionFactorRecord],
        policy: DuplicatePolicy,
    ) -> ImportOutcome:
        validation = self.validator.validate(row)
        if not validation.is_valid:
            return ImportOutcome(
                row_number=row.row_number,
                status=ImportStatus.ERROR,
                message="; ".join(validation.errors),
                name=row.name,
                warnings=validation.warnings,
            )

        data = validation.data
        try:
            match = self.resolver.find_duplicate(corpus, data)
            if match is None:
                record = await self.store.create_factor(data)
                corpus.append(record)
                return self._persisted(validation, data, record, "Factor created")
            return await self._resolve_duplicate(validation, data, match, corpus, policy)
        except Exception as exc:
            logger.error("Row %d (%s) failed: %s", row.row_number, row.name, exc)
            return ImportOutcome(
                row_number=row.row_number,
                status=ImportStatus.ERROR,
                message=f"Failed to save factor: {exc}",
                name=row.name,
                warnings=validation.warnings,
            )

    async def _resolve_duplicate(
        self,
        validation: RowValidationResult,
        data: EmissionFactorData,
        match: DuplicateMatch,
        corpus: List[EmissionFactorRecord],
        policy: DuplicatePolicy,
    ) -> ImportOutcome:
        existing = match.existing
        action = await policy.decide(match, data)
        logger.debug(
            "Row %d duplicates %r (%s, %.3f): %s",
            validation.row_number, existing.name, match.match_type.value,
            match.similarity, action.value,
        )

        if action == DuplicateAction.SKIP:
            return ImportOutcome(
                row_number=validation.row_number,
                status=ImportStatus.DUPLICATE,
                message=(
                    f"Duplicate of existing factor {existing.name!r} "
                    f"({match.match_type.value} match); skipped"
                ),
                name=data.name,
                existing_factor=existing,
                warnings=validation.warnings,
            )

        if action == DuplicateAction.REPLACE:
            if existing.is_editable:
                record = await self.store.update_factor(existing.id, data)
                self._replace_in_corpus(corpus, record)
                return self._persisted(
                    validation, data, record,
                    f"Replaced existing factor {existing.name!r}",
                    existing=existing,
                )
            return await self._replace_system_factor(validation, data, existing, corpus)

        dated = data.renamed(f"{data.name} ({self._today().isoformat()})")
        record = await self.store.create_factor(dated)
        corpus.append(record)
        return self._persisted(
            validation, data, record,
            f"Kept both: created {record.name!r} alongside {existing.name!r}",
            existing=existing,
            kept_both=True,
        )

    async def _replace_system_factor(
        self,
        validation: RowValidationResult,
        data: EmissionFactorData,
        existing: EmissionFactorRecord,
        corpus: List[EmissionFactorRecord],
    ) -> ImportOutcome:
        custom_name = f"{data.name}{self.config.system_replace_suffix}"
        custom = data.renamed(custom_name)

        # Reuse a custom copy made by an earlier replace
        for record in corpus:
            if (
                record.is_editable
                and record.name == custom_name
                and record.category == data.category
                and record.activity_unit == data.activity_unit
            ):
                updated = await self.store.update_factor(record.id, custom)
                self._replace_in_corpus(corpus, updated)
                return self._persisted(
                    validation, data, updated,
                    f"System factor {existing.name!r} is read-only; "
                    f"updated custom copy {updated.name!r}",
                    existing=existing,
                )

        created = await self.store.create_factor(custom)
        corpus.append(created)
        return self._persisted(
            validation, data, created,
            f"System factor {existing.name!r} is read-only; "
            f"created custom copy {created.name!r}",
            existing=existing,
        )

    def _persisted(
        self,
        validation: RowValidationResult,
        data: EmissionFactorData,
        record: EmissionFactorRecord,
        message: str,
        existing: Optional[EmissionFactorRecord] = None,
        kept_both: bool = False,
    ) -> ImportOutcome:
        status = ImportStatus.SUCCESS
        if validation.warnings:
            status = ImportStatus.WARNING
            message = f"{message} with warnings: {'; '.join(validation.warnings)}"
        return ImportOutcome(
            row_number=validation.row_number,
            status=status,
            message=message,
            name=data.name,
            factor_id=record.id,
            existing_factor=existing,
            kept_both=kept_both,
            warnings=validation.warnings,
        )

    @staticmethod
    def _replace_in_corpus(
        corpus: List[EmissionFactorRecord], record: EmissionFactorRecord,
    ) -> None:
        for index, current in enumerate(corpus):
            if current.id == record.id:
                corpus[index] = record
                return
        corpus.append(record)


__all__ = ["FactorImportOrchestrator"]
