# -*- coding: utf-8 -*-
"""
Batch Processing Manager

Processes stored records whose confidence score reaches the threshold
and that have no decision yet, through a downstream processor
(classification / insertion service).

Records run in fixed-size groups: operations inside a group run
concurrently, groups run one after another. Each operation is isolated,
so a failing record yields a ``failed`` result without affecting its
siblings. Results and progress are updated only once a whole group has
settled. ``cancel()`` stops the run before the next group starts; an
in-flight group always completes.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Union,
)

from ghgengine import metrics
from ghgengine.batch.models import (
    BatchEligibleRecord,
    BatchProgress,
    BatchResult,
    BatchStatus,
    DeduplicationOptions,
    MergeStrategy,
)
from ghgengine.config import EngineConfig, get_config
from ghgengine.exceptions import BatchItemSkipped, GHGEngineException

if TYPE_CHECKING:
    from ghgengine.store import FactorStore

logger = logging.getLogger(__name__)

#: Decision recorded on a record once the processor accepted it.
APPROVED_DECISION = "approved"

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class BatchProcessor(Protocol):
    """Downstream service invoked once per eligible record."""

    async def process(
        self,
        record: BatchEligibleRecord,
        options: DeduplicationOptions,
    ) -> Optional[str]:
        """Process one record; return an optional message.

        Raise ``BatchItemSkipped`` to report the record as skipped.
        """


ProcessorFn = Callable[[BatchEligibleRecord, DeduplicationOptions], Awaitable[Optional[str]]]


class BatchProcessingManager:
    """
    Confidence-gated, group-concurrent batch processor.

    Example:
        >>> manager = BatchProcessingManager(store, processor)
        >>> results = await manager.run_batch(batch_size=5)
        >>> manager.progress.percent
        100.0
    """

    def __init__(
        self,
        store: "FactorStore",
        processor: Union[BatchProcessor, ProcessorFn],
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self._process = getattr(processor, "process", processor)
        self._results: List[BatchResult] = []
        self._progress = BatchProgress()
        self._eligible_count = 0
        self._running = False
        self._cancel_requested = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def results(self) -> List[BatchResult]:
        return list(self._results)

    @property
    def progress(self) -> BatchProgress:
        return self._progress.model_copy()

    @property
    def eligible_count(self) -> int:
        return self._eligible_count

    @property
    def is_running(self) -> bool:
        return self._running

    def summary(self) -> Dict[str, int]:
        """Result count per status for the last run."""
        counts = {status.value: 0 for status in BatchStatus}
        for result in self._results:
            counts[result.status.value] += 1
        return counts

    def cancel(self) -> None:
        """Stop after the group currently in flight."""
        if self._running:
            logger.info("Batch cancellation requested")
            self._cancel_requested = True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def refresh_eligible_count(self, threshold: Optional[float] = None) -> int:
        """Re-read the number of eligible records from the store."""
        records = await self.select_eligible(threshold)
        self._eligible_count = len(records)
        return self._eligible_count

    async def select_eligible(self, threshold: Optional[float] = None) -> List[BatchEligibleRecord]:
        """Eligible records from the store (confidence >= threshold, undecided)."""
        threshold = self._threshold(threshold)
        records = await self.store.list_eligible_batch_records(threshold)
        # The store filters too; re-check so a lenient store cannot leak records
        return [r for r in records if r.is_eligible(threshold)]

    def default_dedup_options(self) -> DeduplicationOptions:
        return DeduplicationOptions(
            enabled=self.config.dedup_enabled,
            similarity_threshold=self.config.dedup_similarity_threshold,
            merge_strategy=MergeStrategy(self.config.dedup_merge_strategy),
        )

    async def run_batch(
        self,
        eligible_records: Optional[Sequence[BatchEligibleRecord]] = None,
        batch_size: Optional[int] = None,
        dedup: Optional[DeduplicationOptions] = None,
        progress_callback: Optional[ProgressCallback] = None,
        threshold: Optional[float] = None,
    ) -> List[BatchResult]:
        """
        Process records in concurrent groups.

        Args:
            eligible_records: Records to process; selected from the store
                when None. Ineligible records in an explicit list are
                reported as skipped.
            batch_size: Concurrent operations per group (default from config)
            dedup: Downstream deduplication instructions
            progress_callback: Called as ``callback(current, total)`` after
                each group; may be a coroutine function
            threshold: Confidence threshold (default from config)

        Returns:
            One BatchResult per processed record, in input order
        """
        if self._running:
            raise GHGEngineException("A batch run is already in progress")
        size = batch_size if batch_size is not None else self.config.batch_size
        if size < 1:
            raise ValueError(f"batch_size must be >= 1, got {size}")
        threshold = self._threshold(threshold)
        options = dedup or self.default_dedup_options()

        if eligible_records is None:
            records = await self.select_eligible(threshold)
        else:
            records = list(eligible_records)

        self._running = True
        self._cancel_requested = False
        self._results = []
        self._progress = BatchProgress(current=0, total=len(records))
        metrics.set_active_batch_runs(1)
        start = time.perf_counter()
        logger.info(
            "Starting batch run: %d records, group size %d, dedup=%s",
            len(records), size, options.enabled,
        )

        try:
            for offset in range(0, len(records), size):
                if self._cancel_requested:
                    logger.info(
                        "Batch run cancelled after %d of %d records",
                        self._progress.current, self._progress.total,
                    )
                    break
                group = records[offset:offset + size]
                group_results = await asyncio.gather(
                    *(self._process_one(record, options, threshold) for record in group),
                    return_exceptions=True,
                )
                settled = [
                    self._failed(record, result) if isinstance(result, BaseException) else result
                    for record, result in zip(group, group_results)
                ]
                self._results.extend(settled)
                self._progress = BatchProgress(
                    current=self._progress.current + len(group),
                    total=self._progress.total,
                )
                logger.debug(
                    "Batch group done: %d/%d (%.1f%%)",
                    self._progress.current, self._progress.total, self._progress.percent,
                )
                if progress_callback is not None:
                    outcome = progress_callback(self._progress.current, self._progress.total)
                    if inspect.isawaitable(outcome):
                        await outcome
        finally:
            self._running = False
            self._cancel_requested = False
            metrics.set_active_batch_runs(-1)
            metrics.observe_duration("batch", time.perf_counter() - start)

        for status, count in self.summary().items():
            if count:
                metrics.inc_batch_items(status, count)

        try:
            await self.refresh_eligible_count(threshold)
        except Exception as exc:
            logger.warning("Could not refresh eligible count after batch run: %s", exc)

        logger.info("Batch run finished: %s", self.summary())
        return list(self._results)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _process_one(
        self,
        record: BatchEligibleRecord,
        options: DeduplicationOptions,
        threshold: float,
    ) -> BatchResult:
        if not record.is_eligible(threshold):
            reason = (
                f"already decided ({record.decision})" if record.decision is not None
                else f"confidence {record.confidence_score:.2f} below {threshold:.2f}"
            )
            return BatchResult(id=record.id, status=BatchStatus.SKIPPED, message=f"Not eligible: {reason}")

        try:
            message = await self._process(record, options)
            await self.store.mark_record_decided(record.id, APPROVED_DECISION)
        except BatchItemSkipped as exc:
            return BatchResult(id=record.id, status=BatchStatus.SKIPPED, message=exc.message)
        except Exception as exc:
            return self._failed(record, exc)
        return BatchResult(id=record.id, status=BatchStatus.SUCCESS, message=message or "Processed")

    @staticmethod
    def _failed(record: BatchEligibleRecord, exc: BaseException) -> BatchResult:
        logger.error("Batch record %s failed: %s", record.id, exc)
        return BatchResult(id=record.id, status=BatchStatus.FAILED, message=str(exc) or type(exc).__name__)

    def _threshold(self, threshold: Optional[float]) -> float:
        return self.config.batch_confidence_threshold if threshold is None else threshold


__all__ = [
    "APPROVED_DECISION",
    "BatchProcessor",
    "BatchProcessingManager",
]
