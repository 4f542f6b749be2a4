# -*- coding: utf-8 -*-
"""
Batch Processing Manager Tests

This test suite validates:
- Confidence-gated selection of stored records
- Group-wise concurrency (bounded by the group size)
- Per-record fault isolation
- Progress reporting, cancellation and eligible-count refresh
"""

import asyncio
import logging

import pytest

from ghgengine.batch import (
    APPROVED_DECISION,
    BatchEligibleRecord,
    BatchProcessingManager,
    BatchProgress,
    BatchStatus,
    DeduplicationOptions,
    MergeStrategy,
)
from ghgengine.config import EngineConfig, set_config
from ghgengine.exceptions import BatchItemSkipped, GHGEngineException, PersistenceError
from ghgengine.store import InMemoryFactorStore


class RecordingProcessor:
    """Downstream stand-in that tracks concurrency and can fail or skip."""

    def __init__(self, fail_ids=(), skip_ids=(), delay=0.01):
        self.fail_ids = set(fail_ids)
        self.skip_ids = set(skip_ids)
        self.delay = delay
        self.calls = []
        self.options = []
        self.active = 0
        self.max_active = 0

    async def process(self, record, options):
        self.calls.append(record.id)
        self.options.append(options)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if record.id in self.fail_ids:
                raise RuntimeError(f"downstream rejected {record.id}")
            if record.id in self.skip_ids:
                raise BatchItemSkipped("already classified")
            return f"inserted into {record.target_table}"
        finally:
            self.active -= 1


class BrokenRefreshStore(InMemoryFactorStore):

    async def list_eligible_batch_records(self, threshold):
        raise PersistenceError("replica lagging")


def _records(count, confidence=0.9, prefix="r"):
    return [
        BatchEligibleRecord(id=f"{prefix}{i}", confidence_score=confidence, target_table="emissions")
        for i in range(1, count + 1)
    ]


def _store_with(records):
    return InMemoryFactorStore(batch_records=records)


# ==================== FAULT ISOLATION ====================

class TestFaultIsolation:

    @pytest.mark.asyncio
    async def test_one_failure_in_group_of_five(self):
        records = _records(5)
        processor = RecordingProcessor(fail_ids={"r3"})
        manager = BatchProcessingManager(_store_with(records), processor)

        results = await manager.run_batch(records, batch_size=5)

        assert len(results) == 5
        assert [r.id for r in results] == ["r1", "r2", "r3", "r4", "r5"]
        statuses = [r.status for r in results]
        assert statuses.count(BatchStatus.FAILED) == 1
        assert statuses.count(BatchStatus.SUCCESS) == 4
        assert results[2].status == BatchStatus.FAILED
        assert "downstream rejected r3" in results[2].message

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_groups(self):
        records = _records(10)
        manager = BatchProcessingManager(_store_with(records), RecordingProcessor(fail_ids={"r1", "r2"}))

        results = await manager.run_batch(records, batch_size=5)

        assert len(results) == 10
        assert manager.summary() == {"success": 8, "failed": 2, "skipped": 0}

    @pytest.mark.asyncio
    async def test_failed_record_left_undecided(self):
        store = _store_with(_records(2))
        manager = BatchProcessingManager(store, RecordingProcessor(fail_ids={"r2"}))

        await manager.run_batch()

        assert store.get_batch_record("r1").decision == APPROVED_DECISION
        assert store.get_batch_record("r2").decision is None

    @pytest.mark.asyncio
    async def test_decision_write_failure_is_failed_result(self):
        # r2 is not in the store, so marking it decided fails
        records = _records(2)
        manager = BatchProcessingManager(_store_with(records[:1]), RecordingProcessor())

        results = await manager.run_batch(records)

        assert [r.status for r in results] == [BatchStatus.SUCCESS, BatchStatus.FAILED]


# ==================== CONCURRENCY ====================

class TestGroups:

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_group_size(self):
        records = _records(12)
        processor = RecordingProcessor()
        manager = BatchProcessingManager(_store_with(records), processor)

        await manager.run_batch(records, batch_size=5)

        assert processor.max_active == 5
        assert processor.calls == [r.id for r in records]

    @pytest.mark.asyncio
    async def test_default_group_size_from_config(self):
        set_config(EngineConfig(batch_size=3))
        records = _records(7)
        processor = RecordingProcessor()

        await BatchProcessingManager(_store_with(records), processor).run_batch(records)

        assert processor.max_active == 3

    @pytest.mark.asyncio
    async def test_invalid_group_size(self):
        manager = BatchProcessingManager(InMemoryFactorStore(), RecordingProcessor())
        with pytest.raises(ValueError):
            await manager.run_batch([], batch_size=0)

    @pytest.mark.asyncio
    async def test_concurrent_runs_rejected(self):
        release = asyncio.Event()

        async def blocking(record, options):
            await release.wait()

        records = _records(1)
        manager = BatchProcessingManager(_store_with(records), blocking)
        first = asyncio.create_task(manager.run_batch(records))
        await asyncio.sleep(0)
        assert manager.is_running

        with pytest.raises(GHGEngineException):
            await manager.run_batch(records)

        release.set()
        results = await first
        assert results[0].status == BatchStatus.SUCCESS
        assert not manager.is_running


# ==================== PROGRESS ====================

class TestProgress:

    def test_percent(self):
        assert BatchProgress(current=5, total=12).percent == 41.7
        assert BatchProgress(current=0, total=0).percent == 100.0

    @pytest.mark.asyncio
    async def test_callback_after_each_group(self):
        records = _records(12)
        manager = BatchProcessingManager(_store_with(records), RecordingProcessor())
        seen = []

        await manager.run_batch(records, batch_size=5, progress_callback=lambda c, t: seen.append((c, t)))

        assert seen == [(5, 12), (10, 12), (12, 12)]
        assert manager.progress.current == 12
        assert manager.progress.percent == 100.0

    @pytest.mark.asyncio
    async def test_results_grow_per_group(self):
        records = _records(7)
        sizes = []
        manager = BatchProcessingManager(_store_with(records), RecordingProcessor())

        async def on_progress(current, total):
            sizes.append(len(manager.results))

        await manager.run_batch(records, batch_size=5, progress_callback=on_progress)

        assert sizes == [5, 7]

    @pytest.mark.asyncio
    async def test_empty_run(self):
        manager = BatchProcessingManager(InMemoryFactorStore(), RecordingProcessor())
        assert await manager.run_batch() == []
        assert manager.progress.percent == 100.0


# ==================== SELECTION ====================

class TestSelection:

    @pytest.mark.asyncio
    async def test_store_selection_and_refresh(self):
        store = _store_with([
            BatchEligibleRecord(id="high", confidence_score=0.95),
            BatchEligibleRecord(id="edge", confidence_score=0.8),
            BatchEligibleRecord(id="low", confidence_score=0.5),
            BatchEligibleRecord(id="done", confidence_score=0.99, decision="rejected"),
        ])
        processor = RecordingProcessor()
        manager = BatchProcessingManager(store, processor)

        assert await manager.refresh_eligible_count() == 2
        results = await manager.run_batch()

        assert sorted(processor.calls) == ["edge", "high"]
        assert {r.id for r in results} == {"edge", "high"}
        assert manager.eligible_count == 0
        assert store.get_batch_record("low").decision is None

    @pytest.mark.asyncio
    async def test_explicit_threshold(self):
        store = _store_with([
            BatchEligibleRecord(id="a", confidence_score=0.6),
            BatchEligibleRecord(id="b", confidence_score=0.4),
        ])
        processor = RecordingProcessor()

        await BatchProcessingManager(store, processor).run_batch(threshold=0.5)

        assert processor.calls == ["a"]

    @pytest.mark.asyncio
    async def test_ineligible_explicit_records_skipped(self):
        records = [
            BatchEligibleRecord(id="ok", confidence_score=0.9),
            BatchEligibleRecord(id="weak", confidence_score=0.3),
            BatchEligibleRecord(id="decided", confidence_score=0.9, decision="approved"),
        ]
        processor = RecordingProcessor()
        manager = BatchProcessingManager(_store_with(records), processor)

        results = await manager.run_batch(records)

        assert [r.status for r in results] == [
            BatchStatus.SUCCESS, BatchStatus.SKIPPED, BatchStatus.SKIPPED,
        ]
        assert results[1].message.startswith("Not eligible")
        assert processor.calls == ["ok"]

    @pytest.mark.asyncio
    async def test_processor_can_skip(self):
        records = _records(3)
        store = _store_with(records)
        manager = BatchProcessingManager(store, RecordingProcessor(skip_ids={"r2"}))

        results = await manager.run_batch(records)

        assert results[1].status == BatchStatus.SKIPPED
        assert results[1].message == "already classified"
        assert store.get_batch_record("r2").decision is None

    @pytest.mark.asyncio
    async def test_refresh_failure_does_not_lose_results(self, caplog):
        records = _records(2)
        store = BrokenRefreshStore(batch_records=records)
        manager = BatchProcessingManager(store, RecordingProcessor())

        with caplog.at_level(logging.WARNING):
            results = await manager.run_batch(records)

        assert len(results) == 2
        assert "Could not refresh eligible count" in caplog.text


# ==================== CANCELLATION ====================

class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_stops_before_next_group(self):
        records = _records(12)
        processor = RecordingProcessor()
        manager = BatchProcessingManager(_store_with(records), processor)

        def stop_after_first(current, total):
            manager.cancel()

        results = await manager.run_batch(records, batch_size=5, progress_callback=stop_after_first)

        assert len(results) == 5
        assert len(processor.calls) == 5
        assert manager.progress.current == 5
        assert not manager.is_running

    @pytest.mark.asyncio
    async def test_cancel_when_idle_is_noop(self):
        records = _records(2)
        manager = BatchProcessingManager(_store_with(records), RecordingProcessor())
        manager.cancel()
        assert len(await manager.run_batch(records)) == 2


# ==================== DEDUPLICATION OPTIONS ====================

class TestDeduplication:

    def test_defaults_from_config(self):
        set_config(EngineConfig(dedup_enabled=True, dedup_similarity_threshold=0.9))
        options = BatchProcessingManager(InMemoryFactorStore(), RecordingProcessor()).default_dedup_options()
        assert options.enabled
        assert options.similarity_threshold == 0.9
        assert options.merge_strategy == MergeStrategy.PREFER_NON_EMPTY

    @pytest.mark.asyncio
    async def test_options_passed_to_processor(self):
        records = _records(2)
        processor = RecordingProcessor()
        options = DeduplicationOptions(enabled=True, similarity_threshold=0.95)

        await BatchProcessingManager(_store_with(records), processor).run_batch(records, dedup=options)

        assert processor.options == [options, options]

    @pytest.mark.asyncio
    async def test_plain_coroutine_processor(self):
        records = _records(2)

        async def insert(record, options):
            return None

        results = await BatchProcessingManager(_store_with(records), insert).run_batch(records)

        assert [r.message for r in results] == ["Processed", "Processed"]
