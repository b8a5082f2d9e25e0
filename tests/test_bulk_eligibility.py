"""
Tests for the bulk eligibility recompute
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from riderops.config.riderops_config import RiderOpsConfig
from riderops.errors import CountMismatch, OrchestratorAbort, PersistenceError
from riderops.jobs.bulk_eligibility import (
    BulkConfig,
    BulkEligibilityOrchestrator,
    OrchestratorState,
    effective_changes,
)
from riderops.jobs.progress import ProgressPhase, RecordingProgressSink
from riderops.store.memory_store import MemoryRiderStore

from conftest import on_job_car, on_job_motorcycle

FAST = dict(group_delay=0)


async def seed(store, count, factory=dict):
    for i in range(1, count + 1):
        await store.add_rider(f"R{i:04d}", factory())


class SpyStore(MemoryRiderStore):
    """Memory store that records calls and can inject failures"""

    def __init__(self, failing_ids=(), count_offset=0, count_error=None, fetch_error=None):
        super().__init__()
        self.failing_ids = set(failing_ids)
        self.count_offset = count_offset
        self.count_error = count_error
        self.fetch_error = fetch_error
        self.page_requests = []
        self.writes = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def count(self):
        if self.count_error:
            raise self.count_error
        return await super().count() + self.count_offset

    async def fetch_page(self, offset, limit):
        if self.fetch_error:
            raise self.fetch_error
        self.page_requests.append((offset, limit))
        return await super().fetch_page(offset, limit)

    async def update_by_key(self, rider_id, data, timestamp):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if rider_id in self.failing_ids:
                raise PersistenceError(f"write rejected for {rider_id}", rider_id=rider_id)
            self.writes.append(rider_id)
            await super().update_by_key(rider_id, data, timestamp)
        finally:
            self.in_flight -= 1


class TestRecomputeAll:
    """Test BulkEligibilityOrchestrator.recompute_all"""

    @pytest.mark.asyncio
    async def test_updates_changed_riders_only(self):
        store = SpyStore()
        await store.add_rider('MOTO', on_job_motorcycle())
        await store.add_rider('CAR', on_job_car(training_status='Eligible'))
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(**FAST))

        result = await orchestrator.recompute_all()

        assert result.total_records == 2
        assert result.processed_records == 2
        assert result.updated_count == 1
        assert store.writes == ['MOTO']
        assert (await store.get_by_key('MOTO')).data['box_installation'] == 'Eligible'
        assert orchestrator.state == OrchestratorState.IDLE

    @pytest.mark.asyncio
    async def test_second_run_converges(self):
        """Test that re-running with no edits updates nothing"""
        store = MemoryRiderStore()
        await store.add_rider('A', on_job_motorcycle())
        await store.add_rider('B', on_job_car(job_status='Resign', training_status='Scheduled'))
        await store.add_rider('C', on_job_car(training_status='Completed'))
        await store.add_rider('D', {})
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(batch_size=2, **FAST))

        first = await orchestrator.recompute_all()
        second = await orchestrator.recompute_all()

        assert first.updated_count == 4
        assert second.updated_count == 0
        assert second.total_records == 4

    @pytest.mark.asyncio
    async def test_failed_write_is_isolated(self):
        """Test that one failing record does not stop the run"""
        store = SpyStore(failing_ids={'R0057'})
        await seed(store, 200)
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(batch_size=50, max_concurrent_batches=2, **FAST))

        result = await orchestrator.recompute_all()

        assert result.processed_records == 200
        assert result.updated_count == 199
        assert result.failed_count == 1
        assert result.failures[0].rider_id == 'R0057'
        assert 'write rejected' in result.failures[0].error
        assert len(store.writes) == 199

    @pytest.mark.asyncio
    async def test_pages_until_short_page(self):
        store = SpyStore()
        await seed(store, 10)
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(page_size=3, **FAST))

        result = await orchestrator.recompute_all()

        assert store.page_requests == [(0, 3), (3, 3), (6, 3), (9, 3)]
        assert result.total_records == 10
        assert result.count_mismatch is None

    @pytest.mark.asyncio
    async def test_pages_until_empty_page(self):
        store = SpyStore()
        await seed(store, 6)
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(page_size=3, **FAST))

        result = await orchestrator.recompute_all()

        assert store.page_requests == [(0, 3), (3, 3), (6, 3)]
        assert result.total_records == 6

    @pytest.mark.asyncio
    async def test_count_mismatch_is_not_fatal(self):
        store = SpyStore(count_offset=5)
        await seed(store, 4)
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(**FAST))

        result = await orchestrator.recompute_all()

        assert result.count_mismatch == CountMismatch(expected=9, fetched=4)
        assert result.updated_count == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize('failure', ['count', 'fetch'])
    async def test_load_failure_aborts_without_writes(self, failure):
        error = ConnectionError("Failed to fetch")
        store = SpyStore(**{f'{failure}_error': error})
        await seed(store, 3)
        sink = RecordingProgressSink()
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(**FAST), progress=sink)

        with pytest.raises(OrchestratorAbort) as exc_info:
            await orchestrator.recompute_all()

        assert exc_info.value.phase == failure
        assert exc_info.value.__cause__ is error
        assert store.writes == []
        assert sink.phases[-1] == ProgressPhase.ERROR
        assert orchestrator.state == OrchestratorState.IDLE

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        store = SpyStore()
        await seed(store, 40)
        orchestrator = BulkEligibilityOrchestrator(
            store, BulkConfig(batch_size=2, max_concurrent_batches=3, **FAST)
        )

        result = await orchestrator.recompute_all()

        assert result.updated_count == 40
        assert 1 < store.max_in_flight <= 3

    @pytest.mark.asyncio
    async def test_delay_between_groups(self):
        store = MemoryRiderStore()
        await seed(store, 10)
        orchestrator = BulkEligibilityOrchestrator(
            store, BulkConfig(batch_size=2, max_concurrent_batches=2, group_delay=0.3)
        )

        with patch('riderops.jobs.bulk_eligibility.asyncio.sleep', new=AsyncMock()) as sleep:
            await orchestrator.recompute_all()

        # 5 batches in 3 groups, no delay after the last one
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.3)

    @pytest.mark.asyncio
    async def test_cancel_stops_before_next_group(self):
        store = SpyStore()
        await seed(store, 5)
        orchestrator = BulkEligibilityOrchestrator(
            store, BulkConfig(batch_size=1, max_concurrent_batches=1, **FAST)
        )
        original = store.update_by_key

        async def cancel_on_first_write(rider_id, data, timestamp):
            orchestrator.cancel()
            await original(rider_id, data, timestamp)

        store.update_by_key = cancel_on_first_write

        result = await orchestrator.recompute_all()

        assert result.cancelled
        assert result.processed_records == 1
        assert result.updated_count == 1
        assert orchestrator.batches_completed == 1
        assert orchestrator.fraction_complete == pytest.approx(0.2)

        # The cancel flag does not leak into the next run
        store.update_by_key = original
        rerun = await orchestrator.recompute_all()
        assert not rerun.cancelled
        assert rerun.updated_count == 4

    @pytest.mark.asyncio
    async def test_progress_events(self):
        store = MemoryRiderStore()
        await seed(store, 12)
        sink = RecordingProgressSink()
        orchestrator = BulkEligibilityOrchestrator(
            store, BulkConfig(batch_size=2, max_concurrent_batches=2, **FAST), progress=sink
        )

        result = await orchestrator.recompute_all()

        phases = [event.phase for event in result.events]
        assert phases[0] == ProgressPhase.STARTED
        assert phases[-1] == ProgressPhase.COMPLETED
        assert phases.count(ProgressPhase.PROCESSING) == 3
        processing = [event.percent for event in result.events if event.phase == ProgressPhase.PROCESSING]
        assert processing == pytest.approx([0.0, 30.0, 60.0])
        assert 'Successfully updated 12 riders' in result.events[-1].subtitle
        assert sink.phases == phases
        assert sink.percent == 100.0

    @pytest.mark.asyncio
    async def test_refresh_only_after_changes(self):
        store = MemoryRiderStore()
        await seed(store, 3)
        refresh = AsyncMock()
        orchestrator = BulkEligibilityOrchestrator(store, BulkConfig(**FAST), on_refresh=refresh)

        await orchestrator.recompute_all()
        await orchestrator.recompute_all()

        refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_store(self):
        orchestrator = BulkEligibilityOrchestrator(MemoryRiderStore(), BulkConfig(**FAST))

        result = await orchestrator.recompute_all()

        assert result.total_records == 0
        assert result.updated_count == 0
        assert result.events[-1].title == 'No riders found to process'


class TestBulkConfig:
    """Test configuration helpers"""

    def test_from_config_defaults(self):
        config = BulkConfig.from_config(RiderOpsConfig())

        assert config == BulkConfig(page_size=1000, batch_size=200, max_concurrent_batches=10, group_delay=0.3)

    def test_from_config_overrides(self):
        cfg = RiderOpsConfig()
        cfg.set('eligibility.batch_size', 25)

        assert BulkConfig.from_config(cfg).batch_size == 25

    def test_effective_changes(self):
        data = {'training_status': 'Not Eligible', 'training_location': None}
        updates = {'training_status': 'Not Eligible', 'training_location': None, 'box_installation': 'Eligible'}

        assert effective_changes(data, updates) == {'box_installation': 'Eligible'}


class TestSQLBackedRecompute:
    """Bulk recompute against a SQLite file database"""

    @pytest.mark.asyncio
    async def test_recompute_on_sql_store(self, tmp_path):
        from riderops.db.connection import Database
        from riderops.store.sql_store import SQLRiderStore

        db = Database(url=f"sqlite:///{tmp_path / 'riders.db'}")
        db.create_tables()
        store = SQLRiderStore(db)
        for i in range(7):
            await store.add_rider(f"M{i}", on_job_motorcycle())
        await store.add_rider('CAR', on_job_car(training_status='Completed'))

        orchestrator = BulkEligibilityOrchestrator(
            store, BulkConfig(page_size=3, batch_size=2, max_concurrent_batches=2, **FAST)
        )
        result = await orchestrator.recompute_all()
        again = await orchestrator.recompute_all()

        assert result.total_records == 8
        assert result.updated_count == 8
        assert result.failed_count == 0
        assert again.updated_count == 0
        assert (await store.get_by_key('M3')).data['box_installation'] == 'Eligible'
        assert (await store.get_by_key('CAR')).data['equipment_status'] == 'Eligible'
        db.dispose()

    @pytest.mark.asyncio
    async def test_concurrent_recompute_on_in_memory_sql_store(self):
        """Concurrent batches share the single in-memory connection safely"""
        from riderops.db.connection import MEMORY_URL, Database
        from riderops.store.sql_store import SQLRiderStore

        db = Database(url=MEMORY_URL)
        db.create_tables()
        store = SQLRiderStore(db)
        for i in range(120):
            await store.add_rider(f"M{i:03d}", on_job_motorcycle())

        orchestrator = BulkEligibilityOrchestrator(
            store, BulkConfig(batch_size=5, max_concurrent_batches=8, **FAST)
        )
        first = await orchestrator.recompute_all()
        second = await orchestrator.recompute_all()

        assert first.failures == []
        assert first.updated_count == 120
        assert second.total_records == 120
        assert second.updated_count == 0
        assert second.failed_count == 0
        db.dispose()
