"""
Bulk Eligibility Recompute

Re-derives eligibility for every rider in the store.
Supports:
- Sequential paged fetch beyond any single-request limit
- Fixed-size batches processed with bounded concurrency
- Throttling delay between concurrency groups
- Per-record failure isolation
- Cooperative cancellation between groups
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from riderops.config.riderops_config import RiderOpsConfig
from riderops.errors import CountMismatch, OrchestratorAbort
from riderops.jobs.progress import ProgressEvent, ProgressPhase, ProgressSink, RecordingProgressSink
from riderops.models.rider import RiderRecord
from riderops.processors.eligibility import compute_updates
from riderops.store.abstract_store import RiderStore

logger = logging.getLogger(__name__)

# Share of the progress bar used by batch processing; the rest is reporting
PROCESSING_SHARE = 90.0


class OrchestratorState(str, Enum):
    """Bulk recompute lifecycle"""
    IDLE = "IDLE"
    COUNTING = "COUNTING"
    FETCHING = "FETCHING"
    BATCHING = "BATCHING"
    PROCESSING = "PROCESSING"
    REPORTING = "REPORTING"


@dataclass
class BulkConfig:
    """Bulk recompute configuration"""
    # Paging
    page_size: int = 1000

    # Batching
    batch_size: int = 200
    max_concurrent_batches: int = 10

    # Throttling between concurrency groups
    group_delay: float = 0.3  # seconds

    @classmethod
    def from_config(cls, config: Optional[RiderOpsConfig] = None) -> 'BulkConfig':
        config = config or RiderOpsConfig()
        eligibility = config.get_eligibility_config()
        defaults = cls()
        return cls(
            page_size=int(eligibility.get('page_size', defaults.page_size)),
            batch_size=int(eligibility.get('batch_size', defaults.batch_size)),
            max_concurrent_batches=int(eligibility.get('max_concurrent_batches', defaults.max_concurrent_batches)),
            group_delay=float(eligibility.get('group_delay', defaults.group_delay)),
        )


@dataclass
class RecordFailure:
    """A rider whose write failed during a bulk run"""
    rider_id: str
    error: str


@dataclass
class BatchOutcome:
    processed: int = 0
    updated: int = 0
    failures: List[RecordFailure] = field(default_factory=list)


@dataclass
class BulkResult:
    """Aggregate result of a bulk recompute"""
    total_records: int = 0
    processed_records: int = 0
    updated_count: int = 0
    failed_count: int = 0
    failures: List[RecordFailure] = field(default_factory=list)
    count_mismatch: Optional[CountMismatch] = None
    cancelled: bool = False
    events: List[ProgressEvent] = field(default_factory=list)


def effective_changes(data: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Subset of ``updates`` whose value differs from ``data``"""
    return {key: value for key, value in updates.items() if data.get(key) != value}


class BulkEligibilityOrchestrator:
    """
    Applies the eligibility engine to every rider in a store.

    Usage:
        orchestrator = BulkEligibilityOrchestrator(store, progress=LoggingProgressSink())
        result = await orchestrator.recompute_all()

        # From another task
        orchestrator.cancel()
    """

    def __init__(
        self,
        store: RiderStore,
        config: Optional[BulkConfig] = None,
        progress: Optional[ProgressSink] = None,
        on_refresh: Optional[Callable[[], Awaitable[Any]]] = None
    ):
        self.store = store
        self.config = config or BulkConfig()
        self.progress = progress or ProgressSink()
        self.on_refresh = on_refresh

        # State
        self.state = OrchestratorState.IDLE
        self._cancel_event = asyncio.Event()
        self._recorder = RecordingProgressSink()

        # Progress counters, written only by the task running recompute_all
        self.batches_total = 0
        self.batches_completed = 0
        self.updated_so_far = 0

    @property
    def fraction_complete(self) -> float:
        if not self.batches_total:
            return 0.0
        return self.batches_completed / self.batches_total

    def cancel(self) -> None:
        """Stop after the batches currently in flight"""
        logger.info("Cancelling bulk eligibility recompute...")
        self._cancel_event.set()

    def _notify(self, method: str, *args: Any) -> None:
        getattr(self._recorder, method)(*args)
        getattr(self.progress, method)(*args)

    def _abort(self, phase: str, message: str, error: Exception) -> OrchestratorAbort:
        logger.error(f"{message}: {error}")
        self._notify('error_progress', message, str(error))
        self.state = OrchestratorState.IDLE
        return OrchestratorAbort(f"{message}: {error}", phase)

    async def recompute_all(self) -> BulkResult:
        """
        Recompute eligibility for every rider.

        Returns:
            BulkResult with totals, failures and the emitted progress events

        Raises:
            OrchestratorAbort: If counting or fetching fails (nothing is written)
            RuntimeError: If a recompute is already running on this orchestrator
        """
        if self.state != OrchestratorState.IDLE:
            raise RuntimeError("Bulk eligibility recompute already running")

        self._recorder = RecordingProgressSink()
        self.batches_total = 0
        self.batches_completed = 0
        self.updated_so_far = 0

        try:
            riders, mismatch = await self._load_riders()
            result = await self._process(riders)
            result.count_mismatch = mismatch
            await self._report(result)
            result.events = list(self._recorder.events)
            return result
        finally:
            self.state = OrchestratorState.IDLE
            self._cancel_event.clear()

    async def _load_riders(self):
        self.state = OrchestratorState.COUNTING
        self._notify('show_progress', 'Applying eligibility logic...', 'Counting riders in the store')

        try:
            expected = await self.store.count()
        except Exception as e:
            raise self._abort('count', 'Failed to get rider count', e) from e

        logger.info(f"Total riders to process: {expected}")

        self.state = OrchestratorState.FETCHING
        riders: List[RiderRecord] = []
        page_size = self.config.page_size
        offset = 0
        while True:
            logger.debug(f"Fetching riders {offset} to {offset + page_size - 1}")
            try:
                page = await self.store.fetch_page(offset, page_size)
            except Exception as e:
                raise self._abort('fetch', 'Failed to fetch riders', e) from e

            if not page:
                break
            riders.extend(page)
            logger.debug(f"Fetched {len(page)} riders. Total so far: {len(riders)}")
            if len(page) < page_size:
                break
            offset += page_size

        mismatch = None
        if len(riders) != expected:
            mismatch = CountMismatch(expected=expected, fetched=len(riders))
            logger.warning(f"Count mismatch: {mismatch}")

        return riders, mismatch

    async def _process(self, riders: List[RiderRecord]) -> BulkResult:
        result = BulkResult(total_records=len(riders))

        self.state = OrchestratorState.BATCHING
        size = self.config.batch_size
        batches = [riders[i:i + size] for i in range(0, len(riders), size)]
        self.batches_total = len(batches)

        window = self.config.max_concurrent_batches
        total_groups = (len(batches) + window - 1) // window
        logger.info(f"Created {len(batches)} batches of up to {size} riders for {len(riders)} total riders")

        self.state = OrchestratorState.PROCESSING
        for group_index, start in enumerate(range(0, len(batches), window), start=1):
            if self._cancel_event.is_set():
                logger.info(f"Cancelled before batch group {group_index}/{total_groups}")
                result.cancelled = True
                break

            self._notify(
                'update_progress',
                start / len(batches) * PROCESSING_SHARE,
                ProgressPhase.PROCESSING,
                f"Applying eligibility logic to {len(riders)} riders...",
                f"Batch group {group_index}/{total_groups} ({len(batches)} total batches) - "
                f"Updated {self.updated_so_far} riders so far"
            )

            group = batches[start:start + window]
            outcomes = await asyncio.gather(*(self._process_batch(batch) for batch in group))

            for outcome in outcomes:
                result.processed_records += outcome.processed
                result.updated_count += outcome.updated
                result.failures.extend(outcome.failures)
            self.batches_completed += len(group)
            self.updated_so_far = result.updated_count

            logger.info(
                f"Completed {self.batches_completed}/{len(batches)} batches. "
                f"Total updated: {result.updated_count}"
            )

            if start + window < len(batches) and self.config.group_delay > 0:
                await asyncio.sleep(self.config.group_delay)

        result.failed_count = len(result.failures)
        return result

    async def _process_batch(self, batch: List[RiderRecord]) -> BatchOutcome:
        outcome = BatchOutcome()
        for rider in batch:
            outcome.processed += 1
            updates = compute_updates(rider.data)
            if not effective_changes(rider.data, updates):
                continue

            try:
                await self.store.update_by_key(
                    rider.rider_id,
                    {**rider.data, **updates},
                    datetime.now(timezone.utc)
                )
                outcome.updated += 1
            except Exception as e:
                logger.error(f"Error updating rider {rider.rider_id}: {e}")
                outcome.failures.append(RecordFailure(rider.rider_id, str(e)))
        return outcome

    async def _report(self, result: BulkResult) -> None:
        self.state = OrchestratorState.REPORTING
        total = result.total_records

        if result.cancelled:
            self._notify(
                'complete_progress',
                'Eligibility recompute cancelled',
                f"Processed {result.processed_records} of {total} riders, updated {result.updated_count}"
            )
        elif total == 0:
            self._notify('complete_progress', 'No riders found to process', None)
        elif result.updated_count > 0:
            self._notify(
                'complete_progress',
                f"Eligibility logic applied to all {total} riders!",
                f"Successfully updated {result.updated_count} riders with new eligibility status"
            )
        else:
            self._notify(
                'complete_progress',
                f"Eligibility check completed for all {total} riders!",
                'All riders already have correct eligibility status - no updates needed'
            )

        if result.failed_count:
            logger.warning(f"{result.failed_count} riders could not be updated")

        logger.info(
            f"Eligibility processing completed: updated {result.updated_count} "
            f"riders out of {total} total riders"
        )

        if result.updated_count > 0 and self.on_refresh is not None:
            try:
                await self.on_refresh()
            except Exception as e:
                logger.exception(f"Refresh after bulk recompute failed: {e}")
