"""
RiderOps Jobs Module

Provides async bulk eligibility recompute.

Components:
- BulkEligibilityOrchestrator: Applies the eligibility engine to every rider
- BulkConfig: Paging, batching and throttling settings
- ProgressSink: Receives progress notifications
"""

from .bulk_eligibility import (
    BulkConfig,
    BulkEligibilityOrchestrator,
    BulkResult,
    OrchestratorState,
    RecordFailure,
)
from .progress import (
    LoggingProgressSink,
    ProgressEvent,
    ProgressPhase,
    ProgressSink,
    RecordingProgressSink,
)

__all__ = [
    # Orchestrator
    'BulkConfig',
    'BulkEligibilityOrchestrator',
    'BulkResult',
    'OrchestratorState',
    'RecordFailure',

    # Progress
    'LoggingProgressSink',
    'ProgressEvent',
    'ProgressPhase',
    'ProgressSink',
    'RecordingProgressSink',
]
