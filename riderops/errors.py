"""
RiderOps error types

Failures only originate at I/O boundaries (store, service, orchestrator).
The eligibility engine and field normalizer never raise on data.
"""

from dataclasses import dataclass
from typing import Optional


class RiderOpsError(Exception):
    """Base class for RiderOps errors"""
    pass


class RiderNotFoundError(RiderOpsError):
    """Referenced rider does not exist"""

    def __init__(self, rider_id: str):
        self.rider_id = rider_id
        super().__init__(f"Rider not found: {rider_id}")


class PersistenceError(RiderOpsError):
    """Writing a rider to the external store failed"""

    def __init__(self, message: str, rider_id: Optional[str] = None):
        self.rider_id = rider_id
        super().__init__(message)


class OrchestratorAbort(RiderOpsError):
    """Bulk recompute failed before any batch was started"""

    def __init__(self, message: str, phase: str):
        self.phase = phase
        super().__init__(message)


@dataclass(frozen=True)
class CountMismatch:
    """Non-fatal note: fetched record count differs from the store count"""
    expected: int
    fetched: int

    def __str__(self) -> str:
        return f"Fetched {self.fetched} riders, expected {self.expected}"
