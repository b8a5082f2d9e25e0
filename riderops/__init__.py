"""
RiderOps - Rider Eligibility Library

This library derives training, box installation and equipment eligibility
for delivery riders and applies it to a rider store, one record at a time or
across the whole collection.

Basic usage:
    import asyncio
    from riderops import RiderService, BulkEligibilityOrchestrator, StoreFactory

    store = StoreFactory.create_store()

    # Edit one rider
    service = RiderService(store)
    result = asyncio.run(service.update_field('R-1001', 'job_status', 'On Job'))
    print(result.messages)

    # Recompute everyone
    orchestrator = BulkEligibilityOrchestrator(store)
    print(asyncio.run(orchestrator.recompute_all()).updated_count)
"""

from riderops.config.riderops_config import RiderOpsConfig
from riderops.jobs.bulk_eligibility import BulkConfig, BulkEligibilityOrchestrator, BulkResult
from riderops.processors.eligibility import compute_updates
from riderops.processors.normalizer import normalize
from riderops.services.rider_service import RiderService, UpdateResult
from riderops.store.store_factory import StoreFactory

__all__ = [
    'RiderOpsConfig',
    'BulkConfig',
    'BulkEligibilityOrchestrator',
    'BulkResult',
    'compute_updates',
    'normalize',
    'RiderService',
    'UpdateResult',
    'StoreFactory',
]

__version__ = '1.0.0'
