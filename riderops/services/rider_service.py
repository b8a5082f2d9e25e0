import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from riderops.errors import PersistenceError, RiderNotFoundError, RiderOpsError
from riderops.models.rider import (
    BOX_INSTALLATION,
    ELIGIBILITY_FIELDS,
    EQUIPMENT_STATUS,
    LAST_UPDATED_AT,
    LAST_UPDATED_BY,
    PIPELINE_FIELDS,
    PIPELINE_LABELS,
    TRAINING_STATUS,
    PipelineStatus,
    RiderRecord,
)
from riderops.processors.eligibility import compute_updates
from riderops.store.abstract_store import RiderStore

logger = logging.getLogger(__name__)

UNKNOWN_USER = 'Unknown User'

# Pipelines a manual Completed/Scheduled edit forwards to. Box installation
# does not forward to equipment.
DOWNSTREAM_PIPELINES: Dict[str, tuple] = {
    TRAINING_STATUS: (EQUIPMENT_STATUS,),
    BOX_INSTALLATION: (TRAINING_STATUS,),
    EQUIPMENT_STATUS: (),
}


@dataclass
class UpdateResult:
    """Outcome of a single-rider field update"""
    rider_id: str
    field_name: str
    applied_updates: Dict[str, Any] = field(default_factory=dict)
    changed_statuses: Dict[str, str] = field(default_factory=dict)
    messages: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def summary(self) -> str:
        if self.messages:
            return f"{self.field_name} updated! Eligibility recalculated: {', '.join(self.messages)}"
        return f"{self.field_name} updated successfully!"


class RiderService:
    """Service for reading riders and applying single-field edits"""

    def __init__(self, store: RiderStore):
        """
        Initialize the rider service

        Args:
            store: Rider store holding the records
        """
        self.store = store

    async def get_rider(self, rider_id: str) -> Optional[RiderRecord]:
        return await self.store.get_by_key(rider_id)

    async def search_riders(self, term: str) -> List[RiderRecord]:
        """Find riders whose id, name or phone contains ``term``"""
        term = term.strip()
        if not term:
            return []
        return await self.store.search(term)

    def _eligibility_updates(self, field_name: str, new_value: Any,
                             candidate: Dict[str, Any]) -> Dict[str, Any]:
        if field_name not in ELIGIBILITY_FIELDS:
            return {}

        updates = compute_updates(candidate)

        # Keep a manual Completed/Scheduled choice, forward only downstream effects
        if field_name in PIPELINE_FIELDS and new_value in PipelineStatus.sticky():
            return {
                key: updates[key]
                for key in DOWNSTREAM_PIPELINES[field_name]
                if key in updates
            }
        return updates

    async def update_field(
        self,
        rider_id: str,
        field_name: str,
        new_value: Any,
        extra_fields: Optional[Dict[str, Any]] = None,
        updated_by: Optional[str] = None
    ) -> UpdateResult:
        """
        Set one attribute on a rider and re-derive eligibility.

        Args:
            rider_id: Rider to update
            field_name: Attribute being edited
            new_value: New attribute value
            extra_fields: Additional attributes written in the same update
            updated_by: Name or email recorded in ``last_updated_by``

        Returns:
            UpdateResult describing the applied eligibility changes

        Raises:
            RiderNotFoundError: If the rider does not exist (nothing is written)
            PersistenceError: If the store rejects the write
        """
        rider = await self.store.get_by_key(rider_id)
        if rider is None:
            logger.warning(f"Rider not found: {rider_id}")
            raise RiderNotFoundError(rider_id)

        now = datetime.now(timezone.utc)
        before = rider.data
        candidate = {
            **before,
            field_name: new_value,
            **(extra_fields or {}),
            LAST_UPDATED_BY: updated_by or UNKNOWN_USER,
            LAST_UPDATED_AT: now.isoformat(),
        }

        applied = self._eligibility_updates(field_name, new_value, candidate)
        candidate.update(applied)
        if applied:
            logger.debug(f"Eligibility updates for {rider_id}: {applied}")

        try:
            await self.store.update_by_key(rider_id, candidate, now)
        except RiderOpsError:
            logger.error(f"Failed to persist rider {rider_id}")
            raise
        except Exception as e:
            logger.error(f"Failed to persist rider {rider_id}: {str(e)}")
            raise PersistenceError(f"Failed to update rider {rider_id}: {str(e)}", rider_id=rider_id) from e

        changed = {
            key: candidate.get(key)
            for key in PIPELINE_FIELDS
            if candidate.get(key) != before.get(key)
        }
        messages = [f"{PIPELINE_LABELS[key]} updated to {value}" for key, value in changed.items()]

        logger.info(f"Updated {field_name} for rider {rider_id}")
        return UpdateResult(
            rider_id=rider_id,
            field_name=field_name,
            applied_updates=applied,
            changed_statuses=changed,
            messages=messages,
            data=candidate
        )
