import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from riderops.errors import PersistenceError
from riderops.models.rider import RiderRecord
from riderops.store.abstract_store import RiderStore

logger = logging.getLogger(__name__)


class MemoryRiderStore(RiderStore):
    """
    In-process rider store

    Records are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self._riders: Dict[str, RiderRecord] = {}
        self._lock = asyncio.Lock()

    async def count(self) -> int:
        return len(self._riders)

    def _ordered(self) -> List[RiderRecord]:
        return sorted(
            self._riders.values(),
            key=lambda rider: (rider.updated_at, rider.id),
            reverse=True
        )

    async def fetch_page(self, offset: int, limit: int) -> List[RiderRecord]:
        page = self._ordered()[offset:offset + limit]
        return [copy.deepcopy(rider) for rider in page]

    async def get_by_key(self, rider_id: str) -> Optional[RiderRecord]:
        rider = self._riders.get(rider_id)
        return copy.deepcopy(rider) if rider else None

    async def update_by_key(self, rider_id: str, data: Dict[str, Any], timestamp: datetime) -> None:
        async with self._lock:
            rider = self._riders.get(rider_id)
            if rider is None:
                raise PersistenceError(f"Cannot update missing rider: {rider_id}", rider_id=rider_id)
            rider.data = copy.deepcopy(data)
            rider.updated_at = timestamp

    async def add_rider(self, rider_id: str, data: Dict[str, Any],
                        last_upload_id: Optional[str] = None) -> RiderRecord:
        async with self._lock:
            if rider_id in self._riders:
                raise PersistenceError(f"Rider already exists: {rider_id}", rider_id=rider_id)
            now = datetime.now(timezone.utc)
            rider = RiderRecord(
                id=f"rid_{uuid4().hex}",
                rider_id=rider_id,
                data=copy.deepcopy(data),
                created_at=now,
                updated_at=now,
                last_upload_id=last_upload_id
            )
            self._riders[rider_id] = rider
            logger.debug(f"Added rider {rider_id}")
            return copy.deepcopy(rider)

    async def search(self, term: str) -> List[RiderRecord]:
        needle = term.lower()
        matches = []
        for rider in self._ordered():
            haystack = (
                rider.rider_id,
                str(rider.data.get('rider_name') or ''),
                str(rider.data.get('phone') or ''),
            )
            if any(needle in value.lower() for value in haystack):
                matches.append(copy.deepcopy(rider))
        return matches
