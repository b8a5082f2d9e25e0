from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from riderops.models.rider import RiderRecord


class RiderStore(ABC):
    """
    Abstract base class for rider stores

    Defines the document-store interface the eligibility services depend on:
    a collection of records keyed by ``rider_id`` holding a JSON attribute map.
    All methods are coroutines so that implementations backed by remote
    services can be awaited concurrently.
    """

    @abstractmethod
    async def count(self) -> int:
        """
        Count all riders

        Returns:
            Authoritative number of records in the store
        """
        pass

    @abstractmethod
    async def fetch_page(self, offset: int, limit: int) -> List[RiderRecord]:
        """
        Fetch one page of riders ordered by ``updated_at`` descending

        Args:
            offset: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Up to ``limit`` riders; fewer (or none) at the end of the collection
        """
        pass

    @abstractmethod
    async def get_by_key(self, rider_id: str) -> Optional[RiderRecord]:
        """
        Get a rider by business identifier

        Args:
            rider_id: Rider identifier

        Returns:
            The rider, or None if it does not exist
        """
        pass

    @abstractmethod
    async def update_by_key(self, rider_id: str, data: Dict[str, Any], timestamp: datetime) -> None:
        """
        Replace a rider's attribute map atomically

        Args:
            rider_id: Rider identifier
            data: Complete attribute map to store
            timestamp: Value for ``updated_at``

        Raises:
            PersistenceError: If the rider is missing or the write fails
        """
        pass

    @abstractmethod
    async def add_rider(self, rider_id: str, data: Dict[str, Any],
                        last_upload_id: Optional[str] = None) -> RiderRecord:
        """
        Insert a new rider

        Raises:
            PersistenceError: If ``rider_id`` already exists or the write fails
        """
        pass

    @abstractmethod
    async def search(self, term: str) -> List[RiderRecord]:
        """
        Case-insensitive substring search over rider id, name and phone

        Returns:
            Matching riders ordered by ``updated_at`` descending
        """
        pass
