import asyncio
import logging
import threading
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from riderops.db.connection import Database
from riderops.db.models import Rider
from riderops.errors import PersistenceError
from riderops.models.rider import RiderRecord
from riderops.store.abstract_store import RiderStore

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: Rider) -> RiderRecord:
    return RiderRecord(
        id=row.id,
        rider_id=row.rider_id,
        data=dict(row.data or {}),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        last_upload_id=row.last_upload_id
    )


class SQLRiderStore(RiderStore):
    """
    Rider store backed by the ``riders`` table

    Blocking SQLAlchemy calls run in worker threads so concurrent batches
    overlap; every call opens its own session. When the engine shares a
    single connection (in-memory SQLite) the calls are serialized.
    """

    def __init__(self, db: Optional[Database] = None):
        self.db = db or Database()
        # Sessions on a StaticPool share one connection and its transaction
        self._lock = threading.Lock() if isinstance(self.db.engine.pool, StaticPool) else nullcontext()

    async def _call(self, operation, *args):
        return await asyncio.to_thread(self._locked, operation, *args)

    def _locked(self, operation, *args):
        with self._lock:
            return operation(*args)

    async def count(self) -> int:
        return await self._call(self._count)

    def _count(self) -> int:
        try:
            with self.db.transaction() as session:
                return session.execute(select(func.count()).select_from(Rider)).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count riders: {str(e)}") from e

    async def fetch_page(self, offset: int, limit: int) -> List[RiderRecord]:
        return await self._call(self._fetch_page, offset, limit)

    def _fetch_page(self, offset: int, limit: int) -> List[RiderRecord]:
        query = (
            select(Rider)
            .order_by(Rider.updated_at.desc(), Rider.id.desc())
            .offset(offset)
            .limit(limit)
        )
        try:
            with self.db.transaction() as session:
                return [_to_record(row) for row in session.execute(query).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to fetch riders {offset}-{offset + limit - 1}: {str(e)}") from e

    async def get_by_key(self, rider_id: str) -> Optional[RiderRecord]:
        return await self._call(self._get_by_key, rider_id)

    def _get_by_key(self, rider_id: str) -> Optional[RiderRecord]:
        try:
            with self.db.transaction() as session:
                row = session.execute(
                    select(Rider).where(Rider.rider_id == rider_id)
                ).scalar_one_or_none()
                return _to_record(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load rider {rider_id}: {str(e)}", rider_id=rider_id) from e

    async def update_by_key(self, rider_id: str, data: Dict[str, Any], timestamp: datetime) -> None:
        await self._call(self._update_by_key, rider_id, data, timestamp)

    def _update_by_key(self, rider_id: str, data: Dict[str, Any], timestamp: datetime) -> None:
        statement = (
            update(Rider)
            .where(Rider.rider_id == rider_id)
            .values(data=dict(data), updated_at=timestamp)
        )
        try:
            with self.db.transaction() as session:
                result = session.execute(statement)
                if result.rowcount == 0:
                    raise PersistenceError(f"Cannot update missing rider: {rider_id}", rider_id=rider_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update rider {rider_id}: {str(e)}", rider_id=rider_id) from e

    async def add_rider(self, rider_id: str, data: Dict[str, Any],
                        last_upload_id: Optional[str] = None) -> RiderRecord:
        return await self._call(self._add_rider, rider_id, data, last_upload_id)

    def _add_rider(self, rider_id: str, data: Dict[str, Any],
                   last_upload_id: Optional[str]) -> RiderRecord:
        try:
            with self.db.transaction() as session:
                row = Rider(rider_id=rider_id, data=dict(data), last_upload_id=last_upload_id)
                session.add(row)
                session.flush()
                record = _to_record(row)
        except IntegrityError as e:
            raise PersistenceError(f"Rider already exists: {rider_id}", rider_id=rider_id) from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to add rider {rider_id}: {str(e)}", rider_id=rider_id) from e
        logger.debug(f"Added rider {rider_id}")
        return record

    async def search(self, term: str) -> List[RiderRecord]:
        return await self._call(self._search, term)

    def _search(self, term: str) -> List[RiderRecord]:
        pattern = f"%{term}%"
        query = (
            select(Rider)
            .where(or_(
                Rider.rider_id.ilike(pattern),
                Rider.data['rider_name'].as_string().ilike(pattern),
                Rider.data['phone'].as_string().ilike(pattern),
            ))
            .order_by(Rider.updated_at.desc())
        )
        try:
            with self.db.transaction() as session:
                return [_to_record(row) for row in session.execute(query).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to search riders: {str(e)}") from e
