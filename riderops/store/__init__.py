from riderops.store.abstract_store import RiderStore
from riderops.store.memory_store import MemoryRiderStore
from riderops.store.sql_store import SQLRiderStore
from riderops.store.store_factory import StoreFactory

__all__ = ['RiderStore', 'MemoryRiderStore', 'SQLRiderStore', 'StoreFactory']
