from typing import Any, Dict, Optional

from riderops.config.riderops_config import RiderOpsConfig
from riderops.db.connection import Database
from riderops.store.abstract_store import RiderStore
from riderops.store.memory_store import MemoryRiderStore
from riderops.store.sql_store import SQLRiderStore


class StoreFactory:
    """
    Factory for creating rider stores

    Creates and configures the appropriate store based on configuration.
    """

    _store_classes = {
        'memory': MemoryRiderStore,
        'sql': SQLRiderStore,
    }

    @classmethod
    def register_store(cls, name: str, store_class: type) -> None:
        """
        Register a new store backend

        Args:
            name: Name of the store backend
            store_class: Class implementing RiderStore
        """
        if not issubclass(store_class, RiderStore):
            raise ValueError("Store class must inherit from RiderStore")
        cls._store_classes[name.lower()] = store_class

    @classmethod
    def create_store(cls, config: Optional[RiderOpsConfig] = None) -> RiderStore:
        """
        Create a rider store from configuration

        Args:
            config: RiderOpsConfig instance; defaults to the singleton

        Returns:
            Configured store instance

        Raises:
            ValueError: If the store type is unknown
        """
        config = config or RiderOpsConfig()
        store_config: Dict[str, Any] = config.get('store', {}) or {}
        store_type = str(store_config.get('type', 'sql')).lower()

        store_class = cls._store_classes.get(store_type)
        if store_class is None:
            raise ValueError(f"Unknown store type: {store_type}")

        if store_class is SQLRiderStore:
            db = Database(config)
            db.create_tables()
            return SQLRiderStore(db)
        return store_class(store_config)
