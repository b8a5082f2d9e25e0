"""
RiderOps Configuration Management

This module provides configuration management for RiderOps.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default_config.yaml'


class RiderOpsConfig:
    """
    Manages system-wide configuration for RiderOps

    This class follows the singleton pattern to ensure only one configuration instance exists.
    It manages the database connection, store selection, bulk eligibility tuning and logging.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, 'initialized'):
            self.config: Dict[str, Any] = {}

            # Load default configuration shipped with the package
            with open(DEFAULT_CONFIG_PATH, 'r') as f:
                self.config = yaml.safe_load(f)

            # Merge user configuration if it exists
            self.config_file = Path.home() / '.riderops' / 'config.yaml'
            if self.config_file.exists():
                self._load_config()

            self.initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next instantiation reloads from disk"""
        cls._instance = None

    @classmethod
    def from_file(cls, config_path: str) -> 'RiderOpsConfig':
        """Load configuration from file on top of the defaults

        Args:
            config_path: Path to configuration file

        Returns:
            RiderOpsConfig instance
        """
        instance = cls()
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration from {config_path}: {str(e)}")
            raise
        instance._update_config_recursive(instance.config, file_config)
        instance._validate_config()
        return instance

    @classmethod
    def setup(cls, **kwargs) -> 'RiderOpsConfig':
        """
        Set up RiderOps configuration and persist it to the user config file

        Args:
            database: Database configuration
                - type: Database type ('sqlite' or 'postgresql')
                - path: Path to SQLite database file
                - postgres: PostgreSQL settings (host, port, database, user, password)
            store: Store configuration
                - type: 'sql' or 'memory'
            eligibility: Bulk recompute tuning
                - page_size, batch_size, max_concurrent_batches, group_delay
            logging: Logging configuration
                - level: Logging level
                - format: Log record format
        """
        instance = cls()

        for section in ('database', 'store', 'eligibility', 'logging'):
            if section in kwargs:
                instance.config.setdefault(section, {})
                instance._update_config_recursive(instance.config[section], kwargs[section])

        instance._validate_config()

        instance.config_file.parent.mkdir(parents=True, exist_ok=True)
        instance._save_config()

        logger.info("RiderOps configuration updated")
        return instance

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value

        Args:
            key: Configuration key (dot notation, e.g. 'eligibility.batch_size')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        try:
            value = self.config
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value

        Args:
            key: Configuration key (dot notation)
            value: Configuration value
        """
        keys = key.split('.')
        config = self.config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value

    def _load_config(self) -> None:
        """Load configuration from the user file"""
        try:
            with open(self.config_file, 'r') as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuntimeError(f"Invalid YAML in configuration file: {str(e)}") from e

        if file_config is None:
            raise RuntimeError("Configuration file is empty")

        self._update_config_recursive(self.config, file_config)
        logger.info(f"Configuration loaded from {self.config_file}")
        self._validate_config()

    def _validate_config(self) -> None:
        """Validate configuration structure and values"""
        if not isinstance(self.config, dict):
            raise RuntimeError("Configuration must be a dictionary")

        for section in ('database', 'store', 'eligibility', 'logging'):
            if section not in self.config:
                raise RuntimeError(f"Missing required configuration section: {section}")

        db_type = self.config['database'].get('type')
        if db_type not in ('sqlite', 'postgresql'):
            raise RuntimeError(f"Unsupported database type: {db_type}")
        if db_type == 'sqlite' and not self.config['database'].get('path'):
            raise RuntimeError("SQLite database path not specified")
        if db_type == 'postgresql':
            postgres = self.config['database'].get('postgres', {})
            for field in ('host', 'port', 'database', 'user'):
                if field not in postgres:
                    raise RuntimeError(f"PostgreSQL {field} not specified")

        store_type = self.config['store'].get('type')
        if store_type not in ('sql', 'memory'):
            raise RuntimeError(f"Unsupported store type: {store_type}")

        eligibility = self.config['eligibility']
        for field in ('page_size', 'batch_size', 'max_concurrent_batches'):
            if int(eligibility.get(field, 0)) < 1:
                raise RuntimeError(f"eligibility.{field} must be a positive integer")
        if float(eligibility.get('group_delay', 0)) < 0:
            raise RuntimeError("eligibility.group_delay must not be negative")

    def _save_config(self) -> None:
        """Save configuration to file"""
        try:
            with open(self.config_file, 'w') as f:
                yaml.dump(self.config, f, default_flow_style=False, sort_keys=False)
            logger.info(f"Configuration saved to {self.config_file}")
        except OSError as e:
            logger.error(f"Failed to save configuration: {str(e)}")
            raise

    def _update_config_recursive(self, base: Dict[str, Any], update: Dict[str, Any]) -> None:
        """Update configuration recursively"""
        for key, value in update.items():
            if isinstance(value, dict) and key in base and isinstance(base[key], dict):
                self._update_config_recursive(base[key], value)
            else:
                base[key] = value

    def get_database_config(self) -> Dict[str, Any]:
        """Get database configuration"""
        return self.config.get('database', {})

    def get_eligibility_config(self) -> Dict[str, Any]:
        """Get bulk eligibility configuration"""
        return self.config.get('eligibility', {})

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration"""
        return self.config.get('logging', {})

    def validate(self) -> bool:
        """Validate configuration"""
        try:
            self._validate_config()
            return True
        except (RuntimeError, TypeError, ValueError) as e:
            logger.error(f"Configuration validation failed: {str(e)}")
            return False

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration"""
        return self.config.copy()


def configure_logging(config: Optional[RiderOpsConfig] = None, level: Optional[str] = None) -> None:
    """
    Configure root logging from the ``logging`` section

    Args:
        config: Configuration to read; defaults to the singleton
        level: Optional level name overriding the configured one
    """
    config = config or RiderOpsConfig()
    logging_config = config.get_logging_config()
    logging.basicConfig(
        level=getattr(logging, (level or logging_config.get('level', 'INFO')).upper()),
        format=logging_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )
