from riderops.config.riderops_config import RiderOpsConfig, configure_logging

__all__ = ['RiderOpsConfig', 'configure_logging']
