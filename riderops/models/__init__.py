from riderops.models.rider import (
    AuditStatus,
    DeliveryType,
    JobStatus,
    PipelineStatus,
    RiderRecord,
)

__all__ = ['AuditStatus', 'DeliveryType', 'JobStatus', 'PipelineStatus', 'RiderRecord']
