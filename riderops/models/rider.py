"""
Rider data model

A rider is a record keyed by ``rider_id`` that carries an open attribute map.
Only the keys declared here mean anything to the eligibility engine; every
other key is passed through untouched.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class DeliveryType(str, Enum):
    """Vehicle class"""
    CAR = "Car"
    MOTORCYCLE = "Motorcycle"


class AuditStatus(str, Enum):
    """Background/quality audit outcome"""
    PASS = "Audit Pass"
    REJECT = "Audit Reject"


class JobStatus(str, Enum):
    """Employment status"""
    ON_JOB = "On Job"
    RESIGN = "Resign"


# Legacy spelling still present in stored data
RESIGNED_ALIAS = "Resigned"
RESIGNED_VALUES = frozenset({JobStatus.RESIGN.value, RESIGNED_ALIAS})


class PipelineStatus(str, Enum):
    """State of the training, box installation and equipment pipelines"""
    ELIGIBLE = "Eligible"
    NOT_ELIGIBLE = "Not Eligible"
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"

    @classmethod
    def sticky(cls) -> Tuple['PipelineStatus', ...]:
        """States the engine must never overwrite"""
        return (cls.SCHEDULED, cls.COMPLETED)


# Attribute keys
DELIVERY_TYPE = 'delivery_type'
AUDIT_STATUS = 'audit_status'
JOB_STATUS = 'job_status'
TRAINING_STATUS = 'training_status'
BOX_INSTALLATION = 'box_installation'
EQUIPMENT_STATUS = 'equipment_status'

PIPELINE_FIELDS = (TRAINING_STATUS, BOX_INSTALLATION, EQUIPMENT_STATUS)
ELIGIBILITY_FIELDS = (DELIVERY_TYPE, AUDIT_STATUS, JOB_STATUS) + PIPELINE_FIELDS

# Scheduling fields cleared by the resignation cascade, per pipeline
TRAINING_SCHEDULE_FIELDS = (
    'training_scheduled_date',
    'training_scheduled_time',
    'training_location',
)
INSTALLATION_SCHEDULE_FIELDS = (
    'installation_scheduled_date',
    'installation_scheduled_time',
    'installation_scheduled_time_end',
    'installation_location',
    'installation_vendor_id',
    'installation_vendor_name',
    'installation_vendor_email',
)
INSTALLATION_IN_PROGRESS = 'installation_in_progress'
EQUIPMENT_SCHEDULE_FIELDS = (
    'equipment_scheduled_date',
    'equipment_scheduled_time',
    'equipment_location',
)

EQUIPMENT_RETURN_REQUIRED = 'equipment_return_required'
EQUIPMENT_RETURN_STATUS = 'equipment_return_status'
INSTALLATION_RETURN_REQUIRED = 'installation_return_required'
INSTALLATION_RETURN_STATUS = 'installation_return_status'
RETURN_PENDING = 'Pending'

LAST_UPDATED_BY = 'last_updated_by'
LAST_UPDATED_AT = 'last_updated_at'

# Human readable pipeline names used in update messages
PIPELINE_LABELS = {
    TRAINING_STATUS: 'Training status',
    BOX_INSTALLATION: 'Box installation',
    EQUIPMENT_STATUS: 'Equipment status',
}


def default_pipeline_data() -> Dict[str, str]:
    """Pipeline statuses a freshly created rider starts with"""
    return {key: PipelineStatus.NOT_ELIGIBLE.value for key in PIPELINE_FIELDS}


@dataclass
class RiderRecord:
    """A rider as returned by a store"""
    id: str
    rider_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_upload_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'rider_id': self.rider_id,
            'data': dict(self.data),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'last_upload_id': self.last_upload_id,
        }
