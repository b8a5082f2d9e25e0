"""
Eligibility Engine

Derives training, box installation and equipment eligibility from a rider's
attribute map.

Rules:
- Training: (Car + Audit Pass + On Job) OR box installation Completed
- Box installation: Motorcycle + Audit Pass + On Job
- Equipment: training Completed
- Scheduled and Completed pipelines are never overwritten
- Resignation clears open pipelines and flags completed work for return

The engine is a pure function: it reads one snapshot of the attributes and
returns the keys that must be written. It performs no I/O and no logging.
"""

from typing import Any, Dict, Mapping

from riderops.models.rider import (
    AUDIT_STATUS,
    BOX_INSTALLATION,
    DELIVERY_TYPE,
    EQUIPMENT_RETURN_REQUIRED,
    EQUIPMENT_RETURN_STATUS,
    EQUIPMENT_SCHEDULE_FIELDS,
    EQUIPMENT_STATUS,
    INSTALLATION_IN_PROGRESS,
    INSTALLATION_RETURN_REQUIRED,
    INSTALLATION_RETURN_STATUS,
    INSTALLATION_SCHEDULE_FIELDS,
    JOB_STATUS,
    RESIGNED_VALUES,
    RETURN_PENDING,
    TRAINING_SCHEDULE_FIELDS,
    TRAINING_STATUS,
    AuditStatus,
    DeliveryType,
    JobStatus,
    PipelineStatus,
)

ELIGIBLE = PipelineStatus.ELIGIBLE.value
NOT_ELIGIBLE = PipelineStatus.NOT_ELIGIBLE.value
COMPLETED = PipelineStatus.COMPLETED.value
SCHEDULED = PipelineStatus.SCHEDULED.value

# Pipeline states the resignation cascade resets
_OPEN_STATES = (SCHEDULED, ELIGIBLE, '')


def _text(attributes: Mapping[str, Any], key: str) -> str:
    return str(attributes.get(key) or '').strip()


def _is_sticky(status: str) -> bool:
    return status in (COMPLETED, SCHEDULED)


def _resignation_cascade(attributes: Mapping[str, Any], training: str,
                         installation: str, equipment: str) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}

    if training in _OPEN_STATES:
        updates[TRAINING_STATUS] = NOT_ELIGIBLE
        updates.update(dict.fromkeys(TRAINING_SCHEDULE_FIELDS))

    if installation in _OPEN_STATES:
        updates[BOX_INSTALLATION] = NOT_ELIGIBLE
        updates.update(dict.fromkeys(INSTALLATION_SCHEDULE_FIELDS))
        updates[INSTALLATION_IN_PROGRESS] = False

    if equipment in _OPEN_STATES:
        updates[EQUIPMENT_STATUS] = NOT_ELIGIBLE
        updates.update(dict.fromkeys(EQUIPMENT_SCHEDULE_FIELDS))

    if equipment == COMPLETED:
        updates[EQUIPMENT_RETURN_REQUIRED] = True
        updates[EQUIPMENT_RETURN_STATUS] = attributes.get(EQUIPMENT_RETURN_STATUS) or RETURN_PENDING

    if installation == COMPLETED:
        updates[INSTALLATION_RETURN_REQUIRED] = True
        updates[INSTALLATION_RETURN_STATUS] = attributes.get(INSTALLATION_RETURN_STATUS) or RETURN_PENDING

    return updates


def compute_updates(attributes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Compute the attribute changes implied by the eligibility rules.

    Args:
        attributes: The rider's current attribute map

    Returns:
        Partial attribute map. A pipeline in a sticky state that resignation
        does not touch is absent from the result.
    """
    delivery_type = _text(attributes, DELIVERY_TYPE)
    audit_status = _text(attributes, AUDIT_STATUS)
    job_status = _text(attributes, JOB_STATUS)
    installation = _text(attributes, BOX_INSTALLATION)
    training = _text(attributes, TRAINING_STATUS)
    equipment = _text(attributes, EQUIPMENT_STATUS)

    audit_pass = audit_status == AuditStatus.PASS.value
    on_job = job_status == JobStatus.ON_JOB.value
    is_car = delivery_type == DeliveryType.CAR.value
    is_motorcycle = delivery_type == DeliveryType.MOTORCYCLE.value
    install_completed = installation == COMPLETED
    training_completed = training == COMPLETED
    resigned = job_status in RESIGNED_VALUES

    updates: Dict[str, Any] = {}

    # A resigned rider is never eligible for an open pipeline
    if not _is_sticky(training):
        eligible = (is_car and audit_pass and on_job) or install_completed
        updates[TRAINING_STATUS] = ELIGIBLE if eligible and not resigned else NOT_ELIGIBLE

    if not _is_sticky(installation):
        eligible = is_motorcycle and audit_pass and on_job
        updates[BOX_INSTALLATION] = ELIGIBLE if eligible else NOT_ELIGIBLE

    if not _is_sticky(equipment):
        eligible = training_completed
        updates[EQUIPMENT_STATUS] = ELIGIBLE if eligible and not resigned else NOT_ELIGIBLE

    if resigned:
        updates.update(_resignation_cascade(attributes, training, installation, equipment))

    return updates
