"""
Rider Field Normalizer

Cleans free-text values typed into spreadsheets and forms into the fixed
enumerations the eligibility engine understands.
Handles:
- Whitespace, hyphen and underscore cleanup
- Case-insensitive matching against canonical values
- Substring heuristics for common variations ("motor-bike", "Approved!!")
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from riderops.models.rider import (
    AUDIT_STATUS,
    DELIVERY_TYPE,
    JOB_STATUS,
    AuditStatus,
    DeliveryType,
    JobStatus,
)

ALLOWED_VALUES: Dict[str, Tuple[str, ...]] = {
    DELIVERY_TYPE: tuple(member.value for member in DeliveryType),
    AUDIT_STATUS: tuple(member.value for member in AuditStatus),
    JOB_STATUS: tuple(member.value for member in JobStatus),
}

# (canonical value, any-of substrings), checked in order
_HEURISTICS: Dict[str, List[Tuple[str, Tuple[str, ...]]]] = {
    DELIVERY_TYPE: [
        (DeliveryType.CAR.value, ('car', 'automobile')),
        (DeliveryType.MOTORCYCLE.value, ('motorcycle', 'bike', 'motor')),
    ],
    AUDIT_STATUS: [
        (AuditStatus.PASS.value, ('pass', 'approved', 'accept')),
        (AuditStatus.REJECT.value, ('reject', 'fail', 'denied')),
    ],
    JOB_STATUS: [
        (JobStatus.RESIGN.value, ('resign', 'quit', 'left')),
    ],
}

# Free-text identity fields that only get whitespace cleanup
TEXT_FIELDS = (
    'rider_name',
    'mobile',
    'nationality_code',
    'resident_type',
    'partner_company_name_en',
    'identity_card_number',
    'vehicle_number',
)

_SEPARATORS = re.compile(r'[-_]')
_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')


def _clean(value: Any) -> str:
    cleaned = str(value).strip()
    cleaned = _SEPARATORS.sub(' ', cleaned)
    cleaned = _PUNCTUATION.sub(' ', cleaned)
    return _WHITESPACE.sub(' ', cleaned).strip()


def normalize(field_name: str, raw_value: Any) -> str:
    """
    Normalize a raw field value to its canonical enumeration member.

    Args:
        field_name: One of ``delivery_type``, ``audit_status``, ``job_status``
        raw_value: Value as typed by a human or imported from a file

    Returns:
        The canonical value, or the cleaned input when nothing matches

    Raises:
        ValueError: If ``field_name`` is not a normalizable field
    """
    if field_name not in ALLOWED_VALUES:
        raise ValueError(f"Field cannot be normalized: {field_name}")

    if raw_value is None or raw_value == '':
        return ''

    cleaned = _clean(raw_value)
    lowered = cleaned.lower()

    for allowed in ALLOWED_VALUES[field_name]:
        if allowed.lower() == lowered:
            return allowed

    if field_name == JOB_STATUS and 'on' in lowered and 'job' in lowered:
        return JobStatus.ON_JOB.value

    for canonical, needles in _HEURISTICS[field_name]:
        if any(needle in lowered for needle in needles):
            return canonical

    return cleaned


def clean_rider_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``data`` with enumerated and free-text fields cleaned"""
    cleaned = dict(data)

    for field_name in ALLOWED_VALUES:
        if cleaned.get(field_name):
            cleaned[field_name] = normalize(field_name, cleaned[field_name])

    for field_name in TEXT_FIELDS:
        if cleaned.get(field_name):
            cleaned[field_name] = _WHITESPACE.sub(' ', str(cleaned[field_name]).strip())

    return cleaned


@dataclass
class ValidationReport:
    """Outcome of :func:`validate_rider_data`"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def validate_rider_data(data: Dict[str, Any]) -> ValidationReport:
    """Check that present enumerated fields hold canonical values"""
    errors = []
    for field_name, allowed in ALLOWED_VALUES.items():
        value = data.get(field_name)
        if value and value not in allowed:
            errors.append(
                f'Invalid {field_name}: "{value}". Must be: {", ".join(allowed)}'
            )
    return ValidationReport(is_valid=not errors, errors=errors)
