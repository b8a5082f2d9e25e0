from riderops.processors.eligibility import compute_updates
from riderops.processors.normalizer import (
    ALLOWED_VALUES,
    ValidationReport,
    clean_rider_data,
    normalize,
    validate_rider_data,
)

__all__ = [
    'compute_updates',
    'ALLOWED_VALUES',
    'ValidationReport',
    'clean_rider_data',
    'normalize',
    'validate_rider_data',
]
