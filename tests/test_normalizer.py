"""
Tests for rider field normalization
"""

import pytest

from riderops.processors.normalizer import (
    ALLOWED_VALUES,
    clean_rider_data,
    normalize,
    validate_rider_data,
)


class TestNormalize:
    """Test normalize() against literal input/output pairs"""

    @pytest.mark.parametrize('field, raw, expected', [
        ('delivery_type', '  motor-bike ', 'Motorcycle'),
        ('delivery_type', 'CAR', 'Car'),
        ('delivery_type', 'Automobile', 'Car'),
        ('delivery_type', 'bike', 'Motorcycle'),
        ('delivery_type', 'motorcycle', 'Motorcycle'),
        ('audit_status', 'Approved!!', 'Audit Pass'),
        ('audit_status', 'audit_pass', 'Audit Pass'),
        ('audit_status', 'accepted', 'Audit Pass'),
        ('audit_status', 'FAILED', 'Audit Reject'),
        ('audit_status', 'denied', 'Audit Reject'),
        ('audit_status', 'audit-reject', 'Audit Reject'),
        ('job_status', 'resigned', 'Resign'),
        ('job_status', 'Resign', 'Resign'),
        ('job_status', 'on-job', 'On Job'),
        ('job_status', '  ON   JOB ', 'On Job'),
        ('job_status', 'quit', 'Resign'),
        ('job_status', 'left company', 'Resign'),
    ])
    def test_known_variations(self, field, raw, expected):
        """Test that common variations map to canonical values"""
        assert normalize(field, raw) == expected

    def test_empty_values(self):
        """Test that empty or missing values normalize to an empty string"""
        assert normalize('delivery_type', '') == ''
        assert normalize('delivery_type', None) == ''

    def test_unmatched_value_is_cleaned_not_rejected(self):
        """Test that unknown values come back cleaned"""
        assert normalize('delivery_type', '  Van__(large) ') == 'Van large'

    def test_canonical_values_are_fixed_points(self):
        """Test that canonical values normalize to themselves"""
        for field, allowed in ALLOWED_VALUES.items():
            for value in allowed:
                assert normalize(field, value) == value

    def test_unknown_field(self):
        """Test that normalizing an unsupported field is a programming error"""
        with pytest.raises(ValueError, match="cannot be normalized"):
            normalize('training_status', 'Eligible')


class TestCleanRiderData:
    """Test whole-record cleaning"""

    def test_cleans_enumerated_and_text_fields(self):
        """Test that enumerated fields are normalized and text fields tidied"""
        data = {
            'rider_id': 'R-1',
            'delivery_type': 'motor_bike',
            'audit_status': 'pass',
            'job_status': 'on the job',
            'rider_name': '  Jane    Doe ',
            'vehicle_number': ' AB  123 ',
            'notes': '  left   as is ',
        }

        cleaned = clean_rider_data(data)

        assert cleaned['delivery_type'] == 'Motorcycle'
        assert cleaned['audit_status'] == 'Audit Pass'
        assert cleaned['job_status'] == 'On Job'
        assert cleaned['rider_name'] == 'Jane Doe'
        assert cleaned['vehicle_number'] == 'AB 123'
        assert cleaned['notes'] == '  left   as is '
        # Input untouched
        assert data['delivery_type'] == 'motor_bike'

    def test_missing_fields_stay_missing(self):
        """Test that absent fields are not introduced"""
        assert clean_rider_data({'rider_name': 'A'}) == {'rider_name': 'A'}


class TestValidateRiderData:
    """Test canonical-value validation"""

    def test_valid_record(self):
        report = validate_rider_data({
            'delivery_type': 'Car',
            'audit_status': 'Audit Reject',
            'job_status': 'On Job',
        })
        assert report.is_valid
        assert report.errors == []

    def test_invalid_values_are_reported(self):
        """Test that each non-canonical field yields one error"""
        report = validate_rider_data({
            'delivery_type': 'Van',
            'audit_status': 'Audit Pass',
            'job_status': 'Resigned',
        })
        assert not report.is_valid
        assert len(report.errors) == 2
        assert 'Invalid delivery_type: "Van"' in report.errors[0]
        assert 'Invalid job_status: "Resigned"' in report.errors[1]
