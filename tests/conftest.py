import pytest

from riderops.config.riderops_config import RiderOpsConfig
from riderops.store.memory_store import MemoryRiderStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the user config at a temporary home and reload defaults"""
    monkeypatch.setenv('HOME', str(tmp_path))
    RiderOpsConfig.reset()
    yield RiderOpsConfig()
    RiderOpsConfig.reset()


@pytest.fixture
def memory_store():
    return MemoryRiderStore()


def on_job_motorcycle(**overrides):
    """Attribute map of an active motorcycle rider that passed audit"""
    data = {
        'rider_name': 'Test Rider',
        'delivery_type': 'Motorcycle',
        'audit_status': 'Audit Pass',
        'job_status': 'On Job',
        'training_status': 'Not Eligible',
        'box_installation': 'Not Eligible',
        'equipment_status': 'Not Eligible',
    }
    data.update(overrides)
    return data


def on_job_car(**overrides):
    """Attribute map of an active car rider that passed audit"""
    return on_job_motorcycle(**{'delivery_type': 'Car', **overrides})
