"""
Pytest configuration and shared fixtures.

Provides a fixed evaluation time and builders for project snapshot data.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from src.anomaly.engine import AnomalyEngine
from src.core.config import AnomalyConfig, Config
from src.core.logging_config import setup_logging


NOW = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)


def days_ago(days: int) -> str:
    """
    Date string `days` before NOW (negative values are in the future).

    NOW is at noon, so a date-only string is always `days` + 0.5 days away.
    """
    return (NOW - timedelta(days=days)).date().isoformat()


@pytest.fixture(scope="session", autouse=True)
def configure_logging(tmp_path_factory):
    """Attach log handlers once, writing to a temporary logs dir."""
    settings = Config(logs_dir=tmp_path_factory.mktemp("logs"), log_level="WARNING")
    return setup_logging(settings=settings)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def engine() -> AnomalyEngine:
    """Engine with default thresholds pinned to NOW."""
    return AnomalyEngine(settings=AnomalyConfig(), clock=lambda: NOW)


@pytest.fixture
def sample_project() -> Dict[str, Any]:
    """
    Fixture providing a realistic project as the dashboard stores it.

    Mirrors the dashboard's mock road project: a few BOQ lines, schedule
    tasks, lab tests, RFIs, vehicles with logs and two daily reports.
    Nothing in it crosses a detector threshold.
    """
    return {
        "id": "proj-001",
        "name": "Kathmandu Ring Road Upgrade",
        "schedule": [
            {
                "id": "st-001",
                "name": "Site Clearing",
                "startDate": days_ago(45),
                "endDate": days_ago(38),
                "progress": 100,
                "status": "Completed",
            },
            {
                "id": "st-002",
                "name": "Excavation Work",
                "startDate": days_ago(20),
                "endDate": days_ago(-20),
                "progress": 55,
                "status": "On Track",
            },
        ],
        "boq": [
            {
                "id": "boq-001",
                "itemNo": "1.1",
                "description": "Clearing and grubbing of trees and vegetation",
                "unit": "sq.m",
                "quantity": 15000,
                "rate": 45,
                "amount": 15000 * 45,
                "completedQuantity": 12000,
            },
            {
                "id": "boq-002",
                "itemNo": "1.2",
                "description": "Excavation in ordinary soil",
                "unit": "cu.m",
                "quantity": 8500,
                "rate": 1200,
                "amount": 8500 * 1200,
                "completedQuantity": 7200,
            },
        ],
        "labTests": [
            {"id": "lt-001", "testName": "Concrete Cube Test", "result": "Pass"},
            {"id": "lt-002", "testName": "Aggregate Impact Value", "result": "Pending"},
        ],
        "rfis": [
            {"id": "rfi-001", "rfiNumber": "RFI-001", "status": "Open"},
            {"id": "rfi-002", "rfiNumber": "RFI-002", "status": "Approved"},
            {"id": "rfi-003", "rfiNumber": "RFI-003", "status": "Approved"},
            {"id": "rfi-004", "rfiNumber": "RFI-004", "status": "Approved"},
        ],
        "ncrs": [],
        "vehicles": [
            {"id": "v-001", "plateNumber": "BA 1 JA 2001", "status": "Active"},
            {"id": "v-002", "plateNumber": "BA 1 JA 2002", "status": "Maintenance"},
        ],
        "vehicleLogs": [
            {"id": "vl-001", "vehicleId": "v-001", "date": days_ago(2)},
            {"id": "vl-002", "vehicleId": "v-002", "date": days_ago(3)},
        ],
        "dailyReports": [
            {
                "id": "dr-001",
                "date": days_ago(2),
                "workToday": [{"id": "dwi-001", "description": "Excavation work"}],
            },
            {
                "id": "dr-002",
                "date": days_ago(1),
                "workToday": [{"id": "dwi-002", "description": "GSB laying"}],
            },
        ],
        "weather": {"impactOnSchedule": "None"},
    }


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
