"""
Project module: snapshot schema, loading, and date normalization.

    Raw project JSON (dashboard state)
        ↓
    Loading (src/project/loader.py) → ProjectSnapshot
        ↓
    Ready for anomaly detection (src/anomaly)
"""

from src.project.loader import (
    load_snapshot,
    load_snapshot_file,
    load_snapshot_json,
)
from src.project.normalizers import NormalizationError, normalize_date
from src.project.schema import (
    BOQItem,
    DailyReport,
    DailyWorkItem,
    LabTest,
    NCR,
    ProjectSnapshot,
    RFI,
    ScheduleTask,
    Vehicle,
    VehicleLog,
    WeatherInfo,
)

__all__ = [
    # Schema
    "ProjectSnapshot",
    "ScheduleTask",
    "BOQItem",
    "LabTest",
    "RFI",
    "NCR",
    "Vehicle",
    "VehicleLog",
    "DailyReport",
    "DailyWorkItem",
    "WeatherInfo",

    # Loading
    "load_snapshot",
    "load_snapshot_json",
    "load_snapshot_file",

    # Normalization
    "normalize_date",
    "NormalizationError",
]
